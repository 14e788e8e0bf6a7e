"""
Map Timeline Service Tests

Validates the replay snapshot contract:
- Scoping by opId (operation events) / eventId (comms records)
- Source-namespaced entry ids
- Per-source timestamp normalization (createdAt vs createdDate)
- replayCursorMs = nowMs - offsetMinutes * 60000
- visibleEntries window ends at the replay cursor
- Deterministic ordering (timestampMs, source priority, id)
"""

import os
import random
import sys

import pytest

# Add project root to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from nexus.core.events import CommsCallout, CommsPriority, TimelineSource
from nexus.core.ordering import validateOrdering
from nexus.core.timeutil import msToIso
from nexus.services.mapTimelineService import (
    adaptCallout,
    buildMapTimelineSnapshot,
)


NOW_MS = 1_767_225_600_000  # 2026-01-01T00:00:00Z
MINUTE_MS = 60_000
OP_ID = "op_alpha"
OTHER_OP_ID = "op_bravo"


def minutesAgo(minutes):
    return msToIso(NOW_MS - int(minutes * MINUTE_MS))


def opEvent(eventId, kind, minutes, opId=OP_ID, payload=None, createdBy="member-1"):
    return {
        "id": eventId,
        "opId": opId,
        "kind": kind,
        "createdBy": createdBy,
        "createdAt": minutesAgo(minutes),
        "payload": payload or {},
    }


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def nowMs():
    return NOW_MS


@pytest.fixture
def events():
    return [
        opEvent("evt_1", "DECLARE_DEPARTURE", 25, payload={"route": "Lorville -> Port Tressler"}),
        opEvent("evt_2", "REPORT_CONTACT", 12, payload={"nodeId": "city-lorville", "count": 3}),
        opEvent("evt_3", "DECLARE_HOLD", 4, payload={"nodeId": "station-everus-harbor"}),
        opEvent("evt_x", "DECLARE_HOLD", 4, opId=OTHER_OP_ID),
    ]


@pytest.fixture
def commsOverlay():
    return {
        "callouts": [
            {"id": "co_1", "eventId": OP_ID, "netId": "net-cmd", "lane": "CONTACT",
             "priority": "critical", "message": "Contact front", "createdDate": minutesAgo(12)},
            {"id": "co_x", "eventId": OTHER_OP_ID, "message": "Elsewhere", "createdDate": minutesAgo(3)},
        ],
        "commandBus": [
            {"id": "bus_1", "eventId": OP_ID, "netId": "net-cmd", "action": "HOLD_POSITION",
             "payload": {"summary": "All squads hold"}, "actorMemberProfileId": "member-lead",
             "createdDate": minutesAgo(8)},
        ],
        "speakRequests": [
            {"requestId": "sr_1", "eventId": OP_ID, "netId": "net-cmd", "requesterMemberProfileId": "member-7",
             "status": "pending", "reason": "Need medevac", "createdDate": minutesAgo(2)},
        ],
    }


# ============================================================================
# Scoping and namespacing
# ============================================================================

class TestScoping:

    def test_entries_only_include_requested_op(self, nowMs, events, commsOverlay):
        snapshot = buildMapTimelineSnapshot(OP_ID, nowMs=nowMs, events=events, commsOverlay=commsOverlay)

        assert snapshot.entries
        assert all(entry.opId == OP_ID for entry in snapshot.entries)
        sourceIds = {entry.sourceId for entry in snapshot.entries}
        assert "evt_x" not in sourceIds
        assert "co_x" not in sourceIds

    def test_other_op_sees_only_its_records(self, nowMs, events, commsOverlay):
        snapshot = buildMapTimelineSnapshot(OTHER_OP_ID, nowMs=nowMs, events=events, commsOverlay=commsOverlay)
        assert sorted(entry.id for entry in snapshot.entries) == ["callout:co_x", "op:evt_x"]

    def test_missing_op_id_yields_no_entries(self, nowMs, events, commsOverlay):
        snapshot = buildMapTimelineSnapshot(None, nowMs=nowMs, events=events, commsOverlay=commsOverlay)
        assert snapshot.entries == []
        assert snapshot.visibleEntries == []

    def test_ids_are_source_namespaced(self, nowMs, events, commsOverlay):
        snapshot = buildMapTimelineSnapshot(OP_ID, nowMs=nowMs, events=events, commsOverlay=commsOverlay)
        ids = {entry.id for entry in snapshot.entries}

        assert ids == {"op:evt_1", "op:evt_2", "op:evt_3", "callout:co_1", "bus:bus_1", "speak:sr_1"}

    def test_same_native_id_across_sources_does_not_collide(self, nowMs):
        snapshot = buildMapTimelineSnapshot(
            OP_ID, nowMs=nowMs,
            events=[opEvent("shared", "DECLARE_HOLD", 1)],
            commsOverlay={
                "callouts": [{"id": "shared", "eventId": OP_ID, "createdDate": minutesAgo(1)}],
                "commandBus": [{"id": "shared", "eventId": OP_ID, "createdDate": minutesAgo(1)}],
                "speakRequests": [{"requestId": "shared", "eventId": OP_ID, "createdDate": minutesAgo(1)}],
            },
        )
        assert [entry.id for entry in snapshot.entries] == [
            "op:shared", "callout:shared", "bus:shared", "speak:shared"
        ]


# ============================================================================
# Normalization
# ============================================================================

class TestNormalization:

    def test_each_source_maps_its_own_timestamp_field(self, nowMs, events, commsOverlay):
        snapshot = buildMapTimelineSnapshot(OP_ID, nowMs=nowMs, events=events, commsOverlay=commsOverlay)
        byId = {entry.id: entry for entry in snapshot.entries}

        assert byId["op:evt_1"].timestampMs == NOW_MS - 25 * MINUTE_MS
        assert byId["callout:co_1"].timestampMs == NOW_MS - 12 * MINUTE_MS
        assert byId["bus:bus_1"].timestampMs == NOW_MS - 8 * MINUTE_MS
        assert byId["speak:sr_1"].timestampMs == NOW_MS - 2 * MINUTE_MS

    def test_offset_timestamps_normalize_to_utc(self, nowMs):
        snapshot = buildMapTimelineSnapshot(OP_ID, nowMs=nowMs, events=[{
            "id": "evt_tz", "opId": OP_ID, "kind": "DECLARE_HOLD", "createdBy": "m",
            "createdAt": "2025-12-31T19:00:00-05:00", "payload": {},
        }])
        assert snapshot.entries[0].timestampMs == NOW_MS

    def test_unparsable_timestamps_are_dropped(self, nowMs):
        snapshot = buildMapTimelineSnapshot(
            OP_ID, nowMs=nowMs,
            events=[{"id": "evt_bad", "opId": OP_ID, "kind": "DECLARE_HOLD", "createdAt": "yesterday"}],
            commsOverlay={"callouts": [{"id": "co_bad", "eventId": OP_ID}]},
        )
        assert snapshot.entries == []

    def test_titles_details_and_priorities(self, nowMs, events, commsOverlay):
        snapshot = buildMapTimelineSnapshot(OP_ID, nowMs=nowMs, events=events, commsOverlay=commsOverlay)
        byId = {entry.id: entry for entry in snapshot.entries}

        assert byId["op:evt_1"].title == "Declare departure"
        assert byId["op:evt_1"].detail == "Lorville -> Port Tressler"
        assert byId["op:evt_1"].priority == CommsPriority.STANDARD
        assert byId["op:evt_2"].priority == CommsPriority.HIGH
        assert byId["op:evt_2"].detail == "city-lorville | 3 hostile"
        assert byId["callout:co_1"].priority == CommsPriority.CRITICAL
        assert byId["callout:co_1"].title == "Callout CONTACT"
        assert byId["bus:bus_1"].title == "Hold position"
        assert byId["bus:bus_1"].detail == "All squads hold"
        assert byId["bus:bus_1"].actorId == "member-lead"
        assert byId["speak:sr_1"].title == "Speak request pending"
        assert byId["speak:sr_1"].actorId == "member-7"

    def test_payload_priority_overrides_default(self, nowMs):
        snapshot = buildMapTimelineSnapshot(OP_ID, nowMs=nowMs, events=[
            opEvent("evt_p", "DECLARE_HOLD", 1, payload={"priority": "CRITICAL"}),
            opEvent("evt_q", "MARK_AVOID", 1, payload={"priority": "bogus"}),
        ])
        byId = {entry.id: entry for entry in snapshot.entries}
        assert byId["op:evt_p"].priority == CommsPriority.CRITICAL
        assert byId["op:evt_q"].priority == CommsPriority.HIGH

    def test_callout_without_id_is_rejected(self):
        callout = CommsCallout.fromDict({"eventId": OP_ID, "createdDate": minutesAgo(1)})
        assert adaptCallout(callout) is None

    def test_event_without_id_gets_stable_content_id(self, nowMs):
        record = {"opId": OP_ID, "kind": "DECLARE_HOLD", "createdBy": "m",
                  "createdAt": minutesAgo(1), "payload": {"nodeId": "city-orison"}}
        first = buildMapTimelineSnapshot(OP_ID, nowMs=nowMs, events=[record])
        second = buildMapTimelineSnapshot(OP_ID, nowMs=nowMs, events=[dict(record)])

        assert first.entries[0].id.startswith("op:evt_")
        assert first.entries[0].id == second.entries[0].id

    def test_malformed_records_never_fail_the_build(self, nowMs):
        snapshot = buildMapTimelineSnapshot(
            OP_ID, nowMs=nowMs,
            events=[None, "garbage", 42, opEvent("evt_ok", "DECLARE_HOLD", 1)],
            commsOverlay={"callouts": "not-a-list", "commandBus": [None, {"eventId": OP_ID}]},
        )
        assert [entry.id for entry in snapshot.entries] == ["op:evt_ok"]

    def test_entries_serialize_to_plain_data(self, nowMs, events, commsOverlay):
        data = buildMapTimelineSnapshot(OP_ID, nowMs=nowMs, events=events, commsOverlay=commsOverlay).toDict()
        entry = data["entries"][0]

        assert entry["source"] == TimelineSource.OPERATION_EVENT.value
        assert isinstance(entry["priority"], str)
        assert data["replayCursorMs"] == NOW_MS


# ============================================================================
# Replay window
# ============================================================================

class TestReplayWindow:

    @pytest.mark.parametrize("offsetMinutes", [0, 1, 7.5, 30, 600])
    def test_replay_cursor_formula(self, nowMs, offsetMinutes):
        snapshot = buildMapTimelineSnapshot(OP_ID, nowMs=nowMs, offsetMinutes=offsetMinutes)
        assert snapshot.replayCursorMs == nowMs - offsetMinutes * MINUTE_MS

    def test_negative_offset_and_window_clamp_to_zero(self, nowMs):
        snapshot = buildMapTimelineSnapshot(OP_ID, nowMs=nowMs, windowMinutes=-5, offsetMinutes=-10)
        assert snapshot.replayCursorMs == nowMs
        assert snapshot.windowStartMs == nowMs

    def test_visible_window_ends_at_cursor(self, nowMs, events, commsOverlay):
        snapshot = buildMapTimelineSnapshot(OP_ID, nowMs=nowMs, windowMinutes=10, offsetMinutes=5,
                                            events=events, commsOverlay=commsOverlay)

        # Cursor at -5m, window [-15m, -5m]: contact (-12), callout (-12), bus (-8)
        assert [entry.id for entry in snapshot.visibleEntries] == ["op:evt_2", "callout:co_1", "bus:bus_1"]
        assert snapshot.windowStartMs == nowMs - 15 * MINUTE_MS

    def test_window_bounds_are_inclusive(self, nowMs):
        snapshot = buildMapTimelineSnapshot(OP_ID, nowMs=nowMs, windowMinutes=10, events=[
            opEvent("evt_edge_old", "DECLARE_HOLD", 10),
            opEvent("evt_edge_now", "DECLARE_HOLD", 0),
            opEvent("evt_too_old", "DECLARE_HOLD", 10.001),
        ])
        assert [entry.sourceId for entry in snapshot.visibleEntries] == ["evt_edge_old", "evt_edge_now"]

    def test_future_entries_stay_hidden_while_scrubbing(self, nowMs, events, commsOverlay):
        snapshot = buildMapTimelineSnapshot(OP_ID, nowMs=nowMs, windowMinutes=60, offsetMinutes=10,
                                            events=events, commsOverlay=commsOverlay)

        assert all(entry.timestampMs <= snapshot.replayCursorMs for entry in snapshot.visibleEntries)
        assert "op:evt_3" in {entry.id for entry in snapshot.entries}
        assert "op:evt_3" not in {entry.id for entry in snapshot.visibleEntries}

    def test_visible_is_ordered_subset_of_entries(self, nowMs, events, commsOverlay):
        for offset in (0, 3, 9, 20):
            snapshot = buildMapTimelineSnapshot(OP_ID, nowMs=nowMs, windowMinutes=15, offsetMinutes=offset,
                                                events=events, commsOverlay=commsOverlay)
            entryIds = [entry.id for entry in snapshot.entries]
            visibleIds = [entry.id for entry in snapshot.visibleEntries]

            assert set(visibleIds) <= set(entryIds)
            assert visibleIds == [entryId for entryId in entryIds if entryId in set(visibleIds)]
            stamps = [entry.timestampMs for entry in snapshot.visibleEntries]
            assert stamps == sorted(stamps)


# ============================================================================
# Ordering
# ============================================================================

class TestOrdering:

    def test_ties_broken_by_source_priority_then_id(self, nowMs, events, commsOverlay):
        snapshot = buildMapTimelineSnapshot(OP_ID, nowMs=nowMs, events=events, commsOverlay=commsOverlay)
        ids = [entry.id for entry in snapshot.entries]

        # evt_2 and co_1 share a timestamp; the operation event sorts first
        assert ids.index("op:evt_2") + 1 == ids.index("callout:co_1")
        assert validateOrdering(snapshot.entries)

    def test_output_independent_of_input_order(self, nowMs, events, commsOverlay):
        expected = buildMapTimelineSnapshot(OP_ID, nowMs=nowMs, events=events, commsOverlay=commsOverlay).toDict()

        rng = random.Random(7)
        for _ in range(5):
            shuffledEvents = list(events)
            rng.shuffle(shuffledEvents)
            shuffledOverlay = {key: list(value) for key, value in commsOverlay.items()}
            for value in shuffledOverlay.values():
                rng.shuffle(value)
            actual = buildMapTimelineSnapshot(OP_ID, nowMs=nowMs, events=shuffledEvents,
                                              commsOverlay=shuffledOverlay).toDict()
            assert actual == expected

    def test_duplicate_ids_keep_first_in_order(self, nowMs):
        snapshot = buildMapTimelineSnapshot(OP_ID, nowMs=nowMs, events=[
            opEvent("evt_dup", "DECLARE_HOLD", 3),
            opEvent("evt_dup", "DECLARE_HOLD", 9),
        ])
        assert len(snapshot.entries) == 1
        assert snapshot.entries[0].timestampMs == NOW_MS - 9 * MINUTE_MS
