"""
Nexus Map Timeline Service

Merges operation events and the three comms overlay sources into one
ordered, windowed replay snapshot.

Architecture Invariants:
- Pure projection: same inputs -> same snapshot, no write-back
- Scoping: only records whose own opId (operation events) or eventId (comms
  records) equals the requested opId are included
- Namespaced ids: "<source prefix>:<native id>" (contract.py)
- Each adapter normalizes its own timestamp field (createdAt, createdDate)
  into timestampMs; records without a parsable timestamp are dropped
- replayCursorMs = nowMs - offsetMinutes * 60000
- visibleEntries: windowStartMs <= timestampMs <= replayCursorMs, where
  windowStartMs = replayCursorMs - windowMinutes * 60000
- Ordering per ordering.py (timestampMs, source priority, id)
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from fieldkit.logging import getLogger

from nexus.core.contract import DEFAULT_WINDOW_MINUTES, MS_PER_MINUTE, namespacedId
from nexus.core.events import (
    CommandBusEntry,
    CommsCallout,
    CommsPriority,
    ContactReported,
    OperationEventKind,
    OperationEventUnion,
    RoutedOperationEvent,
    SpeakRequest,
    TimelineSource,
    UnknownOperationEvent,
    coerceCommsOverlay,
    coerceOperationEvent,
    computeEventId,
)
from nexus.core.ordering import sortEntries
from nexus.core.timeutil import currentMs, parseTimestampMs


log = getLogger()

# Operation event kinds that surface as HIGH unless the payload overrides
HIGH_PRIORITY_KINDS = {
    OperationEventKind.REPORT_CONTACT.value,
    OperationEventKind.MARK_AVOID.value,
}


@dataclass
class TimelineEntry:
    """One normalized timeline row. Plain data, safe to serialize."""
    id: str
    source: TimelineSource
    sourceId: str
    opId: str
    timestampMs: int
    title: str
    detail: str = ""
    actorId: Optional[str] = None
    netId: Optional[str] = None
    priority: CommsPriority = CommsPriority.STANDARD

    def toDict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "source": self.source.value,
            "sourceId": self.sourceId,
            "opId": self.opId,
            "timestampMs": self.timestampMs,
            "title": self.title,
            "detail": self.detail,
            "actorId": self.actorId,
            "netId": self.netId,
            "priority": self.priority.value,
        }


@dataclass
class TimelineSnapshot:
    opId: Optional[str]
    nowMs: int
    windowMinutes: float
    offsetMinutes: float
    replayCursorMs: int
    windowStartMs: int
    entries: List[TimelineEntry] = field(default_factory=list)
    visibleEntries: List[TimelineEntry] = field(default_factory=list)

    def toDict(self) -> Dict[str, Any]:
        return {
            "opId": self.opId,
            "nowMs": self.nowMs,
            "windowMinutes": self.windowMinutes,
            "offsetMinutes": self.offsetMinutes,
            "replayCursorMs": self.replayCursorMs,
            "windowStartMs": self.windowStartMs,
            "entries": [entry.toDict() for entry in self.entries],
            "visibleEntries": [entry.toDict() for entry in self.visibleEntries],
        }


def _priority(value: Any, default: CommsPriority = CommsPriority.STANDARD) -> CommsPriority:
    try:
        return CommsPriority(str(value).upper())
    except ValueError:
        return default


def _humanizeKind(kind: str) -> str:
    return kind.replace('_', ' ').strip().capitalize() or "Operation event"


# ============================================================================
# Source adapters
# ============================================================================

def _operationEventDetail(event: OperationEventUnion) -> str:
    if isinstance(event, RoutedOperationEvent):
        if event.route:
            return event.route
        if event.fromNodeId and event.toNodeId:
            return f"{event.fromNodeId} -> {event.toNodeId}"
        return event.label or getattr(event, 'nodeId', None) or getattr(event, 'zoneId', None) or ""
    elif isinstance(event, ContactReported):
        parts = [part for part in (event.nodeId, event.notes) if part]
        if event.hostileCount is not None:
            parts.append(f"{event.hostileCount} hostile")
        return " | ".join(parts)
    elif isinstance(event, UnknownOperationEvent):
        summary = event.payload.get("summary") or event.payload.get("notes")
        return str(summary) if summary else ""
    return ""


def adaptOperationEvent(event: OperationEventUnion) -> Optional[TimelineEntry]:
    """Operation event -> entry. None when the createdAt timestamp is unusable."""
    timestampMs = parseTimestampMs(event.createdAt)
    if timestampMs is None:
        return None
    nativeId = event.eventId or computeEventId(
        event.opId, event.kind, event.createdBy, event.createdAt, event.payload
    )
    default = CommsPriority.HIGH if event.kind in HIGH_PRIORITY_KINDS else CommsPriority.STANDARD
    return TimelineEntry(
        id=namespacedId(TimelineSource.OPERATION_EVENT, nativeId),
        source=TimelineSource.OPERATION_EVENT,
        sourceId=nativeId,
        opId=event.opId,
        timestampMs=timestampMs,
        title=_humanizeKind(event.kind),
        detail=_operationEventDetail(event),
        actorId=event.createdBy or None,
        priority=_priority(event.payload.get("priority"), default),
    )


def adaptCallout(callout: CommsCallout) -> Optional[TimelineEntry]:
    timestampMs = parseTimestampMs(callout.createdDate)
    if timestampMs is None or not callout.id:
        return None
    return TimelineEntry(
        id=namespacedId(TimelineSource.COMMS_CALLOUT, callout.id),
        source=TimelineSource.COMMS_CALLOUT,
        sourceId=callout.id,
        opId=callout.eventId,
        timestampMs=timestampMs,
        title=f"Callout {callout.lane}" if callout.lane else "Callout",
        detail=callout.message,
        netId=callout.netId,
        priority=_priority(callout.priority),
    )


def adaptCommandBusEntry(entry: CommandBusEntry) -> Optional[TimelineEntry]:
    timestampMs = parseTimestampMs(entry.createdDate)
    if timestampMs is None or not entry.id:
        return None
    detail = entry.payload.get("summary") or entry.payload.get("message") or ""
    return TimelineEntry(
        id=namespacedId(TimelineSource.COMMAND_BUS, entry.id),
        source=TimelineSource.COMMAND_BUS,
        sourceId=entry.id,
        opId=entry.eventId,
        timestampMs=timestampMs,
        title=_humanizeKind(entry.action) if entry.action else "Command",
        detail=str(detail),
        actorId=entry.actorMemberProfileId,
        netId=entry.netId,
        priority=_priority(entry.payload.get("priority")),
    )


def adaptSpeakRequest(request: SpeakRequest) -> Optional[TimelineEntry]:
    timestampMs = parseTimestampMs(request.createdDate)
    if timestampMs is None or not request.requestId:
        return None
    return TimelineEntry(
        id=namespacedId(TimelineSource.SPEAK_REQUEST, request.requestId),
        source=TimelineSource.SPEAK_REQUEST,
        sourceId=request.requestId,
        opId=request.eventId,
        timestampMs=timestampMs,
        title=f"Speak request {request.status.lower()}",
        detail=request.reason,
        actorId=request.requesterMemberProfileId,
        netId=request.netId,
    )


# ============================================================================
# Snapshot builder
# ============================================================================

def _collectEntries(opId: str, events: Iterable[Any], commsOverlay: Any) -> List[TimelineEntry]:
    entries: List[TimelineEntry] = []

    for record in events or []:
        event = coerceOperationEvent(record)
        if event is None or event.opId != opId:
            continue
        entry = adaptOperationEvent(event)
        if entry is None:
            log.debug("[Timeline] Dropped operation event without timestamp", eventId=event.eventId)
            continue
        entries.append(entry)

    overlay = coerceCommsOverlay(commsOverlay)
    sources = (
        (overlay.callouts, adaptCallout),
        (overlay.commandBus, adaptCommandBusEntry),
        (overlay.speakRequests, adaptSpeakRequest),
    )
    for records, adapter in sources:
        for record in records:
            if record.eventId != opId:
                continue
            entry = adapter(record)
            if entry is None:
                log.debug("[Timeline] Dropped comms record without id or timestamp",
                          recordType=type(record).__name__)
                continue
            entries.append(entry)

    return entries


def buildMapTimelineSnapshot(opId: Optional[str], nowMs: Optional[int] = None,
                             windowMinutes: float = DEFAULT_WINDOW_MINUTES,
                             offsetMinutes: float = 0,
                             events: Optional[Iterable[Any]] = None,
                             commsOverlay: Any = None) -> TimelineSnapshot:
    """
    Build the replay snapshot for one operation.

    Args:
        opId: Operation to scope to; None yields an empty timeline
        nowMs: Reference time in epoch milliseconds (wall clock when None)
        windowMinutes: Width of the visible window ending at the replay cursor
        offsetMinutes: How far the replay cursor sits behind nowMs
        events: Operation events (envelopes or raw dicts)
        commsOverlay: CommsOverlay or {callouts, commandBus, speakRequests}

    Returns:
        TimelineSnapshot with all scoped entries and the visible subset
    """
    nowMs = int(nowMs) if nowMs is not None else currentMs()
    windowMinutes = max(0, windowMinutes or 0)
    offsetMinutes = max(0, offsetMinutes or 0)

    replayCursorMs = int(nowMs - offsetMinutes * MS_PER_MINUTE)
    windowStartMs = int(replayCursorMs - windowMinutes * MS_PER_MINUTE)

    entries: List[TimelineEntry] = []
    if opId:
        seen = set()
        for entry in sortEntries(_collectEntries(opId, events, commsOverlay)):
            if entry.id in seen:
                continue
            seen.add(entry.id)
            entries.append(entry)

    visibleEntries = [
        entry for entry in entries
        if windowStartMs <= entry.timestampMs <= replayCursorMs
    ]

    return TimelineSnapshot(
        opId=opId,
        nowMs=nowMs,
        windowMinutes=windowMinutes,
        offsetMinutes=offsetMinutes,
        replayCursorMs=replayCursorMs,
        windowStartMs=windowStartMs,
        entries=entries,
        visibleEntries=visibleEntries,
    )
