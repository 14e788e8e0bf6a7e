"""
TTL Profile Registry

Default time-to-live values. Defaults only; callers may override with an
explicit ttlSeconds.

- CQB profiles: per CQB variant, keyed by CQB event type
- Operation profiles: per posture, keyed by operation status
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple


@dataclass(frozen=True)
class TtlProfile:
    id: str
    variantId: str
    defaultsByEventType: Dict[str, int] = field(default_factory=dict)
    notes: str = ""


@dataclass(frozen=True)
class OperationTtlProfile:
    id: str
    posture: str
    defaultsByStatus: Dict[str, int] = field(default_factory=dict)
    notes: str = ""


BREVITY_TTL_DEFAULTS: Dict[str, int] = {
    "ROGER": 90,
    "WILCO": 120,
    "STAND_BY": 120,
    "SAY_AGAIN": 120,
    "CLEAR_COMMS": 180,
    "ON_ME": 150,
    "MOVE_OUT": 240,
    "HOLD": 180,
    "GREEN": 180,
    "RELOADING": 300,
    "CEASE_FIRE": 300,
    "CHECK_FIRE": 300,
}


def _profile(profileId: str, variantId: str, overrides: Dict[str, int], notes: str) -> TtlProfile:
    return TtlProfile(profileId, variantId, {**BREVITY_TTL_DEFAULTS, **overrides}, notes)


TTL_PROFILES: Tuple[TtlProfile, ...] = (
    _profile("TTL-CQB-01", "CQB-01",
             {"STACK": 30, "ENTRY": 25, "CLEAR": 45, "CONTACT": 20, "OBJECTIVE_SECURED": 120},
             "Entry and clear events decay quickly except secured objectives."),
    _profile("TTL-CQB-02", "CQB-02",
             {"BREACH": 20, "ENTRY": 20, "CONTACT": 15, "CLEAR": 30, "EXTRACT": 45},
             "Boarding telemetry is volatile."),
    _profile("TTL-CQB-03", "CQB-03",
             {"CONTACT": 20, "HOLD": 240, "SUPPRESS": 25, "RETREAT": 30},
             "Defensive holds persist longer than contact spikes."),
    _profile("TTL-CQB-04", "CQB-04",
             {"DOWNED": 30, "REVIVE": 45, "EXTRACT": 60, "HOLD": 240},
             "Extraction intents persist through handoff."),
    _profile("TTL-CQB-05", "CQB-05",
             {"INTEL_MARKER": 40, "THREAT_UPDATE": 35, "CONTACT": 15},
             "Low-visibility confidence decays quickly."),
    _profile("TTL-CQB-06", "CQB-06",
             {"BREACH": 20, "FLANK": 25, "OBJECTIVE_SECURED": 120},
             "Synchronized actions use tight TTL."),
    _profile("TTL-CQB-07", "CQB-07",
             {"CONTACT": 15, "SUPPRESS": 20, "RETREAT": 25},
             "Counter-boarding states rotate rapidly."),
    _profile("TTL-CQB-08", "CQB-08",
             {"STACK": 60, "CLEAR": 60, "OBJECTIVE_SECURED": 180},
             "Training lane keeps events for after-action review."),
)

OPERATION_TTL_PROFILES: Tuple[OperationTtlProfile, ...] = (
    OperationTtlProfile(
        "TTL-OP-FOCUSED", "FOCUSED",
        {"PLANNING": 1800, "ACTIVE": 900, "WRAPPING": 1800, "ARCHIVED": 3600},
        "Focused ops need faster freshness checks while active.",
    ),
    OperationTtlProfile(
        "TTL-OP-CASUAL", "CASUAL",
        {"PLANNING": 3600, "ACTIVE": 2400, "WRAPPING": 3600, "ARCHIVED": 7200},
        "Casual ops allow longer recency windows.",
    ),
)

TTL_PROFILE_BY_ID: Dict[str, TtlProfile] = {profile.id: profile for profile in TTL_PROFILES}
OPERATION_TTL_PROFILE_BY_ID: Dict[str, OperationTtlProfile] = {
    profile.id: profile for profile in OPERATION_TTL_PROFILES
}


def getTtlProfile(profileId: str) -> Optional[TtlProfile]:
    return TTL_PROFILE_BY_ID.get(profileId)


def getDefaultTtlSeconds(profileId: str, eventType: str, fallbackSeconds: int = 60) -> int:
    profile = TTL_PROFILE_BY_ID.get(profileId)
    if profile is None:
        return fallbackSeconds
    return profile.defaultsByEventType.get(eventType, fallbackSeconds)


def getOperationTtlSeconds(profileId: str, status: str, fallbackSeconds: int = 2400) -> int:
    profile = OPERATION_TTL_PROFILE_BY_ID.get(profileId)
    if profile is None:
        return fallbackSeconds
    return profile.defaultsByStatus.get(str(getattr(status, 'value', status)), fallbackSeconds)
