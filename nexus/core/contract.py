"""
Nexus Projection Contract Definitions

SINGLE SOURCE OF TRUTH for the ordering and namespacing contract shared by
the timeline builder and its tests. Import from this module, do not
duplicate these tables.

Ordering Contract (timeline entries):
  Primary: timestampMs ascending
  Tie-break 1: source priority
      OPERATION_EVENT -> COMMS_CALLOUT -> COMMAND_BUS -> SPEAK_REQUEST
  Tie-break 2: entry id (lexicographic)

Namespacing Contract:
  Every entry id is "<prefix>:<native id>" with a distinct prefix per source,
  so ids from heterogeneous sources never collide.
"""

from typing import Dict

from .events import TimelineSource


# ============================================================================
# Ordering Contract
# ============================================================================

# Lower number sorts first when timestamps tie
SOURCE_PRIORITY: Dict[TimelineSource, int] = {
    TimelineSource.OPERATION_EVENT: 0,
    TimelineSource.COMMS_CALLOUT: 1,
    TimelineSource.COMMAND_BUS: 2,
    TimelineSource.SPEAK_REQUEST: 3,
}


# ============================================================================
# Namespacing Contract
# ============================================================================

SOURCE_ID_PREFIX: Dict[TimelineSource, str] = {
    TimelineSource.OPERATION_EVENT: "op",
    TimelineSource.COMMS_CALLOUT: "callout",
    TimelineSource.COMMAND_BUS: "bus",
    TimelineSource.SPEAK_REQUEST: "speak",
}


def namespacedId(source: TimelineSource, nativeId: str) -> str:
    """Build a source-prefixed entry id: 'op:evt_123'."""
    return f"{SOURCE_ID_PREFIX[source]}:{nativeId}"


# ============================================================================
# Projection defaults
# ============================================================================

MS_PER_MINUTE = 60_000
DEFAULT_WINDOW_MINUTES = 30
DEFAULT_LANE_TTL_SECONDS = 20 * 60


# ============================================================================
# Validation Helpers
# ============================================================================

def validateSourcePriority():
    """SOURCE_PRIORITY covers every source with unique sequential values."""
    assert set(SOURCE_PRIORITY.keys()) == set(TimelineSource), \
        "SOURCE_PRIORITY must cover all timeline sources"

    priorities = sorted(SOURCE_PRIORITY.values())
    assert priorities == list(range(len(priorities))), \
        "SOURCE_PRIORITY values must be unique and sequential from 0"


def validateIdPrefixes():
    """SOURCE_ID_PREFIX covers every source with distinct prefixes."""
    assert set(SOURCE_ID_PREFIX.keys()) == set(TimelineSource), \
        "SOURCE_ID_PREFIX must cover all timeline sources"

    prefixes = list(SOURCE_ID_PREFIX.values())
    assert len(prefixes) == len(set(prefixes)), \
        "SOURCE_ID_PREFIX values must be distinct"


# Fail fast on contract violations
validateSourcePriority()
validateIdPrefixes()
