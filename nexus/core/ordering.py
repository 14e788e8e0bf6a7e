"""
Nexus Deterministic Timeline Ordering

Implements the ordering contract for merged timeline entries. The timeline
builder, the CLI and the tests all sort through this module.

Ordering Contract (contract.py):
  Primary: timestampMs ascending
  Source priority: Operation event -> Callout -> Command bus -> Speak request
  Final tie-break: entry id (lexicographic)

Invariants:
- Same input -> same output, regardless of input order
- Entries are accepted as objects with attributes or as plain dicts
"""

from functools import cmp_to_key
from typing import Any, List

from .contract import SOURCE_PRIORITY
from .events import TimelineSource


def _field(entry: Any, name: str):
    if isinstance(entry, dict):
        return entry[name]
    return getattr(entry, name)


def compareEntries(a: Any, b: Any) -> int:
    """
    Compare two timeline entries according to the ordering contract.

    Returns:
      -1 if a < b
       0 if a == b
       1 if a > b
    """
    timeA = _field(a, 'timestampMs')
    timeB = _field(b, 'timestampMs')

    if timeA < timeB:
        return -1
    elif timeA > timeB:
        return 1

    priorityA = SOURCE_PRIORITY[TimelineSource(_field(a, 'source'))]
    priorityB = SOURCE_PRIORITY[TimelineSource(_field(b, 'source'))]

    if priorityA < priorityB:
        return -1
    elif priorityA > priorityB:
        return 1

    idA = _field(a, 'id')
    idB = _field(b, 'id')

    if idA < idB:
        return -1
    elif idA > idB:
        return 1

    return 0


def sortEntries(entries: List[Any]) -> List[Any]:
    """
    Sort entries according to the deterministic ordering contract.

    Returns:
        New sorted list (input not modified)
    """
    return sorted(entries, key=cmp_to_key(compareEntries))


def validateOrdering(entries: List[Any]) -> bool:
    """True when every adjacent pair is in contract order. Used by tests."""
    for i in range(len(entries) - 1):
        if compareEntries(entries[i], entries[i + 1]) > 0:
            return False
    return True
