"""
Timestamp normalization.

Every source adapter converts its native timestamp field into epoch
milliseconds here. Naive ISO-8601 strings are read as UTC.
"""

import time
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def currentMs() -> int:
    """Wall-clock now in epoch milliseconds."""
    return int(time.time() * 1000)


def parseTimestampMs(value: Any) -> Optional[int]:
    """
    Normalize a timestamp to epoch milliseconds.

    Accepts ISO-8601 strings (with 'Z' or an offset), datetime objects and
    numeric epoch milliseconds. Returns None for anything unparsable.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        if value != value or value in (float('inf'), float('-inf')):
            return None
        return int(value)

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            dt = datetime.fromisoformat(text.replace('Z', '+00:00'))
        except ValueError:
            return None
    else:
        return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return (dt - _EPOCH) // timedelta(milliseconds=1)


def msToIso(ms: int) -> str:
    """Epoch milliseconds to 'YYYY-MM-DDTHH:MM:SS.mmmZ'."""
    dt = _EPOCH + timedelta(milliseconds=int(ms))
    return dt.strftime('%Y-%m-%dT%H:%M:%S.') + f"{dt.microsecond // 1000:03d}Z"
