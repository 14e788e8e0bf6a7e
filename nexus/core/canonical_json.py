"""
Canonical JSON (RFC 8785 JCS)

Wraps the canonicaljson library so content-derived ids stay stable:
- Sorted object keys
- Minimal whitespace
- UTF-8 encoding

Used for operation event ids: same content -> same id.
"""

import canonicaljson


def canonicalJson(obj) -> str:
    """
    Canonical JSON serialization.

    Args:
        obj: JSON-compatible Python object

    Returns:
        Canonical JSON string

    Raises:
        TypeError: If obj contains non-serializable types

    Examples:
        >>> canonicalJson({"b": 2, "a": 1})
        '{"a":1,"b":2}'
    """
    return canonicaljson.encode_canonical_json(obj).decode('utf-8')
