"""
Deterministic hashing utilities.

All hashing in the rules kernel must be deterministic and reproducible across
processes.  Python's built-in ``hash()`` is salted per process for ``str`` and
must never be used for rollout bucketing.
"""

import json
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

_INT32_MASK = 0xFFFFFFFF
_INT32_SIGN = 0x80000000


def _json_serializer(obj: Any) -> Any:
    """
    Custom JSON serializer for types not natively supported.

    Raises:
        TypeError: If object type is not supported.
    """
    if isinstance(obj, Decimal):
        # Normalize Decimal to string representation
        # Remove trailing zeros for consistency
        return str(obj.normalize())
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, date):
        return obj.isoformat()
    if isinstance(obj, UUID):
        return str(obj)

    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def canonicalize_json(data: dict | list | Any) -> str:
    """
    Convert data to canonical JSON string.

    Produces a deterministic JSON representation:
    - Keys are sorted alphabetically
    - No whitespace
    - Consistent handling of special types (Decimal, date, UUID, Enum)

    Args:
        data: Data to canonicalize.

    Returns:
        Canonical JSON string.
    """
    return json.dumps(
        data,
        sort_keys=True,
        separators=(",", ":"),
        default=_json_serializer,
    )


def stable_string_hash(value: str) -> int:
    """
    Signed 32-bit polynomial hash of a string.

    Computes ``h = 31 * h + code_unit`` over the UTF-16 code units of
    ``value``, wrapping at 2**32 and interpreting the result as a signed
    32-bit integer.  The same identifier always lands in the same rollout
    bucket, in every process and on every platform.

    Args:
        value: The string to hash (e.g. a contract identifier).

    Returns:
        Integer in [-2**31, 2**31 - 1].
    """
    h = 0
    encoded = value.encode("utf-16-be")
    for i in range(0, len(encoded), 2):
        unit = (encoded[i] << 8) | encoded[i + 1]
        h = (31 * h + unit) & _INT32_MASK
    if h & _INT32_SIGN:
        h -= 1 << 32
    return h
