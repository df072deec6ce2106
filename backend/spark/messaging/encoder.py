"""
MessagePack framing for the WebSocket transport.

Outbound payloads are plain dicts, usually produced by
``model_dump(mode="json")``. Values that MessagePack cannot pack natively
(datetimes, enums, sets) are converted by ``_default`` so a plain
``model_dump()`` also encodes.
"""

from datetime import datetime
from enum import Enum
from typing import Any

import msgpack


def _default(obj: object) -> object:
    """Convert values msgpack does not know into wire-friendly ones."""
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, (set, frozenset)):
        return sorted(obj)
    raise TypeError(f"cannot encode object of type {type(obj).__name__}")


def encode(data: dict[str, Any]) -> bytes:
    """Encode a dict to MessagePack bytes."""
    return msgpack.packb(data, default=_default)


class DecodeError(Exception):
    """Error raised when an inbound frame is not a valid message."""


# Size limits to prevent resource exhaustion from malicious payloads.
MAX_BUFFER_LEN = 64 * 1024  # 64KB total payload
MAX_STR_LEN = 8 * 1024  # 8KB per string
MAX_BIN_LEN = 8 * 1024
MAX_ARRAY_LEN = 1024  # max array elements
MAX_MAP_LEN = 64  # max map entries
MAX_EXT_LEN = 256


def decode(data: bytes) -> dict[str, Any]:
    """
    Decode MessagePack bytes to a dict.

    Raises DecodeError if data is invalid, not a dict, or exceeds size limits.
    """
    if len(data) > MAX_BUFFER_LEN:
        raise DecodeError(f"payload too large: {len(data)} bytes (max {MAX_BUFFER_LEN})")
    try:
        result = msgpack.unpackb(
            data,
            raw=False,
            strict_map_key=True,
            max_str_len=MAX_STR_LEN,
            max_bin_len=MAX_BIN_LEN,
            max_array_len=MAX_ARRAY_LEN,
            max_map_len=MAX_MAP_LEN,
            max_ext_len=MAX_EXT_LEN,
        )
    except (msgpack.UnpackException, ValueError) as e:
        raise DecodeError(f"failed to decode MessagePack data: {e}") from e

    if not isinstance(result, dict):
        raise DecodeError(f"expected dict, got {type(result).__name__}")

    return result
