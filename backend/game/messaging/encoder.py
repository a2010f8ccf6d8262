"""
MessagePack framing for the WebSocket protocol.

Every frame is one MessagePack map with a string ``type`` key. Outbound
payloads come from ``model_dump()`` and may carry account ids as dict keys
(``points_change``, ``updated_balances``); those are sent as strings.
"""

from typing import Any

import msgpack

# Frames are small control messages; anything larger is hostile or broken.
MAX_FRAME_BYTES = 16 * 1024
MAX_STR_LEN = 4 * 1024
MAX_ARRAY_LEN = 64
MAX_MAP_LEN = 64


class DecodeError(Exception):
    """Frame is not a size-bounded MessagePack map."""


def _wire_keys(obj: object) -> object:
    if isinstance(obj, dict):
        return {str(k) if isinstance(k, int) else k: _wire_keys(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_wire_keys(item) for item in obj]
    return obj


def encode(data: dict[str, Any]) -> bytes:
    return msgpack.packb(_wire_keys(data))


def decode(data: bytes) -> dict[str, Any]:
    """
    Decode one inbound frame.

    Raises DecodeError if the frame is oversized, malformed or not a map.
    """
    if len(data) > MAX_FRAME_BYTES:
        raise DecodeError(f"frame too large: {len(data)} bytes (max {MAX_FRAME_BYTES})")
    try:
        result = msgpack.unpackb(
            data,
            raw=False,
            max_str_len=MAX_STR_LEN,
            max_bin_len=0,
            max_array_len=MAX_ARRAY_LEN,
            max_map_len=MAX_MAP_LEN,
            max_ext_len=0,
        )
    except (msgpack.UnpackException, ValueError) as e:
        raise DecodeError(f"failed to decode MessagePack data: {e}") from e

    if not isinstance(result, dict):
        raise DecodeError(f"expected map, got {type(result).__name__}")
    return result
