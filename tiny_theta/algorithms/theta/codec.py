"""
Binary wire format for theta sketches.

Layout, all fields little-endian:

    [capacity: u32][mode: u8][theta: f64][count: u32][values: count x f64]

Values are written in ascending order, so two sketches with the same logical
content always encode to identical bytes. Decoding either returns a complete,
valid sketch or raises a FormatError; a payload is never partially loaded.
"""

import logging
import struct
from typing import Tuple

from tiny_theta.algorithms.theta.sketch import Mode, ThetaSketch
from tiny_theta.core.errors import (
    FormatError,
    MalformedHeaderError,
    TrailingDataError,
)

logger = logging.getLogger(__name__)

_HEADER = struct.Struct("<IBdI")
_VALUE = struct.Struct("<d")

HEADER_SIZE = _HEADER.size  # 17 bytes
VALUE_SIZE = _VALUE.size  # 8 bytes

_MODES_BY_TAG = {mode.value: mode for mode in Mode}


def encoded_size(sketch: ThetaSketch) -> int:
    """Number of bytes serialize() produces for a sketch."""
    return HEADER_SIZE + VALUE_SIZE * len(sketch)


def serialize(sketch: ThetaSketch) -> bytes:
    """
    Encode a theta sketch.

    Args:
        sketch: The sketch to encode.

    Returns:
        The canonical byte encoding.
    """
    values = sorted(sketch.retained_values())
    header = _HEADER.pack(sketch.capacity, sketch.mode.value, sketch.theta, len(values))
    return header + struct.pack(f"<{len(values)}d", *values)


def _read_header(data: bytes) -> Tuple[int, Mode, float, int]:
    if len(data) < HEADER_SIZE:
        raise MalformedHeaderError(
            f"Payload of {len(data)} bytes is shorter than the "
            f"{HEADER_SIZE}-byte header"
        )

    capacity, tag, theta, count = _HEADER.unpack_from(data, 0)
    mode = _MODES_BY_TAG.get(tag)
    if mode is None:
        raise MalformedHeaderError(f"Unknown mode tag {tag}")
    return capacity, mode, theta, count


def deserialize(data: bytes) -> ThetaSketch:
    """
    Decode a theta sketch produced by serialize().

    Args:
        data: The encoded sketch.

    Returns:
        The decoded sketch.

    Raises:
        MalformedHeaderError: If the payload is truncated or a header field is
            out of range.
        InvariantViolationError: If the payload describes an impossible sketch.
        TrailingDataError: If bytes follow the declared body.
    """
    data = bytes(data)
    try:
        capacity, mode, theta, count = _read_header(data)

        end = HEADER_SIZE + count * VALUE_SIZE
        if len(data) < end:
            raise MalformedHeaderError(
                f"Header declares {count} values but the body holds only "
                f"{(len(data) - HEADER_SIZE) // VALUE_SIZE}"
            )
        if len(data) > end:
            raise TrailingDataError(
                f"{len(data) - end} unexpected bytes after the sketch body"
            )

        values = struct.unpack_from(f"<{count}d", data, HEADER_SIZE)
        return ThetaSketch.from_state(capacity, theta, values, mode)
    except FormatError as e:
        logger.warning("Rejected theta sketch payload: %s", e)
        raise
