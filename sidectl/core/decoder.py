"""Decoding of tracker status bytes into orientations."""

from __future__ import annotations

from sidectl.core.model import Side

_SIDE_BY_BYTE: dict[int, Side] = {
    0x01: Side.BF,
    0x02: Side.BR,
    0x03: Side.BL,
    0x04: Side.BB,
    0x05: Side.TF,
    0x06: Side.TR,
    0x07: Side.TL,
    0x08: Side.TB,
}


def decode_side(value: int) -> Side:
    """Map a raw status byte to the face pointing down.

    Any value outside the face table, including the byte sent while the cube
    is lifted, decodes as `Side.UNKNOWN`.
    """
    return _SIDE_BY_BYTE.get(value, Side.UNKNOWN)


def decode_notification(data: bytes | bytearray) -> Side:
    return decode_side(data[0] if data else 0x00)
