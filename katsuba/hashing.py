"""Dictionary hash functions used for game type and property names."""

from __future__ import annotations

_U32_MASK = 0xFFFFFFFF


def _as_bytes(data: str | bytes | bytearray | memoryview) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8")
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)
    raise TypeError("Cannot hash the given type")


def string_id(data: str | bytes | bytearray | memoryview) -> int:
    """Hash ``data`` with the KingsIsle String ID algorithm."""
    state = 0
    for index, byte in enumerate(_as_bytes(data)):
        value = byte - 32
        shift = (index * 5) & 31

        state ^= (value << shift) & _U32_MASK
        if shift > 24:
            state ^= (value >> (32 - shift)) & _U32_MASK

    # Interpret the state as a signed 32-bit integer and take its magnitude.
    if state & 0x80000000:
        state -= 1 << 32
    return abs(state)


def djb2(data: str | bytes | bytearray | memoryview) -> int:
    """Hash ``data`` with DJB2, stripping the most significant bit."""
    state = 5381
    for byte in _as_bytes(data):
        state = (state * 33 + byte) & _U32_MASK
    return state & (_U32_MASK >> 1)