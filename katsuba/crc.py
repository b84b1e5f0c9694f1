"""CRC32 checksums as stored in KIWAD archive journals."""

from __future__ import annotations

import zlib

_U32_MAX = 0xFFFFFFFF


def checksum(data: bytes | bytearray | memoryview) -> int:
    """Compute the CRC32 of ``data`` the way KIWAD archives encode it.

    This is the reflected CRC32 polynomial run with a zero initial state
    and no final inversion.
    """
    return zlib.crc32(data, _U32_MAX) ^ _U32_MAX