"""Zlib compression of archived file contents."""

from __future__ import annotations

import zlib


class DecompressionError(ValueError):
    """Raised when compressed data is malformed or of unexpected size."""


def inflate(data: bytes | bytearray | memoryview, expected_size: int) -> bytes:
    """Decompress a zlib stream that must inflate to exactly ``expected_size`` bytes."""
    if expected_size < 0:
        raise ValueError("expected_size must not be negative")

    decoder = zlib.decompressobj()
    try:
        # Ask for one byte more than expected to detect oversized output
        # without inflating an arbitrarily large stream.
        output = decoder.decompress(data, expected_size + 1)
    except zlib.error as exc:
        raise DecompressionError(f"bad data: {exc}") from exc

    if len(output) > expected_size:
        raise DecompressionError("insufficient space for decompressed data")
    if not decoder.eof or len(output) != expected_size:
        raise DecompressionError("bad data")
    return output


def deflate(data: bytes | bytearray | memoryview) -> bytes:
    """Compress ``data`` into a zlib stream at the best compression level."""
    return zlib.compress(bytes(data), level=9)