"""Binary stream helpers for length-prefixed strings and maps.

Integer length prefixes are little-endian ``u32`` values.
"""

from __future__ import annotations

import io
import struct
from typing import IO, Any, Callable, Iterable

_U32 = struct.Struct("<I")


def _read_exact(stream: IO[bytes], count: int) -> bytes:
    data = stream.read(count)
    if len(data) < count:
        raise EOFError(f"expected {count} bytes, got {len(data)}")
    return data


def _read_u32(stream: IO[bytes]) -> int:
    return _U32.unpack(_read_exact(stream, _U32.size))[0]


def read_prefixed_string(stream: IO[bytes], length: int, null: bool) -> str:
    """Read a UTF-8 string of ``length`` bytes, optionally null-terminated.

    When ``null`` is set, the last byte of ``length`` is the terminator and
    is skipped rather than decoded.
    """
    raw = _read_exact(stream, max(length - int(null), 0))
    position = stream.seek(int(null), io.SEEK_CUR)
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ValueError(
            f"invalid UTF-8 string at offset {position - length}"
        ) from exc


def write_prefixed_string(stream: IO[bytes], value: str, null: bool) -> None:
    """Write the UTF-8 bytes of ``value``, followed by a null byte if asked."""
    stream.write(value.encode("utf-8"))
    if null:
        stream.write(b"\x00")


def read_string_list(stream: IO[bytes], count: int, null: bool) -> list[str]:
    """Read ``count`` strings, each prefixed with its ``u32`` byte length."""
    return [
        read_prefixed_string(stream, _read_u32(stream), null) for _ in range(count)
    ]


def write_string_list(stream: IO[bytes], values: Iterable[str], null: bool) -> None:
    """Write strings, each prefixed with its ``u32`` byte length.

    The prefix holds the encoded length without the optional terminator.
    """
    for value in values:
        stream.write(_U32.pack(len(value.encode("utf-8"))))
        write_prefixed_string(stream, value, null)


def read_map(
    stream: IO[bytes],
    count: int,
    read_key: Callable[[IO[bytes]], Any],
    read_value_arg: Callable[[IO[bytes]], Any],
    read_value: Callable[[IO[bytes], Any], Any],
) -> dict[Any, Any]:
    """Read ``count`` entries of key, value argument and value.

    For every entry the key is read with ``read_key``, then an argument
    with ``read_value_arg``, which is handed to ``read_value``.
    """
    result: dict[Any, Any] = {}
    for _ in range(count):
        key = read_key(stream)
        arg = read_value_arg(stream)
        result[key] = read_value(stream, arg)
    return result


def write_map(
    stream: IO[bytes],
    mapping: dict[Any, Any],
    write_key: Callable[[IO[bytes], Any], None],
    value_arg: Callable[[IO[bytes], Any], None],
    write_value: Callable[[IO[bytes], Any], None],
) -> None:
    """Write every entry as key, value argument and value.

    ``value_arg`` writes the argument derived from each value, mirroring
    what ``read_value_arg`` reads back in :func:`read_map`.
    """
    for key, value in mapping.items():
        write_key(stream, key)
        value_arg(stream, value)
        write_value(stream, value)