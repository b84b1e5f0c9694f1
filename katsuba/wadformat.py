"""Binary structures of the KIWAD archive format.

An archive starts with the ``KIWAD`` magic, a header and a journal of
file entries; the file data follows after the journal. All integers are
little-endian.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from typing import IO

from katsuba.binio import read_prefixed_string, write_prefixed_string
from katsuba.crc import checksum

MAGIC = b"KIWAD"

_HEADER = struct.Struct("<II")
_FLAGS = struct.Struct("<B")
# offset, uncompressed size, compressed size, compressed flag, crc, name length
_FILE = struct.Struct("<IIIBII")


class FormatError(ValueError):
    """Raised when archive data does not follow the KIWAD format."""


class CrcMismatch(ValueError):
    """Raised when a file's stored CRC does not match its data."""

    def __init__(self, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"CRC mismatch -- expected {expected}, got {actual}")


def is_unpatched_file(data: bytes | bytearray | memoryview) -> bool:
    """Whether ``data`` consists of zero bytes only, marking an unpatched file."""
    return not any(data)


def _read_struct(stream: IO[bytes], layout: struct.Struct) -> tuple:
    raw = stream.read(layout.size)
    if len(raw) < layout.size:
        raise FormatError(f"unexpected end of data; expected {layout.size} bytes")
    return layout.unpack(raw)


@dataclass
class Header:
    """The header of a KIWAD archive."""

    version: int
    file_count: int
    flags: int | None = None

    def binary_size(self) -> int:
        """The number of bytes the header occupies when written."""
        return 8 + (1 if self.version >= 2 else 0)


@dataclass
class FileEntry:
    """Journal metadata of a file stored in an archive."""

    offset: int
    uncompressed_size: int
    compressed_size: int
    compressed: bool
    crc: int
    name: str
    is_unpatched: bool = False

    def binary_size(self) -> int:
        """The number of bytes this journal entry occupies when written."""
        return 22 + len(self.name.encode("utf-8"))

    def size(self) -> int:
        """The number of bytes of stored data this entry describes."""
        return self.compressed_size if self.compressed else self.uncompressed_size

    def extract(self, raw_archive):
        """Slice this file's stored data out of the raw archive bytes.

        Returns ``None`` when the data lies outside of the archive.
        """
        end = self.offset + self.size()
        if end > len(raw_archive):
            return None
        return raw_archive[self.offset:end]


@dataclass
class RawArchive:
    """The header and file journal of a KIWAD archive, without file data."""

    header: Header
    files: list[FileEntry] = field(default_factory=list)

    def binary_size(self) -> int:
        """The number of bytes magic, header and journal occupy when written."""
        return (
            len(MAGIC)
            + self.header.binary_size()
            + sum(entry.binary_size() for entry in self.files)
        )

    @classmethod
    def parse(cls, stream: IO[bytes]) -> RawArchive:
        """Parse the magic, header and journal from a seekable binary stream."""
        try:
            return cls._parse(stream)
        except FormatError:
            raise
        except (EOFError, ValueError) as exc:
            raise FormatError(str(exc)) from exc

    @classmethod
    def _parse(cls, stream: IO[bytes]) -> RawArchive:
        magic = stream.read(len(MAGIC))
        if magic != MAGIC:
            raise FormatError(f"bad magic; expected {MAGIC!r}, got {magic!r}")

        version, file_count = _read_struct(stream, _HEADER)
        flags = _read_struct(stream, _FLAGS)[0] if version >= 2 else None
        header = Header(version=version, file_count=file_count, flags=flags)

        files = [cls._parse_entry(stream) for _ in range(file_count)]
        return cls(header=header, files=files)

    @staticmethod
    def _parse_entry(stream: IO[bytes]) -> FileEntry:
        offset, uncompressed, compressed_size, compressed, crc, name_len = _read_struct(
            stream, _FILE
        )
        name = read_prefixed_string(stream, name_len, True)
        return FileEntry(
            offset=offset,
            uncompressed_size=uncompressed,
            compressed_size=compressed_size,
            compressed=compressed != 0,
            crc=crc,
            name=name,
        )

    def write(self, stream: IO[bytes]) -> None:
        """Write the magic, header and journal to a binary stream."""
        header = self.header
        stream.write(MAGIC)
        stream.write(_HEADER.pack(header.version, header.file_count))
        if header.flags is not None:
            stream.write(_FLAGS.pack(header.flags))

        for entry in self.files:
            stream.write(
                _FILE.pack(
                    entry.offset,
                    entry.uncompressed_size,
                    entry.compressed_size,
                    int(entry.compressed),
                    entry.crc,
                    len(entry.name.encode("utf-8")) + 1,
                )
            )
            write_prefixed_string(stream, entry.name, True)

    def verify_crcs(self, raw_archive) -> None:
        """Check every file's CRC against its data in ``raw_archive``.

        Files whose data is all zeroes are marked unpatched instead of
        failing. Raises :class:`CrcMismatch` on the first other mismatch and
        :class:`FormatError` when an entry points outside of the archive.
        """
        for entry in self.files:
            data = entry.extract(raw_archive)
            if data is None:
                raise FormatError(
                    f"journal entry '{entry.name}' has no matching data in the archive"
                )

            actual = checksum(data)
            if actual == entry.crc:
                continue
            if is_unpatched_file(data):
                entry.is_unpatched = True
                continue
            raise CrcMismatch(expected=entry.crc, actual=actual)