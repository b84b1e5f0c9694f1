"""Assembling KIWAD archives from file contents.

Stored file data is buffered in a temporary blob cache file next to the
output archive. Only the journal is kept in memory until the archive is
finished.
"""

from __future__ import annotations

import operator
import os
import shutil
import tempfile
from pathlib import Path, PurePath
from typing import IO

from katsuba.compression import deflate
from katsuba.crc import checksum
from katsuba.wadformat import FileEntry, Header, RawArchive

_U32_MAX = 0xFFFFFFFF
_ALWAYS_UNCOMPRESSED = frozenset({"mp3", "ogg"})


class BuilderError(Exception):
    """Raised when an archive cannot be assembled."""


def _checked_u32(value: int) -> int:
    if not 0 <= value <= _U32_MAX:
        raise BuilderError("archive too large to represent")
    return value


def _entry_name(name: str | os.PathLike[str]) -> str:
    return str(os.fspath(name))


class ArchiveBuilder:
    """Builds a KIWAD archive of a given version and flags at ``out``.

    ``flags`` are ignored for versions below 2. The output file and a
    temporary blob cache in its directory are created immediately.
    """

    def __init__(self, version: int, flags: int, out: str | os.PathLike[str]) -> None:
        out_path = Path(out)
        if not out_path.name:
            raise BuilderError("path to output archive file must have a parent component")

        self._archive = RawArchive(
            header=Header(
                version=version,
                file_count=0,
                flags=flags if version >= 2 else None,
            )
        )
        self._journal_size = self._archive.binary_size()
        self._next_file_offset = 0
        self._finished = False

        self._outfile: IO[bytes] = open(out_path, "wb")
        try:
            self._blob_cache: IO[bytes] = tempfile.TemporaryFile(dir=out_path.parent)
        except BaseException:
            self._outfile.close()
            raise

    def _ensure_open(self) -> None:
        if self._finished:
            raise BuilderError("archive builder is already finished")

    def _intern_file(self, record: FileEntry, data: bytes) -> None:
        record_size = record.binary_size()

        self._archive.files.append(record)
        self._archive.header.file_count += 1

        self._journal_size += record_size
        self._next_file_offset = _checked_u32(
            self._next_file_offset + _checked_u32(len(data))
        )
        self._blob_cache.write(data)

    def add_file(self, name: str | os.PathLike[str], contents: bytes) -> None:
        """Add ``contents`` uncompressed under the archive path ``name``."""
        self._ensure_open()
        data = bytes(contents)
        record = FileEntry(
            offset=self._next_file_offset,
            uncompressed_size=_checked_u32(len(data)),
            compressed_size=_U32_MAX,
            compressed=False,
            crc=checksum(data),
            name=_entry_name(name),
        )
        self._intern_file(record, data)

    def add_file_compressed(self, name: str | os.PathLike[str], contents: bytes) -> None:
        """Add ``contents`` zlib-compressed under the archive path ``name``.

        Files with an ``mp3`` or ``ogg`` extension are always stored uncompressed.
        """
        self._ensure_open()
        entry_name = _entry_name(name)
        if PurePath(entry_name).suffix[1:] in _ALWAYS_UNCOMPRESSED:
            self.add_file(entry_name, contents)
            return

        data = bytes(contents)
        compressed = deflate(data)
        record = FileEntry(
            offset=self._next_file_offset,
            uncompressed_size=_checked_u32(len(data)),
            compressed_size=_checked_u32(len(compressed)),
            compressed=True,
            crc=checksum(compressed),
            name=entry_name,
        )
        self._intern_file(record, compressed)

    def _patch_file_offsets(self) -> None:
        journal_size = _checked_u32(self._journal_size)
        for entry in self._archive.files:
            entry.offset = _checked_u32(entry.offset + journal_size)

    def finish(self) -> None:
        """Write the header, the sorted journal and all file data to the output."""
        self._ensure_open()
        self._finished = True
        try:
            self._patch_file_offsets()
            # Ascending path order, as the official archives use.
            self._archive.files.sort(key=operator.attrgetter("name"))

            self._archive.write(self._outfile)
            self._blob_cache.seek(0)
            shutil.copyfileobj(self._blob_cache, self._outfile)
        finally:
            self.close()

    def close(self) -> None:
        """Close the output file and discard the blob cache."""
        self._finished = True
        self._blob_cache.close()
        self._outfile.close()

    def __enter__(self) -> ArchiveBuilder:
        return self

    def __exit__(self, *args) -> None:
        self.close()