"""Reading KIWAD archives from memory or from memory-mapped files."""

from __future__ import annotations

import io
import mmap as _mmap
import operator
import os
from types import MappingProxyType
from typing import IO, Iterator, Mapping

from katsuba.compression import DecompressionError, inflate
from katsuba.matcher import Matcher
from katsuba.wadformat import CrcMismatch, FileEntry, FormatError, Header, RawArchive

_DEFAULT_MODE = 0o666


class ArchiveError(Exception):
    """Raised when an archive cannot be parsed or a file cannot be extracted."""


def _file_mode(file: IO[bytes]) -> int:
    if os.name != "posix":
        return 0
    try:
        return os.fstat(file.fileno()).st_mode
    except (OSError, AttributeError, ValueError):
        return _DEFAULT_MODE


class Archive:
    """A parsed KIWAD archive with its file journal.

    The raw archive bytes are kept either on the heap or in a memory
    mapping of the archive file, in which case the file stays open until
    :meth:`close` is called.
    """

    def __init__(self, raw, mode: int, *, stream: IO[bytes] | None = None,
                 file: IO[bytes] | None = None) -> None:
        self._raw = raw
        self._mode = mode
        self._file = file
        try:
            parsed = RawArchive.parse(stream if stream is not None else io.BytesIO(raw))
            parsed.verify_crcs(raw)
        except FormatError as exc:
            self.close()
            raise ArchiveError(f"failed to parse archive: {exc}") from exc
        except CrcMismatch as exc:
            self.close()
            raise ArchiveError(str(exc)) from exc

        self._header = parsed.header
        # Later duplicates replace earlier ones; keys stay in ascending order.
        self._files: dict[str, FileEntry] = {
            entry.name: entry
            for entry in sorted(parsed.files, key=operator.attrgetter("name"))
        }

    @classmethod
    def from_bytes(cls, data: bytes | bytearray | memoryview) -> Archive:
        """Parse an archive held in a byte buffer."""
        return cls(bytes(data), _DEFAULT_MODE)

    @classmethod
    def heap(cls, file: IO[bytes]) -> Archive:
        """Read the rest of an open binary file into memory and parse it."""
        data = file.read()
        return cls(bytes(data), _file_mode(file))

    @classmethod
    def mmap(cls, file: IO[bytes]) -> Archive:
        """Map an open binary file into memory; the archive takes ownership of it."""
        mode = _file_mode(file)
        try:
            size = os.fstat(file.fileno()).st_size
            raw = (
                _mmap.mmap(file.fileno(), 0, access=_mmap.ACCESS_READ)
                if size
                else b""
            )
        except BaseException:
            file.close()
            raise
        file.seek(0)
        return cls(raw, mode, stream=file, file=file)

    @classmethod
    def open_heap(cls, path: str | os.PathLike[str]) -> Archive:
        """Read the archive file at ``path`` into memory; the file is closed afterwards."""
        with open(path, "rb") as file:
            return cls.heap(file)

    @classmethod
    def open_mmap(cls, path: str | os.PathLike[str]) -> Archive:
        """Memory-map the archive file at ``path``, keeping it open until closed."""
        return cls.mmap(open(path, "rb"))

    @property
    def mode(self) -> int:
        """The permissions of the archive file, or a default when unknown."""
        return self._mode

    @property
    def header(self) -> Header:
        """The archive header."""
        return self._header

    @property
    def files(self) -> Mapping[str, FileEntry]:
        """A read-only mapping of file paths to their journal entries, in path order."""
        return MappingProxyType(self._files)

    def __len__(self) -> int:
        return len(self._files)

    def __contains__(self, name: object) -> bool:
        return name in self._files

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._files))

    def __getitem__(self, name: str) -> bytes:
        entry = self.file_raw(name)
        if entry is None:
            raise KeyError(name)

        contents = self.file_contents(entry)
        if contents is None:
            raise ArchiveError("file contents missing from archive")
        if not entry.compressed:
            return bytes(contents)
        try:
            return inflate(contents, entry.uncompressed_size)
        except DecompressionError as exc:
            raise ArchiveError(f"failed to decompress archive file: {exc}") from exc

    def iter_glob(self, pattern: str) -> Iterator[str]:
        """Yield the paths of archived files that match a UNIX glob pattern.

        Raises :class:`katsuba.matcher.GlobError` for an invalid pattern.
        """
        matcher = Matcher(pattern)
        names = list(self._files)
        return (name for name in names if matcher.is_match(name))

    def file_raw(self, name: str) -> FileEntry | None:
        """The journal entry of the file at ``name``, or ``None``."""
        return self._files.get(name)

    def file_contents(self, file: FileEntry) -> bytes | None:
        """The stored (possibly compressed) data of ``file``, or ``None``.

        Unpatched placeholder files and entries outside the archive yield ``None``.
        """
        if file.is_unpatched:
            return None
        return file.extract(self._raw)

    def read(self, name: str) -> bytes:
        """The decompressed contents of the file at ``name``."""
        return self[name]

    def close(self) -> None:
        """Release the memory mapping and the backing file, if any."""
        if isinstance(self._raw, _mmap.mmap) and not self._raw.closed:
            self._raw.close()
        if self._file is not None:
            self._file.close()
            self._file = None

    def __enter__(self) -> Archive:
        return self

    def __exit__(self, *args) -> None:
        self.close()