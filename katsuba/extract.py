"""Unpacking the files of a KIWAD archive into a directory."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterator

from katsuba.archive import Archive, ArchiveError
from katsuba.compression import inflate

_log = logging.getLogger(__name__)


def _parent(path: str) -> str | None:
    """The parent of a path, ``""`` for a bare name and ``None`` for a root."""
    if path in ("", "/"):
        return None
    head, sep, _ = path.rstrip("/").rpartition("/")
    if not sep:
        return ""
    return head.rstrip("/") or "/"


class DirectoryTree:
    """Collects the minimal set of directories to create for given file paths."""

    def __init__(self) -> None:
        self._dirs: set[str] = set()

    def add(self, path: str | os.PathLike[str]) -> None:
        """Intern the directory needed for the file at ``path``."""
        parent = _parent(str(os.fspath(path)))
        if parent is None:
            return
        self._dirs.add(parent)

        # A directory created with its parents makes the grandparent redundant.
        grandparent = _parent(parent)
        if grandparent is not None:
            self._dirs.discard(grandparent)

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._dirs))


def _create_directory_tree(archive: Archive, out: Path) -> None:
    tree = DirectoryTree()
    for name in archive.files:
        tree.add(name)
    for directory in tree:
        (out / directory).mkdir(parents=True, exist_ok=True)


def _write_file(path: Path, data: bytes, mode: int) -> None:
    flags = os.O_WRONLY | os.O_CREAT | os.O_TRUNC | getattr(os, "O_BINARY", 0)
    fd = os.open(path, flags, mode & 0o777)
    with os.fdopen(fd, "wb") as handle:
        handle.write(data)


def extract_archive(
    archive: Archive,
    inpath: str | os.PathLike[str] | None,
    out: str | os.PathLike[str] | None,
) -> Path:
    """Unpack every file of ``archive`` and return the directory written to.

    Files land in a directory named after the stem of ``inpath`` inside
    ``out``, or inside the current working directory when ``out`` is
    ``None``. Unpatched placeholder files are skipped with a warning.
    """
    if inpath is None:
        raise ValueError("an input path is required to name the output directory")

    base = Path.cwd() if out is None else Path(out)
    out_dir = base / Path(inpath).stem

    _create_directory_tree(archive, out_dir)

    mode = archive.mode
    for name, entry in archive.files.items():
        path = out_dir / name
        if entry.is_unpatched:
            _log.warning("Skipping unpatched file '%s'", path)
            continue

        contents = archive.file_contents(entry)
        if contents is None:
            raise ArchiveError("missing file contents in archive")
        data = inflate(contents, entry.uncompressed_size) if entry.compressed else bytes(contents)
        _write_file(path, data, mode)

    return out_dir