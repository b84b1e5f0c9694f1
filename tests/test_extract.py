import io

import pytest

from katsuba.archive import Archive
from katsuba.builder import ArchiveBuilder
from katsuba.crc import checksum
from katsuba.extract import DirectoryTree, extract_archive
from katsuba.wadformat import FileEntry, Header, RawArchive


def _build(path):
    with ArchiveBuilder(2, 0, path) as builder:
        builder.add_file_compressed("a/b/x.txt", b"does this work?")
        builder.add_file("test.txt", b"it does!")
        builder.add_file_compressed("a/c/y.txt", b"another one")
        builder.finish()
    return path


def test_directory_tree_keeps_deepest_directory():
    tree = DirectoryTree()
    tree.add("a/x.txt")
    tree.add("a/b/y.txt")
    assert list(tree) == ["a/b"]


def test_directory_tree_includes_root_for_top_level_files():
    tree = DirectoryTree()
    tree.add("a/b/x.txt")
    tree.add("test.txt")
    assert set(tree) == {"a/b", ""}


def test_directory_tree_deduplicates():
    tree = DirectoryTree()
    tree.add("a/b/x.txt")
    tree.add("a/b/y.txt")
    assert list(tree) == ["a/b"]


def test_extract_archive_writes_all_files(tmp_path):
    wad = _build(tmp_path / "Test.wad")
    out = tmp_path / "out"
    with Archive.open_mmap(wad) as archive:
        result = extract_archive(archive, wad, out)

    assert result == out / "Test"
    assert (result / "a" / "b" / "x.txt").read_bytes() == b"does this work?"
    assert (result / "a" / "c" / "y.txt").read_bytes() == b"another one"
    assert (result / "test.txt").read_bytes() == b"it does!"


def test_extract_archive_defaults_to_cwd(tmp_path, monkeypatch):
    wad = _build(tmp_path / "Test.wad")
    work = tmp_path / "work"
    work.mkdir()
    monkeypatch.chdir(work)

    archive = Archive.open_heap(wad)
    result = extract_archive(archive, wad, None)

    assert result.resolve() == (work / "Test").resolve()
    assert (work / "Test" / "test.txt").read_bytes() == b"it does!"


def test_extract_archive_requires_input_path(tmp_path):
    archive = Archive.open_heap(_build(tmp_path / "Test.wad"))
    with pytest.raises(ValueError):
        extract_archive(archive, None, tmp_path)


def test_extract_archive_skips_unpatched_files(tmp_path):
    good = b"real data"
    zeroes = bytes(6)
    names = ["good.txt", "hole.txt"]
    raw = RawArchive(
        header=Header(version=2, file_count=2, flags=0),
        files=[
            FileEntry(0, len(good), 0xFFFFFFFF, False, checksum(good), names[0]),
            FileEntry(len(good), len(zeroes), 0xFFFFFFFF, False, 1, names[1]),
        ],
    )
    journal_size = raw.binary_size()
    for entry in raw.files:
        entry.offset += journal_size
    stream = io.BytesIO()
    raw.write(stream)
    stream.write(good + zeroes)

    archive = Archive.from_bytes(stream.getvalue())
    assert archive.file_raw("hole.txt").is_unpatched

    result = extract_archive(archive, "Patch.wad", tmp_path)
    assert (result / "good.txt").read_bytes() == good
    assert not (result / "hole.txt").exists()