import io
import os

import pytest

from katsuba.archive import Archive, ArchiveError
from katsuba.compression import deflate, inflate
from katsuba.crc import checksum
from katsuba.matcher import GlobError
from katsuba.wadformat import FileEntry, Header, RawArchive

UNCOMPRESSED = bytes(
    [117, 110, 99, 111, 109, 112, 114, 101, 115, 115, 101, 100, 32, 100, 97, 116, 97, 10]
)
SUBDIR_TEXT = b"this is subdir text1\n"
TEXT1 = b"this is text1, which is a little bit longer\n"


def spec(name, content, compress):
    stored = deflate(content) if compress else content
    return name, stored, compress, len(content)


def build_wad(specs, *, version=2, flags=0, crcs=None):
    crcs = crcs or {}
    records = []
    blobs = []
    offset = 0
    for name, stored, compress, size in specs:
        records.append(
            FileEntry(
                offset=offset,
                uncompressed_size=size,
                compressed_size=len(stored) if compress else 0xFFFFFFFF,
                compressed=compress,
                crc=crcs.get(name, checksum(stored)),
                name=name,
            )
        )
        blobs.append(stored)
        offset += len(stored)

    raw = RawArchive(
        Header(version=version, file_count=len(records), flags=flags if version >= 2 else None),
        records,
    )
    journal = raw.binary_size()
    for record in records:
        record.offset += journal

    out = io.BytesIO()
    raw.write(out)
    out.write(b"".join(blobs))
    return out.getvalue()


def _wad_bytes():
    return build_wad(
        [
            spec("text1.txt", TEXT1, True),
            spec("uncompressed.mp3", UNCOMPRESSED, False),
            spec("subdir/subdir_text1.txt", SUBDIR_TEXT, True),
        ]
    )


@pytest.fixture
def wad_path(tmp_path):
    path = tmp_path / "Test.wad"
    path.write_bytes(_wad_bytes())
    return path


def test_open_mmap(wad_path):
    with Archive.open_mmap(wad_path) as archive:
        assert len(archive) == 3
        assert archive["subdir/subdir_text1.txt"] == SUBDIR_TEXT


def test_open_heap(wad_path):
    archive = Archive.open_heap(wad_path)
    assert len(archive) == 3
    assert list(archive) == ["subdir/subdir_text1.txt", "text1.txt", "uncompressed.mp3"]


def test_uncompressed(wad_path):
    archive = Archive.open_heap(wad_path)
    file = archive.file_raw("uncompressed.mp3")
    assert not file.compressed
    assert archive.file_contents(file) == UNCOMPRESSED
    assert archive["uncompressed.mp3"] == UNCOMPRESSED


def test_subdir(wad_path):
    archive = Archive.open_heap(wad_path)
    file = archive.file_raw("subdir/subdir_text1.txt")
    assert file.compressed
    data = inflate(archive.file_contents(file), file.uncompressed_size)
    assert data == b"this is subdir text1\n"


def test_two_files(wad_path):
    archive = Archive.open_heap(wad_path)
    text1 = archive.file_raw("text1.txt")
    subdir = archive.file_raw("subdir/subdir_text1.txt")
    assert text1.compressed
    assert subdir.compressed
    assert archive.file_contents(text1) != archive.file_contents(subdir)


def test_inflate_twice(wad_path):
    archive = Archive.open_heap(wad_path)
    file = archive.file_raw("text1.txt")
    assert file.compressed
    a = inflate(archive.file_contents(file), file.uncompressed_size)
    b = inflate(archive.file_contents(file), file.uncompressed_size)
    assert a == b == TEXT1


def test_read_matches_getitem(wad_path):
    with Archive.open_mmap(wad_path) as archive:
        assert archive.read("text1.txt") == TEXT1
        assert archive["text1.txt"] == TEXT1


def test_contains_and_missing():
    archive = Archive.from_bytes(_wad_bytes())
    assert "text1.txt" in archive
    assert "missing.txt" not in archive
    assert archive.file_raw("missing.txt") is None
    with pytest.raises(KeyError):
        archive["missing.txt"]


def test_files_mapping_is_sorted_and_read_only():
    archive = Archive.from_bytes(_wad_bytes())
    assert list(archive.files) == sorted(archive.files)
    with pytest.raises(TypeError):
        archive.files["x"] = None


def test_header_and_mode():
    archive = Archive.from_bytes(build_wad([spec("a.txt", b"a", False)], flags=1))
    assert archive.header.version == 2
    assert archive.header.file_count == 1
    assert archive.header.flags == 1
    assert archive.mode == 0o666


def test_version_one_has_no_flags():
    archive = Archive.from_bytes(build_wad([spec("a.txt", b"abc", False)], version=1))
    assert archive.header.flags is None
    assert archive["a.txt"] == b"abc"


def test_heap_mode_from_file(wad_path):
    archive = Archive.open_heap(wad_path)
    expected = os.stat(wad_path).st_mode if os.name == "posix" else 0
    assert archive.mode == expected


def test_iter_glob():
    archive = Archive.from_bytes(_wad_bytes())
    assert list(archive.iter_glob("subdir/*")) == ["subdir/subdir_text1.txt"]
    assert list(archive.iter_glob("*.txt")) == ["subdir/subdir_text1.txt", "text1.txt"]
    assert list(archive.iter_glob("*.ogg")) == []


def test_iter_glob_invalid_pattern():
    archive = Archive.from_bytes(_wad_bytes())
    with pytest.raises(GlobError):
        archive.iter_glob("[abc")


def test_bad_magic():
    with pytest.raises(ArchiveError):
        Archive.from_bytes(b"NOTAWAD" + bytes(16))


def test_truncated_journal():
    data = _wad_bytes()
    with pytest.raises(ArchiveError):
        Archive.from_bytes(data[:20])


def test_crc_mismatch():
    data = build_wad([spec("a.txt", b"hello", False)], crcs={"a.txt": 1234})
    with pytest.raises(ArchiveError, match="CRC mismatch"):
        Archive.from_bytes(data)


def test_unpatched_file_has_no_contents():
    data = build_wad(
        [("zero.bin", bytes(8), False, 8), spec("ok.txt", b"ok", False)],
        crcs={"zero.bin": 1234},
    )
    archive = Archive.from_bytes(data)
    entry = archive.file_raw("zero.bin")
    assert entry.is_unpatched
    assert archive.file_contents(entry) is None
    assert archive["ok.txt"] == b"ok"
    with pytest.raises(ArchiveError, match="missing"):
        archive["zero.bin"]


def test_corrupt_compressed_data():
    data = build_wad([("bad.txt", b"not zlib at all", True, 20)])
    archive = Archive.from_bytes(data)
    entry = archive.file_raw("bad.txt")
    assert entry.compressed
    assert entry.uncompressed_size == 20
    assert archive.file_contents(entry) == b"not zlib at all"
    with pytest.raises(ArchiveError, match="decompress"):
        archive["bad.txt"]


def test_open_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        Archive.open_heap(tmp_path / "missing.wad")


def test_mmap_empty_file(tmp_path):
    path = tmp_path / "empty.wad"
    path.write_bytes(b"")
    with pytest.raises(ArchiveError):
        Archive.open_mmap(path)


def test_heap_from_open_file(wad_path):
    with open(wad_path, "rb") as file:
        archive = Archive.heap(file)
    assert archive["uncompressed.mp3"] == UNCOMPRESSED