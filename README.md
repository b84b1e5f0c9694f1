# katsuba

Read, unpack and build KIWAD archives, load type list dumps (v1 and v2
layouts), and compute the String ID and DJB2 hashes used by the game's
reflection system. No third-party libraries are needed.

## Install

    pip install .

## Command line

Hash a string with `string-id` or `djb2`:

    katsuba hash string-id "class Matrix3x3"
    katsuba hash djb2 m_packedName

Unpack an archive:

    katsuba wad unpack Root.wad -o out/

The files land in a directory named after the archive (`out/Root` here);
without `-o` that directory is created in the current working directory.
The input may be `-` to read an archive from stdin, or a glob pattern
matching several archives, in which case `-o` names the directory that
receives one subdirectory per archive. Placeholder (unpatched) files are
skipped with a warning. Extracted files are created with the permission
bits of the archive file.

Pack a directory into a version 2 archive:

    katsuba wad pack MyDir -o MyDir.wad

Files are stored zlib-compressed, except `.mp3` and `.ogg` files, which
are stored as they are. Symbolic links are not followed. `-f` sets the
archive flags byte (0 to 255, default 0). Without `-o`, the archive is
named after the directory and written to the current working directory.

Add `-v`, `-vv` or `-vvv` for info, debug or trace log output.

## Library

```python
from katsuba.archive import Archive
from katsuba.builder import ArchiveBuilder
from katsuba.hashing import string_id, djb2
from katsuba.typelist import TypeList

with ArchiveBuilder(2, 0, "Test.wad") as builder:
    builder.add_file_compressed("a/b/x.txt", b"does this work?")
    builder.add_file("test.txt", b"it does!")
    builder.finish()

with Archive.open_heap("Test.wad") as archive:
    for name in archive.iter_glob("a/**"):
        print(name, archive[name])

types = TypeList.open("types.json")
print(types[string_id(b"class Matrix3x3")].name)
```

Modules:

- `katsuba.archive` — `Archive`: open from bytes, a file, or a memory
  mapping; look up journal entries with `file_raw`, read decompressed
  contents with `archive[name]` or `read`, and filter paths with
  `iter_glob`. Parse and CRC failures raise `ArchiveError`.
- `katsuba.builder` — `ArchiveBuilder` with `add_file`,
  `add_file_compressed` and `finish`; file data is buffered in a temporary
  file next to the output.
- `katsuba.extract` — `extract_archive` unpacks an `Archive` to disk.
- `katsuba.wadformat` — the header and journal structures (`Header`,
  `FileEntry`, `RawArchive`) with parsing, writing and CRC checks.
- `katsuba.typelist` and `katsuba.property` — `TypeList`, `TypeDef`,
  `Property` and `PropertyFlags`, including enum value encoding and
  decoding.
- `katsuba.hashing`, `katsuba.crc`, `katsuba.compression`,
  `katsuba.matcher`, `katsuba.binio`, `katsuba.align` — hashes, the
  archive CRC32, zlib helpers, glob matching, binary string helpers and
  alignment helpers.
- `katsuba.sources` — input/output source evaluation used by the
  command line.

## What it does not do

The package does not deserialize ObjectProperty binary state, and it has
no readers for collision, navigation or point-of-interest data, nor any
client signature handling. Type lists can be loaded and queried, but
nothing here uses them to decode game objects.

## Tests

    pip install .[test]
    pytest