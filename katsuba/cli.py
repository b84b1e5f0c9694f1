"""The ``katsuba`` command line interface."""

from __future__ import annotations

import argparse
import io
import logging
import os
import sys
from pathlib import Path
from typing import IO, Iterator, Sequence

from katsuba.archive import Archive, ArchiveError
from katsuba.builder import ArchiveBuilder, BuilderError
from katsuba.extract import extract_archive
from katsuba.hashing import djb2, string_id
from katsuba.sources import InputKind, OutputKind, OutputSource, evaluate, process

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

_ALGORITHMS = {"string-id": string_id, "djb2": djb2}


def human_bool(value: bool) -> str:
    """A human-readable description of a boolean."""
    return "Yes" if value else "No"


def log_level(verbose: int) -> int:
    """The logging level for a count of ``-v`` flags."""
    if verbose <= 0:
        return logging.ERROR
    if verbose == 1:
        return logging.INFO
    if verbose == 2:
        return logging.DEBUG
    return TRACE


def _walk_files(root: Path) -> Iterator[Path]:
    with os.scandir(root) as scan:
        entries = list(scan)
    for entry in entries:
        if entry.is_dir(follow_symlinks=False):
            yield from _walk_files(Path(entry.path))
        elif entry.is_file(follow_symlinks=False):
            yield Path(entry.path)


def pack_directory(
    input_dir: str | os.PathLike[str], flags: int = 0, output: str | os.PathLike[str] | None = None
) -> Path:
    """Pack a directory tree into a version 2 archive and return its path.

    Without ``output``, the archive is named after the input directory and
    created in the current working directory. Symbolic links are not followed.
    """
    root = Path(input_dir)
    if not root.is_dir():
        raise ValueError("input for packing must be a directory")

    if output is None:
        if root.name in ("", ".."):
            raise ValueError(
                "failed to determine output file. consider specifying one with '-o'"
            )
        out_path = Path(Path(root.name).with_suffix(".wad"))
    else:
        out_path = Path(output)

    with ArchiveBuilder(2, flags, out_path) as builder:
        for path in _walk_files(root):
            builder.add_file_compressed(path.relative_to(root).as_posix(), path.read_bytes())
        builder.finish()

    return out_path


def _read_archive(stream: IO[bytes]) -> Archive:
    if isinstance(stream, io.BytesIO):
        return Archive.from_bytes(stream.getvalue())
    return Archive.mmap(stream)


def _write_archive(inpath: Path | None, archive: Archive, output: OutputSource) -> None:
    out = None if output.kind is OutputKind.STDOUT else output.path
    with archive:
        extract_archive(archive, inpath, out)


def _u8(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid digit found in string: {text!r}") from None
    if not 0 <= value <= 0xFF:
        raise argparse.ArgumentTypeError(f"{value} is not in 0..=255")
    return value


def _handle_hash(args: argparse.Namespace, parser: argparse.ArgumentParser) -> int:
    print(_ALGORITHMS[args.algo](args.input))
    return 0


def _handle_pack(args: argparse.Namespace, parser: argparse.ArgumentParser) -> int:
    pack_directory(args.input, args.flags, args.output)
    return 0


def _handle_unpack(args: argparse.Namespace, parser: argparse.ArgumentParser) -> int:
    inputs, outputs = evaluate(args.input, args.output, "")
    if inputs.kind is InputKind.STDIN and sys.stdin.isatty():
        parser.print_help()
        return 2
    process(inputs, outputs, _read_archive, _write_archive)
    return 0


def _build_parser() -> argparse.ArgumentParser:
    verbose = argparse.ArgumentParser(add_help=False)
    verbose.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=argparse.SUPPRESS,
        help="log verbosity: -v is info, -vv is debug, -vvv is trace",
    )

    parser = argparse.ArgumentParser(
        prog="katsuba", description="Tools for KingsIsle game file formats."
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="log verbosity: -v is info, -vv is debug, -vvv is trace",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    hash_parser = commands.add_parser(
        "hash", parents=[verbose], help="hash strings with common KingsIsle algorithms"
    )
    hash_parser.add_argument("algo", choices=sorted(_ALGORITHMS), help="the hash algorithm")
    hash_parser.add_argument("input", help="the input string to hash")
    hash_parser.set_defaults(handler=_handle_hash)

    wad_parser = commands.add_parser("wad", parents=[verbose], help="work with KIWAD archives")
    wad_commands = wad_parser.add_subparsers(dest="wad_command", required=True)

    pack = wad_commands.add_parser(
        "pack", parents=[verbose], help="pack a directory into a KIWAD archive"
    )
    pack.add_argument("input", type=Path, help="the input directory to pack")
    pack.add_argument("-f", dest="flags", type=_u8, default=0, help="archive flags")
    pack.add_argument("-o", dest="output", type=Path, default=None, help="output archive file")
    pack.set_defaults(handler=_handle_pack)

    unpack = wad_commands.add_parser(
        "unpack", parents=[verbose], help="unpack KIWAD archives into a directory"
    )
    unpack.add_argument("input", help="input archive, glob pattern, or '-' for stdin")
    unpack.add_argument("-o", dest="output", default="-", help="output directory")
    unpack.set_defaults(handler=_handle_unpack)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command line interface and return its exit status."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=log_level(args.verbose))

    try:
        return args.handler(args, parser)
    except (OSError, ValueError, ArchiveError, BuilderError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())