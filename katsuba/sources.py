"""Input and output sources of the command line tools and their processing.

An input is stdin (``-``), a single file, or several files matched by a
UNIX glob pattern. An output is stdout (``-``), a single file, or a
directory that receives one output per input file.
"""

from __future__ import annotations

import enum
import glob
import io
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Any, Callable

HYPHEN = "-"


class InputKind(enum.Enum):
    """Where inputs are read from."""

    STDIN = "stdin"
    FILE = "file"
    FILES = "files"


class OutputKind(enum.Enum):
    """Where outputs are written to."""

    STDOUT = "stdout"
    FILE = "file"
    DIR = "dir"


@dataclass(frozen=True)
class InputSource:
    """An evaluated input: stdin, one file, or several files."""

    kind: InputKind
    paths: tuple[Path, ...] = ()

    @property
    def path(self) -> Path | None:
        """The single input file, if there is exactly one."""
        return self.paths[0] if self.kind is InputKind.FILE else None


@dataclass(frozen=True)
class OutputSource:
    """An evaluated output: stdout, one file, or a directory.

    ``suffix`` is attached to every file created in a directory output.
    """

    kind: OutputKind
    path: Path | None = None
    suffix: str = ""


def _input_source(input_arg: str) -> InputSource:
    if input_arg == HYPHEN:
        return InputSource(InputKind.STDIN)

    # A plain path to a single file is a valid glob pattern, too.
    paths = tuple(Path(p) for p in sorted(glob.glob(input_arg, recursive=True)))
    if not paths:
        raise FileNotFoundError(f"failed to find files matching '{input_arg}'")
    if len(paths) == 1:
        return InputSource(InputKind.FILE, paths)
    return InputSource(InputKind.FILES, paths)


def _output_source(output_arg: str | Path, suffix: str, inputs: InputSource) -> OutputSource:
    if str(output_arg) == HYPHEN:
        return OutputSource(OutputKind.STDOUT)

    output = Path(output_arg)
    # Several inputs always need a directory; an existing directory always
    # receives a new file, whatever the input is.
    if inputs.kind is InputKind.FILES or output.is_dir():
        return OutputSource(OutputKind.DIR, output, suffix)
    return OutputSource(OutputKind.FILE, output)


def evaluate(
    input_arg: str, output_arg: str | Path = HYPHEN, suffix: str = ""
) -> tuple[InputSource, OutputSource]:
    """Turn the input and output arguments into sources.

    Raises :class:`FileNotFoundError` when the input pattern matches nothing.
    """
    inputs = _input_source(input_arg)
    return inputs, _output_source(output_arg, suffix, inputs)


def _process_file(
    path: Path,
    output: OutputSource,
    read: Callable[[IO[bytes]], Any],
    write: Callable[[Path | None, Any, OutputSource], None],
) -> None:
    with open(path, "rb") as stream:
        value = read(stream)
        write(path, value, output)


def process(
    inputs: InputSource,
    outputs: OutputSource,
    read: Callable[[IO[bytes]], Any],
    write: Callable[[Path | None, Any, OutputSource], None],
) -> None:
    """Read every input with ``read`` and hand the result to ``write``.

    ``read`` receives a binary stream: an in-memory buffer of all of stdin,
    or the open input file. ``write`` receives the input path (``None`` for
    stdin), the value read, and the output source.
    """
    if inputs.kind is InputKind.STDIN:
        stream = io.BytesIO(sys.stdin.buffer.read())
        write(None, read(stream), outputs)
        return

    if inputs.kind is InputKind.FILE:
        _process_file(inputs.paths[0], outputs, read, write)
        return

    if outputs.kind is OutputKind.DIR and outputs.path is not None:
        outputs.path.mkdir(parents=True, exist_ok=True)
        for path in inputs.paths:
            _process_file(path, outputs, read, write)
        return

    raise ValueError("bad state of input/output sources")