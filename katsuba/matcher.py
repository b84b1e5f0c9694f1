"""UNIX glob matching of archive file paths.

Wildcards follow the usual glob rules: ``?`` matches one character,
``*`` any run of characters (path separators included), ``**`` at a
path component boundary matches zero or more directories, ``[...]``
and ``[!...]`` are character classes and ``{a,b}`` are alternatives.
A backslash escapes the character after it.
"""

from __future__ import annotations

import re
from collections import deque


class GlobError(ValueError):
    """Raised when a glob pattern cannot be compiled."""


def _class_item(char: str) -> str:
    return re.escape(char)


def _translate_class(chars: deque[str]) -> str:
    negated = False
    if chars and chars[0] in "!^":
        chars.popleft()
        negated = True

    items: list[str] = []
    first = True
    while True:
        if not chars:
            raise GlobError("unclosed character class; missing ']'")
        char = chars.popleft()
        if char == "]" and not first:
            break
        first = False

        if len(chars) >= 2 and chars[0] == "-" and chars[1] != "]":
            chars.popleft()
            end = chars.popleft()
            if char > end:
                raise GlobError(f"invalid range; '{char}' > '{end}'")
            items.append(f"{_class_item(char)}-{_class_item(end)}")
        else:
            items.append(_class_item(char))

    prefix = "^" if negated else ""
    return f"[{prefix}{''.join(items)}]"


def _translate(pattern: str) -> str:
    chars = deque(pattern)
    out: list[str] = []
    in_alternates = False
    previous: str | None = None

    while chars:
        char = chars.popleft()
        if char == "\\":
            if not chars:
                raise GlobError("dangling '\\'")
            char = chars.popleft()
            out.append(re.escape(char))
        elif char == "?":
            out.append(".")
        elif char == "*":
            recursive = False
            while chars and chars[0] == "*":
                chars.popleft()
                recursive = True
            at_boundary = (
                previous is None
                or previous == "/"
                or (in_alternates and previous in "{,")
            )
            if recursive and at_boundary and chars and chars[0] == "/":
                chars.popleft()
                out.append("(?:.*/)?")
                char = "/"
            else:
                out.append(".*")
        elif char == "[":
            out.append(_translate_class(chars))
        elif char == "{":
            if in_alternates:
                raise GlobError("nested alternate groups are not allowed")
            in_alternates = True
            out.append("(?:")
        elif char == "}":
            if not in_alternates:
                raise GlobError("unopened alternate group; missing '{'")
            in_alternates = False
            out.append(")")
        elif char == "," and in_alternates:
            out.append("|")
        else:
            out.append(re.escape(char))
        previous = char

    if in_alternates:
        raise GlobError("unclosed alternate group; missing '}'")
    return "".join(out)


class Matcher:
    """A compiled glob pattern for checking archive paths."""

    def __init__(self, pattern: str) -> None:
        self.pattern = pattern
        self._regex = re.compile(_translate(pattern), re.DOTALL)

    def is_match(self, path: str) -> bool:
        """Whether ``path`` matches the whole glob pattern."""
        return self._regex.fullmatch(path) is not None

    def __repr__(self) -> str:
        return f"Matcher({self.pattern!r})"