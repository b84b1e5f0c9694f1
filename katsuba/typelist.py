"""Type lists: reflection metadata of game types loaded from JSON dumps.

Both the v1 layout (a mapping of type names to definitions) and the v2
layout (``{"version": 2, "classes": {hash: definition}}``) are supported.
"""

from __future__ import annotations

import json
import operator
import os
import re
from dataclasses import dataclass, field
from typing import IO, Any, Iterator

from katsuba.hashing import string_id
from katsuba.property import Property

_U32_MAX = 0xFFFFFFFF
_DIGITS = re.compile(r"[0-9]+")


class TypeListError(Exception):
    """Raised when a type list cannot be parsed."""


@dataclass
class TypeDef:
    """A single type definition inside a type list."""

    name: str = ""
    properties: list[Property] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: Any, name: str | None = None) -> TypeDef:
        """Build a definition from its JSON object; ``name`` overrides the stored one."""
        if not isinstance(data, dict):
            raise ValueError("type definition must be a JSON object")

        stored_name = data.get("name", "")
        if not isinstance(stored_name, str):
            raise ValueError("field 'name' must be a string")

        if "properties" not in data:
            raise ValueError("missing field 'properties'")
        raw_properties = data["properties"]
        if not isinstance(raw_properties, dict):
            raise ValueError("field 'properties' must be a JSON object")

        properties = sorted(
            (Property.from_json(key, value) for key, value in raw_properties.items()),
            key=operator.attrgetter("id"),
        )
        return cls(name=stored_name if name is None else name, properties=properties)


def _parse_u32(value: Any, what: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= _U32_MAX:
        raise TypeListError(f"{what} must be an unsigned 32-bit integer")
    return value


def _parse_hash_key(key: str) -> int:
    if not _DIGITS.fullmatch(key) or int(key) > _U32_MAX:
        raise TypeListError(f"invalid type hash: {key!r}")
    return int(key)


def _parse_v2_classes(value: Any) -> dict[int, TypeDef]:
    if not isinstance(value, dict):
        raise TypeListError("'classes' entry must be a JSON object")
    return {_parse_hash_key(key): TypeDef.from_json(entry) for key, entry in value.items()}


def _parse_document(document: Any) -> dict[int, TypeDef]:
    if not isinstance(document, dict):
        raise TypeListError("expected v1 or v2 type list")

    entries = iter(document.items())
    classes: dict[int, TypeDef] = {}
    version = 1

    def insert_v1(name: str, data: Any) -> None:
        classes[string_id(name)] = TypeDef.from_json(data, name)

    first = next(entries, None)
    if first is not None:
        key, value = first
        if key == "version":
            version = _parse_u32(value, "version")
        else:
            insert_v1(key, value)

    if version == 1:
        for key, value in entries:
            insert_v1(key, value)
    elif version == 2:
        entry = next(entries, None)
        if entry is not None:
            key, value = entry
            if key != "classes":
                raise TypeListError("expected 'classes' entry for v2 list")
            if next(entries, None) is not None:
                raise TypeListError("unexpected entries after 'classes' in v2 list")
            return _parse_v2_classes(value)
    else:
        raise TypeListError(f"unknown version: {version}")

    return classes


@dataclass
class TypeList:
    """A mapping of type name hashes to their definitions."""

    types: dict[int, TypeDef] = field(default_factory=dict)

    @classmethod
    def from_str(cls, data: str | bytes) -> TypeList:
        """Parse a type list from JSON text."""
        try:
            document = json.loads(data)
        except ValueError as exc:
            raise TypeListError(str(exc)) from exc
        try:
            return cls(_parse_document(document))
        except ValueError as exc:
            raise TypeListError(str(exc)) from exc

    @classmethod
    def from_reader(cls, reader: IO[Any]) -> TypeList:
        """Parse a type list from a readable text or binary stream."""
        return cls.from_str(reader.read())

    @classmethod
    def open(cls, path: str | os.PathLike[str]) -> TypeList:
        """Parse the type list stored in the file at ``path``."""
        with open(path, "rb") as reader:
            return cls.from_reader(reader)

    def merge(self, other: TypeList) -> None:
        """Merge all entries of ``other`` into this list, replacing duplicates."""
        self.types.update(other.types)

    def get(self, type_hash: int) -> TypeDef | None:
        """The definition for ``type_hash``, or None when it is unknown."""
        return self.types.get(type_hash)

    def __getitem__(self, type_hash: int) -> TypeDef:
        return self.types[type_hash]

    def __contains__(self, type_hash: object) -> bool:
        return type_hash in self.types

    def __len__(self) -> int:
        return len(self.types)

    def __iter__(self) -> Iterator[int]:
        return iter(self.types)