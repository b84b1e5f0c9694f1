"""Property metadata of reflected game types and enum value encoding."""

from __future__ import annotations

import enum
import functools
import operator
import re
from dataclasses import dataclass, field
from typing import Any, Union

from katsuba.hashing import djb2

StringOrInt = Union[str, int]

_I64_MIN = -(2**63)
_I64_MAX = 2**63 - 1
_U32_MAX = 0xFFFFFFFF
_INTEGER = re.compile(r"[+-]?[0-9]+")


class EncodingError(ValueError):
    """Raised when an enum variant or value has no matching option."""

    def __init__(self, value: str | int, decoding: bool) -> None:
        self.value = value
        self.decoding = decoding
        if decoding:
            message = f"unknown enum variant: {value}"
        else:
            message = f"unknown enum value: {value}"
        super().__init__(message)


class PropertyFlags(enum.IntFlag):
    """Configuration bits of a property."""

    SAVE = 1 << 0
    COPY = 1 << 1
    PUBLIC = 1 << 2
    TRANSMIT = 1 << 3
    PRIVILEGED_TRANSMIT = 1 << 4
    PERSIST = 1 << 5
    DEPRECATED = 1 << 6
    NOSCRIPT = 1 << 7
    DELTA_ENCODE = 1 << 8
    BLOB = 1 << 9

    # Editor hint flags.
    NOEDIT = 1 << 16
    FILENAME = 1 << 17
    COLOR = 1 << 18
    CONSTRAINED_VALUE = 1 << 19
    BITS = 1 << 20
    ENUM = 1 << 21
    LOCALIZED = 1 << 22
    STRING_KEY = 1 << 23
    OBJECT_ID = 1 << 24
    REFERENCE_ID = 1 << 25
    RADIANS = 1 << 26
    OBJECT_NAME = 1 << 27
    HAS_BASECLASS = 1 << 28
    IS_BEHAVIOR = 1 << 29
    ASSET = 1 << 30

    ENUM_LIKE = ENUM | BITS


_KNOWN_FLAGS = functools.reduce(
    operator.or_, (int(member) for member in PropertyFlags.__members__.values()), 0
)


def to_int(value: StringOrInt) -> int | None:
    """Return ``value`` as a 64-bit integer, parsing strings; ``None`` if not possible."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str) and _INTEGER.fullmatch(value):
        number = int(value)
        if _I64_MIN <= number <= _I64_MAX:
            return number
    return None


def compare_to_int(value: StringOrInt, rhs: int) -> bool:
    """Whether ``value`` equals the integer ``rhs``."""
    number = to_int(value)
    return number is not None and number == rhs


def compare_to_string(value: StringOrInt, rhs: str) -> bool:
    """Whether ``value`` equals the string ``rhs``."""
    if isinstance(value, str):
        return value == rhs
    number = to_int(rhs)
    return number is not None and number == value


def _require(data: dict[str, Any], key: str) -> Any:
    try:
        return data[key]
    except KeyError:
        raise ValueError(f"missing field '{key}'") from None


def _require_u32(data: dict[str, Any], key: str) -> int:
    value = _require(data, key)
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= _U32_MAX:
        raise ValueError(f"field '{key}' must be an unsigned 32-bit integer")
    return value


def _enum_option(key: str, value: Any) -> StringOrInt:
    if isinstance(value, str):
        return value
    if isinstance(value, int) and not isinstance(value, bool) and _I64_MIN <= value <= _I64_MAX:
        return value
    raise ValueError(f"enum option '{key}' must be a string or an integer")


@dataclass
class Property:
    """A property that represents a member of a class."""

    name: str
    type_name: str
    id: int
    flags: PropertyFlags
    dynamic: bool
    hash: int
    enum_options: dict[str, StringOrInt] = field(default_factory=dict)

    @classmethod
    def from_json(cls, name: str, data: Any) -> Property:
        """Build a property named ``name`` from its JSON object."""
        if not isinstance(data, dict):
            raise ValueError(f"property '{name}' must be a JSON object")

        type_name = _require(data, "type")
        if not isinstance(type_name, str):
            raise ValueError("field 'type' must be a string")

        raw_flags = _require_u32(data, "flags")
        if raw_flags & ~_KNOWN_FLAGS:
            raise ValueError(f"unknown property flags: {raw_flags}")

        dynamic = _require(data, "dynamic")
        if not isinstance(dynamic, bool):
            raise ValueError("field 'dynamic' must be a boolean")

        options = data.get("enum_options", {})
        if not isinstance(options, dict):
            raise ValueError("field 'enum_options' must be a JSON object")

        return cls(
            name=name,
            type_name=type_name,
            id=_require_u32(data, "id"),
            flags=PropertyFlags(raw_flags),
            dynamic=dynamic,
            hash=_require_u32(data, "hash"),
            enum_options={key: _enum_option(key, value) for key, value in options.items()},
        )

    def type_hash(self) -> int:
        """The hash of this property's type."""
        return (self.hash - djb2(self.name)) & _U32_MAX

    def is_enum(self) -> bool:
        """Whether this property holds an enum value."""
        return bool(self.flags & PropertyFlags.ENUM_LIKE) or self.type_name.startswith("enum")

    def encode_enum_variant(self, variant: int) -> str:
        """Turn an integral enum value into its string representation."""
        if self.flags & PropertyFlags.BITS:
            names = []
            for name, value in self.enum_options.items():
                number = to_int(value)
                if number is not None and variant & number != 0:
                    names.append(name)
            return " | ".join(names)

        for name, value in self.enum_options.items():
            if to_int(value) == variant:
                return name
        raise EncodingError(variant, decoding=False)

    def decode_enum_variant(self, variant: str) -> int:
        """Turn a string enum representation into its integral value."""
        if self.flags & PropertyFlags.BITS:
            result = 0
            for bit in variant.split("|"):
                bit = bit.strip()
                number = self._option_value(bit)
                if number is None:
                    raise EncodingError(bit, decoding=True)
                result |= number
            return result

        number = self._option_value(variant)
        if number is None:
            raise EncodingError(variant, decoding=True)
        return number

    def _option_value(self, name: str) -> int | None:
        value = self.enum_options.get(name)
        return None if value is None else to_int(value)