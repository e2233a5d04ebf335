"""RESP (REdis Serialization Protocol) values and their wire encoding."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, Tuple, Union

PREFIX_STRING = b"+"
PREFIX_ERROR = b"-"
PREFIX_INT = b":"
PREFIX_BULK_STRING = b"$"
PREFIX_ARRAY = b"*"
SEPARATOR = b"\r\n"

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

_ENCODING = "utf-8"
_ERRORS = "surrogateescape"
_INTEGER = re.compile(rb"[+-]?[0-9]+")


class RespDecodeError(ValueError):
    """Raised when bytes cannot be decoded as a RESP value."""


def _byte_length(text: str) -> int:
    return len(text.encode(_ENCODING, _ERRORS))


def _text(raw: bytes) -> str:
    return raw.decode(_ENCODING, _ERRORS)


@dataclass(frozen=True)
class RespString:
    """A string; always written on the wire as a bulk string."""

    str: str = ""

    def serialize(self) -> str:
        return f"${_byte_length(self.str)}\r\n{self.str}\r\n"


@dataclass(frozen=True)
class RespInt:
    """A signed 64-bit integer."""

    value: int = 0

    def serialize(self) -> str:
        return f":{self.value}\r\n"


@dataclass(frozen=True)
class RespError:
    """An error message."""

    str: str = ""

    def serialize(self) -> str:
        return f"-{self.str}\r\n"


@dataclass(frozen=True)
class RespArray:
    """An ordered sequence of RESP values."""

    elements: Tuple["RespValue", ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "elements", tuple(self.elements))

    def serialize(self) -> str:
        body = "".join(element.serialize() for element in self.elements)
        return f"*{len(self.elements)}\r\n{body}"


@dataclass(frozen=True)
class RespNil:
    """The null bulk string."""

    def serialize(self) -> str:
        return "$-1\r\n"


RespValue = Union[RespString, RespInt, RespError, RespArray, RespNil]

_KIND_NAMES = {
    PREFIX_STRING: "string",
    PREFIX_INT: "int",
    PREFIX_ERROR: "error",
    PREFIX_BULK_STRING: "bulk string size",
    PREFIX_ARRAY: "array size",
}


def _parse_int(raw: bytes) -> int:
    if not _INTEGER.fullmatch(raw):
        raise RespDecodeError(f"invalid integer {raw!r}")
    value = int(raw)
    if not INT64_MIN <= value <= INT64_MAX:
        raise RespDecodeError(f"integer out of range {raw!r}")
    return value


def _decode(data: bytes, pos: int) -> Tuple[RespValue, int]:
    if pos >= len(data):
        raise RespDecodeError("no data to decode")
    prefix = data[pos : pos + 1]
    kind = _KIND_NAMES.get(prefix)
    if kind is None:
        raise RespDecodeError("Unrecognized data type")

    end = data.find(SEPARATOR, pos)
    if end == -1:
        raise RespDecodeError(f"Missing {kind} termination")
    line = data[pos + 1 : end]
    after = end + len(SEPARATOR)

    if prefix == PREFIX_STRING:
        return RespString(_text(line)), after
    if prefix == PREFIX_INT:
        return RespInt(_parse_int(line)), after
    if prefix == PREFIX_ERROR:
        return RespError(_text(line)), after
    if prefix == PREFIX_BULK_STRING:
        size = _parse_int(line)
        if size < 0 or after + size > len(data):
            raise RespDecodeError(f"invalid bulk string size {size}")
        return RespString(_text(data[after : after + size])), after + size + len(SEPARATOR)

    size = _parse_int(line)
    elements = []
    for _ in range(size):
        element, after = _decode(data, after)
        elements.append(element)
    return RespArray(elements), after


def deserialize(data: Union[bytes, bytearray, memoryview, Iterable[int]]) -> Tuple[RespValue, int]:
    """Decode one RESP value from the start of ``data``.

    Returns the value and the number of bytes it occupied. Bytes after the
    value are ignored.
    """
    value, consumed = _decode(bytes(data), 0)
    return value, consumed