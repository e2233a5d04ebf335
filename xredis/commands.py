"""Request dispatch: decode a RESP command, apply it to a store, encode the reply."""

from __future__ import annotations

import re
import time
from datetime import datetime, timedelta, timezone
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, FrozenSet, Sequence, Tuple, Union

from xredis.resp import (
    INT64_MAX,
    INT64_MIN,
    RespArray,
    RespDecodeError,
    RespError,
    RespInt,
    RespString,
    RespValue,
    deserialize,
)
from xredis.store import StoreError, XRedis

DUMP_FILE = "xredis_dump.db"

PING_REPLY = "PONG"
RESULT_OK = "OK"

ERROR_FAILED_DESERIALIZATION = "ERR FAILED-DESERIALIZING"
ERROR_UNEXPECTED_ARG_TYPE = "ERR UNEXPECTED-ARGUMENT-TYPE"
ERROR_INVALID_ARGUMENTS_NUMBER = "ERR INVALID-ARGUMENTS-NUMBER"
ERROR_INVALID_COMMAND = "ERR INVALID-COMMAND"
ERROR_UNRECOGNIZED_TIMEOUT_MODE = "ERR UNRECOGNIZED-TIMEOUT-MODE"
ERROR_INVALID_TIMEOUT_VALUE = "ERR INVALID-TIMEOUT-VALUE"

_INTEGER = re.compile(r"[+-]?[0-9]+")
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class ExpirationMode(str, Enum):
    """How the timeout argument of SET is interpreted."""

    EXPIRE_SECONDS = "EX"
    EXPIRE_MILLISECONDS = "PX"
    TIMESTAMP_SECONDS = "EXAT"
    TIMESTAMP_MILLISECONDS = "PXAT"


def _now() -> datetime:
    return datetime.fromtimestamp(time.time(), timezone.utc)


def expiration_time(mode: Union[str, ExpirationMode], value: str) -> datetime:
    """Turn a SET timeout mode and value into an absolute expiration time.

    Raises ValueError carrying the protocol error message when the value is
    not an integer or the mode is unknown.
    """
    if not _INTEGER.fullmatch(value):
        raise ValueError(ERROR_INVALID_TIMEOUT_VALUE)
    amount = int(value)
    if not INT64_MIN <= amount <= INT64_MAX:
        raise ValueError(ERROR_INVALID_TIMEOUT_VALUE)
    try:
        expiration_mode = ExpirationMode(mode)
    except ValueError:
        raise ValueError(ERROR_UNRECOGNIZED_TIMEOUT_MODE) from None

    try:
        if expiration_mode is ExpirationMode.EXPIRE_SECONDS:
            return _now() + timedelta(seconds=amount)
        if expiration_mode is ExpirationMode.EXPIRE_MILLISECONDS:
            return _now() + timedelta(milliseconds=amount)
        if expiration_mode is ExpirationMode.TIMESTAMP_SECONDS:
            return _EPOCH + timedelta(seconds=amount)
        return _EPOCH + timedelta(milliseconds=amount)
    except (OverflowError, ValueError, OSError):
        raise ValueError(ERROR_INVALID_TIMEOUT_VALUE) from None


_Args = Sequence[RespString]
_Handler = Callable[[XRedis, _Args], RespValue]


def _ping(store: XRedis, args: _Args) -> RespValue:
    return RespString(PING_REPLY)


def _echo(store: XRedis, args: _Args) -> RespValue:
    return args[0]


def _set(store: XRedis, args: _Args) -> RespValue:
    key, value = args[0].str, args[1]
    if len(args) == 4:
        try:
            expiration = expiration_time(args[2].str, args[3].str)
        except ValueError as exc:
            return RespError(str(exc))
        store.set_with_expiration(key, value, expiration)
    else:
        store.set(key, value)
    return RespString(RESULT_OK)


def _get(store: XRedis, args: _Args) -> RespValue:
    return store.get(args[0].str)


def _exists(store: XRedis, args: _Args) -> RespValue:
    return RespInt(int(store.exists(args[0].str)))


def _delete(store: XRedis, args: _Args) -> RespValue:
    return RespInt(int(store.delete(args[0].str)))


def _increment(store: XRedis, args: _Args) -> RespValue:
    try:
        return store.increment(args[0].str)
    except StoreError as exc:
        return RespError(str(exc))


def _decrement(store: XRedis, args: _Args) -> RespValue:
    try:
        return store.decrement(args[0].str)
    except StoreError as exc:
        return RespError(str(exc))


def _lpush(store: XRedis, args: _Args) -> RespValue:
    try:
        store.lpush(args[0].str, args[1])
    except StoreError as exc:
        return RespError(str(exc))
    return RespString(RESULT_OK)


def _rpush(store: XRedis, args: _Args) -> RespValue:
    try:
        store.rpush(args[0].str, args[1])
    except StoreError as exc:
        return RespError(str(exc))
    return RespString(RESULT_OK)


def _save(store: XRedis, args: _Args) -> RespValue:
    try:
        Path(DUMP_FILE).write_bytes(store.serialize())
    except OSError as exc:
        return RespError(str(exc))
    return RespString(RESULT_OK)


# Command name -> (accepted element counts including the name, handler).
_COMMANDS: Dict[str, Tuple[FrozenSet[int], _Handler]] = {
    "PING": (frozenset({1}), _ping),
    "ECHO": (frozenset({2}), _echo),
    "SET": (frozenset({3, 5}), _set),
    "GET": (frozenset({2}), _get),
    "DEL": (frozenset({2}), _delete),
    "EXISTS": (frozenset({2}), _exists),
    "INCR": (frozenset({2}), _increment),
    "DECR": (frozenset({2}), _decrement),
    "LPUSH": (frozenset({3}), _lpush),
    "RPUSH": (frozenset({3}), _rpush),
    "SAVE": (frozenset({1}), _save),
}


def _is_valid_request(request: RespValue) -> bool:
    return (
        isinstance(request, RespArray)
        and len(request.elements) > 0
        and all(isinstance(element, RespString) for element in request.elements)
    )


def _encode(value: RespValue) -> bytes:
    return value.serialize().encode("utf-8", "surrogateescape")


def handle_request(store: XRedis, data: Union[bytes, bytearray]) -> bytes:
    """Execute one RESP-encoded command against ``store`` and return the encoded reply."""
    try:
        request, _ = deserialize(data)
    except RespDecodeError:
        return _encode(RespError(ERROR_FAILED_DESERIALIZATION))

    if not _is_valid_request(request):
        return _encode(RespError(ERROR_UNEXPECTED_ARG_TYPE))

    elements = request.elements
    entry = _COMMANDS.get(elements[0].str.upper())
    if entry is None:
        return _encode(RespError(ERROR_INVALID_COMMAND))

    sizes, handler = entry
    if len(elements) not in sizes:
        return _encode(RespError(ERROR_INVALID_ARGUMENTS_NUMBER))
    return _encode(handler(store, elements[1:]))