"""Thread-safe in-memory key/value store with expiration."""

from __future__ import annotations

import json
import math
import re
import threading
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Optional, Union

from xredis.resp import (
    INT64_MAX,
    INT64_MIN,
    RespArray,
    RespError,
    RespInt,
    RespNil,
    RespString,
    RespValue,
)

ERROR_NOT_NUMERIC_OR_MAX_REACHED = "ERR VALUE-NOT-NUMERIC-OR-MAX-REACHED"
ERROR_NOT_A_LIST = "ERR VALUE-NOT-A-LIST"
ERROR_LOAD_FAILED = "FAILED"

_INTEGER = re.compile(r"[+-]?[0-9]+")


class StoreError(Exception):
    """Raised when an operation cannot be applied to a stored value."""


@dataclass(frozen=True)
class StoredValue:
    """A stored element and the epoch millisecond after which it expires."""

    element: RespValue
    expires_at_ms: Optional[int] = None

    def is_expired(self, now_ms: int) -> bool:
        return self.expires_at_ms is not None and now_ms > self.expires_at_ms


def _as_int(element: RespValue) -> Optional[int]:
    if isinstance(element, RespInt):
        return element.value
    if isinstance(element, RespString) and _INTEGER.fullmatch(element.str):
        value = int(element.str)
        if INT64_MIN <= value <= INT64_MAX:
            return value
    return None


def _encode_element(element: RespValue) -> dict:
    if isinstance(element, RespString):
        return {"type": "string", "value": element.str}
    if isinstance(element, RespInt):
        return {"type": "int", "value": element.value}
    if isinstance(element, RespError):
        return {"type": "error", "value": element.str}
    if isinstance(element, RespArray):
        return {"type": "array", "value": [_encode_element(e) for e in element.elements]}
    if isinstance(element, RespNil):
        return {"type": "nil"}
    raise StoreError(f"cannot serialize {element!r}")


def _decode_element(obj: dict) -> RespValue:
    kind = obj["type"]
    if kind == "string":
        return RespString(str(obj["value"]))
    if kind == "int":
        return RespInt(int(obj["value"]))
    if kind == "error":
        return RespError(str(obj["value"]))
    if kind == "array":
        return RespArray(_decode_element(e) for e in obj["value"])
    if kind == "nil":
        return RespNil()
    raise ValueError(f"unknown element type {kind!r}")


class XRedis:
    """The key/value store. All operations are atomic with respect to each other."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._cache: Dict[str, StoredValue] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _live(self, key: str) -> Optional[StoredValue]:
        """Return the value under ``key``, dropping it first if it has expired."""
        value = self._cache.get(key)
        if value is None:
            return None
        if value.is_expired(self._now_ms()):
            del self._cache[key]
            return None
        return value

    def set(self, key: str, value: RespValue) -> None:
        with self._lock:
            self._cache[key] = StoredValue(value)

    def set_with_expiration(self, key: str, value: RespValue, expiration: datetime) -> None:
        expires_at_ms = math.floor(expiration.timestamp() * 1000)
        with self._lock:
            self._cache[key] = StoredValue(value, expires_at_ms)

    def get(self, key: str) -> RespValue:
        with self._lock:
            value = self._live(key)
            return RespNil() if value is None else value.element

    def exists(self, key: str) -> bool:
        with self._lock:
            return self._live(key) is not None

    def delete(self, key: str) -> bool:
        with self._lock:
            existed = self._live(key) is not None
            self._cache.pop(key, None)
            return existed

    def _add(self, key: str, delta: int, limit: int) -> RespString:
        with self._lock:
            if self._live(key) is None:
                self._cache[key] = StoredValue(RespString("0"))
            current = self._cache[key]
            number = _as_int(current.element)
            if number is None or number == limit:
                raise StoreError(ERROR_NOT_NUMERIC_OR_MAX_REACHED)
            result = RespString(str(number + delta))
            self._cache[key] = StoredValue(result, current.expires_at_ms)
            return result

    def increment(self, key: str) -> RespString:
        """Add one to the integer under ``key``, starting from zero."""
        return self._add(key, 1, INT64_MAX)

    def decrement(self, key: str) -> RespString:
        """Subtract one from the integer under ``key``, starting from zero."""
        return self._add(key, -1, INT64_MIN)

    def _push(self, key: str, value: RespValue, front: bool) -> None:
        with self._lock:
            if self._live(key) is None:
                self._cache[key] = StoredValue(RespArray())
            current = self._cache[key]
            if not isinstance(current.element, RespArray):
                raise StoreError(ERROR_NOT_A_LIST)
            items = current.element.elements
            items = (value, *items) if front else (*items, value)
            self._cache[key] = StoredValue(RespArray(items), current.expires_at_ms)

    def lpush(self, key: str, value: RespValue) -> None:
        self._push(key, value, front=True)

    def rpush(self, key: str, value: RespValue) -> None:
        self._push(key, value, front=False)

    def serialize(self) -> bytes:
        """Encode the whole store, expiration times included."""
        with self._lock:
            snapshot = {
                key: {"element": _encode_element(v.element), "expires_at_ms": v.expires_at_ms}
                for key, v in self._cache.items()
            }
        return json.dumps(snapshot).encode("utf-8")

    def load(self, data: Union[bytes, bytearray, None]) -> None:
        """Merge entries from data produced by :meth:`serialize` into the store."""
        if data is None:
            return
        try:
            raw = json.loads(bytes(data).decode("utf-8"))
            entries = {
                str(key): StoredValue(
                    _decode_element(entry["element"]),
                    None if entry["expires_at_ms"] is None else int(entry["expires_at_ms"]),
                )
                for key, entry in raw.items()
            }
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            raise StoreError(ERROR_LOAD_FAILED) from exc
        with self._lock:
            self._cache.update(entries)