import time
from pathlib import Path

import pytest

from xredis.commands import (
    DUMP_FILE,
    ExpirationMode,
    expiration_time,
    handle_request,
)
from xredis.resp import RespString
from xredis.store import XRedis

GET_BLA = "*2\r\n$3\r\nGET\r\n$3\r\nbla\r\n"
SET_BLA = "*3\r\n$3\r\nSET\r\n$3\r\nbla\r\n$3\r\nbli\r\n"


def _request(store, text):
    return handle_request(store, text.encode()).decode()


def _set_with_timeout(mode, value):
    return (
        "*5\r\n$3\r\nSET\r\n$3\r\nbla\r\n$3\r\nbli\r\n"
        f"${len(mode)}\r\n{mode}\r\n${len(value)}\r\n{value}\r\n"
    )


class _Clock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


def test_invalid_command():
    store = XRedis()
    rsp = _request(store, "*1\r\n$18\r\nNONEXISTENTCOMMAND\r\n")
    assert rsp == "-ERR INVALID-COMMAND\r\n"


def test_invalid_serialized_request():
    assert _request(XRedis(), "xxxx") == "-ERR FAILED-DESERIALIZING\r\n"


def test_empty_request_fails_deserializing():
    assert handle_request(XRedis(), b"") == b"-ERR FAILED-DESERIALIZING\r\n"


def test_non_array_request():
    assert _request(XRedis(), ":1\r\n") == "-ERR UNEXPECTED-ARGUMENT-TYPE\r\n"


def test_empty_array_request():
    assert _request(XRedis(), "*0\r\n") == "-ERR UNEXPECTED-ARGUMENT-TYPE\r\n"


def test_array_with_non_string_element():
    rsp = _request(XRedis(), "*2\r\n$3\r\nGET\r\n:1\r\n")
    assert rsp == "-ERR UNEXPECTED-ARGUMENT-TYPE\r\n"


def test_ping_request():
    assert _request(XRedis(), "*1\r\n$4\r\nPING\r\n") == "$4\r\nPONG\r\n"


def test_command_name_is_case_insensitive():
    assert _request(XRedis(), "*1\r\n$4\r\nping\r\n") == "$4\r\nPONG\r\n"


def test_ping_with_extra_argument():
    rsp = _request(XRedis(), "*2\r\n$4\r\nPING\r\n$1\r\nx\r\n")
    assert rsp == "-ERR INVALID-ARGUMENTS-NUMBER\r\n"


def test_trailing_bytes_are_ignored():
    data = b"*1\r\n$4\r\nPING\r\n" + bytes(100)
    assert handle_request(XRedis(), data) == b"$4\r\nPONG\r\n"


def test_echo_request():
    rsp = _request(XRedis(), "*2\r\n$4\r\nECHO\r\n$16\r\necho-hello-world\r\n")
    assert rsp == "$16\r\necho-hello-world\r\n"


def test_set_and_get_requests():
    store = XRedis()
    assert _request(store, SET_BLA) == "$2\r\nOK\r\n"
    assert _request(store, GET_BLA) == "$3\r\nbli\r\n"


def test_get_missing_key():
    assert _request(XRedis(), GET_BLA) == "$-1\r\n"


def test_set_with_wrong_argument_count():
    rsp = _request(XRedis(), "*4\r\n$3\r\nSET\r\n$3\r\nbla\r\n$3\r\nbli\r\n$2\r\nEX\r\n")
    assert rsp == "-ERR INVALID-ARGUMENTS-NUMBER\r\n"


def test_delete_request():
    store = XRedis()
    _request(store, SET_BLA)
    assert _request(store, "*2\r\n$3\r\nDEL\r\n$3\r\nbla\r\n") == ":1\r\n"
    assert _request(store, GET_BLA) == "$-1\r\n"


def test_delete_missing_key():
    assert _request(XRedis(), "*2\r\n$3\r\nDEL\r\n$3\r\nbla\r\n") == ":0\r\n"


def test_exists_request():
    store = XRedis()
    exists = "*2\r\n$6\r\nEXISTS\r\n$3\r\nbla\r\n"
    assert _request(store, exists) == ":0\r\n"
    _request(store, SET_BLA)
    assert _request(store, exists) == ":1\r\n"


def test_set_and_get_with_expiration_mode_ex():
    store = XRedis()
    assert _request(store, _set_with_timeout("EX", "1")) == "$2\r\nOK\r\n"
    assert _request(store, GET_BLA) == "$3\r\nbli\r\n"
    time.sleep(1.05)
    assert _request(store, GET_BLA) == "$-1\r\n"


def test_set_and_get_with_expiration_mode_px():
    store = XRedis()
    assert _request(store, _set_with_timeout("PX", "100")) == "$2\r\nOK\r\n"
    assert _request(store, GET_BLA) == "$3\r\nbli\r\n"
    time.sleep(0.15)
    assert _request(store, GET_BLA) == "$-1\r\n"


def test_set_and_get_with_expiration_mode_exat():
    clock = _Clock(1699999999.995)
    store = XRedis(clock=clock)
    _request(store, _set_with_timeout("EXAT", "1700000000"))
    assert _request(store, GET_BLA) == "$3\r\nbli\r\n"
    clock.now = 1700000000.005
    assert _request(store, GET_BLA) == "$-1\r\n"


def test_set_and_get_with_expiration_mode_pxat():
    clock = _Clock(1699999999.995)
    store = XRedis(clock=clock)
    _request(store, _set_with_timeout("PXAT", "1700000000000"))
    assert _request(store, GET_BLA) == "$3\r\nbli\r\n"
    clock.now = 1700000000.005
    assert _request(store, GET_BLA) == "$-1\r\n"


def test_set_with_invalid_expiration_mode():
    rsp = _request(XRedis(), _set_with_timeout("XX", "1000"))
    assert rsp == "-ERR UNRECOGNIZED-TIMEOUT-MODE\r\n"


def test_set_with_invalid_expiration_value():
    store = XRedis()
    rsp = _request(store, _set_with_timeout("PX", "xxxx"))
    assert rsp == "-ERR INVALID-TIMEOUT-VALUE\r\n"
    assert _request(store, GET_BLA) == "$-1\r\n"


def test_expiration_mode_values():
    assert ExpirationMode("EX") is ExpirationMode.EXPIRE_SECONDS
    assert ExpirationMode("PXAT") is ExpirationMode.TIMESTAMP_MILLISECONDS


def test_expiration_time_timestamp_seconds():
    assert expiration_time("EXAT", "1700000000").timestamp() == 1700000000


def test_expiration_time_timestamp_milliseconds():
    result = expiration_time(ExpirationMode.TIMESTAMP_MILLISECONDS, "1700000000123")
    assert result.timestamp() == pytest.approx(1700000000.123, abs=1e-6)


def test_expiration_time_relative_is_in_future():
    before = time.time()
    result = expiration_time("EX", "10").timestamp()
    after = time.time()
    assert before + 10 <= result <= after + 10


def test_expiration_time_unknown_mode():
    with pytest.raises(ValueError, match="ERR UNRECOGNIZED-TIMEOUT-MODE"):
        expiration_time("XX", "1000")


def test_expiration_time_bad_value_checked_before_mode():
    with pytest.raises(ValueError, match="ERR INVALID-TIMEOUT-VALUE"):
        expiration_time("XX", "xxxx")


def test_increment_request():
    store = XRedis()
    incr = "*2\r\n$4\r\nINCR\r\n$7\r\ncounter\r\n"
    assert _request(store, incr) == "$1\r\n1\r\n"
    assert _request(store, incr) == "$1\r\n2\r\n"


def test_decrement_request():
    store = XRedis()
    decr = "*2\r\n$4\r\nDECR\r\n$7\r\ncounter\r\n"
    assert _request(store, decr) == "$2\r\n-1\r\n"
    assert _request(store, decr) == "$2\r\n-2\r\n"


def test_increment_non_numeric_key_request():
    store = XRedis()
    _request(store, "*3\r\n$3\r\nSET\r\n$7\r\ncounter\r\n$4\r\ntext\r\n")
    rsp = _request(store, "*2\r\n$4\r\nINCR\r\n$7\r\ncounter\r\n")
    assert rsp == "-ERR VALUE-NOT-NUMERIC-OR-MAX-REACHED\r\n"


def test_decrement_non_numeric_key_request():
    store = XRedis()
    _request(store, "*3\r\n$3\r\nSET\r\n$7\r\ncounter\r\n$4\r\ntext\r\n")
    rsp = _request(store, "*2\r\n$4\r\nDECR\r\n$7\r\ncounter\r\n")
    assert rsp == "-ERR VALUE-NOT-NUMERIC-OR-MAX-REACHED\r\n"


def test_increment_at_maximum():
    store = XRedis()
    store.set("counter", RespString("9223372036854775807"))
    rsp = _request(store, "*2\r\n$4\r\nINCR\r\n$7\r\ncounter\r\n")
    assert rsp == "-ERR VALUE-NOT-NUMERIC-OR-MAX-REACHED\r\n"


def test_lpush_request():
    store = XRedis()
    for item in ("xxxx", "yyyy", "zzzz"):
        rsp = _request(store, f"*3\r\n$5\r\nLPUSH\r\n$4\r\nlist\r\n$4\r\n{item}\r\n")
        assert rsp == "$2\r\nOK\r\n"
    rsp = _request(store, "*2\r\n$3\r\nGET\r\n$4\r\nlist\r\n")
    assert rsp == "*3\r\n$4\r\nzzzz\r\n$4\r\nyyyy\r\n$4\r\nxxxx\r\n"


def test_rpush_request():
    store = XRedis()
    for item in ("xxxx", "yyyy", "zzzz"):
        _request(store, f"*3\r\n$5\r\nRPUSH\r\n$4\r\nlist\r\n$4\r\n{item}\r\n")
    rsp = _request(store, "*2\r\n$3\r\nGET\r\n$4\r\nlist\r\n")
    assert rsp == "*3\r\n$4\r\nxxxx\r\n$4\r\nyyyy\r\n$4\r\nzzzz\r\n"


def test_lpush_on_non_list():
    store = XRedis()
    _request(store, SET_BLA)
    rsp = _request(store, "*3\r\n$5\r\nLPUSH\r\n$3\r\nbla\r\n$4\r\nxxxx\r\n")
    assert rsp == "-ERR VALUE-NOT-A-LIST\r\n"


def test_save_request_writes_loadable_dump(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    store = XRedis()
    _request(store, SET_BLA)
    assert _request(store, "*1\r\n$4\r\nSAVE\r\n") == "$2\r\nOK\r\n"

    restored = XRedis()
    restored.load((tmp_path / DUMP_FILE).read_bytes())
    assert restored.get("bla") == RespString("bli")


def test_save_request_reports_write_failure(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    Path(DUMP_FILE).mkdir()
    rsp = _request(XRedis(), "*1\r\n$4\r\nSAVE\r\n")
    assert rsp.startswith("-")
    assert rsp.endswith("\r\n")