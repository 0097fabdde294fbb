from unittest import mock

import pytest

from gander.lock import (
    DEFAULT_LOCK_ID,
    LockError,
    LockNotImplementedError,
    PostgresSessionLocker,
    SessionLocker,
    UnlockNotImplementedError,
    new_postgres_session_locker,
    with_lock_id,
    with_lock_timeout,
    with_unlock_timeout,
)


class _Cursor:
    def __init__(self, conn):
        self.conn = conn

    def execute(self, query, params):
        self.conn.calls.append((query, params))
        if self.conn.error is not None:
            raise self.conn.error

    def fetchone(self):
        return self.conn.results.pop(0)

    def close(self):
        pass


class _Conn:
    def __init__(self, results=(), error=None):
        self.results = list(results)
        self.error = error
        self.calls = []

    def cursor(self):
        return _Cursor(self)


def test_defaults():
    locker = new_postgres_session_locker()
    assert isinstance(locker, SessionLocker)
    assert locker.lock_id == 5887940537704921958
    assert locker.lock_id == DEFAULT_LOCK_ID
    assert (locker.lock_probe.period_seconds, locker.lock_probe.failure_threshold) == (5, 60)
    assert (locker.unlock_probe.period_seconds, locker.unlock_probe.failure_threshold) == (2, 30)


def test_options_applied():
    locker = new_postgres_session_locker(
        with_lock_id(123456789),
        with_lock_timeout(1, 4),
        with_unlock_timeout(3, 2),
    )
    assert locker.lock_id == 123456789
    assert (locker.lock_probe.period_seconds, locker.lock_probe.failure_threshold) == (1, 4)
    assert (locker.unlock_probe.period_seconds, locker.unlock_probe.failure_threshold) == (3, 2)


@pytest.mark.parametrize("option", [with_lock_timeout, with_unlock_timeout])
def test_invalid_period(option):
    with pytest.raises(ValueError, match="period must be greater than 0, minimum is 1"):
        new_postgres_session_locker(option(0, 1))


@pytest.mark.parametrize("option", [with_lock_timeout, with_unlock_timeout])
def test_invalid_failure_threshold(option):
    with pytest.raises(ValueError, match="failure threshold must be greater than 0"):
        new_postgres_session_locker(option(1, 0))


def test_lock_acquired_first_try():
    locker = new_postgres_session_locker(with_lock_id(42))
    conn = _Conn(results=[(True,)])
    with mock.patch("time.sleep") as sleep:
        locker.session_lock(conn)
    assert len(conn.calls) == 1
    query, params = conn.calls[0]
    assert "pg_try_advisory_lock" in query
    assert params == (42,)
    sleep.assert_not_called()


def test_lock_retries_until_acquired():
    locker = new_postgres_session_locker(with_lock_timeout(1, 4))
    conn = _Conn(results=[(False,), (False,), (True,)])
    with mock.patch("time.sleep") as sleep:
        locker.session_lock(conn)
    assert len(conn.calls) == 3
    assert sleep.call_args_list == [mock.call(1), mock.call(1)]
    assert conn.results == []


def test_lock_gives_up_after_threshold():
    locker = new_postgres_session_locker(with_lock_timeout(1, 3))
    conn = _Conn(results=[(False,)] * 10)
    with mock.patch("time.sleep"):
        with pytest.raises(LockError) as info:
            locker.session_lock(conn)
    assert str(info.value) == "failed to acquire lock"
    assert len(conn.calls) == 4


def test_lock_query_error_not_retried():
    locker = new_postgres_session_locker()
    conn = _Conn(error=RuntimeError("connection is closed"))
    with mock.patch("time.sleep") as sleep:
        with pytest.raises(LockError, match="failed to execute pg_try_advisory_lock"):
            locker.session_lock(conn)
    assert len(conn.calls) == 1
    sleep.assert_not_called()


def test_unlock_released():
    locker = new_postgres_session_locker(with_lock_id(99))
    conn = _Conn(results=[(True,)])
    locker.session_unlock(conn)
    query, params = conn.calls[0]
    assert "pg_advisory_unlock" in query
    assert params == (99,)


def test_unlock_gives_up():
    locker = new_postgres_session_locker(with_unlock_timeout(1, 2))
    conn = _Conn(results=[(False,)] * 5)
    with mock.patch("time.sleep"):
        with pytest.raises(LockError) as info:
            locker.session_unlock(conn)
    assert str(info.value) == "failed to unlock session"
    assert len(conn.calls) == 3


def test_unlock_query_error():
    locker = new_postgres_session_locker()
    conn = _Conn(error=RuntimeError("sql: connection is already closed"))
    with pytest.raises(LockError, match="failed to execute pg_advisory_unlock"):
        locker.session_unlock(conn)


def test_no_row_is_error():
    locker = PostgresSessionLocker(1, new_postgres_session_locker().lock_probe,
                                   new_postgres_session_locker().unlock_probe)
    conn = _Conn(results=[None])
    with pytest.raises(LockError, match="no rows in result set"):
        locker.session_lock(conn)


def test_not_implemented_errors():
    assert str(LockNotImplementedError()) == "lock not implemented"
    assert str(UnlockNotImplementedError()) == "unlock not implemented"
    with pytest.raises(NotImplementedError):
        raise LockNotImplementedError()