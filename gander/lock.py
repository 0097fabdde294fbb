"""Session-level locks that keep concurrent migration runs apart."""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from contextlib import closing
from dataclasses import dataclass, field
from typing import Any, Callable

# crc64 (ECMA) checksum of the string "goose"; unique to migration locking.
DEFAULT_LOCK_ID = 5887940537704921958


class LockNotImplementedError(NotImplementedError):
    """Raised when the database does not support locking."""

    def __init__(self, message: str = "lock not implemented") -> None:
        super().__init__(message)


class UnlockNotImplementedError(NotImplementedError):
    """Raised when the database does not support unlocking."""

    def __init__(self, message: str = "unlock not implemented") -> None:
        super().__init__(message)


class LockError(RuntimeError):
    """Raised when a lock cannot be acquired or released."""


class SessionLocker(ABC):
    """Locks the database for the lifetime of one connection.

    Both methods must be called with the same connection.
    """

    @abstractmethod
    def session_lock(self, conn: Any) -> None:
        """Acquire the lock on ``conn``."""

    @abstractmethod
    def session_unlock(self, conn: Any) -> None:
        """Release the lock held on ``conn``."""


@dataclass(frozen=True)
class _Probe:
    """How often (seconds) and how many times a lock operation is retried."""

    period_seconds: float
    failure_threshold: int


@dataclass
class _Config:
    lock_id: int = DEFAULT_LOCK_ID
    lock_probe: _Probe = field(default_factory=lambda: _Probe(5, 60))
    unlock_probe: _Probe = field(default_factory=lambda: _Probe(2, 30))


SessionLockerOption = Callable[[_Config], None]


def with_lock_id(lock_id: int) -> SessionLockerOption:
    """Use ``lock_id`` instead of ``DEFAULT_LOCK_ID``."""

    def apply(cfg: _Config) -> None:
        cfg.lock_id = lock_id

    return apply


def _validated_probe(period: int, failure_threshold: int) -> _Probe:
    if period < 1:
        raise ValueError("period must be greater than 0, minimum is 1")
    if failure_threshold < 1:
        raise ValueError("failure threshold must be greater than 0, minimum is 1")
    return _Probe(period, failure_threshold)


def with_lock_timeout(period: int, failure_threshold: int) -> SessionLockerOption:
    """Retry acquiring the lock every ``period`` seconds, ``failure_threshold`` times.

    Defaults to every 5 seconds up to 60 times.
    """

    def apply(cfg: _Config) -> None:
        cfg.lock_probe = _validated_probe(period, failure_threshold)

    return apply


def with_unlock_timeout(period: int, failure_threshold: int) -> SessionLockerOption:
    """Retry releasing the lock every ``period`` seconds, ``failure_threshold`` times.

    Defaults to every 2 seconds up to 30 times.
    """

    def apply(cfg: _Config) -> None:
        cfg.unlock_probe = _validated_probe(period, failure_threshold)

    return apply


def _query_bool(conn: Any, query: str, lock_id: int, func: str) -> bool:
    try:
        with closing(conn.cursor()) as cur:
            cur.execute(query, (lock_id,))
            row = cur.fetchone()
    except Exception as exc:
        raise LockError(f"failed to execute {func}: {exc}") from exc
    if row is None:
        raise LockError(f"failed to execute {func}: no rows in result set")
    return bool(row[0])


def _retry(probe: _Probe, attempt: Callable[[], bool], failure: str) -> None:
    retries = 0
    while not attempt():
        if retries >= probe.failure_threshold:
            raise LockError(failure)
        retries += 1
        time.sleep(probe.period_seconds)


class PostgresSessionLocker(SessionLocker):
    """Exclusive session-level advisory lock of PostgreSQL."""

    def __init__(self, lock_id: int, lock_probe: _Probe, unlock_probe: _Probe) -> None:
        self.lock_id = lock_id
        self.lock_probe = lock_probe
        self.unlock_probe = unlock_probe

    def session_lock(self, conn: Any) -> None:
        """Acquire the advisory lock, retrying while another session holds it."""
        _retry(
            self.lock_probe,
            lambda: _query_bool(
                conn,
                "SELECT pg_try_advisory_lock(%s)",
                self.lock_id,
                "pg_try_advisory_lock",
            ),
            "failed to acquire lock",
        )

    def session_unlock(self, conn: Any) -> None:
        """Release the advisory lock held by this session."""
        _retry(
            self.unlock_probe,
            lambda: _query_bool(
                conn,
                "SELECT pg_advisory_unlock(%s)",
                self.lock_id,
                "pg_advisory_unlock",
            ),
            "failed to unlock session",
        )


def new_postgres_session_locker(*args: SessionLockerOption) -> PostgresSessionLocker:
    """Build a PostgreSQL advisory session locker configured by ``args``.

    Raises ``ValueError`` if an option is invalid.
    """
    cfg = _Config()
    for opt in args:
        opt(cfg)
    return PostgresSessionLocker(cfg.lock_id, cfg.lock_probe, cfg.unlock_probe)