"""Database dialects and the store that manages the version table."""

from __future__ import annotations

import enum
from contextlib import closing
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Sequence, Union

from gander.dialectquery import (
    Clickhouse,
    Mysql,
    Postgres,
    Querier,
    Redshift,
    Sqlite3,
    Sqlserver,
    Starrocks,
    Tidb,
    Turso,
    Vertica,
    Ydb,
)


class Dialect(str, enum.Enum):
    """Supported database dialects."""

    POSTGRES = "postgres"
    MYSQL = "mysql"
    SQLITE3 = "sqlite3"
    SQLSERVER = "sqlserver"
    REDSHIFT = "redshift"
    TIDB = "tidb"
    CLICKHOUSE = "clickhouse"
    VERTICA = "vertica"
    YDB = "ydb"
    TURSO = "turso"
    STARROCKS = "starrocks"

    def __str__(self) -> str:
        return self.value


_QUERIERS: dict[Dialect, type[Querier]] = {
    Dialect.POSTGRES: Postgres,
    Dialect.MYSQL: Mysql,
    Dialect.SQLITE3: Sqlite3,
    Dialect.SQLSERVER: Sqlserver,
    Dialect.REDSHIFT: Redshift,
    Dialect.TIDB: Tidb,
    Dialect.CLICKHOUSE: Clickhouse,
    Dialect.VERTICA: Vertica,
    Dialect.YDB: Ydb,
    Dialect.TURSO: Turso,
    Dialect.STARROCKS: Starrocks,
}


@dataclass(frozen=True)
class GetMigrationResult:
    """State of one migration in the version table."""

    is_applied: bool
    timestamp: datetime


@dataclass(frozen=True)
class ListMigrationsResult:
    """One row of the version table."""

    version_id: int
    is_applied: bool


def _execute(conn: Any, query: str, params: Sequence[Any] = ()) -> None:
    with closing(conn.cursor()) as cur:
        cur.execute(query, tuple(params))


def _to_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, bytes):
        value = value.decode()
    if isinstance(value, str):
        return datetime.fromisoformat(value)
    raise TypeError(f"cannot convert {value!r} to a timestamp")


class Store:
    """Runs the dialect's version-table queries over DB-API connections.

    Errors raised by the driver are passed through unchanged.
    """

    def __init__(self, querier: Querier) -> None:
        self.querier = querier

    def create_version_table(self, tx: Any, table_name: str) -> None:
        """Create the version table within a transaction."""
        _execute(tx, self.querier.create_table(table_name))

    def insert_version(self, tx: Any, table_name: str, version: int) -> None:
        """Insert an applied version within a transaction."""
        _execute(tx, self.querier.insert_version(table_name), (version, True))

    def insert_version_no_tx(self, db: Any, table_name: str, version: int) -> None:
        """Insert an applied version without a transaction."""
        _execute(db, self.querier.insert_version(table_name), (version, True))

    def delete_version(self, tx: Any, table_name: str, version: int) -> None:
        """Delete a version within a transaction."""
        _execute(tx, self.querier.delete_version(table_name), (version,))

    def delete_version_no_tx(self, db: Any, table_name: str, version: int) -> None:
        """Delete a version without a transaction."""
        _execute(db, self.querier.delete_version(table_name), (version,))

    def get_migration(self, db: Any, table_name: str, version: int) -> GetMigrationResult:
        """Return the latest record of ``version``.

        Raises ``LookupError`` when the version has no record.
        """
        with closing(db.cursor()) as cur:
            cur.execute(self.querier.get_migration_by_version(table_name), (version,))
            row = cur.fetchone()
        if row is None:
            raise LookupError("no rows in result set")
        timestamp, is_applied = row
        return GetMigrationResult(is_applied=bool(is_applied), timestamp=_to_datetime(timestamp))

    def list_migrations(self, db: Any, table_name: str) -> list[ListMigrationsResult]:
        """Return all records, newest first; empty when there are none."""
        with closing(db.cursor()) as cur:
            cur.execute(self.querier.list_migrations(table_name), ())
            rows = cur.fetchall()
        return [
            ListMigrationsResult(version_id=int(row[0]), is_applied=bool(row[1]))
            for row in rows
        ]


def new_store(dialect: Union[Dialect, str]) -> Store:
    """Return a store for ``dialect``; raise ``ValueError`` if it is unknown."""
    try:
        key = Dialect(dialect)
    except ValueError:
        raise ValueError(f"unknown querier dialect: {dialect}") from None
    return Store(_QUERIERS[key]())