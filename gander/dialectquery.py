"""Dialect specific SQL used to manage the migration version table."""

from __future__ import annotations

from abc import ABC, abstractmethod


def _sql(*lines: str) -> str:
    return "\n".join(lines)


class Querier(ABC):
    """Builds the dialect specific queries for the version table."""

    @abstractmethod
    def create_table(self, table_name: str) -> str:
        """Return the query that creates the version table."""

    @abstractmethod
    def insert_version(self, table_name: str) -> str:
        """Return the query that inserts a version (version_id, is_applied)."""

    @abstractmethod
    def delete_version(self, table_name: str) -> str:
        """Return the query that deletes a version."""

    @abstractmethod
    def get_migration_by_version(self, table_name: str) -> str:
        """Return the query selecting tstamp and is_applied of one version."""

    @abstractmethod
    def list_migrations(self, table_name: str) -> str:
        """Return the query listing version_id and is_applied, newest first."""

    @abstractmethod
    def get_latest_version(self, table_name: str) -> str:
        """Return the query selecting the highest version_id."""


class QueryController(Querier):
    """Wraps a querier and adds optional queries it may not provide."""

    def __init__(self, querier: Querier) -> None:
        self.querier = querier

    def create_table(self, table_name: str) -> str:
        return self.querier.create_table(table_name)

    def insert_version(self, table_name: str) -> str:
        return self.querier.insert_version(table_name)

    def delete_version(self, table_name: str) -> str:
        return self.querier.delete_version(table_name)

    def get_migration_by_version(self, table_name: str) -> str:
        return self.querier.get_migration_by_version(table_name)

    def list_migrations(self, table_name: str) -> str:
        return self.querier.list_migrations(table_name)

    def get_latest_version(self, table_name: str) -> str:
        return self.querier.get_latest_version(table_name)

    def table_exists(self, table_name: str) -> str:
        """Return the table-exists query, or "" if the querier has none."""
        method = getattr(self.querier, "table_exists", None)
        if callable(method):
            return method(table_name)
        return ""


def parse_table_identifier(name: str) -> tuple[str, str]:
    """Split ``schema.table`` into its parts; schema is "" when absent."""
    schema, sep, table = name.partition(".")
    if not sep:
        return "", name
    return schema, table


class Clickhouse(Querier):
    def create_table(self, table_name: str) -> str:
        return _sql(
            f"CREATE TABLE IF NOT EXISTS {table_name} (",
            "\t\tversion_id Int64,",
            "\t\tis_applied UInt8,",
            "\t\tdate Date default now(),",
            "\t\ttstamp DateTime default now()",
            "\t  )",
            "\t  ENGINE = MergeTree()",
            "\t\tORDER BY (date)",
        )

    def insert_version(self, table_name: str) -> str:
        return f"INSERT INTO {table_name} (version_id, is_applied) VALUES ($1, $2)"

    def delete_version(self, table_name: str) -> str:
        return (
            f"ALTER TABLE {table_name} DELETE WHERE version_id = $1 "
            "SETTINGS mutations_sync = 2"
        )

    def get_migration_by_version(self, table_name: str) -> str:
        return (
            f"SELECT tstamp, is_applied FROM {table_name} WHERE version_id = $1 "
            "ORDER BY tstamp DESC LIMIT 1"
        )

    def list_migrations(self, table_name: str) -> str:
        return f"SELECT version_id, is_applied FROM {table_name} ORDER BY version_id DESC"

    def get_latest_version(self, table_name: str) -> str:
        return f"SELECT max(version_id) FROM {table_name}"


class Mysql(Querier):
    def create_table(self, table_name: str) -> str:
        return _sql(
            f"CREATE TABLE {table_name} (",
            "\t\tid bigint(20) unsigned NOT NULL AUTO_INCREMENT,",
            "\t\tversion_id bigint NOT NULL,",
            "\t\tis_applied boolean NOT NULL,",
            "\t\ttstamp timestamp NULL default now(),",
            "\t\tPRIMARY KEY(id)",
            "\t)",
        )

    def insert_version(self, table_name: str) -> str:
        return f"INSERT INTO {table_name} (version_id, is_applied) VALUES (?, ?)"

    def delete_version(self, table_name: str) -> str:
        return f"DELETE FROM {table_name} WHERE version_id=?"

    def get_migration_by_version(self, table_name: str) -> str:
        return (
            f"SELECT tstamp, is_applied FROM {table_name} WHERE version_id=? "
            "ORDER BY tstamp DESC LIMIT 1"
        )

    def list_migrations(self, table_name: str) -> str:
        return f"SELECT version_id, is_applied from {table_name} ORDER BY id DESC"

    def get_latest_version(self, table_name: str) -> str:
        return f"SELECT MAX(version_id) FROM {table_name}"


class Postgres(Querier):
    def create_table(self, table_name: str) -> str:
        return _sql(
            f"CREATE TABLE {table_name} (",
            "\t\tid integer PRIMARY KEY GENERATED BY DEFAULT AS IDENTITY,",
            "\t\tversion_id bigint NOT NULL,",
            "\t\tis_applied boolean NOT NULL,",
            "\t\ttstamp timestamp NOT NULL DEFAULT now()",
            "\t)",
        )

    def insert_version(self, table_name: str) -> str:
        return f"INSERT INTO {table_name} (version_id, is_applied) VALUES ($1, $2)"

    def delete_version(self, table_name: str) -> str:
        return f"DELETE FROM {table_name} WHERE version_id=$1"

    def get_migration_by_version(self, table_name: str) -> str:
        return (
            f"SELECT tstamp, is_applied FROM {table_name} WHERE version_id=$1 "
            "ORDER BY tstamp DESC LIMIT 1"
        )

    def list_migrations(self, table_name: str) -> str:
        return f"SELECT version_id, is_applied from {table_name} ORDER BY id DESC"

    def get_latest_version(self, table_name: str) -> str:
        return f"SELECT max(version_id) FROM {table_name}"

    def table_exists(self, table_name: str) -> str:
        schema, table = parse_table_identifier(table_name)
        if schema:
            return (
                "SELECT EXISTS ( SELECT 1 FROM pg_tables WHERE "
                f"schemaname = '{schema}' AND tablename = '{table}' )"
            )
        return (
            "SELECT EXISTS ( SELECT 1 FROM pg_tables WHERE "
            "(current_schema() IS NULL OR schemaname = current_schema()) "
            f"AND tablename = '{table}' )"
        )


class Redshift(Querier):
    def create_table(self, table_name: str) -> str:
        return _sql(
            f"CREATE TABLE {table_name} (",
            "\t\tid integer NOT NULL identity(1, 1),",
            "\t\tversion_id bigint NOT NULL,",
            "\t\tis_applied boolean NOT NULL,",
            "\t\ttstamp timestamp NULL default sysdate,",
            "\t\tPRIMARY KEY(id)",
            "\t)",
        )

    def insert_version(self, table_name: str) -> str:
        return f"INSERT INTO {table_name} (version_id, is_applied) VALUES ($1, $2)"

    def delete_version(self, table_name: str) -> str:
        return f"DELETE FROM {table_name} WHERE version_id=$1"

    def get_migration_by_version(self, table_name: str) -> str:
        return (
            f"SELECT tstamp, is_applied FROM {table_name} WHERE version_id=$1 "
            "ORDER BY tstamp DESC LIMIT 1"
        )

    def list_migrations(self, table_name: str) -> str:
        return f"SELECT version_id, is_applied from {table_name} ORDER BY id DESC"

    def get_latest_version(self, table_name: str) -> str:
        return f"SELECT max(version_id) FROM {table_name}"


class Sqlite3(Querier):
    def create_table(self, table_name: str) -> str:
        return _sql(
            f"CREATE TABLE {table_name} (",
            "\t\tid INTEGER PRIMARY KEY AUTOINCREMENT,",
            "\t\tversion_id INTEGER NOT NULL,",
            "\t\tis_applied INTEGER NOT NULL,",
            "\t\ttstamp TIMESTAMP DEFAULT (datetime('now'))",
            "\t)",
        )

    def insert_version(self, table_name: str) -> str:
        return f"INSERT INTO {table_name} (version_id, is_applied) VALUES (?, ?)"

    def delete_version(self, table_name: str) -> str:
        return f"DELETE FROM {table_name} WHERE version_id=?"

    def get_migration_by_version(self, table_name: str) -> str:
        return (
            f"SELECT tstamp, is_applied FROM {table_name} WHERE version_id=? "
            "ORDER BY tstamp DESC LIMIT 1"
        )

    def list_migrations(self, table_name: str) -> str:
        return f"SELECT version_id, is_applied from {table_name} ORDER BY id DESC"

    def get_latest_version(self, table_name: str) -> str:
        return f"SELECT MAX(version_id) FROM {table_name}"


class Sqlserver(Querier):
    def create_table(self, table_name: str) -> str:
        return _sql(
            f"CREATE TABLE {table_name} (",
            "\t\tid INT NOT NULL IDENTITY(1,1) PRIMARY KEY,",
            "\t\tversion_id BIGINT NOT NULL,",
            "\t\tis_applied BIT NOT NULL,",
            "\t\ttstamp DATETIME NULL DEFAULT CURRENT_TIMESTAMP",
            "\t)",
        )

    def insert_version(self, table_name: str) -> str:
        return f"INSERT INTO {table_name} (version_id, is_applied) VALUES (@p1, @p2)"

    def delete_version(self, table_name: str) -> str:
        return f"DELETE FROM {table_name} WHERE version_id=@p1"

    def get_migration_by_version(self, table_name: str) -> str:
        return (
            f"SELECT TOP 1 tstamp, is_applied FROM {table_name} WHERE version_id=@p1 "
            "ORDER BY tstamp DESC"
        )

    def list_migrations(self, table_name: str) -> str:
        return f"SELECT version_id, is_applied FROM {table_name} ORDER BY id DESC"

    def get_latest_version(self, table_name: str) -> str:
        return f"SELECT MAX(version_id) FROM {table_name}"


class Starrocks(Querier):
    def create_table(self, table_name: str) -> str:
        return _sql(
            f"CREATE TABLE IF NOT EXISTS {table_name} (",
            "\t\tid bigint NOT NULL AUTO_INCREMENT,",
            "\t\tversion_id bigint NOT NULL,",
            "\t\tis_applied boolean NOT NULL,",
            "\t\ttstamp datetime NULL default CURRENT_TIMESTAMP",
            "\t)",
            "\tPRIMARY KEY (id)",
            "\tDISTRIBUTED BY HASH (id)",
            "\tORDER BY (id,version_id)",
        )

    def insert_version(self, table_name: str) -> str:
        return f"INSERT INTO {table_name} (version_id, is_applied) VALUES (?, ?)"

    def delete_version(self, table_name: str) -> str:
        return f"DELETE FROM {table_name} WHERE version_id=?"

    def get_migration_by_version(self, table_name: str) -> str:
        return (
            f"SELECT tstamp, is_applied FROM {table_name} WHERE version_id=? "
            "ORDER BY tstamp DESC LIMIT 1"
        )

    def list_migrations(self, table_name: str) -> str:
        return f"SELECT version_id, is_applied from {table_name} ORDER BY id DESC"

    def get_latest_version(self, table_name: str) -> str:
        return f"SELECT MAX(version_id) FROM {table_name}"


class Tidb(Querier):
    def create_table(self, table_name: str) -> str:
        return _sql(
            f"CREATE TABLE {table_name} (",
            "\t\tid BIGINT UNSIGNED NOT NULL AUTO_INCREMENT UNIQUE,",
            "\t\tversion_id bigint NOT NULL,",
            "\t\tis_applied boolean NOT NULL,",
            "\t\ttstamp timestamp NULL default now(),",
            "\t\tPRIMARY KEY(id)",
            "\t)",
        )

    def insert_version(self, table_name: str) -> str:
        return f"INSERT INTO {table_name} (version_id, is_applied) VALUES (?, ?)"

    def delete_version(self, table_name: str) -> str:
        return f"DELETE FROM {table_name} WHERE version_id=?"

    def get_migration_by_version(self, table_name: str) -> str:
        return (
            f"SELECT tstamp, is_applied FROM {table_name} WHERE version_id=? "
            "ORDER BY tstamp DESC LIMIT 1"
        )

    def list_migrations(self, table_name: str) -> str:
        return f"SELECT version_id, is_applied from {table_name} ORDER BY id DESC"

    def get_latest_version(self, table_name: str) -> str:
        return f"SELECT MAX(version_id) FROM {table_name}"


class Turso(Sqlite3):
    """Turso speaks the SQLite dialect."""


class Vertica(Querier):
    def create_table(self, table_name: str) -> str:
        return _sql(
            f"CREATE TABLE {table_name} (",
            "\t\tid identity(1,1) NOT NULL,",
            "\t\tversion_id bigint NOT NULL,",
            "\t\tis_applied boolean NOT NULL,",
            "\t\ttstamp timestamp NULL default now(),",
            "\t\tPRIMARY KEY(id)",
            "\t)",
        )

    def insert_version(self, table_name: str) -> str:
        return f"INSERT INTO {table_name} (version_id, is_applied) VALUES (?, ?)"

    def delete_version(self, table_name: str) -> str:
        return f"DELETE FROM {table_name} WHERE version_id=?"

    def get_migration_by_version(self, table_name: str) -> str:
        return (
            f"SELECT tstamp, is_applied FROM {table_name} WHERE version_id=? "
            "ORDER BY tstamp DESC LIMIT 1"
        )

    def list_migrations(self, table_name: str) -> str:
        return f"SELECT version_id, is_applied from {table_name} ORDER BY id DESC"

    def get_latest_version(self, table_name: str) -> str:
        return f"SELECT MAX(version_id) FROM {table_name}"


class Ydb(Querier):
    def create_table(self, table_name: str) -> str:
        return _sql(
            f"CREATE TABLE {table_name} (",
            "\t\tversion_id Uint64,",
            "\t\tis_applied Bool,",
            "\t\ttstamp Timestamp,",
            "",
            "\t\tPRIMARY KEY(version_id)",
            "\t)",
        )

    def insert_version(self, table_name: str) -> str:
        return _sql(
            f"INSERT INTO {table_name} (",
            "\t\tversion_id, ",
            "\t\tis_applied, ",
            "\t\ttstamp",
            "\t) VALUES (",
            "\t\tCAST($1 AS Uint64), ",
            "\t\t$2, ",
            "\t\tCurrentUtcTimestamp()",
            "\t)",
        )

    def delete_version(self, table_name: str) -> str:
        return f"DELETE FROM {table_name} WHERE version_id = $1"

    def get_migration_by_version(self, table_name: str) -> str:
        return (
            f"SELECT tstamp, is_applied FROM {table_name} WHERE version_id = $1 "
            "ORDER BY tstamp DESC LIMIT 1"
        )

    def list_migrations(self, table_name: str) -> str:
        return _sql(
            "",
            "\tSELECT version_id, is_applied, tstamp AS __discard_column_tstamp ",
            f"\tFROM {table_name} ORDER BY __discard_column_tstamp DESC",
        )

    def get_latest_version(self, table_name: str) -> str:
        return f"SELECT MAX(version_id) FROM {table_name}"