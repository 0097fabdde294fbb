# gander

Building blocks for running database schema migrations from plain SQL files.
The package has no dependencies outside the standard library.

## Installation

```
pip install gander
```

## What is inside

- `gander.sqlparser`: splits annotated SQL migration files into statements.
  A migration starts with `-- +goose Up`, may carry a `-- +goose Down`
  section, and can wrap multi-statement bodies such as PL/pgSQL functions in
  `-- +goose StatementBegin` / `-- +goose StatementEnd`. The annotations
  `-- +goose NO TRANSACTION`, `-- +goose ENVSUB ON` and
  `-- +goose ENVSUB OFF` are also understood; with `ENVSUB ON`, `$VAR` and
  `${VAR}` forms (including `${VAR:-default}` and `${VAR?message}`) are
  replaced from the environment. Malformed migrations raise `SQLParseError`.
- `gander.dialectquery`: the SQL used to create and query the version table,
  one `Querier` per database: `Postgres`, `Mysql`, `Sqlite3`, `Sqlserver`,
  `Redshift`, `Tidb`, `Clickhouse`, `Vertica`, `Ydb`, `Turso` and
  `Starrocks`. `QueryController` wraps a querier and adds `table_exists`,
  which returns `""` when the querier has no such query (only `Postgres`
  has one).
- `gander.dialect`: the `Dialect` enum and a `Store` that runs those
  queries through DB-API connections (anything with `cursor()`), created
  with `new_store(dialect)`. `new_store` raises `ValueError` for an unknown
  dialect; `Store.get_migration` raises `LookupError` when a version has no
  record.
- `gander.controller`: `StoreController` wraps a store, forwards all its
  attributes, and adds `table_exists`, which raises `UnsupportedError` when
  the wrapped store cannot check it.
- `gander.lock`: `PostgresSessionLocker`, a PostgreSQL advisory session lock
  with retries, built with `new_postgres_session_locker(...)` and the options
  `with_lock_id`, `with_lock_timeout(period, failure_threshold)` and
  `with_unlock_timeout(period, failure_threshold)`. By default the lock is
  retried every 5 seconds up to 60 times and the unlock every 2 seconds up to
  30 times; the default lock id is `DEFAULT_LOCK_ID`. Failures raise
  `LockError`. Queries use the `%s` placeholder style.
- `gander.resolve`: `up_versions`, which decides which migrations to apply
  and raises `MissingMigrationsError` for out-of-order (missing) migrations.
- `gander.log`: a small pluggable logger (`Logger`, `StdLogger`,
  `NopLogger`, `set_logger`, `get_logger`, `nop_logger`).

## Parsing a migration

```python
import io
from gander.sqlparser import Direction, parse_sql_migration

text = """-- +goose Up
CREATE TABLE post (id int);
-- +goose Down
DROP TABLE post;
"""

statements, use_tx = parse_sql_migration(io.StringIO(text), Direction.UP, False)
print(statements)  # ['CREATE TABLE post (id int);']
print(use_tx)      # True
```

To parse both directions of a file in a directory:

```python
from gander.sqlparser import parse_all_from_fs

parsed = parse_all_from_fs("migrations", "00001_create_post.sql", False)
print(parsed.up, parsed.down, parsed.use_tx)
```

## Tracking versions

```python
import sqlite3
from gander.dialect import Dialect, new_store

conn = sqlite3.connect(":memory:")
store = new_store(Dialect.SQLITE3)
store.create_version_table(conn, "goose_db_version")
store.insert_version(conn, "goose_db_version", 0)
print(store.list_migrations(conn, "goose_db_version"))
# [ListMigrationsResult(version_id=0, is_applied=True)]
```

## Choosing migrations to apply

```python
from gander.resolve import MAX_VERSION, up_versions

print(up_versions([1, 2, 3, 4], [1, 2], MAX_VERSION, False))  # [3, 4]
```

If migrations lower than the highest applied version are missing,
`up_versions` raises `MissingMigrationsError` unless `allow_missing` is true,
in which case they are returned together with the new ones.

## What the package does not do

There is no command-line tool and no migration runner: the package does not
find migration files in a directory, apply or roll back migrations, or open
database connections. It supplies the parsing, queries, version bookkeeping,
locking and version resolution from which such a runner is built.

## Running the tests

```
pip install -e ".[test]"
pytest
```