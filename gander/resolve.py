"""Working out which migrations still have to be applied."""

from __future__ import annotations

from typing import Iterable

MAX_VERSION = 2**63 - 1


class MissingMigrationsError(ValueError):
    """Raised when migrations older than the database version were never applied."""

    def __init__(self, missing: Iterable[int], db_max_version: int, target: int) -> None:
        self.missing = sorted(missing)
        self.db_max_version = db_max_version
        self.target = target
        super().__init__(self._message())

    def _message(self) -> str:
        count = len(self.missing)
        noun = "migrations" if count > 1 else "migration"
        joined = ",".join(str(v) for v in self.missing)
        versions = f"versions {joined}" if count > 1 else f"version {joined}"
        desired = f"database version ({self.db_max_version})"
        if self.target != MAX_VERSION:
            desired += f", with target version ({self.target})"
        return (
            f"detected {count} missing (out-of-order) {noun} "
            f"lower than {desired}: {versions}"
        )


def up_versions(
    fsys_versions: Iterable[int] | None,
    db_versions: Iterable[int] | None,
    target: int,
    allow_missing: bool,
) -> list[int]:
    """Return the versions to apply, in ascending order.

    A version found on disk but not in the database is "missing" when it is
    lower than the highest applied version. Missing versions up to ``target``
    raise ``MissingMigrationsError`` unless ``allow_missing`` is set, in which
    case they are applied together with new versions up to ``target``.
    """
    fsys = sorted(fsys_versions or ())
    applied = set(db_versions or ())
    db_max = max(applied, default=0)
    db_max = max(db_max, 0)

    pending = [v for v in fsys if v not in applied]
    missing = [v for v in pending if v < db_max and v <= target]
    if missing and not allow_missing:
        raise MissingMigrationsError(missing, db_max, target)

    new = [v for v in pending if v > db_max and v <= target]
    return sorted(missing + new)