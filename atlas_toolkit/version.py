"""Checks of the database schema migration version."""

from __future__ import annotations

import contextlib
import dataclasses
import os
import re
from typing import Any, Protocol


class MigrationVersionError(Exception):
    """Raised when the database migration version is not acceptable."""


class MigrationVersionValidator(Protocol):
    def valid_version(self, version: int) -> None: ...


@dataclasses.dataclass(frozen=True)
class RangeVersion:
    """Accepts versions between ``lower`` and ``upper`` inclusive."""

    lower: int
    upper: int

    def valid_version(self, version: int) -> None:
        """Raise if ``version`` is outside the range."""
        if version < self.lower:
            raise MigrationVersionError(
                f"Database at version {version}, lower than requirement of {self.lower}"
            )
        if version > self.upper:
            raise MigrationVersionError(
                f"Database at version {version}, higher than requirement of {self.upper}"
            )


@dataclasses.dataclass(frozen=True)
class SingleVersion:
    """Accepts exactly one version."""

    target: int = 0

    def valid_version(self, version: int) -> None:
        """Raise if ``version`` is not the target."""
        if version != self.target:
            raise MigrationVersionError(
                f"Database at version {version}, not equal to requirement of {self.target}"
            )


def version_range(lower: int, upper: int) -> RangeVersion:
    """Return a validator bounded by ``lower`` and ``upper``."""
    return RangeVersion(lower, upper)


def version_exactly(version: int) -> SingleVersion:
    """Return a validator for exactly ``version``."""
    return SingleVersion(version)


_NUMBER = re.compile(r"[+-]?[0-9]+")


def max_version_from(path: str | os.PathLike) -> SingleVersion:
    """Return a validator targeting the highest numbered ``.sql`` migration in ``path``."""
    target = 0
    with os.scandir(path) as entries:
        files = sorted(
            (entry.name for entry in entries if not entry.is_dir()),
        )
    for name in files:
        if "." not in name:
            continue
        if name[name.rfind("."):] != ".sql":
            continue
        parts = name.split("_")
        if len(parts) < 2:
            raise MigrationVersionError(
                f'Filename "{name}" does not match migration file naming '
                "requirements ##_name.[up/down].sql"
            )
        if not _NUMBER.fullmatch(parts[0]):
            raise MigrationVersionError(
                f'invalid migration version "{parts[0]}" in filename "{name}"'
            )
        target = max(target, int(parts[0]))
    return SingleVersion(target)


def verify_migration_version(connection: Any, validator: MigrationVersionValidator) -> None:
    """Check the ``schema_migrations`` row of a DB-API connection against ``validator``.

    Raises for a missing row, a dirty database or a rejected version.
    """
    with contextlib.closing(connection.cursor()) as cursor:
        cursor.execute("SELECT * FROM schema_migrations")
        row = cursor.fetchone()
    if row is None:
        raise MigrationVersionError("no rows in result set")
    if len(row) != 2:
        raise MigrationVersionError(
            f"schema_migrations has {len(row)} columns, expected 2"
        )
    version, dirty = int(row[0]), bool(row[1])
    if dirty:
        raise MigrationVersionError(f"Database at version {version}, but is dirty")
    validator.valid_version(version)