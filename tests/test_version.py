from __future__ import annotations

import contextlib
import sqlite3

import pytest

from atlas_toolkit.version import (
    MigrationVersionError,
    RangeVersion,
    SingleVersion,
    max_version_from,
    verify_migration_version,
    version_exactly,
    version_range,
)


def _migrations_db(version, dirty):
    conn = sqlite3.connect(":memory:")
    conn.execute("CREATE TABLE schema_migrations (version INTEGER, dirty BOOLEAN)")
    conn.execute("INSERT INTO schema_migrations VALUES (?, ?)", (version, dirty))
    conn.commit()
    return conn


def test_version_from_path(tmp_path):
    for name in ["1_init.up.sql", "1_init.down.sql", "2_users.up.sql", "3_items.down.sql",
                 "README", "5_notes.txt"]:
        (tmp_path / name).write_text("-- migration\n")
    (tmp_path / "4_dir.sql").mkdir()
    assert max_version_from(tmp_path) == SingleVersion(target=3)


def test_version_from_empty_path(tmp_path):
    assert max_version_from(tmp_path) == SingleVersion(target=0)


def test_version_from_badly_named_file(tmp_path):
    (tmp_path / "bad.sql").write_text("")
    with pytest.raises(MigrationVersionError, match="naming requirements"):
        max_version_from(tmp_path)


def test_version_from_non_numeric_prefix(tmp_path):
    (tmp_path / "abc_init.up.sql").write_text("")
    with pytest.raises(MigrationVersionError, match="abc"):
        max_version_from(tmp_path)


def test_version_from_missing_directory(tmp_path):
    with pytest.raises(FileNotFoundError):
        max_version_from(tmp_path / "missing")


def test_constructors():
    assert version_range(1, 4) == RangeVersion(1, 4)
    assert version_exactly(3) == SingleVersion(3)


@pytest.mark.parametrize(
    "has_version, validator, dirty, expected",
    [
        (3, version_exactly(3), False, None),
        (5, version_exactly(3), False, "Database at version 5, not equal to requirement of 3"),
        (3, version_range(1, 4), False, None),
        (3, version_range(1, 2), False, "Database at version 3, higher than requirement of 2"),
        (3, version_range(4, 5), False, "Database at version 3, lower than requirement of 4"),
        (3, version_range(1, 5), True, "Database at version 3, but is dirty"),
    ],
    ids=["exact-correct", "exact-wrong", "range-correct", "too-low", "too-high", "dirty"],
)
def test_version_in_db(has_version, validator, dirty, expected):
    with contextlib.closing(_migrations_db(has_version, dirty)) as conn:
        if expected is None:
            assert verify_migration_version(conn, validator) is None
        else:
            with pytest.raises(MigrationVersionError) as info:
                verify_migration_version(conn, validator)
            assert str(info.value) == expected


def test_version_in_empty_table():
    with contextlib.closing(sqlite3.connect(":memory:")) as conn:
        conn.execute("CREATE TABLE schema_migrations (version INTEGER, dirty BOOLEAN)")
        with pytest.raises(MigrationVersionError, match="no rows"):
            verify_migration_version(conn, version_exactly(1))