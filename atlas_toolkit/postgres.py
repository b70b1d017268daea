"""Disposable PostgreSQL databases for integration tests.

The database is reached through ``connect``, a DB-API style function that
takes a DSN string and returns a connection.
"""

from __future__ import annotations

import contextlib
import dataclasses
import datetime
import time
from collections.abc import Callable
from typing import Any, Optional, Union

from .network import PORT_RANGE_MAX, get_open_port_in_range
from .process import run_container

PASSWORD = "password"
FIRST_TEST_PORT = 35000

_POLL_INTERVAL = 0.5
_RESET_QUERY = (
    "DROP SCHEMA public CASCADE;"
    "CREATE SCHEMA public;"
    "GRANT ALL ON SCHEMA public TO postgres;"
    "GRANT ALL ON SCHEMA public TO public;"
)


class DatabaseTimeoutError(TimeoutError):
    """The test database did not accept connections in time."""

    def __init__(self, message: str = "database connection timed out") -> None:
        super().__init__(f"testing database error: {message}")


@dataclasses.dataclass
class PostgresDB:
    """Settings of a test PostgreSQL database and operations on it."""

    connect: Callable[[str], Any]
    port: int
    name: str = "test-postgres-db"
    user: str = "postgres"
    password: str = PASSWORD
    version: str = "latest"
    migrate_up: Optional[Callable[[Any], Any]] = None
    migrate_down: Optional[Callable[[Any], Any]] = None
    timeout: Union[float, datetime.timedelta] = 10.0

    def __post_init__(self) -> None:
        if isinstance(self.timeout, datetime.timedelta):
            self.timeout = self.timeout.total_seconds()

    def dsn(self) -> str:
        """Return the connection string of the database."""
        return (
            f"host=localhost port={self.port} user={self.user} "
            f"password={self.password} sslmode=disable dbname={self.name}"
        )

    def reset(self) -> None:
        """Drop every table, then rebuild them with ``migrate_up`` if it is set.

        When ``migrate_down`` is set it tears the schema down instead of
        dropping the public schema.
        """
        with contextlib.closing(self.connect(self.dsn())) as connection:
            if self.migrate_down is not None:
                self.migrate_down(connection)
            else:
                with contextlib.closing(connection.cursor()) as cursor:
                    cursor.execute(_RESET_QUERY)
                connection.commit()
            if self.migrate_up is not None:
                self.migrate_up(connection)

    def run_as_docker_container(self) -> Callable[[], None]:
        """Start PostgreSQL in a container and wait for it; returns a function killing it."""
        cleanup = run_container(
            f"postgres:{self.version}",
            [
                f"--publish={self.port}:5432",
                f"--env=POSTGRES_DB={self.name}",
                f"--env=POSTGRES_PASSWORD={self.password}",
                f"--env=POSTGRES_USER={self.user}",
                "--detach",
                "--rm",
            ],
            [],
        )
        try:
            self.check_connection()
        except Exception:
            with contextlib.suppress(Exception):
                cleanup()
            raise
        return cleanup

    def check_connection(self) -> None:
        """Poll the database every half second until it answers or ``timeout`` passes."""
        deadline = time.monotonic() + self.timeout
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= _POLL_INTERVAL:
                time.sleep(max(remaining, 0.0))
                raise DatabaseTimeoutError()
            time.sleep(_POLL_INTERVAL)
            if self._ping():
                return

    def _ping(self) -> bool:
        try:
            connection = self.connect(self.dsn())
        except Exception:
            return False
        with contextlib.suppress(Exception):
            connection.close()
        return True


def new_test_postgres_db(connect: Callable[[str], Any], **kwargs: Any) -> PostgresDB:
    """Return a ``PostgresDB``; without a ``port`` the first free one from 35000 is used."""
    if "port" not in kwargs:
        kwargs["port"] = get_open_port_in_range(FIRST_TEST_PORT, PORT_RANGE_MAX)
    return PostgresDB(connect=connect, **kwargs)