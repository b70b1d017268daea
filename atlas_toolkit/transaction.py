"""Request-scoped database transactions.

A ``Transaction`` wraps a database object whose ``begin(isolation_level)``
method opens a transaction and returns a session with ``commit()`` and
``rollback()``. A session may expose a true ``closed`` attribute when its
connection is gone. At most one session is open per ``Transaction``.
"""

from __future__ import annotations

import contextlib
import contextvars
import threading
from collections.abc import Callable, Iterator
from typing import Any, Optional


class TransactionMissingError(LookupError):
    """No transaction is bound to the current context."""

    def __init__(self, message: str = "Database transaction for request missing in context") -> None:
        super().__init__(message)


class TransactionNoDatabaseError(RuntimeError):
    """The transaction in context has no database."""

    def __init__(self, message: str = "Transaction in context, but DB is nil") -> None:
        super().__init__(message)


class DatabaseUnavailableError(ConnectionError):
    """The connection behind the open transaction is closed."""

    def __init__(self, message: str = "Database connection not available") -> None:
        super().__init__(message)


class CommitFailedError(RuntimeError):
    """Committing the transaction of a request failed."""

    def __init__(self, detail: str, target: str = "gorm") -> None:
        self.message = "failed to commit transaction"
        super().__init__(self.message)
        self.detail = detail
        self.target = target


def _is_closed(session: Any) -> bool:
    return bool(getattr(session, "closed", False))


class Transaction:
    """Lazily opened, single database transaction."""

    def __init__(self, db: Any = None) -> None:
        self.db = db
        self._current: Any = None
        self._hooks: list[Callable[[], Any]] = []
        self._lock = threading.Lock()

    @property
    def current(self) -> Any:
        """The open session, or None."""
        return self._current

    def add_after_commit_hook(self, *hooks: Callable[[], Any]) -> None:
        """Register callables run after each successful commit."""
        self._hooks.extend(hooks)

    def begin(self) -> Any:
        """Open the transaction if needed and return its session."""
        return self._begin(None)

    def begin_with_options(self, isolation_level: Any) -> Any:
        """Open the transaction with ``isolation_level`` if needed and return its session."""
        return self._begin(isolation_level)

    def _begin(self, isolation_level: Any) -> Any:
        with self._lock:
            if self._current is None:
                if self.db is None:
                    raise TransactionNoDatabaseError()
                self._current = self.db.begin(isolation_level)
            return self._current

    def rollback(self) -> None:
        """Roll back the open transaction, if any, and forget it."""
        session = self._current
        if session is None:
            return
        if _is_closed(session):
            raise DatabaseUnavailableError()
        with self._lock:
            try:
                session.rollback()
            finally:
                self._current = None

    def commit(self) -> None:
        """Commit the open transaction, if any, then run the after-commit hooks."""
        session = self._current
        if session is None or _is_closed(session):
            return
        with self._lock:
            try:
                session.commit()
            finally:
                self._current = None
        for hook in list(self._hooks):
            hook()


_bound: contextvars.ContextVar[Optional[Transaction]] = contextvars.ContextVar(
    "atlas_toolkit_transaction", default=None
)


@contextlib.contextmanager
def transaction_scope(txn: Transaction) -> Iterator[Transaction]:
    """Bind ``txn`` to the current context for the duration of the block."""
    token = _bound.set(txn)
    try:
        yield txn
    finally:
        _bound.reset(token)


def current_transaction() -> Optional[Transaction]:
    """Return the transaction bound to the current context, or None."""
    return _bound.get()


def _bound_transaction() -> Transaction:
    txn = current_transaction()
    if txn is None:
        raise TransactionMissingError()
    if txn.db is None:
        raise TransactionNoDatabaseError()
    return txn


def begin_from_context() -> Any:
    """Begin the transaction bound to the current context and return its session."""
    return _bound_transaction().begin()


def begin_with_options_from_context(isolation_level: Any) -> Any:
    """Like ``begin_from_context`` with an isolation level."""
    return _bound_transaction().begin_with_options(isolation_level)


def server_interceptor(db: Any) -> Callable[[Any, Callable[[Any], Any]], Any]:
    """Return an interceptor managing one ``Transaction`` over ``db``."""
    return server_interceptor_txn(Transaction(db))


def server_interceptor_txn(txn: Transaction) -> Callable[[Any, Callable[[Any], Any]], Any]:
    """Return an interceptor that binds ``txn`` around a request handler.

    The handler opens the transaction itself. If it raises, the transaction is
    rolled back and the exception propagates; otherwise it is committed.
    """

    def interceptor(request: Any, handler: Callable[[Any], Any]) -> Any:
        with transaction_scope(txn):
            try:
                response = handler(request)
            except Exception as exc:
                try:
                    txn.rollback()
                except DatabaseUnavailableError as unavailable:
                    raise unavailable from exc
                except Exception as rollback_error:
                    raise exc from rollback_error
                raise
            except BaseException:
                with contextlib.suppress(Exception):
                    txn.rollback()
                raise
            try:
                txn.commit()
            except DatabaseUnavailableError:
                raise
            except Exception as commit_error:
                raise CommitFailedError(str(commit_error)) from commit_error
            return response

    return interceptor