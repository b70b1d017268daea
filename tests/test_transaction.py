from __future__ import annotations

import pytest

from atlas_toolkit.transaction import (
    CommitFailedError,
    DatabaseUnavailableError,
    Transaction,
    TransactionMissingError,
    TransactionNoDatabaseError,
    begin_from_context,
    begin_with_options_from_context,
    current_transaction,
    server_interceptor,
    transaction_scope,
)


class FakeSession:
    def __init__(self, commit_error=None, rollback_error=None):
        self.commit_error = commit_error
        self.rollback_error = rollback_error
        self.closed = False
        self.events = []

    def commit(self):
        self.events.append("commit")
        if self.commit_error is not None:
            raise self.commit_error

    def rollback(self):
        self.events.append("rollback")
        if self.rollback_error is not None:
            raise self.rollback_error


class FakeDB:
    def __init__(self, begin_error=None, **session_kwargs):
        self.begin_error = begin_error
        self.session_kwargs = session_kwargs
        self.begun = []
        self.sessions = []

    def begin(self, isolation_level):
        self.begun.append(isolation_level)
        if self.begin_error is not None:
            raise self.begin_error
        session = FakeSession(**self.session_kwargs)
        self.sessions.append(session)
        return session


class Abort(BaseException):
    pass


def test_interceptor_success():
    db = FakeDB()
    interceptor = server_interceptor(db)

    def handler(request):
        txn = current_transaction()
        assert txn is not None
        txn.begin()
        return "response"

    assert interceptor("request", handler) == "response"
    assert db.begun == [None]
    assert db.sessions[0].events == ["commit"]


def test_interceptor_error_rolls_back_and_keeps_handler_error():
    db = FakeDB(rollback_error=RuntimeError("handler"))
    interceptor = server_interceptor(db)

    def handler(request):
        current_transaction().begin()
        raise ValueError("handler")

    with pytest.raises(ValueError, match="^handler$"):
        interceptor(None, handler)
    assert db.sessions[0].events == ["rollback"]


def test_interceptor_commit_failure_details():
    db = FakeDB(commit_error=RuntimeError("internal"))
    interceptor = server_interceptor(db)

    def handler(request):
        current_transaction().begin()
        return None

    with pytest.raises(CommitFailedError) as info:
        interceptor(None, handler)
    assert str(info.value) == "failed to commit transaction"
    assert info.value.detail == "internal"
    assert info.value.target == "gorm"
    assert db.sessions[0].events == ["commit"]


def test_interceptor_rollback_on_unavailable_connection():
    db = FakeDB()
    interceptor = server_interceptor(db)

    def handler(request):
        current_transaction().begin().closed = True
        raise ValueError("handler")

    with pytest.raises(DatabaseUnavailableError, match="Database connection not available"):
        interceptor(None, handler)


def test_interceptor_base_exception_rolls_back_and_propagates():
    db = FakeDB()
    interceptor = server_interceptor(db)

    def handler(request):
        current_transaction().begin()
        raise Abort()

    with pytest.raises(Abort):
        interceptor(None, handler)
    assert db.sessions[0].events == ["rollback"]


@pytest.mark.parametrize("with_options", [False, True])
def test_begin_is_singleton(with_options):
    db = FakeDB()
    txn = Transaction(db)

    def begin():
        return txn.begin_with_options("SERIALIZABLE") if with_options else txn.begin()

    first = begin()
    assert txn.current is first
    second = begin()
    assert second is first
    assert db.begun == (["SERIALIZABLE"] if with_options else [None])


def test_commit():
    db = FakeDB()
    txn = Transaction(db)
    assert txn.commit() is None
    session = txn.begin()
    txn.commit()
    assert session.events == ["commit"]
    assert txn.current is None


def test_after_commit_hook():
    txn = Transaction(FakeDB())
    txn.begin()
    calls = []
    txn.add_after_commit_hook(lambda: calls.append("first"), lambda: calls.append("second"))
    txn.commit()
    assert calls == ["first", "second"]


def test_after_commit_hook_not_run_on_failure():
    txn = Transaction(FakeDB(commit_error=RuntimeError("boom")))
    txn.begin()
    calls = []
    txn.add_after_commit_hook(lambda: calls.append("hook"))
    with pytest.raises(RuntimeError, match="boom"):
        txn.commit()
    assert calls == []
    assert txn.current is None


def test_rollback():
    db = FakeDB()
    txn = Transaction(db)
    assert txn.rollback() is None
    session = txn.begin()
    txn.rollback()
    assert session.events == ["rollback"]
    assert txn.current is None

    broken = Transaction(FakeDB())
    broken.begin().closed = True
    with pytest.raises(DatabaseUnavailableError) as info:
        broken.rollback()
    assert str(info.value) == "Database connection not available"


def test_commit_on_closed_connection_is_noop():
    txn = Transaction(FakeDB())
    session = txn.begin()
    session.closed = True
    txn.commit()
    assert session.events == []


def test_context():
    assert current_transaction() is None
    txn = Transaction()
    with transaction_scope(txn) as bound:
        assert bound is txn
        assert current_transaction() is txn
    assert current_transaction() is None


@pytest.mark.parametrize("with_options", [False, True])
def test_begin_from_context_good(with_options):
    db = FakeDB()

    def begin():
        if with_options:
            return begin_with_options_from_context("SERIALIZABLE")
        return begin_from_context()

    with transaction_scope(Transaction(db)):
        first = begin()
        assert isinstance(first, FakeSession)
        second = begin()
        assert second is first
    assert len(db.begun) == 1


@pytest.mark.parametrize("with_options", [False, True])
def test_begin_from_context_bad(with_options):
    def begin():
        if with_options:
            return begin_with_options_from_context("SERIALIZABLE")
        return begin_from_context()

    with pytest.raises(TransactionMissingError, match="missing in context"):
        begin()

    with transaction_scope(Transaction(FakeDB(begin_error=RuntimeError("cannot begin")))):
        with pytest.raises(RuntimeError, match="cannot begin"):
            begin()

    with transaction_scope(Transaction()):
        with pytest.raises(TransactionNoDatabaseError, match="DB is nil"):
            begin()


def test_failed_begin_leaves_no_current():
    txn = Transaction(FakeDB(begin_error=RuntimeError("cannot begin")))
    with pytest.raises(RuntimeError):
        txn.begin()
    assert txn.current is None