import logging
from datetime import datetime, timedelta

import pytest

from src.api.auth import ensure_user, issue_session, resolve_identity
from src.api.db import SQLTodoRepository
from src.api.errors import NotFoundError, OperationFailedError, StoreError, ValidationError
from src.api.guest import GuestTodoRepository, InMemoryKeyValueStore
from src.api.lifecycle import TodoService
from src.api.schemas import RecurrenceSettings
from src.api.store import Store

from conftest import TickingClock

DAILY = RecurrenceSettings(is_recurring=True, pattern="daily", interval=1)


@pytest.fixture
def store(tmp_path):
    return Store(str(tmp_path / "todos.db"))


@pytest.fixture
def service(store):
    return TodoService(SQLTodoRepository(store, "user-1"), now=TickingClock(datetime(2030, 3, 15, 9, 0)))


class _FailingSuccessorRepository(GuestTodoRepository):
    """Accepts the first insert, refuses every later one."""

    def __init__(self, kv):
        super().__init__(kv)
        self.inserts = 0

    def insert_todo(self, fields):
        self.inserts += 1
        if self.inserts > 1:
            raise StoreError("Store statement failed", detail="disk full")
        return super().insert_todo(fields)


class _UnavailableRepository(GuestTodoRepository):
    def insert_todo(self, fields):
        raise StoreError("Store statement failed", detail="database is locked")

    def list_todos(self, folder_id=None):
        raise StoreError("Store query failed", detail="database is locked")


class _UnreadableAfterInsertRepository(SQLTodoRepository):
    """Writes succeed but the row cannot be read back."""

    def get_todo(self, todo_id):
        return None


class TestTodoService:
    def test_blank_content_never_reaches_the_store(self, service):
        with pytest.raises(ValidationError):
            service.create("   ")
        assert service.list() == []

    def test_failed_successor_does_not_fail_the_toggle(self, caplog):
        service = TodoService(_FailingSuccessorRepository(InMemoryKeyValueStore()))
        todo = service.create("Recurring", due_date=datetime(2030, 1, 1), recurrence=DAILY)
        with caplog.at_level(logging.ERROR):
            toggled = service.toggle(todo["id"], True)
        assert toggled["is_completed"] is True
        assert [t["id"] for t in service.list()] == [todo["id"]]
        assert "Failed to create next occurrence" in caplog.text

    def test_store_failure_becomes_generic_error(self, caplog):
        service = TodoService(_UnavailableRepository(InMemoryKeyValueStore()))
        with caplog.at_level(logging.ERROR):
            with pytest.raises(OperationFailedError) as exc_info:
                service.create("anything")
        assert exc_info.value.message == "Failed to create todo"
        assert "database is locked" not in exc_info.value.message
        assert "database is locked" in caplog.text

    def test_list_failure_returns_empty(self):
        service = TodoService(_UnavailableRepository(InMemoryKeyValueStore()))
        assert service.list() == []

    def test_unreadable_insert_becomes_generic_error(self, store):
        service = TodoService(_UnreadableAfterInsertRepository(store, "user-1"))
        with pytest.raises(OperationFailedError) as exc_info:
            service.create("Vanishes")
        assert exc_info.value.message == "Failed to create todo"

    def test_permanent_delete_clears_sub_todo_rows(self, service, store):
        todo = service.create("Parent")
        service.create_sub_todo(todo["id"], "child")
        service.permanent_delete(todo["id"])
        assert store.query("SELECT * FROM sub_todo") == []
        assert store.query("SELECT * FROM todo") == []

    def test_sub_todo_ownership_is_checked_per_owner(self, service, store):
        todo = service.create("Parent")
        sub = service.create_sub_todo(todo["id"], "child")
        intruder = TodoService(SQLTodoRepository(store, "user-2"))
        assert intruder.list_sub_todos(todo["id"]) == []
        with pytest.raises(NotFoundError):
            intruder.toggle_sub_todo(sub["id"], True)
        assert service.list_sub_todos(todo["id"])[0]["is_completed"] is False


class TestStoreTransactions:
    def test_transaction_rolls_back_on_error(self, service, store):
        todo = service.create("Keep order")
        with pytest.raises(StoreError):
            with store.transaction() as tx:
                tx.execute('UPDATE todo SET "order" = ? WHERE id = ?', (-1, todo["id"]))
                tx.execute("INSERT INTO no_such_table VALUES (1)")
        assert service.list()[0]["order"] == todo["order"]

    def test_reorder_is_applied_together(self, service):
        a = service.create("A")
        b = service.create("B")
        c = service.create("C")
        service.reorder([{"id": c["id"], "order": 1}, {"id": a["id"], "order": 2}, {"id": b["id"], "order": 3}])
        assert [t["content"] for t in service.list()] == ["C", "A", "B"]


class TestSessions:
    def test_expired_session_is_removed(self, store):
        ensure_user(store, "user-1", name="Tester")
        token = issue_session(store, "user-1", expires_in=timedelta(minutes=5))
        assert resolve_identity(store, token).user_id == "user-1"

        later = datetime.now() + timedelta(hours=1)
        assert resolve_identity(store, token, now=later) is None
        assert store.query("SELECT * FROM session WHERE token = ?", (token,)) == []

    def test_missing_token(self, store):
        assert resolve_identity(store, None) is None
        assert resolve_identity(store, "unknown") is None
