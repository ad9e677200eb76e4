"""
Guest mode: the todo repository contract backed by a device-local key-value
store instead of the relational store.

State is read once when the repository is built and the whole todo array is
rewritten under a single key after every mutation.
"""
from __future__ import annotations

import copy
import json
import logging
import os
import sqlite3
from abc import ABC, abstractmethod
from collections import Counter
from contextlib import closing
from datetime import datetime
from threading import RLock
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .errors import StoreError
from .models import SubTodoEntity, TodoEntity
from .recurrence import sort_todos
from .repositories import (
    UPDATABLE_SUB_TODO_FIELDS,
    UPDATABLE_TODO_FIELDS,
    TodoRepository,
    pick,
)
from .schemas import TodoOut
from .settings import get_settings

logger = logging.getLogger(__name__)

GUEST_OWNER_ID = "guest"
GUEST_TODOS_KEY = "guest_todos"


# PUBLIC_INTERFACE
class KeyValueStore(ABC):
    """String key to string value storage local to the device."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored value or None."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Replace the value stored under `key`."""


class InMemoryKeyValueStore(KeyValueStore):
    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class SQLiteKeyValueStore(KeyValueStore):
    """Key-value table in a local SQLite file."""

    def __init__(self, db_path: str) -> None:
        os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
        self._db_path = db_path
        self._run("CREATE TABLE IF NOT EXISTS kv (key TEXT PRIMARY KEY, value TEXT)")

    def _run(self, sql: str, params: Tuple[Any, ...] = ()) -> List[Tuple[Any, ...]]:
        try:
            with closing(sqlite3.connect(self._db_path)) as conn, conn:
                return conn.execute(sql, params).fetchall()
        except sqlite3.Error as exc:
            logger.exception("local store failed at %s", self._db_path)
            raise StoreError("Local store failed", detail=str(exc)) from exc

    def get(self, key: str) -> Optional[str]:
        rows = self._run("SELECT value FROM kv WHERE key = ?", (key,))
        return rows[0][0] if rows else None

    def set(self, key: str, value: str) -> None:
        self._run("INSERT OR REPLACE INTO kv (key, value) VALUES (?, ?)", (key, value))


# PUBLIC_INTERFACE
def open_local_store(path: Optional[str] = None) -> KeyValueStore:
    """The device-local store guest mode persists to; GUEST_STORE_PATH unless `path` is given."""
    return SQLiteKeyValueStore(path or get_settings().guest_store_path)


def dump_todos(todos: Sequence[Mapping[str, Any]]) -> str:
    """Serialize todos (sub-todos embedded) with ISO-8601 datetimes."""
    return json.dumps(
        [TodoOut.model_validate(t).model_dump(mode="json") for t in todos],
        ensure_ascii=False,
    )


def _naive_local(value: Optional[datetime]) -> Optional[datetime]:
    """Offset-carrying timestamps are converted to local wall time so they compare with the local clock."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def revive_todo(item: Mapping[str, Any]) -> TodoEntity:
    """
    Validate one stored or client-supplied todo through TodoOut, so every
    datetime field (created_at, due_date, deleted_at, sub-todo created_at) is
    revived, not only the ones a reader happens to know about.
    """
    todo = TodoOut.model_validate(item).model_dump()
    for field in ("created_at", "due_date", "deleted_at"):
        todo[field] = _naive_local(todo[field])
    for sub in todo["sub_todos"]:
        sub["created_at"] = _naive_local(sub["created_at"])
    return todo  # type: ignore[return-value]


def load_todos(raw: Optional[str]) -> List[TodoEntity]:
    """Parse a stored array back into todos; unreadable state yields an empty list."""
    if not raw:
        return []
    try:
        items = json.loads(raw)
    except ValueError:
        logger.warning("discarding unreadable guest state")
        return []
    return [revive_todo(item) for item in items]


def _sorted_sub_todos(subs: List[SubTodoEntity]) -> List[SubTodoEntity]:
    return sorted(subs, key=lambda s: (s["order"], s["created_at"]))


class GuestTodoRepository(TodoRepository):
    """
    TodoRepository for callers without an account. Returns copies so callers
    never mutate the held state directly.

    Mutations are built on a copy of the array and only become the held state
    after the key-value write succeeds.
    """

    def __init__(self, kv: KeyValueStore, key: str = GUEST_TODOS_KEY) -> None:
        self._lock = RLock()
        self._kv = kv
        self._key = key
        self.owner_id = GUEST_OWNER_ID
        self._todos: List[TodoEntity] = sort_todos(load_todos(kv.get(key)))

    def _draft(self) -> List[TodoEntity]:
        return copy.deepcopy(self._todos)

    def _commit(self, todos: List[TodoEntity]) -> None:
        """Write the whole array, then adopt it as the held state."""
        self._kv.set(self._key, dump_todos(todos))
        self._todos = todos

    @staticmethod
    def _index(todos: List[TodoEntity], todo_id: str) -> Optional[int]:
        for i, t in enumerate(todos):
            if t["id"] == todo_id:
                return i
        return None

    @staticmethod
    def _locate_sub_todo(todos: List[TodoEntity], sub_todo_id: str) -> Optional[Tuple[TodoEntity, int]]:
        for t in todos:
            for i, s in enumerate(t["sub_todos"]):
                if s["id"] == sub_todo_id:
                    return t, i
        return None

    def insert_todo(self, fields: Mapping[str, Any]) -> TodoEntity:
        entity: TodoEntity = {
            "id": fields["id"],
            "user_id": self.owner_id,
            "content": fields["content"],
            "is_completed": bool(fields.get("is_completed", False)),
            "created_at": fields["created_at"],
            "deleted_at": fields.get("deleted_at"),
            "folder_id": fields.get("folder_id"),
            "folder_name": None,
            "folder_color": None,
            "priority": fields.get("priority", "medium"),
            "due_date": fields.get("due_date"),
            "order": float(fields.get("order", 0)),
            "is_recurring": bool(fields.get("is_recurring", False)),
            "recurrence_pattern": fields.get("recurrence_pattern"),
            "recurrence_interval": int(fields.get("recurrence_interval", 1)),
            "tags": list(fields.get("tags", [])),
            "sub_todos": [],
        }
        with self._lock:
            self._commit(sort_todos([*self._draft(), entity]))
            return copy.deepcopy(entity)

    def get_todo(self, todo_id: str) -> Optional[TodoEntity]:
        with self._lock:
            idx = self._index(self._todos, todo_id)
            return None if idx is None else copy.deepcopy(self._todos[idx])

    def list_todos(self, folder_id: Optional[str] = None) -> List[TodoEntity]:
        with self._lock:
            items = [
                t
                for t in self._todos
                if t["deleted_at"] is None and (not folder_id or t["folder_id"] == folder_id)
            ]
            return copy.deepcopy(sort_todos(items))

    def list_deleted_todos(self) -> List[TodoEntity]:
        with self._lock:
            items = [t for t in self._todos if t["deleted_at"] is not None]
            return copy.deepcopy(sorted(items, key=lambda t: t["deleted_at"], reverse=True))

    def update_todo(self, todo_id: str, fields: Mapping[str, Any]) -> Optional[TodoEntity]:
        changes = pick(fields, UPDATABLE_TODO_FIELDS)
        with self._lock:
            todos = self._draft()
            idx = self._index(todos, todo_id)
            if idx is None:
                return None
            updated = todos[idx]
            if changes:
                updated.update(changes)  # type: ignore[typeddict-item]
                self._commit(sort_todos(todos))
            return copy.deepcopy(updated)

    def restore_todo(self, todo_id: str, snapshot: Optional[Mapping[str, Any]] = None) -> Optional[TodoEntity]:
        with self._lock:
            todos = self._draft()
            idx = self._index(todos, todo_id)
            if idx is not None:
                restored = todos[idx]
            elif snapshot is not None:
                restored = revive_todo(snapshot)
                restored["user_id"] = self.owner_id
                todos.append(restored)
            else:
                return None
            restored["deleted_at"] = None
            self._commit(sort_todos(todos))
            return copy.deepcopy(restored)

    def purge_todo(self, todo_id: str) -> bool:
        with self._lock:
            todos = self._draft()
            idx = self._index(todos, todo_id)
            if idx is None:
                return False
            del todos[idx]
            self._commit(todos)
            return True

    def reorder_todos(self, items: Sequence[Tuple[str, float]]) -> None:
        orders = dict(items)
        with self._lock:
            todos = self._draft()
            for t in todos:
                if t["id"] in orders:
                    t["order"] = float(orders[t["id"]])
            self._commit(sort_todos(todos))

    def insert_sub_todo(self, todo_id: str, fields: Mapping[str, Any]) -> Optional[SubTodoEntity]:
        with self._lock:
            todos = self._draft()
            idx = self._index(todos, todo_id)
            if idx is None:
                return None
            parent = todos[idx]
            sub: SubTodoEntity = {
                "id": fields["id"],
                "todo_id": todo_id,
                "content": fields["content"],
                "is_completed": False,
                "created_at": fields["created_at"],
                "order": max((s["order"] for s in parent["sub_todos"]), default=0) + 1,
                "image_url": fields.get("image_url"),
            }
            parent["sub_todos"] = _sorted_sub_todos([*parent["sub_todos"], sub])
            self._commit(todos)
            return copy.deepcopy(sub)

    def list_sub_todos(self, todo_id: str) -> List[SubTodoEntity]:
        with self._lock:
            idx = self._index(self._todos, todo_id)
            if idx is None:
                return []
            return copy.deepcopy(_sorted_sub_todos(self._todos[idx]["sub_todos"]))

    def update_sub_todo(self, sub_todo_id: str, fields: Mapping[str, Any]) -> Optional[SubTodoEntity]:
        changes = pick(fields, UPDATABLE_SUB_TODO_FIELDS)
        with self._lock:
            todos = self._draft()
            found = self._locate_sub_todo(todos, sub_todo_id)
            if found is None:
                return None
            parent, i = found
            sub = parent["sub_todos"][i]
            if changes:
                sub.update(changes)  # type: ignore[typeddict-item]
                parent["sub_todos"] = _sorted_sub_todos(parent["sub_todos"])
                self._commit(todos)
            return copy.deepcopy(sub)

    def delete_sub_todo(self, sub_todo_id: str) -> Optional[SubTodoEntity]:
        with self._lock:
            todos = self._draft()
            found = self._locate_sub_todo(todos, sub_todo_id)
            if found is None:
                return None
            parent, i = found
            removed = parent["sub_todos"].pop(i)
            self._commit(todos)
            return copy.deepcopy(removed)

    def _completed_between(self, start: datetime, end: datetime) -> List[TodoEntity]:
        return [t for t in self._todos if t["is_completed"] and start <= t["created_at"] <= end]

    def completed_counts_by_day(self, start: datetime, end: datetime) -> Dict[str, int]:
        with self._lock:
            counts = Counter(t["created_at"].date().isoformat() for t in self._completed_between(start, end))
            return dict(counts)

    def completed_tag_counts(self, start: datetime, end: datetime, limit: int = 5) -> List[Tuple[str, int]]:
        with self._lock:
            counts: Counter = Counter()
            for t in self._completed_between(start, end):
                counts.update(t["tags"])
            return sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))[:limit]
