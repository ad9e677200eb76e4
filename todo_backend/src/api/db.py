from __future__ import annotations

import json
import sqlite3
from collections import Counter
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .errors import StoreError
from .models import FolderEntity, NotificationSettingsEntity, SubTodoEntity, TodoEntity
from .repositories import (
    UPDATABLE_SUB_TODO_FIELDS,
    UPDATABLE_TODO_FIELDS,
    TodoRepository,
    pick,
)
from .store import Store, Transaction

_TODO_SELECT = """
    SELECT t.*, f.name AS folder_name, f.color AS folder_color
    FROM todo t
    LEFT JOIN folder f ON t.folder_id = f.id AND f.user_id = t.user_id
"""

_INSERT_TODO_COLUMNS = (
    "id",
    "content",
    "is_completed",
    "created_at",
    "user_id",
    "folder_id",
    "priority",
    "due_date",
    "order",
    "is_recurring",
    "recurrence_pattern",
    "recurrence_interval",
    "tags",
    "deleted_at",
)

DEFAULT_NOTIFICATION_SETTINGS: NotificationSettingsEntity = {
    "push_enabled": False,
    "morning_time": "08:00",
    "evening_time": "22:00",
    "weekend_dnd": True,
}


def _parse_dt(s: Optional[str]) -> Optional[datetime]:
    if s is None:
        return None
    return datetime.fromisoformat(s)


def _to_db(column: str, value: Any) -> Any:
    """Encode a Python value for its SQLite column."""
    if value is None:
        return None
    if column == "tags":
        return json.dumps(list(value), ensure_ascii=False)
    if isinstance(value, bool):
        return 1 if value else 0
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def _placeholders(n: int) -> str:
    return ", ".join("?" for _ in range(n))


def _row_to_sub_todo(row: sqlite3.Row) -> SubTodoEntity:
    return {
        "id": str(row["id"]),
        "todo_id": str(row["todo_id"]),
        "content": str(row["content"]),
        "is_completed": bool(row["is_completed"]),
        "created_at": _parse_dt(row["created_at"]),  # type: ignore
        "order": float(row["order"]),
        "image_url": row["image_url"],
    }


def _row_to_todo(row: sqlite3.Row, sub_todos: List[SubTodoEntity]) -> TodoEntity:
    return {
        "id": str(row["id"]),
        "user_id": str(row["user_id"]),
        "content": str(row["content"]),
        "is_completed": bool(row["is_completed"]),
        "created_at": _parse_dt(row["created_at"]),  # type: ignore
        "deleted_at": _parse_dt(row["deleted_at"]),
        "folder_id": row["folder_id"],
        "folder_name": row["folder_name"],
        "folder_color": row["folder_color"],
        "priority": str(row["priority"]),
        "due_date": _parse_dt(row["due_date"]),
        "order": float(row["order"]),
        "is_recurring": bool(row["is_recurring"]),
        "recurrence_pattern": row["recurrence_pattern"],
        "recurrence_interval": int(row["recurrence_interval"]),
        "tags": json.loads(row["tags"] or "[]"),
        "sub_todos": sub_todos,
    }


def _row_to_folder(row: sqlite3.Row) -> FolderEntity:
    return {
        "id": str(row["id"]),
        "user_id": str(row["user_id"]),
        "name": str(row["name"]),
        "color": str(row["color"]),
        "created_at": _parse_dt(row["created_at"]),  # type: ignore
    }


class SQLTodoRepository(TodoRepository):
    """
    Server-side TodoRepository. Every statement carries the owner predicate;
    sub-todo statements re-derive ownership through the parent todo.
    """

    def __init__(self, store: Store, owner_id: str) -> None:
        self._store = store
        self.owner_id = owner_id

    def _sub_todos_for(self, todo_ids: Sequence[str]) -> Dict[str, List[SubTodoEntity]]:
        grouped: Dict[str, List[SubTodoEntity]] = {tid: [] for tid in todo_ids}
        if not todo_ids:
            return grouped
        rows = self._store.query(
            f"""
            SELECT * FROM sub_todo
            WHERE todo_id IN ({_placeholders(len(todo_ids))})
            ORDER BY "order" ASC, created_at ASC
            """,
            list(todo_ids),
        )
        for row in rows:
            grouped[str(row["todo_id"])].append(_row_to_sub_todo(row))
        return grouped

    def _hydrate(self, rows: List[sqlite3.Row]) -> List[TodoEntity]:
        subs = self._sub_todos_for([str(r["id"]) for r in rows])
        return [_row_to_todo(r, subs[str(r["id"])]) for r in rows]

    def insert_todo(self, fields: Mapping[str, Any]) -> TodoEntity:
        values = dict(fields, user_id=self.owner_id)
        columns = ", ".join(f'"{c}"' for c in _INSERT_TODO_COLUMNS)
        self._store.execute(
            f"INSERT INTO todo ({columns}) VALUES ({_placeholders(len(_INSERT_TODO_COLUMNS))})",
            [_to_db(c, values.get(c)) for c in _INSERT_TODO_COLUMNS],
        )
        created = self.get_todo(values["id"])
        if created is None:
            raise StoreError("Store statement failed", detail=f"todo {values['id']} not readable after insert")
        return created

    def get_todo(self, todo_id: str) -> Optional[TodoEntity]:
        rows = self._store.query(
            f"{_TODO_SELECT} WHERE t.id = ? AND t.user_id = ?",
            (todo_id, self.owner_id),
        )
        return self._hydrate(rows)[0] if rows else None

    def list_todos(self, folder_id: Optional[str] = None) -> List[TodoEntity]:
        clauses = ["t.user_id = ?", "t.deleted_at IS NULL"]
        params: list = [self.owner_id]
        if folder_id:
            clauses.append("t.folder_id = ?")
            params.append(folder_id)
        rows = self._store.query(
            f"""
            {_TODO_SELECT}
            WHERE {' AND '.join(clauses)}
            ORDER BY t."order" ASC, t.created_at DESC
            """,
            params,
        )
        return self._hydrate(rows)

    def list_deleted_todos(self) -> List[TodoEntity]:
        rows = self._store.query(
            f"""
            {_TODO_SELECT}
            WHERE t.user_id = ? AND t.deleted_at IS NOT NULL
            ORDER BY t.deleted_at DESC
            """,
            (self.owner_id,),
        )
        return self._hydrate(rows)

    def update_todo(self, todo_id: str, fields: Mapping[str, Any]) -> Optional[TodoEntity]:
        changes = pick(fields, UPDATABLE_TODO_FIELDS)
        if changes:
            set_clause = ", ".join(f'"{c}" = ?' for c in changes)
            affected = self._store.execute(
                f"UPDATE todo SET {set_clause} WHERE id = ? AND user_id = ?",
                [*(_to_db(c, v) for c, v in changes.items()), todo_id, self.owner_id],
            )
            if affected == 0:
                return None
        return self.get_todo(todo_id)

    def restore_todo(self, todo_id: str, snapshot: Optional[Mapping[str, Any]] = None) -> Optional[TodoEntity]:
        return self.update_todo(todo_id, {"deleted_at": None})

    def purge_todo(self, todo_id: str) -> bool:
        with self._store.transaction() as tx:
            tx.execute(
                """
                DELETE FROM sub_todo
                WHERE todo_id IN (SELECT id FROM todo WHERE id = ? AND user_id = ?)
                """,
                (todo_id, self.owner_id),
            )
            deleted = tx.execute(
                "DELETE FROM todo WHERE id = ? AND user_id = ?",
                (todo_id, self.owner_id),
            )
        return deleted > 0

    def reorder_todos(self, items: Sequence[Tuple[str, float]]) -> None:
        with self._store.transaction() as tx:
            for todo_id, order in items:
                tx.execute(
                    'UPDATE todo SET "order" = ? WHERE id = ? AND user_id = ?',
                    (order, todo_id, self.owner_id),
                )

    def _owned_sub_todo(self, tx: Transaction, sub_todo_id: str) -> Optional[SubTodoEntity]:
        rows = tx.query(
            """
            SELECT s.* FROM sub_todo s
            JOIN todo t ON s.todo_id = t.id
            WHERE s.id = ? AND t.user_id = ?
            """,
            (sub_todo_id, self.owner_id),
        )
        return _row_to_sub_todo(rows[0]) if rows else None

    def insert_sub_todo(self, todo_id: str, fields: Mapping[str, Any]) -> Optional[SubTodoEntity]:
        with self._store.transaction() as tx:
            parent = tx.query("SELECT id FROM todo WHERE id = ? AND user_id = ?", (todo_id, self.owner_id))
            if not parent:
                return None
            tx.execute(
                """
                INSERT INTO sub_todo (id, todo_id, content, is_completed, created_at, "order", image_url)
                VALUES (?, ?, ?, 0, ?, (SELECT COALESCE(MAX("order"), 0) + 1 FROM sub_todo WHERE todo_id = ?), ?)
                """,
                (
                    fields["id"],
                    todo_id,
                    fields["content"],
                    _to_db("created_at", fields["created_at"]),
                    todo_id,
                    fields.get("image_url"),
                ),
            )
            return self._owned_sub_todo(tx, fields["id"])

    def list_sub_todos(self, todo_id: str) -> List[SubTodoEntity]:
        rows = self._store.query(
            """
            SELECT s.* FROM sub_todo s
            JOIN todo t ON s.todo_id = t.id
            WHERE s.todo_id = ? AND t.user_id = ?
            ORDER BY s."order" ASC, s.created_at ASC
            """,
            (todo_id, self.owner_id),
        )
        return [_row_to_sub_todo(r) for r in rows]

    def update_sub_todo(self, sub_todo_id: str, fields: Mapping[str, Any]) -> Optional[SubTodoEntity]:
        changes = pick(fields, UPDATABLE_SUB_TODO_FIELDS)
        with self._store.transaction() as tx:
            if changes:
                set_clause = ", ".join(f'"{c}" = ?' for c in changes)
                tx.execute(
                    f"""
                    UPDATE sub_todo SET {set_clause}
                    WHERE id = ? AND todo_id IN (SELECT id FROM todo WHERE user_id = ?)
                    """,
                    [*(_to_db(c, v) for c, v in changes.items()), sub_todo_id, self.owner_id],
                )
            return self._owned_sub_todo(tx, sub_todo_id)

    def delete_sub_todo(self, sub_todo_id: str) -> Optional[SubTodoEntity]:
        with self._store.transaction() as tx:
            existing = self._owned_sub_todo(tx, sub_todo_id)
            if existing is None:
                return None
            tx.execute("DELETE FROM sub_todo WHERE id = ?", (sub_todo_id,))
            return existing

    def completed_counts_by_day(self, start: datetime, end: datetime) -> Dict[str, int]:
        rows = self._store.query(
            """
            SELECT substr(created_at, 1, 10) AS day, COUNT(*) AS count
            FROM todo
            WHERE user_id = ? AND is_completed = 1 AND created_at >= ? AND created_at <= ?
            GROUP BY substr(created_at, 1, 10)
            """,
            (self.owner_id, start.isoformat(), end.isoformat()),
        )
        return {str(r["day"]): int(r["count"]) for r in rows}

    def completed_tag_counts(self, start: datetime, end: datetime, limit: int = 5) -> List[Tuple[str, int]]:
        rows = self._store.query(
            """
            SELECT tags FROM todo
            WHERE user_id = ? AND is_completed = 1 AND created_at >= ? AND created_at <= ?
            """,
            (self.owner_id, start.isoformat(), end.isoformat()),
        )
        counts: Counter = Counter()
        for row in rows:
            counts.update(json.loads(row["tags"] or "[]"))
        return sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))[:limit]


class SQLFolderRepository:
    """Owner-scoped folder storage (server path only)."""

    def __init__(self, store: Store, owner_id: str) -> None:
        self._store = store
        self.owner_id = owner_id

    def list(self) -> List[FolderEntity]:
        rows = self._store.query(
            "SELECT * FROM folder WHERE user_id = ? ORDER BY created_at ASC",
            (self.owner_id,),
        )
        return [_row_to_folder(r) for r in rows]

    def get(self, folder_id: str) -> Optional[FolderEntity]:
        rows = self._store.query(
            "SELECT * FROM folder WHERE id = ? AND user_id = ?",
            (folder_id, self.owner_id),
        )
        return _row_to_folder(rows[0]) if rows else None

    def create(self, folder_id: str, name: str, color: str, created_at: datetime) -> FolderEntity:
        self._store.execute(
            "INSERT INTO folder (id, name, user_id, color, created_at) VALUES (?, ?, ?, ?, ?)",
            (folder_id, name, self.owner_id, color, created_at.isoformat()),
        )
        created = self.get(folder_id)
        if created is None:
            raise StoreError("Store statement failed", detail=f"folder {folder_id} not readable after insert")
        return created

    def update(self, folder_id: str, fields: Mapping[str, Any]) -> Optional[FolderEntity]:
        changes = pick(fields, ("name", "color"))
        if changes:
            set_clause = ", ".join(f"{c} = ?" for c in changes)
            affected = self._store.execute(
                f"UPDATE folder SET {set_clause} WHERE id = ? AND user_id = ?",
                [*changes.values(), folder_id, self.owner_id],
            )
            if affected == 0:
                return None
        return self.get(folder_id)

    def delete(self, folder_id: str) -> bool:
        """Remove the folder and detach the owner's todos from it."""
        with self._store.transaction() as tx:
            deleted = tx.execute(
                "DELETE FROM folder WHERE id = ? AND user_id = ?",
                (folder_id, self.owner_id),
            )
            if deleted:
                tx.execute(
                    "UPDATE todo SET folder_id = NULL WHERE folder_id = ? AND user_id = ?",
                    (folder_id, self.owner_id),
                )
        return deleted > 0


class SQLAccountRepository:
    """Profile and notification settings of one identity."""

    def __init__(self, store: Store, owner_id: str) -> None:
        self._store = store
        self.owner_id = owner_id

    def update_name(self, name: str) -> bool:
        return self._store.execute('UPDATE "user" SET name = ? WHERE id = ?', (name, self.owner_id)) > 0

    def get_notification_settings(self) -> NotificationSettingsEntity:
        rows = self._store.query(
            "SELECT push_enabled, morning_time, evening_time, weekend_dnd FROM user_settings WHERE user_id = ?",
            (self.owner_id,),
        )
        if not rows:
            return dict(DEFAULT_NOTIFICATION_SETTINGS)  # type: ignore[return-value]
        row = rows[0]
        return {
            "push_enabled": bool(row["push_enabled"]),
            "morning_time": str(row["morning_time"]),
            "evening_time": str(row["evening_time"]),
            "weekend_dnd": bool(row["weekend_dnd"]),
        }

    def upsert_notification_settings(self, settings: NotificationSettingsEntity, now: datetime) -> None:
        self._store.execute(
            """
            INSERT INTO user_settings (user_id, push_enabled, morning_time, evening_time, weekend_dnd, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT (user_id) DO UPDATE SET
                push_enabled = excluded.push_enabled,
                morning_time = excluded.morning_time,
                evening_time = excluded.evening_time,
                weekend_dnd = excluded.weekend_dnd,
                updated_at = excluded.updated_at
            """,
            (
                self.owner_id,
                1 if settings["push_enabled"] else 0,
                settings["morning_time"],
                settings["evening_time"],
                1 if settings["weekend_dnd"] else 0,
                now.isoformat(),
            ),
        )
