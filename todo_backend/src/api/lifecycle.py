"""
Todo lifecycle rules shared by the server and guest paths.

TodoService validates input, assigns ids/timestamps/order, expands recurrences
on completion and turns store failures into generic operation errors. Storage
itself is delegated to a TodoRepository.
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

from .auth import Identity
from .db import SQLTodoRepository
from .errors import (
    AuthError,
    NotFoundError,
    RecurrenceExpansionError,
    StoreError,
    ValidationError,
    failing_as,
)
from .guest import GuestTodoRepository, KeyValueStore
from .models import SubTodoEntity, TodoEntity
from .recurrence import order_marker, should_expand, successor_of
from .repositories import UPDATABLE_TODO_FIELDS, TodoRepository
from .schemas import RecurrenceSettings
from .store import Store

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

PRIORITIES = ("low", "medium", "high")
RECURRENCE_PATTERNS = ("daily", "weekly", "monthly", "none")
_NULLABLE_TODO_FIELDS = {"folder_id", "due_date", "recurrence_pattern", "deleted_at"}


def _new_id() -> str:
    return str(uuid.uuid4())


# PUBLIC_INTERFACE
def get_clock() -> Clock:
    """FastAPI dependency returning the wall clock; tests override it."""
    return datetime.now


def _require_content(content: Optional[str]) -> str:
    text = (content or "").strip()
    if not text:
        raise ValidationError("Content must not be empty")
    return text


def _check_todo_fields(fields: Mapping[str, Any]) -> None:
    if "priority" in fields and fields["priority"] not in PRIORITIES:
        raise ValidationError(f"priority must be one of {', '.join(PRIORITIES)}")
    pattern = fields.get("recurrence_pattern")
    if pattern is not None and pattern not in RECURRENCE_PATTERNS:
        raise ValidationError(f"recurrence_pattern must be one of {', '.join(RECURRENCE_PATTERNS)}")
    if "recurrence_interval" in fields and int(fields["recurrence_interval"]) < 1:
        raise ValidationError("recurrence_interval must be a positive integer")


class TodoService:
    """
    The todo lifecycle for one owner.

    Usage:
        service = TodoService(SQLTodoRepository(store, "user-1"))
        todo = service.create("Water the plants", due_date=..., recurrence=RecurrenceSettings(...))
        service.toggle(todo["id"], True)   # may schedule the next occurrence
    """

    def __init__(self, repository: TodoRepository, now: Clock = datetime.now) -> None:
        self._repo = repository
        self._now = now

    @property
    def repository(self) -> TodoRepository:
        return self._repo

    @property
    def owner_id(self) -> str:
        return self._repo.owner_id

    def _insert(self, fields: Mapping[str, Any]) -> TodoEntity:
        now = self._now()
        return self._repo.insert_todo(
            dict(
                fields,
                id=_new_id(),
                is_completed=False,
                created_at=now,
                deleted_at=None,
                order=order_marker(now),
            )
        )

    # Todos

    def create(
        self,
        content: str,
        folder_id: Optional[str] = None,
        priority: str = "medium",
        due_date: Optional[datetime] = None,
        recurrence: Optional[RecurrenceSettings] = None,
        tags: Optional[Iterable[str]] = None,
    ) -> TodoEntity:
        """Create an active, incomplete todo ordered after everything created before it."""
        text = _require_content(content)
        rec = recurrence or RecurrenceSettings()
        fields: Dict[str, Any] = {
            "content": text,
            "folder_id": folder_id or None,
            "priority": priority,
            "due_date": due_date,
            "is_recurring": rec.is_recurring,
            "recurrence_pattern": rec.pattern,
            "recurrence_interval": rec.interval,
            "tags": list(tags or []),
        }
        _check_todo_fields(fields)
        with failing_as("create todo", logger):
            return self._insert(fields)

    def list(self, folder_id: Optional[str] = None) -> List[TodoEntity]:
        """Active todos; an empty list when the store fails."""
        try:
            return self._repo.list_todos(folder_id)
        except StoreError as exc:
            logger.error("Failed to fetch todos: %s", exc.detail)
            return []

    def list_deleted(self) -> List[TodoEntity]:
        """Soft-deleted todos, newest deletion first; an empty list when the store fails."""
        try:
            return self._repo.list_deleted_todos()
        except StoreError as exc:
            logger.error("Failed to fetch deleted todos: %s", exc.detail)
            return []

    def update(self, todo_id: str, fields: Mapping[str, Any]) -> Optional[TodoEntity]:
        """
        Apply a partial update. Returns None without touching the store when
        nothing updatable was supplied; raises NotFoundError when the todo is
        not owned by this service's owner.
        """
        changes = {
            k: v
            for k, v in fields.items()
            if k in UPDATABLE_TODO_FIELDS and (v is not None or k in _NULLABLE_TODO_FIELDS)
        }
        if not changes:
            return None
        if "content" in changes:
            changes["content"] = _require_content(changes["content"])
        _check_todo_fields(changes)
        with failing_as("update todo", logger):
            updated = self._repo.update_todo(todo_id, changes)
        if updated is None:
            raise NotFoundError("Todo not found")
        return updated

    def toggle(self, todo_id: str, is_completed: bool) -> TodoEntity:
        """
        Set the completion flag. Completing a recurring, due-dated todo that
        was incomplete also creates its next occurrence; a failure there is
        logged and does not affect the toggle.
        """
        with failing_as("update todo", logger):
            previous = self._repo.get_todo(todo_id)
        if previous is None:
            raise NotFoundError("Todo not found")
        updated = self.update(todo_id, {"is_completed": is_completed})
        if updated is None:
            raise NotFoundError("Todo not found")
        if should_expand(previous, is_completed):
            try:
                self._expand(previous)
            except RecurrenceExpansionError:
                logger.exception("Failed to create next occurrence of todo %s", todo_id)
        return updated

    def _expand(self, todo: TodoEntity) -> Optional[TodoEntity]:
        fields = successor_of(todo)
        if fields is None:
            return None
        try:
            successor = self._insert(fields)
        except Exception as exc:
            raise RecurrenceExpansionError("Failed to create next occurrence") from exc
        logger.info("scheduled next occurrence %s of todo %s due %s", successor["id"], todo["id"], fields["due_date"])
        return successor

    def delete(self, todo_id: str) -> TodoEntity:
        """Soft delete: hide the todo from listings, keep it restorable."""
        with failing_as("delete todo", logger):
            deleted = self._repo.update_todo(todo_id, {"deleted_at": self._now()})
        if deleted is None:
            raise NotFoundError("Todo not found")
        return deleted

    def restore(self, todo: Union[str, Mapping[str, Any]]) -> TodoEntity:
        """Bring a soft-deleted todo back, by id or from the caller's copy of it."""
        if isinstance(todo, str):
            todo_id, snapshot = todo, None
        else:
            todo_id, snapshot = str(todo["id"]), dict(todo)
        with failing_as("restore todo", logger):
            restored = self._repo.restore_todo(todo_id, snapshot)
        if restored is None:
            raise NotFoundError("Todo not found")
        return restored

    def permanent_delete(self, todo_id: str) -> None:
        """Remove the todo and its sub-todos for good."""
        with failing_as("permanently delete todo", logger):
            removed = self._repo.purge_todo(todo_id)
        if not removed:
            raise NotFoundError("Todo not found")

    def reorder(self, items: Iterable[Mapping[str, Any]]) -> None:
        """Apply {id, order} pairs in one batch."""
        pairs = [(str(item["id"]), float(item["order"])) for item in items]
        if not pairs:
            return
        with failing_as("reorder todos", logger):
            self._repo.reorder_todos(pairs)

    # Sub-todos

    def create_sub_todo(self, todo_id: str, content: str, image_url: Optional[str] = None) -> SubTodoEntity:
        text = _require_content(content)
        with failing_as("create sub-todo", logger):
            created = self._repo.insert_sub_todo(
                todo_id,
                {"id": _new_id(), "content": text, "created_at": self._now(), "image_url": image_url},
            )
        if created is None:
            raise NotFoundError("Todo not found or unauthorized")
        return created

    def list_sub_todos(self, todo_id: str) -> List[SubTodoEntity]:
        try:
            return self._repo.list_sub_todos(todo_id)
        except StoreError as exc:
            logger.error("Failed to fetch sub-todos: %s", exc.detail)
            return []

    def _update_sub_todo(self, sub_todo_id: str, fields: Mapping[str, Any], operation: str) -> SubTodoEntity:
        with failing_as(operation, logger):
            updated = self._repo.update_sub_todo(sub_todo_id, fields)
        if updated is None:
            raise NotFoundError("Sub-todo not found")
        return updated

    def toggle_sub_todo(self, sub_todo_id: str, is_completed: bool) -> SubTodoEntity:
        return self._update_sub_todo(sub_todo_id, {"is_completed": is_completed}, "toggle sub-todo")

    def update_sub_todo(self, sub_todo_id: str, content: str) -> SubTodoEntity:
        return self._update_sub_todo(sub_todo_id, {"content": _require_content(content)}, "update sub-todo")

    def delete_sub_todo(self, sub_todo_id: str) -> SubTodoEntity:
        with failing_as("delete sub-todo", logger):
            removed = self._repo.delete_sub_todo(sub_todo_id)
        if removed is None:
            raise NotFoundError("Sub-todo not found")
        return removed


# PUBLIC_INTERFACE
def get_todo_service(
    identity: Optional[Identity],
    store: Optional[Store] = None,
    guest_store: Optional[KeyValueStore] = None,
    now: Clock = datetime.now,
) -> TodoService:
    """
    Pick the lifecycle backend: the relational store when an identity is
    present, the local guest mirror otherwise.
    """
    if identity is not None:
        if store is None:
            raise ValueError("store is required for an authenticated identity")
        return TodoService(SQLTodoRepository(store, identity.user_id), now=now)
    if guest_store is None:
        raise AuthError()
    return TodoService(GuestTodoRepository(guest_store), now=now)
