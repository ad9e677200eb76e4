from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .models import SubTodoEntity, TodoEntity

# Columns a caller may change through update_todo.
UPDATABLE_TODO_FIELDS = (
    "content",
    "is_completed",
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

UPDATABLE_SUB_TODO_FIELDS = ("content", "is_completed", "order", "image_url")


# PUBLIC_INTERFACE
class TodoRepository(ABC):
    """
    Owner-scoped storage contract for todos and their sub-todos.

    Every method only sees rows belonging to `owner_id`. Implementations do no
    validation and apply no business rules; TodoService owns those.
    """

    owner_id: str

    @abstractmethod
    def insert_todo(self, fields: Mapping[str, Any]) -> TodoEntity:
        """Persist a fully populated todo (id, timestamps and order included) and return it."""

    @abstractmethod
    def get_todo(self, todo_id: str) -> Optional[TodoEntity]:
        """Return the todo (active or soft-deleted) with its sub-todos, or None."""

    @abstractmethod
    def list_todos(self, folder_id: Optional[str] = None) -> List[TodoEntity]:
        """
        Return active todos, optionally limited to one folder, sorted by order
        ascending then created_at descending, each with ordered sub-todos.
        """

    @abstractmethod
    def list_deleted_todos(self) -> List[TodoEntity]:
        """Return soft-deleted todos, most recently deleted first."""

    @abstractmethod
    def update_todo(self, todo_id: str, fields: Mapping[str, Any]) -> Optional[TodoEntity]:
        """Apply `fields` to the todo. Return the updated todo, or None if no row matched."""

    @abstractmethod
    def restore_todo(self, todo_id: str, snapshot: Optional[Mapping[str, Any]] = None) -> Optional[TodoEntity]:
        """
        Clear the delete timestamp. `snapshot` is the caller's copy of the todo;
        backends that hold state locally may re-insert it when the row is gone.
        """

    @abstractmethod
    def purge_todo(self, todo_id: str) -> bool:
        """Remove the todo and all of its sub-todos. Return False if nothing matched."""

    @abstractmethod
    def reorder_todos(self, items: Sequence[Tuple[str, float]]) -> None:
        """Apply (id, order) pairs as one atomic batch."""

    @abstractmethod
    def insert_sub_todo(self, todo_id: str, fields: Mapping[str, Any]) -> Optional[SubTodoEntity]:
        """
        Add a sub-todo under an owned todo; its order is one past the current
        maximum. Return None when the parent is not owned.
        """

    @abstractmethod
    def list_sub_todos(self, todo_id: str) -> List[SubTodoEntity]:
        """Return sub-todos of an owned todo ordered by order, then created_at."""

    @abstractmethod
    def update_sub_todo(self, sub_todo_id: str, fields: Mapping[str, Any]) -> Optional[SubTodoEntity]:
        """Apply `fields` if the sub-todo's parent is owned. Return None otherwise."""

    @abstractmethod
    def delete_sub_todo(self, sub_todo_id: str) -> Optional[SubTodoEntity]:
        """Remove the sub-todo if its parent is owned and return the removed row."""

    @abstractmethod
    def completed_counts_by_day(self, start: datetime, end: datetime) -> Dict[str, int]:
        """Map 'YYYY-MM-DD' to the number of completed todos created that day within [start, end]."""

    @abstractmethod
    def completed_tag_counts(self, start: datetime, end: datetime, limit: int = 5) -> List[Tuple[str, int]]:
        """Most frequent tags among completed todos created within [start, end]."""


def pick(fields: Mapping[str, Any], allowed: Sequence[str]) -> Dict[str, Any]:
    """Keep only whitelisted keys, preserving their order in `allowed`."""
    return {k: fields[k] for k in allowed if k in fields}
