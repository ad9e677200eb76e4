from __future__ import annotations

from datetime import datetime
from typing import List, Optional, TypedDict


# PUBLIC_INTERFACE
class SubTodoEntity(TypedDict):
    """
    A checklist item nested under exactly one todo.

    Fields:
    - id: uuid string
    - todo_id: owning todo
    - content: item text
    - is_completed: completion flag
    - created_at: creation timestamp
    - order: sort key within the parent (max sibling order + 1 on creation)
    - image_url: optional attachment reference
    """

    id: str
    todo_id: str
    content: str
    is_completed: bool
    created_at: datetime
    order: float
    image_url: Optional[str]


# PUBLIC_INTERFACE
class TodoEntity(TypedDict):
    """
    Storage-agnostic representation of a todo as returned by repositories.

    Fields:
    - id: uuid string
    - user_id: owning identity ("guest" in guest mode)
    - content: free text
    - is_completed: completion flag
    - created_at: creation timestamp
    - deleted_at: soft-delete timestamp; None while active
    - folder_id / folder_name / folder_color: optional folder reference and its display data
    - priority: 'low' | 'medium' | 'high'
    - due_date: optional due datetime
    - order: float sort key, ascending
    - is_recurring / recurrence_pattern / recurrence_interval: recurrence descriptor
    - tags: free-text tags
    - sub_todos: ordered sub-todos
    """

    id: str
    user_id: str
    content: str
    is_completed: bool
    created_at: datetime
    deleted_at: Optional[datetime]
    folder_id: Optional[str]
    folder_name: Optional[str]
    folder_color: Optional[str]
    priority: str
    due_date: Optional[datetime]
    order: float
    is_recurring: bool
    recurrence_pattern: Optional[str]
    recurrence_interval: int
    tags: List[str]
    sub_todos: List[SubTodoEntity]


# PUBLIC_INTERFACE
class FolderEntity(TypedDict):
    """A named, colored grouping of todos owned by one identity."""

    id: str
    user_id: str
    name: str
    color: str
    created_at: datetime


class NotificationSettingsEntity(TypedDict):
    push_enabled: bool
    morning_time: str
    evening_time: str
    weekend_dnd: bool
