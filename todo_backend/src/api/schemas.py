from __future__ import annotations

from datetime import date, datetime
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

Priority = Literal["low", "medium", "high"]
RecurrencePattern = Literal["daily", "weekly", "monthly", "none"]

# Shared type for incoming due_date which can be a date, datetime, or ISO8601 string
DueDateInput = Union[date, datetime, str]


def _parse_due_date(value: Optional[DueDateInput]) -> Optional[datetime]:
    """
    Internal helper to normalize due_date input into a datetime.
    - If value is a string, attempt to parse via datetime.fromisoformat; if time is missing, set to 00:00.
    - If value is a date (not datetime), convert to datetime at 00:00.
    - If value is a datetime, return as-is.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        return value

    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, 0, 0, 0)

    if isinstance(value, str):
        s = value.strip()
        try:
            return datetime.fromisoformat(s)
        except ValueError:
            try:
                d = date.fromisoformat(s)
                return datetime(d.year, d.month, d.day, 0, 0, 0)
            except ValueError as e:
                raise ValueError(
                    "Invalid due_date format. Use ISO8601 date or datetime string (e.g., '2025-01-31' or '2025-01-31T13:45:00')."
                ) from e

    raise ValueError("Invalid type for due_date; expected date, datetime, or ISO8601 string.")


def _normalize_tags(tags: Optional[List[str]]) -> Optional[List[str]]:
    if tags is None:
        return None
    seen: List[str] = []
    for tag in tags:
        t = tag.strip()
        if t and t not in seen:
            seen.append(t)
    return seen


# PUBLIC_INTERFACE
class RecurrenceSettings(BaseModel):
    """
    Recurrence descriptor of a todo. A successor is only ever produced when
    is_recurring is set, the pattern is not 'none', and the todo has a due date.
    """

    is_recurring: bool = Field(default=False, description="Whether completing the todo schedules a successor")
    pattern: Optional[RecurrencePattern] = Field(default=None, description="daily, weekly, monthly or none")
    interval: int = Field(default=1, ge=1, description="Number of pattern units between occurrences")


# PUBLIC_INTERFACE
class TodoCreate(BaseModel):
    """
    Schema for creating a new Todo item.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "content": "Water the plants",
                "priority": "medium",
                "due_date": "2025-02-01T09:00:00",
                "recurrence": {"is_recurring": True, "pattern": "weekly", "interval": 1},
                "tags": ["home"],
            }
        }
    )

    content: str = Field(..., description="Free-text content of the todo", max_length=2000)
    folder_id: Optional[str] = Field(default=None, description="Folder the todo belongs to")
    priority: Priority = Field(default="medium", description="low, medium or high")
    due_date: Optional[datetime] = Field(
        default=None,
        description="Due date/time. Accepts ISO8601 date or datetime; dates are set to 00:00",
    )
    recurrence: Optional[RecurrenceSettings] = Field(default=None, description="Optional recurrence descriptor")
    tags: List[str] = Field(default_factory=list, description="Free-text tags")

    @field_validator("content")
    @classmethod
    def strip_content(cls, v: str) -> str:
        """Strip surrounding whitespace; emptiness is rejected by the service layer."""
        return v.strip()

    @field_validator("due_date", mode="before")
    @classmethod
    def parse_due_date(cls, v: Optional[DueDateInput]) -> Optional[datetime]:
        return _parse_due_date(v)

    @field_validator("tags")
    @classmethod
    def normalize_tags(cls, v: List[str]) -> List[str]:
        return _normalize_tags(v) or []


# PUBLIC_INTERFACE
class TodoUpdate(BaseModel):
    """
    Schema for partially updating a Todo item.
    Only fields present in the payload are applied; explicit nulls clear nullable fields.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "content": "Water the plants and the lawn",
                "priority": "high",
                "due_date": "2025-02-02T09:30:00",
            }
        }
    )

    content: Optional[str] = Field(default=None, max_length=2000)
    is_completed: Optional[bool] = None
    folder_id: Optional[str] = None
    priority: Optional[Priority] = None
    due_date: Optional[datetime] = None
    order: Optional[float] = None
    is_recurring: Optional[bool] = None
    recurrence_pattern: Optional[RecurrencePattern] = None
    recurrence_interval: Optional[int] = Field(default=None, ge=1)
    tags: Optional[List[str]] = None

    @field_validator("content")
    @classmethod
    def strip_content(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v is not None else v

    @field_validator("due_date", mode="before")
    @classmethod
    def parse_due_date(cls, v: Optional[DueDateInput]) -> Optional[datetime]:
        return _parse_due_date(v)

    @field_validator("tags")
    @classmethod
    def normalize_tags(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return _normalize_tags(v)


class ToggleRequest(BaseModel):
    is_completed: bool = Field(..., description="New completion state")


class ReorderItem(BaseModel):
    id: str = Field(..., description="Todo id")
    order: float = Field(..., description="New sort key")


# PUBLIC_INTERFACE
class SubTodoOut(BaseModel):
    """Schema returned by the API for a sub-todo."""

    id: str
    todo_id: str
    content: str
    is_completed: bool = False
    created_at: datetime
    order: float = 0
    image_url: Optional[str] = None


class SubTodoCreate(BaseModel):
    content: str = Field(..., max_length=2000)
    image_url: Optional[str] = Field(default=None, description="Reference to an already-uploaded image")

    @field_validator("content")
    @classmethod
    def strip_content(cls, v: str) -> str:
        return v.strip()


class SubTodoUpdate(BaseModel):
    content: str = Field(..., max_length=2000)

    @field_validator("content")
    @classmethod
    def strip_content(cls, v: str) -> str:
        return v.strip()


# PUBLIC_INTERFACE
class TodoOut(BaseModel):
    """
    Schema returned by the API for a Todo item. Also the shape persisted by the
    guest mirror, so server and guest paths produce identical objects.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "5d0f8a4e-3c1b-4f57-9a53-1f1f0c1f2a10",
                "user_id": "user-1",
                "content": "Water the plants",
                "is_completed": False,
                "created_at": "2025-01-25T10:15:30.123456",
                "deleted_at": None,
                "folder_id": None,
                "folder_name": None,
                "folder_color": None,
                "priority": "medium",
                "due_date": "2025-02-01T09:00:00",
                "order": 1737796530123.0,
                "is_recurring": True,
                "recurrence_pattern": "weekly",
                "recurrence_interval": 1,
                "tags": ["home"],
                "sub_todos": [],
            }
        }
    )

    id: str
    user_id: str
    content: str
    is_completed: bool = False
    created_at: datetime
    deleted_at: Optional[datetime] = None
    folder_id: Optional[str] = None
    folder_name: Optional[str] = None
    folder_color: Optional[str] = None
    priority: Priority = "medium"
    due_date: Optional[datetime] = None
    order: float = 0
    is_recurring: bool = False
    recurrence_pattern: Optional[RecurrencePattern] = None
    recurrence_interval: int = 1
    tags: List[str] = Field(default_factory=list)
    sub_todos: List[SubTodoOut] = Field(default_factory=list)


class FolderCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    color: Optional[str] = Field(default=None, max_length=50)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        s = v.strip()
        if not s:
            raise ValueError("name must not be blank")
        return s


class FolderUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    color: Optional[str] = Field(default=None, max_length=50)


class FolderOut(BaseModel):
    id: str
    user_id: str
    name: str
    color: str
    created_at: datetime


class DailyStat(BaseModel):
    date: str = Field(..., description="Calendar date, YYYY-MM-DD")
    day_name: str = Field(..., description="Abbreviated weekday name")
    count: int


class TagStat(BaseModel):
    tag: str
    count: int


# PUBLIC_INTERFACE
class WeeklyStatsOut(BaseModel):
    """Seven-day trailing completion histogram."""

    total_completed: int
    daily_stats: List[DailyStat]
    trend_message: str
    trend_percentage: int
    tag_stats: List[TagStat] = Field(default_factory=list)


class NotificationSettings(BaseModel):
    push_enabled: bool = False
    morning_time: str = Field(default="08:00", pattern=r"^\d{2}:\d{2}$")
    evening_time: str = Field(default="22:00", pattern=r"^\d{2}:\d{2}$")
    weekend_dnd: bool = True


class ProfileUpdate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)


class ParseRequest(BaseModel):
    text: str


class ParsedContentOut(BaseModel):
    content: str
    due_date: Optional[datetime] = None
