from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import Category, Priority, TodoEntity, is_overdue
from .reminders import Reminder
from .statistics import TodoStatistics
from .utils import relative_day_label

# Shared type for incoming due_date which can be a date, datetime, or ISO8601 string
DueDateInput = Union[date, datetime, str]


def _naive_local(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def _parse_due_date(value: Optional[DueDateInput]) -> Optional[datetime]:
    """
    Internal helper to normalize due_date input into a naive local datetime.
    - If value is a string, attempt to parse via datetime.fromisoformat; if time is missing, set to 00:00.
    - If value is a date (not datetime), convert to datetime at 00:00.
    - If value is an aware datetime, convert it to local time and drop the tzinfo.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        return _naive_local(value)

    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, 0, 0, 0)

    if isinstance(value, str):
        s = value.strip()
        try:
            return _naive_local(datetime.fromisoformat(s.replace("Z", "+00:00")))
        except ValueError:
            try:
                d = date.fromisoformat(s)
                return datetime(d.year, d.month, d.day, 0, 0, 0)
            except ValueError as e:
                raise ValueError(
                    "Invalid due_date format. Use ISO8601 date or datetime string (e.g., '2025-01-31' or '2025-01-31T13:45:00')."
                ) from e

    raise ValueError("Invalid type for due_date; expected date, datetime, or ISO8601 string.")


def _clean_title(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    s = v.strip()
    if not (1 <= len(s) <= 200):
        raise ValueError("title length must be between 1 and 200 characters")
    return s


# PUBLIC_INTERFACE
class TodoCreate(BaseModel):
    """
    Schema for creating a new Todo item. Also used for full edits (PUT).
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Buy groceries",
                "due_date": "2025-02-01T18:00:00",
                "priority": "high",
                "category": "shopping",
                "notes": "Milk, eggs, bread",
            }
        }
    )

    title: str = Field(..., description="Short title for the todo item", min_length=1, max_length=200)
    due_date: Optional[datetime] = Field(
        default=None,
        description="Due date/time of the todo item. Accepts ISO8601 date or datetime; dates are set to 00:00",
    )
    priority: Priority = Field(default=Priority.MEDIUM, description="low, medium or high")
    category: Category = Field(default=Category.OTHER, description="work, personal, shopping, health or other")
    notes: str = Field(default="", description="Free-form notes")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """
        Strip whitespace and enforce 1..200 length.
        """
        if v is None:
            raise ValueError("title is required")
        return _clean_title(v)  # type: ignore[return-value]

    @field_validator("due_date", mode="before")
    @classmethod
    def parse_due_date(cls, v: Optional[DueDateInput]) -> Optional[datetime]:
        return _parse_due_date(v)


# PUBLIC_INTERFACE
class TodoUpdate(BaseModel):
    """
    Schema for updating an existing Todo item.
    All fields are optional; only provided fields will be updated. Sending
    due_date as null clears it.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Buy groceries and supplies",
                "completed": True,
                "due_date": "2025-02-02T09:30:00",
                "priority": "low",
            }
        }
    )

    title: Optional[str] = Field(default=None, description="Short title for the todo item", min_length=1, max_length=200)
    completed: Optional[bool] = Field(default=None, description="Completion status flag")
    due_date: Optional[datetime] = Field(default=None, description="Due date/time of the todo item")
    priority: Optional[Priority] = Field(default=None)
    category: Optional[Category] = Field(default=None)
    notes: Optional[str] = Field(default=None)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: Optional[str]) -> Optional[str]:
        return _clean_title(v)

    @field_validator("due_date", mode="before")
    @classmethod
    def parse_due_date(cls, v: Optional[DueDateInput]) -> Optional[datetime]:
        return _parse_due_date(v)

    def changes(self) -> dict:
        """Fields explicitly provided by the client, minus non-nullable ones sent as null."""
        data = {name: getattr(self, name) for name in self.model_fields_set}
        for name in ("title", "completed", "priority", "category"):
            if name in data and data[name] is None:
                del data[name]
        return data


# PUBLIC_INTERFACE
class TodoOut(BaseModel):
    """
    Schema returned by the API for a Todo item.
    """

    id: str = Field(..., description="Unique identifier of the todo item")
    title: str
    completed: bool
    created_at: datetime
    due_date: Optional[datetime] = None
    priority: Priority
    category: Category
    notes: str
    sort_order: int
    notification_identifier: Optional[str] = None
    last_modified: datetime
    is_overdue: bool = Field(..., description="Has a past due date and is not completed")
    due_label: Optional[str] = Field(default=None, description="Today, Tomorrow, Yesterday or the ISO due date")

    @classmethod
    def from_entity(cls, todo: TodoEntity, now: datetime) -> "TodoOut":
        return cls(
            **todo,
            is_overdue=is_overdue(todo, now),
            due_label=relative_day_label(todo["due_date"], now.date()),
        )


class StatisticsOut(BaseModel):
    total: int
    completed: int
    active: int
    overdue: int
    completion_rate: float = Field(..., description="Completed share in percent (0..100)")

    @classmethod
    def from_stats(cls, stats: TodoStatistics) -> "StatisticsOut":
        return cls(
            total=stats.total,
            completed=stats.completed,
            active=stats.active,
            overdue=stats.overdue,
            completion_rate=stats.completion_rate,
        )


class ReminderOut(BaseModel):
    identifier: str
    todo_id: str
    title: str
    subtitle: str
    fire_at: datetime

    @classmethod
    def from_reminder(cls, r: Reminder) -> "ReminderOut":
        return cls(
            identifier=r.identifier,
            todo_id=r.todo_id,
            title=r.title,
            subtitle=r.subtitle,
            fire_at=r.fire_at,
        )


class MoveRequest(BaseModel):
    """
    Reorder request: ``ids`` is the sequence as currently displayed; the items
    at ``source`` offsets are moved before the item at ``destination``.
    """

    ids: List[str] = Field(..., min_length=1)
    source: List[int] = Field(..., min_length=1)
    destination: int = Field(..., ge=0)


class ClearCompletedOut(BaseModel):
    deleted: int
