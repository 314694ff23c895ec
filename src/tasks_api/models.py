from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional, TypedDict


# PUBLIC_INTERFACE
class Priority(str, Enum):
    """Task priority. Ordering for sorting uses ``priority_rank``."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def label(self) -> str:
        return self.value.capitalize()


# PUBLIC_INTERFACE
class Category(str, Enum):
    """Task category."""

    WORK = "work"
    PERSONAL = "personal"
    SHOPPING = "shopping"
    HEALTH = "health"
    OTHER = "other"


# PUBLIC_INTERFACE
class TodoFilter(str, Enum):
    """Completion-state filter for list queries."""

    ALL = "all"
    ACTIVE = "active"
    COMPLETED = "completed"


# PUBLIC_INTERFACE
class TodoSort(str, Enum):
    """Sort keys for list queries."""

    CREATED_DATE = "created_date"
    DUE_DATE = "due_date"
    PRIORITY = "priority"
    TITLE = "title"


_PRIORITY_RANK = {
    Priority.HIGH: 3,
    Priority.MEDIUM: 2,
    Priority.LOW: 1,
}


# PUBLIC_INTERFACE
def priority_rank(priority: Priority) -> int:
    """Return the sort rank of a priority (high=3, medium=2, low=1)."""
    return _PRIORITY_RANK[priority]


# PUBLIC_INTERFACE
class TodoEntity(TypedDict):
    """
    Domain model representing a single Todo item held in the in-memory collection.

    Fields:
    - id: Unique string identifier (UUID)
    - title: Short title (1..200 chars, trimmed on input via schemas)
    - completed: Boolean completion flag
    - created_at: Local creation timestamp (naive datetime)
    - due_date: Optional due datetime (naive, local)
    - priority: Priority (default medium)
    - category: Category (default other)
    - notes: Free-form notes, empty string when unset
    - sort_order: Manual ordering position
    - notification_identifier: Identifier of the scheduled reminder, if any
    - last_modified: Local timestamp of the last mutation
    """

    id: str
    title: str
    completed: bool
    created_at: datetime
    due_date: Optional[datetime]
    priority: Priority
    category: Category
    notes: str
    sort_order: int
    notification_identifier: Optional[str]
    last_modified: datetime


# PUBLIC_INTERFACE
def is_overdue(todo: TodoEntity, now: datetime) -> bool:
    """An item is overdue when it has a due date in the past and is not completed."""
    due = todo["due_date"]
    if due is None or todo["completed"]:
        return False
    return due < now
