from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable, List, Optional

from tasks_api.models import Category, Priority, TodoEntity
from tasks_api.reminders import ReminderScheduler
from tasks_api.repositories import PersistenceError, Repository


class FakeClock:
    """Deterministic clock for service tests; advance() moves time forward."""

    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current

    def rewind(self, **kwargs) -> datetime:
        self.current = self.current - timedelta(**kwargs)
        return self.current


class FailingRepository(Repository):
    """Repository whose writes fail until ``fail_writes`` is cleared."""

    def __init__(self, fail_writes: bool = True) -> None:
        self.fail_writes = fail_writes
        self.saved: List[TodoEntity] = []
        self.write_attempts = 0

    def load_all(self) -> List[TodoEntity]:
        return [t.copy() for t in self.saved]

    def save_all(self, items: Iterable[TodoEntity]) -> None:
        self.write_attempts += 1
        if self.fail_writes:
            raise PersistenceError("disk full")
        self.saved = [t.copy() for t in items]


class ExplodingReminders(ReminderScheduler):
    def schedule(self, todo, now):
        raise RuntimeError("notification center unavailable")

    def cancel(self, todo_id):
        raise RuntimeError("notification center unavailable")


def make_todo(
    id: str,
    *,
    title: str = "Task",
    completed: bool = False,
    created_at: datetime = datetime(2025, 1, 1),
    due_date: Optional[datetime] = None,
    priority: Priority = Priority.MEDIUM,
    category: Category = Category.OTHER,
    notes: str = "",
    sort_order: int = 0,
) -> TodoEntity:
    return {
        "id": id,
        "title": title,
        "completed": completed,
        "created_at": created_at,
        "due_date": due_date,
        "priority": priority,
        "category": category,
        "notes": notes,
        "sort_order": sort_order,
        "notification_identifier": None,
        "last_modified": created_at,
    }
