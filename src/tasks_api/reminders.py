from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from threading import RLock
from typing import Dict, List, Optional

from .models import TodoEntity

logger = logging.getLogger(__name__)

DEFAULT_LEAD = timedelta(hours=1)


@dataclass(frozen=True)
class Reminder:
    identifier: str
    todo_id: str
    title: str
    subtitle: str
    fire_at: datetime


def reminder_identifier(todo_id: str) -> str:
    return f"todo_{todo_id}"


# PUBLIC_INTERFACE
class ReminderScheduler:
    """
    Bookkeeping for local due-date reminders.

    A reminder fires ``lead`` before the todo's due date. Only one reminder
    exists per todo; scheduling again replaces it. Delivery is left to whatever
    consumes ``pending()``.
    """

    def __init__(self, *, enabled: bool = True, lead: timedelta = DEFAULT_LEAD) -> None:
        self.enabled = enabled
        self.lead = lead
        self._lock = RLock()
        self._pending: Dict[str, Reminder] = {}

    def schedule(self, todo: TodoEntity, now: datetime) -> Optional[Reminder]:
        """Schedule a reminder for ``todo``; return None when nothing is scheduled."""
        due = todo["due_date"]
        if not self.enabled or due is None or todo["completed"] or due <= now:
            return None

        fire_at = due - self.lead
        if fire_at <= now:
            return None

        reminder = Reminder(
            identifier=reminder_identifier(todo["id"]),
            todo_id=todo["id"],
            title=todo["title"],
            subtitle=f"{todo['priority'].label} Priority",
            fire_at=fire_at,
        )
        with self._lock:
            self._pending[reminder.identifier] = reminder
        logger.info("Scheduled reminder %s at %s", reminder.identifier, fire_at.isoformat())
        return reminder

    def cancel(self, todo_id: str) -> None:
        with self._lock:
            removed = self._pending.pop(reminder_identifier(todo_id), None)
        if removed is not None:
            logger.info("Cancelled reminder %s", removed.identifier)

    def cancel_all(self) -> None:
        with self._lock:
            self._pending.clear()

    def pending(self) -> List[Reminder]:
        with self._lock:
            return sorted(self._pending.values(), key=lambda r: r.fire_at)
