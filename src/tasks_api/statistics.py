from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable

from .models import TodoEntity, is_overdue


@dataclass(frozen=True)
class TodoStatistics:
    total: int
    completed: int
    active: int
    overdue: int
    completion_rate: float


# PUBLIC_INTERFACE
def calculate_statistics(items: Iterable[TodoEntity], now: datetime) -> TodoStatistics:
    """
    Aggregate counts over a collection in a single pass.

    completion_rate is a percentage (0..100) and is 0 for an empty collection.
    """
    total = completed = overdue = 0
    for t in items:
        total += 1
        if t["completed"]:
            completed += 1
        elif is_overdue(t, now):
            overdue += 1

    rate = (completed / total * 100.0) if total > 0 else 0.0
    return TodoStatistics(
        total=total,
        completed=completed,
        active=total - completed,
        overdue=overdue,
        completion_rate=rate,
    )
