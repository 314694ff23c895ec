from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from tasks_api.models import is_overdue
from tasks_api.statistics import calculate_statistics

from .fakes import make_todo

NOW = datetime(2025, 3, 10, 12, 0)


def test_empty_collection_has_zero_rate():
    stats = calculate_statistics([], NOW)
    assert stats.total == 0
    assert stats.completed == 0
    assert stats.active == 0
    assert stats.overdue == 0
    assert stats.completion_rate == 0.0


def test_all_completed_is_one_hundred_percent():
    items = [make_todo(str(i), completed=True) for i in range(4)]
    assert calculate_statistics(items, NOW).completion_rate == 100.0


def test_mixed_counts():
    items = [
        make_todo("done", completed=True, due_date=NOW - timedelta(days=2)),
        make_todo("late", due_date=NOW - timedelta(minutes=1)),
        make_todo("soon", due_date=NOW + timedelta(hours=1)),
        make_todo("undated"),
    ]
    stats = calculate_statistics(items, NOW)
    assert stats.total == 4
    assert stats.completed == 1
    assert stats.active == 3
    assert stats.overdue == 1
    assert stats.completion_rate == pytest.approx(25.0)


class TestIsOverdue:
    def test_past_due_and_incomplete(self):
        assert is_overdue(make_todo("x", due_date=NOW - timedelta(seconds=1)), NOW)

    def test_completed_is_never_overdue(self):
        assert not is_overdue(make_todo("x", completed=True, due_date=NOW - timedelta(days=1)), NOW)

    def test_no_due_date(self):
        assert not is_overdue(make_todo("x"), NOW)

    def test_due_exactly_now_is_not_overdue(self):
        assert not is_overdue(make_todo("x", due_date=NOW), NOW)
