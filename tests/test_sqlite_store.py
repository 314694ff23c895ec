from __future__ import annotations

from datetime import datetime

import pytest

from tasks_api.db import SQLiteRepository
from tasks_api.kvstore import SQLiteKeyValueStore, get_kv_store
from tasks_api.models import Category, Priority
from tasks_api.repositories import PersistenceError, get_repository
from tasks_api.settings import Settings

from .fakes import make_todo


@pytest.fixture()
def db_path(tmp_path) -> str:
    return str(tmp_path / "nested" / "tasks.db")


def test_round_trip_preserves_every_field(db_path):
    repo = SQLiteRepository(db_path)
    todo = make_todo(
        "abc",
        title="Renew passport",
        completed=True,
        created_at=datetime(2025, 2, 1, 8, 30, 15, 123456),
        due_date=datetime(2025, 4, 1, 17, 0),
        priority=Priority.HIGH,
        category=Category.PERSONAL,
        notes="bring photos",
        sort_order=3,
    )
    todo["notification_identifier"] = "todo_abc"

    repo.save_all([todo])

    assert SQLiteRepository(db_path).load_all() == [todo]


def test_save_all_replaces_snapshot_and_orders_by_sort_order(db_path):
    repo = SQLiteRepository(db_path)
    repo.save_all([make_todo("a", sort_order=2), make_todo("b", sort_order=1)])
    repo.save_all([make_todo("c", sort_order=5), make_todo("a", sort_order=0)])
    assert [t["id"] for t in repo.load_all()] == ["a", "c"]


def test_failed_save_keeps_previous_snapshot(db_path):
    repo = SQLiteRepository(db_path)
    repo.save_all([make_todo("a")])

    with pytest.raises(PersistenceError):
        repo.save_all([make_todo("dup"), make_todo("dup")])

    assert [t["id"] for t in repo.load_all()] == ["a"]


def test_kv_store(db_path):
    kv = SQLiteKeyValueStore(db_path)
    assert kv.get("missing") is None
    assert kv.get_bool("flag") is False

    kv.set("blob", "[]")
    kv.set("blob", "[1]")
    kv.set_bool("flag", True)

    reopened = SQLiteKeyValueStore(db_path)
    assert reopened.get("blob") == "[1]"
    assert reopened.get_bool("flag") is True

    reopened.remove("flag")
    reopened.remove("never-set")
    assert reopened.get_bool("flag") is False


def test_factories_follow_settings(db_path):
    settings = Settings(persistence_backend="sqlite", sqlite_db_path=db_path)
    assert isinstance(get_repository(settings), SQLiteRepository)
    assert isinstance(get_kv_store(settings), SQLiteKeyValueStore)
