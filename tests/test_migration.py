from __future__ import annotations

import json
from datetime import datetime, timezone

from tasks_api.kvstore import InMemoryKeyValueStore
from tasks_api.migration import (
    LEGACY_BACKUP_KEY,
    LEGACY_STORAGE_KEY,
    MIGRATION_FLAG_KEY,
    migrate_legacy_todos_if_needed,
    reset_migration_flag,
)
from tasks_api.models import Category, Priority
from tasks_api.repositories import InMemoryRepository

from .fakes import FailingRepository, make_todo

ID_1 = "8f14e45f-ceea-467a-9575-7e2b1c9f0a01"
ID_2 = "c9f0f895-fb98-4b91-8b4b-2d7a5d6e0b02"


def legacy_blob() -> str:
    return json.dumps(
        [
            {
                "id": ID_1,
                "title": "Pay rent",
                "isCompleted": False,
                "createdAt": "2024-05-01T10:00:00",
                "dueDate": "2024-05-03T09:00:00",
                "priority": "High",
                "category": "Personal",
                "notes": "before noon",
            },
            {
                "id": ID_2,
                "title": "Buy socks",
                "isCompleted": True,
                "createdAt": 0,
                "priority": "Urgent",
                "category": "Errands",
                "notes": "",
            },
        ]
    )


def test_migrates_legacy_items_field_by_field():
    kv = InMemoryKeyValueStore({LEGACY_STORAGE_KEY: legacy_blob()})
    repo = InMemoryRepository()

    report = migrate_legacy_todos_if_needed(kv, repo)

    assert report.status == "migrated"
    assert report.found == 2
    assert report.migrated == 2

    items = {t["id"]: t for t in repo.load_all()}
    rent = items[ID_1]
    assert rent["title"] == "Pay rent"
    assert rent["completed"] is False
    assert rent["created_at"] == datetime(2024, 5, 1, 10, 0)
    assert rent["last_modified"] == rent["created_at"]
    assert rent["due_date"] == datetime(2024, 5, 3, 9, 0)
    assert rent["priority"] is Priority.HIGH
    assert rent["category"] is Category.PERSONAL
    assert rent["notes"] == "before noon"
    assert rent["sort_order"] == 0
    assert rent["notification_identifier"] is None

    socks = items[ID_2]
    assert socks["completed"] is True
    assert socks["due_date"] is None
    # Unknown enum values fall back to defaults
    assert socks["priority"] is Priority.MEDIUM
    assert socks["category"] is Category.OTHER
    # Numeric dates count seconds from 2001-01-01 UTC
    expected = datetime(2001, 1, 1, tzinfo=timezone.utc).astimezone().replace(tzinfo=None)
    assert socks["created_at"] == expected
    assert socks["sort_order"] == 1

    assert kv.get_bool(MIGRATION_FLAG_KEY) is True
    assert kv.get(LEGACY_BACKUP_KEY) == legacy_blob()


def test_running_twice_never_duplicates():
    kv = InMemoryKeyValueStore({LEGACY_STORAGE_KEY: legacy_blob()})
    repo = InMemoryRepository()

    migrate_legacy_todos_if_needed(kv, repo)
    second = migrate_legacy_todos_if_needed(kv, repo)

    assert second.status == "skipped"
    assert len(repo.load_all()) == 2


def test_rerun_after_flag_reset_skips_existing_ids():
    kv = InMemoryKeyValueStore({LEGACY_STORAGE_KEY: legacy_blob()})
    repo = InMemoryRepository([make_todo("other", title="Existing")])

    migrate_legacy_todos_if_needed(kv, repo)
    reset_migration_flag(kv)
    report = migrate_legacy_todos_if_needed(kv, repo)

    assert report.status == "migrated"
    assert report.migrated == 0
    assert report.skipped_existing == 2
    assert sorted(t["id"] for t in repo.load_all()) == sorted(["other", ID_1, ID_2])


def test_failed_write_leaves_flag_unset_and_retries():
    kv = InMemoryKeyValueStore({LEGACY_STORAGE_KEY: legacy_blob()})
    repo = FailingRepository(fail_writes=True)

    report = migrate_legacy_todos_if_needed(kv, repo)

    assert report.status == "failed"
    assert kv.get_bool(MIGRATION_FLAG_KEY) is False
    assert kv.get(LEGACY_BACKUP_KEY) is None

    repo.fail_writes = False
    retry = migrate_legacy_todos_if_needed(kv, repo)
    assert retry.status == "migrated"
    assert len(repo.saved) == 2
    assert kv.get_bool(MIGRATION_FLAG_KEY) is True


def test_no_legacy_data_marks_complete():
    kv = InMemoryKeyValueStore()
    report = migrate_legacy_todos_if_needed(kv, InMemoryRepository())
    assert report.status == "no_data"
    assert kv.get_bool(MIGRATION_FLAG_KEY) is True


def test_undecodable_blob_marks_complete_without_writing():
    kv = InMemoryKeyValueStore({LEGACY_STORAGE_KEY: "{not json"})
    repo = InMemoryRepository()
    report = migrate_legacy_todos_if_needed(kv, repo)
    assert report.status == "no_data"
    assert repo.load_all() == []
    assert kv.get_bool(MIGRATION_FLAG_KEY) is True


def test_out_of_range_legacy_dates_are_treated_as_undecodable():
    for bad_date in ("1e12", "Infinity", "-1e12"):
        blob = (
            '[{"id": "%s", "title": "Far future", "isCompleted": false, "createdAt": %s}]'
            % (ID_1, bad_date)
        )
        kv = InMemoryKeyValueStore({LEGACY_STORAGE_KEY: blob})
        repo = InMemoryRepository()

        report = migrate_legacy_todos_if_needed(kv, repo)

        assert report.status == "no_data"
        assert repo.load_all() == []
        assert kv.get_bool(MIGRATION_FLAG_KEY) is True


def test_migrated_items_are_ordered_after_existing_ones():
    kv = InMemoryKeyValueStore({LEGACY_STORAGE_KEY: legacy_blob()})
    repo = InMemoryRepository([make_todo("a", sort_order=0), make_todo("b", sort_order=4)])

    migrate_legacy_todos_if_needed(kv, repo)

    orders = {t["id"]: t["sort_order"] for t in repo.load_all()}
    assert orders == {"a": 0, "b": 4, ID_1: 5, ID_2: 6}
