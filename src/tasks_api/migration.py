"""
One-time migration of the legacy serialized todo list into the repository.

The legacy app kept its whole collection as a JSON array under a single
key-value entry. This module maps that array field-by-field into TodoEntity
records, writes them through the Repository, and then records a completion
flag so the migration never runs twice. The flag is only written after the
repository write succeeds, which makes a failed run retry on the next startup.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, List, Optional, Type, TypeVar, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from .kvstore import KeyValueStore
from .models import Category, Priority, TodoEntity
from .repositories import PersistenceError, Repository

logger = logging.getLogger(__name__)

LEGACY_STORAGE_KEY = "todos_storage"
LEGACY_BACKUP_KEY = "todos_storage_backup"
MIGRATION_FLAG_KEY = "has_completed_store_migration"

# Legacy dates are encoded as seconds since 2001-01-01T00:00:00Z when numeric.
_REFERENCE_DATE = datetime(2001, 1, 1, tzinfo=timezone.utc)

E = TypeVar("E", Priority, Category)


def _legacy_datetime(value: Union[int, float, str]) -> datetime:
    try:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            aware = _REFERENCE_DATE + timedelta(seconds=float(value))
        elif isinstance(value, str):
            aware = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
            if aware.tzinfo is None:
                return aware
        else:
            raise ValueError("expected a number or an ISO8601 string")
        # Store naive local time, like everything else in the collection.
        return aware.astimezone().replace(tzinfo=None)
    except OverflowError as e:
        # pydantic only converts ValueError raised by validators
        raise ValueError("legacy date out of range") from e


def _coerce_enum(enum_cls: Type[E], raw: Optional[str], default: E) -> E:
    if not raw:
        return default
    try:
        return enum_cls(raw.strip().lower())
    except ValueError:
        return default


class LegacyTodo(BaseModel):
    """A single entry of the legacy JSON array (camelCase keys)."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: UUID
    title: str
    is_completed: bool = Field(default=False, alias="isCompleted")
    created_at: datetime = Field(alias="createdAt")
    due_date: Optional[datetime] = Field(default=None, alias="dueDate")
    priority: str = "Medium"
    category: str = "Other"
    notes: str = ""

    @field_validator("created_at", "due_date", mode="before")
    @classmethod
    def parse_legacy_date(cls, v: Any) -> Optional[datetime]:
        if v is None:
            return None
        if isinstance(v, datetime):
            return v
        return _legacy_datetime(v)

    def to_entity(self, sort_order: int) -> TodoEntity:
        return {
            "id": str(self.id),
            "title": self.title,
            "completed": self.is_completed,
            "created_at": self.created_at,
            "due_date": self.due_date,
            "priority": _coerce_enum(Priority, self.priority, Priority.MEDIUM),
            "category": _coerce_enum(Category, self.category, Category.OTHER),
            "notes": self.notes,
            "sort_order": sort_order,
            "notification_identifier": None,
            "last_modified": self.created_at,
        }


_LEGACY_LIST = TypeAdapter(List[LegacyTodo])


@dataclass(frozen=True)
class MigrationReport:
    status: str  # skipped | no_data | migrated | failed
    found: int = 0
    migrated: int = 0
    skipped_existing: int = 0


def decode_legacy_blob(blob: str) -> List[LegacyTodo]:
    """
    Decode the legacy JSON array.

    Raises:
        ValueError if the blob is not valid JSON or does not match the legacy shape.
    """
    try:
        return _LEGACY_LIST.validate_python(json.loads(blob))
    except (json.JSONDecodeError, ValidationError) as e:
        raise ValueError(f"undecodable legacy blob: {e}") from e


# PUBLIC_INTERFACE
def migrate_legacy_todos_if_needed(kv: KeyValueStore, repository: Repository) -> MigrationReport:
    """
    Run the legacy migration at most once.

    Re-running after success is a no-op thanks to the flag; re-running after a
    failed write never duplicates items because ids already present in the
    repository are skipped.
    """
    if kv.get_bool(MIGRATION_FLAG_KEY):
        logger.debug("Legacy migration already completed, skipping")
        return MigrationReport(status="skipped")

    blob = kv.get(LEGACY_STORAGE_KEY)
    if blob is None:
        logger.info("No legacy data to migrate, marking migration as complete")
        kv.set_bool(MIGRATION_FLAG_KEY, True)
        return MigrationReport(status="no_data")

    try:
        legacy = decode_legacy_blob(blob)
    except ValueError:
        logger.warning("Legacy data could not be decoded, marking migration as complete", exc_info=True)
        kv.set_bool(MIGRATION_FLAG_KEY, True)
        return MigrationReport(status="no_data")

    logger.info("Found %d legacy todos to migrate", len(legacy))

    try:
        existing = repository.load_all()
        known = {t["id"] for t in existing}
        # Migrated items go after everything already in the repository.
        base = max((t["sort_order"] for t in existing), default=-1) + 1
        migrated: List[TodoEntity] = []
        for old in legacy:
            entity = old.to_entity(sort_order=base + len(migrated))
            if entity["id"] in known:
                continue
            known.add(entity["id"])
            migrated.append(entity)

        repository.save_all([*existing, *migrated])
    except PersistenceError:
        logger.exception("Error saving migrated data; migration will be retried")
        return MigrationReport(status="failed", found=len(legacy))

    kv.set_bool(MIGRATION_FLAG_KEY, True)
    kv.set(LEGACY_BACKUP_KEY, blob)
    logger.info("Migrated %d legacy todos (backup kept at %r)", len(migrated), LEGACY_BACKUP_KEY)
    return MigrationReport(
        status="migrated",
        found=len(legacy),
        migrated=len(migrated),
        skipped_existing=len(legacy) - len(migrated),
    )


def reset_migration_flag(kv: KeyValueStore) -> None:
    kv.remove(MIGRATION_FLAG_KEY)
    logger.info("Migration flag reset")
