from __future__ import annotations

from abc import ABC, abstractmethod
from threading import RLock
from typing import Iterable, List, Optional

from .models import TodoEntity
from .settings import Settings, get_settings


class PersistenceError(RuntimeError):
    """Raised when the durable store cannot be read or written."""


def _ordered(items: Iterable[TodoEntity]) -> List[TodoEntity]:
    return sorted(items, key=lambda t: (t["sort_order"], t["created_at"]))


# PUBLIC_INTERFACE
class Repository(ABC):
    """
    Abstract contract for todo storage backends.

    The store holds a snapshot of the whole collection; every write replaces the
    snapshot, so a failed write is healed by the next successful one.
    """

    @abstractmethod
    def load_all(self) -> List[TodoEntity]:
        """Return every stored TodoEntity ordered by sort_order then created_at."""

    @abstractmethod
    def save_all(self, items: Iterable[TodoEntity]) -> None:
        """
        Replace the stored collection with ``items``, all or nothing.

        Raises:
            PersistenceError if the write fails; the previous snapshot is kept.
        """


class InMemoryRepository(Repository):
    """
    Thread-safe in-memory repository suitable for testing and default runtime.
    """

    def __init__(self, items: Optional[Iterable[TodoEntity]] = None) -> None:
        self._lock = RLock()
        self._items: List[TodoEntity] = [t.copy() for t in items or []]

    def load_all(self) -> List[TodoEntity]:
        with self._lock:
            # Return copies to avoid external mutation
            return [t.copy() for t in _ordered(self._items)]

    def save_all(self, items: Iterable[TodoEntity]) -> None:
        snapshot = [t.copy() for t in items]
        ids = [t["id"] for t in snapshot]
        if len(ids) != len(set(ids)):
            raise PersistenceError("duplicate todo id in collection")
        with self._lock:
            self._items = snapshot


# PUBLIC_INTERFACE
def get_repository(settings: Optional[Settings] = None) -> Repository:
    """
    Factory to return the configured repository based on settings.
    - memory: InMemoryRepository
    - sqlite: SQLiteRepository
    """
    settings = settings or get_settings()
    if settings.persistence_backend == "sqlite":
        from .db import SQLiteRepository

        return SQLiteRepository(settings.sqlite_db_path)
    return InMemoryRepository()
