from __future__ import annotations

from abc import ABC, abstractmethod
from threading import RLock
from typing import Dict, Optional

from .db import ensure_parent_dir, sqlite_connection
from .settings import Settings, get_settings

_TRUE = "1"
_FALSE = "0"


# PUBLIC_INTERFACE
class KeyValueStore(ABC):
    """Small string key-value store for flags and opaque blobs."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored value or None."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete ``key``; missing keys are ignored."""

    def get_bool(self, key: str) -> bool:
        return self.get(key) == _TRUE

    def set_bool(self, key: str, value: bool) -> None:
        self.set(key, _TRUE if value else _FALSE)


class InMemoryKeyValueStore(KeyValueStore):
    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._lock = RLock()
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def remove(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)


class SQLiteKeyValueStore(KeyValueStore):
    """Key-value pairs kept in a ``kv`` table next to the todos table."""

    def __init__(self, db_path: str) -> None:
        ensure_parent_dir(db_path)
        self._db_path = db_path
        with self._conn() as conn:
            conn.execute("CREATE TABLE IF NOT EXISTS kv (key TEXT PRIMARY KEY, value TEXT NOT NULL)")

    def _conn(self):
        return sqlite_connection(self._db_path)

    def get(self, key: str) -> Optional[str]:
        with self._conn() as conn:
            row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
            return None if row is None else str(row["value"])

    def set(self, key: str, value: str) -> None:
        with self._conn() as conn:
            conn.execute(
                "INSERT INTO kv (key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                (key, value),
            )

    def remove(self, key: str) -> None:
        with self._conn() as conn:
            conn.execute("DELETE FROM kv WHERE key = ?", (key,))


# PUBLIC_INTERFACE
def get_kv_store(settings: Optional[Settings] = None) -> KeyValueStore:
    """Return the key-value store matching the configured persistence backend."""
    settings = settings or get_settings()
    if settings.persistence_backend == "sqlite":
        return SQLiteKeyValueStore(settings.sqlite_db_path)
    return InMemoryKeyValueStore()
