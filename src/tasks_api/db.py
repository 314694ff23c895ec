from __future__ import annotations

import logging
import os
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Generator, Iterable, List, Optional

from .models import Category, Priority, TodoEntity
from .repositories import PersistenceError, Repository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Cols:
    table: str = "todos"
    id: str = "id"
    title: str = "title"
    completed: str = "completed"
    created_at: str = "created_at"
    due_date: str = "due_date"
    priority: str = "priority"
    category: str = "category"
    notes: str = "notes"
    sort_order: str = "sort_order"
    notification_identifier: str = "notification_identifier"
    last_modified: str = "last_modified"


_COLS = _Cols()


@contextmanager
def sqlite_connection(db_path: str) -> Generator[sqlite3.Connection, None, None]:
    """
    Open a connection, commit on success and always close.

    Any sqlite3.Error raised inside the block is re-raised as PersistenceError;
    uncommitted work is discarded when the connection closes.
    """
    try:
        conn = sqlite3.connect(db_path)
    except sqlite3.Error as e:
        raise PersistenceError(f"cannot open {db_path}: {e}") from e
    conn.row_factory = sqlite3.Row
    try:
        yield conn
        conn.commit()
    except sqlite3.Error as e:
        conn.rollback()
        raise PersistenceError(str(e)) from e
    finally:
        conn.close()


def ensure_parent_dir(db_path: str) -> None:
    try:
        os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
    except OSError as e:
        raise PersistenceError(f"cannot create directory for {db_path}: {e}") from e


class SQLiteRepository(Repository):
    """
    Lightweight SQLite repository implementing the Repository interface.
    """

    def __init__(self, db_path: str) -> None:
        ensure_parent_dir(db_path)
        self._db_path = db_path
        self._init_db()

    def _conn(self):
        return sqlite_connection(self._db_path)

    def _init_db(self) -> None:
        with self._conn() as conn:
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {_COLS.table} (
                    {_COLS.id} TEXT PRIMARY KEY,
                    {_COLS.title} TEXT NOT NULL,
                    {_COLS.completed} INTEGER NOT NULL DEFAULT 0,
                    {_COLS.created_at} TEXT NOT NULL,
                    {_COLS.due_date} TEXT NULL,
                    {_COLS.priority} TEXT NOT NULL DEFAULT 'medium',
                    {_COLS.category} TEXT NOT NULL DEFAULT 'other',
                    {_COLS.notes} TEXT NOT NULL DEFAULT '',
                    {_COLS.sort_order} INTEGER NOT NULL DEFAULT 0,
                    {_COLS.notification_identifier} TEXT NULL,
                    {_COLS.last_modified} TEXT NOT NULL
                )
                """
            )
            conn.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{_COLS.table}_sort_order ON {_COLS.table}({_COLS.sort_order})"
            )
        logger.info("SQLiteRepository ready db=%s", self._db_path)

    def _row_to_entity(self, row: sqlite3.Row) -> TodoEntity:
        def parse_dt(s: Optional[str]) -> Optional[datetime]:
            if s is None:
                return None
            return datetime.fromisoformat(s)

        return {
            "id": str(row[_COLS.id]),
            "title": str(row[_COLS.title]),
            "completed": bool(row[_COLS.completed]),
            "created_at": parse_dt(row[_COLS.created_at]),  # type: ignore
            "due_date": parse_dt(row[_COLS.due_date]),
            "priority": Priority(row[_COLS.priority]),
            "category": Category(row[_COLS.category]),
            "notes": row[_COLS.notes] or "",
            "sort_order": int(row[_COLS.sort_order]),
            "notification_identifier": row[_COLS.notification_identifier],
            "last_modified": parse_dt(row[_COLS.last_modified]),  # type: ignore
        }

    @staticmethod
    def _entity_to_params(t: TodoEntity) -> tuple:
        return (
            t["id"],
            t["title"],
            1 if t["completed"] else 0,
            t["created_at"].isoformat(),
            t["due_date"].isoformat() if t["due_date"] else None,
            t["priority"].value,
            t["category"].value,
            t["notes"],
            t["sort_order"],
            t["notification_identifier"],
            t["last_modified"].isoformat(),
        )

    def load_all(self) -> List[TodoEntity]:
        with self._conn() as conn:
            rows = conn.execute(
                f"SELECT * FROM {_COLS.table} ORDER BY {_COLS.sort_order} ASC, {_COLS.created_at} ASC"
            ).fetchall()
            return [self._row_to_entity(r) for r in rows]

    def save_all(self, items: Iterable[TodoEntity]) -> None:
        params = [self._entity_to_params(t) for t in items]
        with self._conn() as conn:
            conn.execute(f"DELETE FROM {_COLS.table}")
            conn.executemany(
                f"""
                INSERT INTO {_COLS.table} ({_COLS.id}, {_COLS.title}, {_COLS.completed},
                    {_COLS.created_at}, {_COLS.due_date}, {_COLS.priority}, {_COLS.category},
                    {_COLS.notes}, {_COLS.sort_order}, {_COLS.notification_identifier},
                    {_COLS.last_modified})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                params,
            )
        logger.debug("Saved %d todos to %s", len(params), self._db_path)
