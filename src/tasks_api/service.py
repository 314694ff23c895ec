from __future__ import annotations

import logging
from datetime import datetime
from threading import RLock
from typing import Callable, Dict, List, Optional, Sequence
from uuid import uuid4

from .models import Category, Priority, TodoEntity
from .querying import TodoQuery, apply_query, move_offsets
from .reminders import Reminder, ReminderScheduler
from .repositories import PersistenceError, Repository
from .statistics import TodoStatistics, calculate_statistics

logger = logging.getLogger(__name__)

_UNSET = object()
_EDITABLE = ("title", "completed", "due_date", "priority", "category", "notes")


# PUBLIC_INTERFACE
class TodoService:
    """
    Owns the in-memory todo collection and coordinates persistence and reminders.

    Every mutation writes the whole collection to the repository right away.
    Storage and reminder failures are logged and swallowed: the in-memory
    collection stays authoritative and the next mutation retries the write.

    Lookups by unknown id return None/False rather than raising.
    """

    def __init__(
        self,
        repository: Repository,
        reminders: Optional[ReminderScheduler] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._repository = repository
        self._reminders = reminders or ReminderScheduler()
        self._clock = clock
        self._lock = RLock()
        self._todos: List[TodoEntity] = []

    def now(self) -> datetime:
        return self._clock()

    def _index_of(self, todo_id: str) -> Optional[int]:
        for i, t in enumerate(self._todos):
            if t["id"] == todo_id:
                return i
        return None

    def _persist(self) -> None:
        try:
            self._repository.save_all(self._todos)
        except PersistenceError:
            logger.exception("Error saving todos (%d items)", len(self._todos))

    def _schedule_reminder(self, todo: TodoEntity) -> None:
        try:
            reminder = self._reminders.schedule(todo, self.now())
        except Exception:
            logger.exception("Error scheduling reminder for todo %s", todo["id"])
            return
        todo["notification_identifier"] = reminder.identifier if reminder else None

    def _cancel_reminder(self, todo: TodoEntity) -> None:
        try:
            self._reminders.cancel(todo["id"])
        except Exception:
            logger.exception("Error cancelling reminder for todo %s", todo["id"])
        todo["notification_identifier"] = None

    def _touch(self, todo: TodoEntity) -> None:
        # last_modified never moves backwards, even if the clock does.
        todo["last_modified"] = max(self.now(), todo["last_modified"])

    # ---- lifecycle ----

    def load(self) -> int:
        """Repopulate the collection from the repository and re-arm reminders."""
        try:
            items = self._repository.load_all()
        except PersistenceError:
            logger.exception("Error loading todos; starting with an empty collection")
            items = []
        with self._lock:
            self._todos = items
            try:
                self._reminders.cancel_all()
            except Exception:
                logger.exception("Error cancelling reminders before reload")
            for t in self._todos:
                if t["due_date"] is not None and not t["completed"]:
                    self._schedule_reminder(t)
        logger.info("Loaded %d todos", len(items))
        return len(items)

    # ---- reads ----

    def all(self) -> List[TodoEntity]:
        with self._lock:
            return [t.copy() for t in self._todos]

    def get(self, todo_id: str) -> Optional[TodoEntity]:
        with self._lock:
            i = self._index_of(todo_id)
            return None if i is None else self._todos[i].copy()

    def query(self, query: Optional[TodoQuery] = None) -> List[TodoEntity]:
        return apply_query(self.all(), query)

    def statistics(self) -> TodoStatistics:
        return calculate_statistics(self.all(), self.now())

    def pending_reminders(self) -> List[Reminder]:
        return self._reminders.pending()

    # ---- mutations ----

    def add(
        self,
        title: str,
        due_date: Optional[datetime] = None,
        priority: Priority = Priority.MEDIUM,
        category: Category = Category.OTHER,
        notes: str = "",
    ) -> TodoEntity:
        now = self.now()
        with self._lock:
            next_order = max((t["sort_order"] for t in self._todos), default=-1) + 1
            todo: TodoEntity = {
                "id": str(uuid4()),
                "title": title,
                "completed": False,
                "created_at": now,
                "due_date": due_date,
                "priority": priority,
                "category": category,
                "notes": notes,
                "sort_order": next_order,
                "notification_identifier": None,
                "last_modified": now,
            }
            if due_date is not None:
                self._schedule_reminder(todo)
            self._todos.append(todo)
            self._persist()
            logger.debug("Todo added id=%s priority=%s category=%s", todo["id"], priority.value, category.value)
            return todo.copy()

    def toggle(self, todo_id: str) -> Optional[TodoEntity]:
        with self._lock:
            i = self._index_of(todo_id)
            if i is None:
                return None
            todo = self._todos[i]
            todo["completed"] = not todo["completed"]
            self._touch(todo)
            if todo["completed"]:
                self._cancel_reminder(todo)
            elif todo["due_date"] is not None:
                self._schedule_reminder(todo)
            self._persist()
            return todo.copy()

    def update(self, todo_id: str, **fields) -> Optional[TodoEntity]:
        """
        Edit a todo. Only the given fields change; accepted fields are title,
        completed, due_date, priority, category and notes. Passing due_date=None
        clears the due date.
        """
        unknown = set(fields) - set(_EDITABLE)
        if unknown:
            raise TypeError(f"unexpected fields: {', '.join(sorted(unknown))}")

        with self._lock:
            i = self._index_of(todo_id)
            if i is None:
                return None
            todo = self._todos[i]
            old_due = todo["due_date"]
            old_completed = todo["completed"]

            for name in _EDITABLE:
                value = fields.get(name, _UNSET)
                if value is _UNSET:
                    continue
                if name == "notes" and value is None:
                    value = ""
                todo[name] = value  # type: ignore[literal-required]
            self._touch(todo)

            if todo["due_date"] != old_due or todo["completed"] != old_completed:
                self._cancel_reminder(todo)
                if todo["due_date"] is not None and not todo["completed"]:
                    self._schedule_reminder(todo)

            self._persist()
            return todo.copy()

    def delete(self, todo_id: str) -> bool:
        with self._lock:
            i = self._index_of(todo_id)
            if i is None:
                return False
            todo = self._todos.pop(i)
            self._cancel_reminder(todo)
            self._persist()
            return True

    def move(self, ordered_ids: Sequence[str], source: Sequence[int], destination: int) -> List[TodoEntity]:
        """
        Reorder the displayed sequence ``ordered_ids`` by moving the items at
        ``source`` offsets before ``destination``; each displayed item then gets
        its new position as sort_order.

        Raises:
            KeyError: if an id is unknown.
            ValueError: on out-of-range offsets or repeated ids.
        """
        with self._lock:
            by_id: Dict[str, TodoEntity] = {t["id"]: t for t in self._todos}
            missing = [tid for tid in ordered_ids if tid not in by_id]
            if missing:
                raise KeyError(missing[0])
            if len(set(ordered_ids)) != len(ordered_ids):
                raise ValueError("ids must not repeat")

            reordered = move_offsets(list(ordered_ids), source, destination)
            for index, tid in enumerate(reordered):
                by_id[tid]["sort_order"] = index
            self._persist()
            return [by_id[tid].copy() for tid in reordered]

    def clear_completed(self) -> int:
        with self._lock:
            done = [t for t in self._todos if t["completed"]]
            for t in done:
                self._cancel_reminder(t)
            self._todos = [t for t in self._todos if not t["completed"]]
            if done:
                self._persist()
            logger.info("Cleared %d completed todos", len(done))
            return len(done)
