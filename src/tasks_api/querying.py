from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional, Sequence, TypeVar

from .models import Category, TodoEntity, TodoFilter, TodoSort, priority_rank

T = TypeVar("T")


@dataclass(frozen=True)
class TodoQuery:
    """
    Query parameters for listing todos.
    """
    filter: TodoFilter = TodoFilter.ALL
    category: Optional[Category] = None
    search: Optional[str] = None
    sort: TodoSort = TodoSort.CREATED_DATE


def _matches_search(todo: TodoEntity, needle: str) -> bool:
    return needle in todo["title"].casefold() or needle in (todo["notes"] or "").casefold()


# PUBLIC_INTERFACE
def apply_query(items: Iterable[TodoEntity], query: Optional[TodoQuery] = None) -> List[TodoEntity]:
    """
    Derive the ordered sequence of todos matching a query.

    The input is never mutated and nothing is cached; every call recomputes the
    result from the full collection. Sorting is stable so ties keep the
    collection order.

    Sort rules:
    - created_date: newest first
    - due_date: earliest first, items without a due date last
    - priority: high, medium, low
    - title: case-insensitive ascending
    """
    q = query or TodoQuery()
    result = list(items)

    if q.filter is TodoFilter.ACTIVE:
        result = [t for t in result if not t["completed"]]
    elif q.filter is TodoFilter.COMPLETED:
        result = [t for t in result if t["completed"]]

    if q.category is not None:
        result = [t for t in result if t["category"] == q.category]

    if q.search:
        needle = q.search.casefold()
        result = [t for t in result if _matches_search(t, needle)]

    if q.sort is TodoSort.DUE_DATE:
        result.sort(key=lambda t: (t["due_date"] is None, t["due_date"] or datetime.min))
    elif q.sort is TodoSort.PRIORITY:
        result.sort(key=lambda t: priority_rank(t["priority"]), reverse=True)
    elif q.sort is TodoSort.TITLE:
        result.sort(key=lambda t: t["title"].casefold())
    else:
        result.sort(key=lambda t: t["created_at"], reverse=True)

    return result


# PUBLIC_INTERFACE
def move_offsets(seq: Sequence[T], source: Iterable[int], destination: int) -> List[T]:
    """
    Move the elements at ``source`` offsets so they sit before the element that
    was at ``destination`` (``len(seq)`` moves them to the end). Moved elements
    keep their relative order.

    Raises:
        ValueError: if any offset is out of range.
    """
    offsets = sorted(set(source))
    n = len(seq)
    if any(i < 0 or i >= n for i in offsets):
        raise ValueError("source offset out of range")
    if destination < 0 or destination > n:
        raise ValueError("destination offset out of range")

    picked = set(offsets)
    moved = [seq[i] for i in offsets]
    remaining = [x for i, x in enumerate(seq) if i not in picked]
    insert_at = destination - sum(1 for i in offsets if i < destination)
    return remaining[:insert_at] + moved + remaining[insert_at:]
