from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import BaseModel, Field

from ..models import Category, TodoFilter, TodoSort
from ..querying import TodoQuery
from ..schemas import ClearCompletedOut, MoveRequest, TodoCreate, TodoOut, TodoUpdate
from ..service import TodoService
from ..utils import pagination_envelope

router = APIRouter(
    prefix="/api/v1/todos",
    tags=["todos"],
)


class PaginationEnvelope(BaseModel):
    """
    Envelope for paginated list responses.
    """
    items: List[TodoOut] = Field(..., description="List of Todo items")
    total: int = Field(..., description="Total number of items matching the query")
    limit: int = Field(..., description="Limit applied to the query")
    offset: int = Field(..., description="Offset applied to the query")


def get_service(request: Request) -> TodoService:
    """
    Dependency returning the TodoService owned by the running application.
    """
    return request.app.state.service


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Todo not found")


def _out(service: TodoService, todo) -> TodoOut:
    return TodoOut.from_entity(todo, service.now())


# PUBLIC_INTERFACE
@router.post(
    "/",
    response_model=TodoOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create Todo",
    description="Create a new Todo item and return the created resource.",
    responses={
        201: {"description": "Todo created successfully"},
        422: {"description": "Validation error"},
    },
)
def create_todo(payload: TodoCreate, service: TodoService = Depends(get_service)) -> TodoOut:
    """
    Create a new Todo.
    """
    created = service.add(
        title=payload.title,
        due_date=payload.due_date,
        priority=payload.priority,
        category=payload.category,
        notes=payload.notes,
    )
    return _out(service, created)


# PUBLIC_INTERFACE
@router.get(
    "/",
    response_model=PaginationEnvelope,
    summary="List Todos",
    description=(
        "List todos with optional filters and pagination.\n\n"
        "Query parameters:\n"
        "- filter: all, active or completed\n"
        "- category: restrict to one category\n"
        "- q: case-insensitive search over title and notes\n"
        "- sort: created_date (newest first), due_date (undated last), priority (high first), title\n"
        "- limit: max number of items to return (0..1000)\n"
        "- offset: number of items to skip (>=0)\n\n"
        "Returns a pagination envelope with items and total count."
    ),
)
def list_todos(
    filter: TodoFilter = Query(TodoFilter.ALL, description="Completion filter"),
    category: Optional[Category] = Query(None, description="Category filter"),
    q: Optional[str] = Query(None, description="Search text for title/notes"),
    sort: TodoSort = Query(TodoSort.CREATED_DATE, description="Sort key"),
    limit: int = Query(50, ge=0, le=1000, description="Maximum number of items to return"),
    offset: int = Query(0, ge=0, description="Number of items to skip"),
    service: TodoService = Depends(get_service),
) -> PaginationEnvelope:
    """
    List todos with pagination and filters.
    """
    query = TodoQuery(
        filter=filter,
        category=category,
        search=q.strip() if q else None,
        sort=sort,
    )
    items = service.query(query)
    now = service.now()
    envelope = pagination_envelope(
        items=[TodoOut.from_entity(t, now) for t in items[offset:offset + limit]],
        total=len(items),
        limit=limit,
        offset=offset,
    )
    return PaginationEnvelope(**envelope)


# PUBLIC_INTERFACE
@router.post(
    "/move",
    response_model=List[TodoOut],
    summary="Reorder Todos",
    description="Move the items at the given offsets of the displayed list before the destination offset.",
    responses={400: {"description": "Unknown id or offset out of range"}},
)
def move_todos(payload: MoveRequest, service: TodoService = Depends(get_service)) -> List[TodoOut]:
    try:
        moved = service.move(payload.ids, payload.source, payload.destination)
    except KeyError as e:
        raise HTTPException(status_code=400, detail=f"Unknown todo id: {e.args[0]}") from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return [_out(service, t) for t in moved]


# PUBLIC_INTERFACE
@router.post(
    "/clear-completed",
    response_model=ClearCompletedOut,
    summary="Clear Completed",
    description="Delete every completed Todo item.",
)
def clear_completed(service: TodoService = Depends(get_service)) -> ClearCompletedOut:
    return ClearCompletedOut(deleted=service.clear_completed())


# PUBLIC_INTERFACE
@router.get(
    "/{todo_id}",
    response_model=TodoOut,
    summary="Get Todo",
    description="Get a single Todo item by ID.",
    responses={
        200: {"description": "Todo found"},
        404: {"description": "Todo not found"},
    },
)
def get_todo(todo_id: str, service: TodoService = Depends(get_service)) -> TodoOut:
    """
    Retrieve a single Todo item by its ID.
    """
    item = service.get(todo_id)
    if not item:
        raise _not_found()
    return _out(service, item)


# PUBLIC_INTERFACE
@router.put(
    "/{todo_id}",
    response_model=TodoOut,
    summary="Edit Todo",
    description=(
        "Edit title, due date, priority, category and notes of an existing Todo item. "
        "Omitted optional fields are reset to their defaults; completion state is kept."
    ),
    responses={
        200: {"description": "Todo updated"},
        404: {"description": "Todo not found"},
    },
)
def put_todo(todo_id: str, payload: TodoCreate, service: TodoService = Depends(get_service)) -> TodoOut:
    updated = service.update(
        todo_id,
        title=payload.title,
        due_date=payload.due_date,
        priority=payload.priority,
        category=payload.category,
        notes=payload.notes,
    )
    if not updated:
        raise _not_found()
    return _out(service, updated)


# PUBLIC_INTERFACE
@router.patch(
    "/{todo_id}",
    response_model=TodoOut,
    summary="Update Todo",
    description="Partially update fields of a Todo item.",
    responses={
        200: {"description": "Todo updated"},
        404: {"description": "Todo not found"},
    },
)
def patch_todo(todo_id: str, payload: TodoUpdate, service: TodoService = Depends(get_service)) -> TodoOut:
    """
    Partial update of a Todo item.
    """
    updated = service.update(todo_id, **payload.changes())
    if not updated:
        raise _not_found()
    return _out(service, updated)


# PUBLIC_INTERFACE
@router.post(
    "/{todo_id}/toggle",
    response_model=TodoOut,
    summary="Toggle Todo",
    description="Flip the completion state of a Todo item.",
    responses={404: {"description": "Todo not found"}},
)
def toggle_todo(todo_id: str, service: TodoService = Depends(get_service)) -> TodoOut:
    toggled = service.toggle(todo_id)
    if not toggled:
        raise _not_found()
    return _out(service, toggled)


# PUBLIC_INTERFACE
@router.delete(
    "/{todo_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Todo",
    description="Delete a Todo item by ID.",
    responses={
        204: {"description": "Todo deleted"},
        404: {"description": "Todo not found"},
    },
)
def delete_todo(todo_id: str, service: TodoService = Depends(get_service)) -> None:
    """
    Delete a Todo. Returns 204 on success, 404 if not found.
    """
    if not service.delete(todo_id):
        raise _not_found()
    return None
