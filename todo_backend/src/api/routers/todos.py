from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from ..auth import Identity, get_optional_identity, get_store, require_identity
from ..lifecycle import Clock, TodoService, get_clock, get_todo_service
from ..nlp import parse_date_from_content
from ..schemas import (
    ParsedContentOut,
    ParseRequest,
    ReorderItem,
    TodoCreate,
    TodoOut,
    TodoUpdate,
    ToggleRequest,
)
from ..store import Store

router = APIRouter(
    prefix="/api/v1/todos",
    tags=["todos"],
)


# PUBLIC_INTERFACE
def get_service(
    identity: Identity = Depends(require_identity),
    store: Store = Depends(get_store),
    now: Clock = Depends(get_clock),
) -> TodoService:
    """Lifecycle service for the authenticated caller; 401 without a session."""
    return get_todo_service(identity, store=store, now=now)


def get_optional_service(
    identity: Optional[Identity] = Depends(get_optional_identity),
    store: Store = Depends(get_store),
    now: Clock = Depends(get_clock),
) -> Optional[TodoService]:
    """Lifecycle service for listing endpoints, which answer anonymous callers with empty results."""
    if identity is None:
        return None
    return get_todo_service(identity, store=store, now=now)


# PUBLIC_INTERFACE
@router.post(
    "/",
    response_model=TodoOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create Todo",
    description="Create a new todo, ordered after every todo created before it.",
    responses={
        201: {"description": "Todo created successfully"},
        401: {"description": "No valid session"},
        422: {"description": "Validation error (e.g. blank content)"},
    },
)
def create_todo(payload: TodoCreate, service: TodoService = Depends(get_service)) -> TodoOut:
    created = service.create(
        payload.content,
        folder_id=payload.folder_id,
        priority=payload.priority,
        due_date=payload.due_date,
        recurrence=payload.recurrence,
        tags=payload.tags,
    )
    return TodoOut(**created)


# PUBLIC_INTERFACE
@router.get(
    "/",
    response_model=List[TodoOut],
    summary="List Todos",
    description=(
        "List active (not soft-deleted) todos with folder display data and ordered sub-todos.\n\n"
        "Sorted by order ascending, then newest-created first. Anonymous callers get an empty list."
    ),
)
def list_todos(
    folder_id: Optional[str] = Query(None, description="Only todos in this folder"),
    service: Optional[TodoService] = Depends(get_optional_service),
) -> List[TodoOut]:
    if service is None:
        return []
    return [TodoOut(**t) for t in service.list(folder_id)]


# PUBLIC_INTERFACE
@router.get(
    "/trash",
    response_model=List[TodoOut],
    summary="List Deleted Todos",
    description="Soft-deleted todos, most recently deleted first.",
)
def list_deleted_todos(service: Optional[TodoService] = Depends(get_optional_service)) -> List[TodoOut]:
    if service is None:
        return []
    return [TodoOut(**t) for t in service.list_deleted()]


# PUBLIC_INTERFACE
@router.post(
    "/parse",
    response_model=ParsedContentOut,
    summary="Extract Due Date",
    description="Pull a relative day keyword and time of day out of free text and return the cleaned text.",
)
def parse_content(payload: ParseRequest, now: Clock = Depends(get_clock)) -> ParsedContentOut:
    parsed = parse_date_from_content(payload.text, today=now())
    return ParsedContentOut(content=parsed.content, due_date=parsed.due_date)


# PUBLIC_INTERFACE
@router.put(
    "/order",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Reorder Todos",
    description="Apply new order values to several todos in one atomic batch.",
)
def reorder_todos(items: List[ReorderItem], service: TodoService = Depends(get_service)) -> Response:
    service.reorder([item.model_dump() for item in items])
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# PUBLIC_INTERFACE
@router.patch(
    "/{todo_id}",
    response_model=Optional[TodoOut],
    summary="Update Todo",
    description="Partially update a todo. An empty payload changes nothing and returns null.",
    responses={
        200: {"description": "Todo updated (or null for an empty payload)"},
        404: {"description": "Todo not found"},
    },
)
def patch_todo(todo_id: str, payload: TodoUpdate, service: TodoService = Depends(get_service)) -> Optional[TodoOut]:
    updated = service.update(todo_id, payload.model_dump(exclude_unset=True))
    return TodoOut(**updated) if updated is not None else None


# PUBLIC_INTERFACE
@router.post(
    "/{todo_id}/toggle",
    response_model=TodoOut,
    summary="Toggle Todo",
    description=(
        "Set the completion flag. Completing an incomplete recurring todo that has a due date "
        "also creates its next occurrence."
    ),
    responses={404: {"description": "Todo not found"}},
)
def toggle_todo(todo_id: str, payload: ToggleRequest, service: TodoService = Depends(get_service)) -> TodoOut:
    return TodoOut(**service.toggle(todo_id, payload.is_completed))


# PUBLIC_INTERFACE
@router.delete(
    "/{todo_id}",
    response_model=TodoOut,
    summary="Delete Todo",
    description="Soft delete: the todo moves to the trash and can be restored.",
    responses={404: {"description": "Todo not found"}},
)
def delete_todo(todo_id: str, service: TodoService = Depends(get_service)) -> TodoOut:
    return TodoOut(**service.delete(todo_id))


# PUBLIC_INTERFACE
@router.post(
    "/{todo_id}/restore",
    response_model=TodoOut,
    summary="Restore Todo",
    description="Bring a soft-deleted todo back with all of its fields intact.",
    responses={404: {"description": "Todo not found"}},
)
def restore_todo(todo_id: str, service: TodoService = Depends(get_service)) -> TodoOut:
    return TodoOut(**service.restore(todo_id))


# PUBLIC_INTERFACE
@router.delete(
    "/{todo_id}/permanent",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Permanently Delete Todo",
    description="Remove the todo and all of its sub-todos for good.",
    responses={
        204: {"description": "Todo removed"},
        404: {"description": "Todo not found"},
    },
)
def permanently_delete_todo(todo_id: str, service: TodoService = Depends(get_service)) -> Response:
    service.permanent_delete(todo_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
