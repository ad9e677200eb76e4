from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Response, status

from ..lifecycle import TodoService
from ..schemas import SubTodoCreate, SubTodoOut, SubTodoUpdate, ToggleRequest
from .todos import get_optional_service, get_service

router = APIRouter(
    prefix="/api/v1",
    tags=["subtodos"],
)


# PUBLIC_INTERFACE
@router.get(
    "/todos/{todo_id}/subtodos",
    response_model=List[SubTodoOut],
    summary="List Sub-todos",
    description="Sub-todos of an owned todo, by order then creation time.",
)
def list_sub_todos(todo_id: str, service: Optional[TodoService] = Depends(get_optional_service)) -> List[SubTodoOut]:
    if service is None:
        return []
    return [SubTodoOut(**s) for s in service.list_sub_todos(todo_id)]


# PUBLIC_INTERFACE
@router.post(
    "/todos/{todo_id}/subtodos",
    response_model=SubTodoOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create Sub-todo",
    description="Append a sub-todo to an owned todo.",
    responses={404: {"description": "Todo not found or not owned by the caller"}},
)
def create_sub_todo(todo_id: str, payload: SubTodoCreate, service: TodoService = Depends(get_service)) -> SubTodoOut:
    return SubTodoOut(**service.create_sub_todo(todo_id, payload.content, payload.image_url))


# PUBLIC_INTERFACE
@router.patch(
    "/subtodos/{sub_todo_id}",
    response_model=SubTodoOut,
    summary="Update Sub-todo",
    responses={404: {"description": "Sub-todo not found"}},
)
def update_sub_todo(sub_todo_id: str, payload: SubTodoUpdate, service: TodoService = Depends(get_service)) -> SubTodoOut:
    return SubTodoOut(**service.update_sub_todo(sub_todo_id, payload.content))


# PUBLIC_INTERFACE
@router.post(
    "/subtodos/{sub_todo_id}/toggle",
    response_model=SubTodoOut,
    summary="Toggle Sub-todo",
    responses={404: {"description": "Sub-todo not found"}},
)
def toggle_sub_todo(sub_todo_id: str, payload: ToggleRequest, service: TodoService = Depends(get_service)) -> SubTodoOut:
    return SubTodoOut(**service.toggle_sub_todo(sub_todo_id, payload.is_completed))


# PUBLIC_INTERFACE
@router.delete(
    "/subtodos/{sub_todo_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Sub-todo",
    responses={404: {"description": "Sub-todo not found"}},
)
def delete_sub_todo(sub_todo_id: str, service: TodoService = Depends(get_service)) -> Response:
    service.delete_sub_todo(sub_todo_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
