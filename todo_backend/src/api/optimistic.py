"""
Client-side view state for optimistic todo mutations.

A mutation is applied to the visible list immediately and tracked as pending
until the backend answers. Confirmation reconciles the entry with the
backend's row; failure puts back the entry exactly as it was before that
mutation.
"""
from __future__ import annotations

import copy
import itertools
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from .models import TodoEntity
from .recurrence import sort_todos

PENDING = "pending"
CONFIRMED = "confirmed"
FAILED = "failed"

Apply = Callable[[Optional[TodoEntity]], Optional[TodoEntity]]


@dataclass
class Mutation:
    id: str
    todo_id: str
    previous: Optional[TodoEntity]
    status: str = PENDING


class OptimisticTodoList:
    def __init__(self, todos: List[TodoEntity]) -> None:
        self._todos: List[TodoEntity] = sort_todos(copy.deepcopy(todos))
        self._mutations: Dict[str, Mutation] = {}
        self._ids = itertools.count(1)

    @property
    def todos(self) -> List[TodoEntity]:
        return copy.deepcopy(self._todos)

    def status(self, mutation_id: str) -> str:
        return self._mutations[mutation_id].status

    def pending(self) -> List[Mutation]:
        return [m for m in self._mutations.values() if m.status == PENDING]

    def _find(self, todo_id: str) -> Optional[TodoEntity]:
        return next((t for t in self._todos if t["id"] == todo_id), None)

    def _put(self, todo_id: str, todo: Optional[TodoEntity]) -> None:
        """Replace, insert or (todo=None) drop the entry for todo_id."""
        others = [t for t in self._todos if t["id"] != todo_id]
        self._todos = sort_todos(others if todo is None else [*others, todo])

    def begin(self, todo_id: str, apply: Apply) -> str:
        """
        Apply a local change to the todo `todo_id` (None is passed in when it
        does not exist yet; return None to remove it) and return a mutation id.
        """
        previous = self._find(todo_id)
        snapshot = copy.deepcopy(previous)
        self._put(todo_id, apply(copy.deepcopy(previous)))
        mutation = Mutation(id=f"m{next(self._ids)}", todo_id=todo_id, previous=snapshot)
        self._mutations[mutation.id] = mutation
        return mutation.id

    def confirm(self, mutation_id: str, server_row: Optional[TodoEntity] = None) -> None:
        """Mark the mutation confirmed, adopting the backend's row when one is given."""
        mutation = self._mutations[mutation_id]
        if mutation.status != PENDING:
            return
        mutation.status = CONFIRMED
        if server_row is not None:
            if server_row["id"] != mutation.todo_id:
                self._put(mutation.todo_id, None)
            self._put(server_row["id"], copy.deepcopy(server_row))

    def fail(self, mutation_id: str) -> None:
        """Mark the mutation failed and revert its todo to the pre-mutation state."""
        mutation = self._mutations[mutation_id]
        if mutation.status != PENDING:
            return
        mutation.status = FAILED
        self._put(mutation.todo_id, copy.deepcopy(mutation.previous))
