from datetime import datetime

from src.api.optimistic import CONFIRMED, FAILED, PENDING, OptimisticTodoList


def todo(todo_id, content, order, **overrides):
    base = {
        "id": todo_id,
        "user_id": "user-1",
        "content": content,
        "is_completed": False,
        "created_at": datetime(2030, 1, 1),
        "deleted_at": None,
        "order": order,
        "tags": [],
        "sub_todos": [],
    }
    base.update(overrides)
    return base


def completed(t):
    return dict(t, is_completed=True)


class TestOptimisticTodoList:
    def test_change_is_visible_before_confirmation(self):
        view = OptimisticTodoList([todo("a", "A", 1)])
        mutation = view.begin("a", completed)
        assert view.todos[0]["is_completed"] is True
        assert view.status(mutation) == PENDING
        assert [m.id for m in view.pending()] == [mutation]

    def test_failure_restores_previous_state(self):
        before = todo("a", "A", 1, tags=["x"])
        view = OptimisticTodoList([before, todo("b", "B", 2)])
        mutation = view.begin("a", lambda t: dict(t, content="edited", tags=[]))
        view.fail(mutation)
        assert view.status(mutation) == FAILED
        assert view.todos[0] == before
        assert view.pending() == []

    def test_failed_delete_puts_the_todo_back(self):
        view = OptimisticTodoList([todo("a", "A", 1), todo("b", "B", 2)])
        mutation = view.begin("a", lambda t: None)
        assert [t["id"] for t in view.todos] == ["b"]
        view.fail(mutation)
        assert [t["id"] for t in view.todos] == ["a", "b"]

    def test_failed_create_removes_the_placeholder(self):
        view = OptimisticTodoList([todo("a", "A", 1)])
        mutation = view.begin("temp-1", lambda _: todo("temp-1", "new", 5))
        assert [t["id"] for t in view.todos] == ["a", "temp-1"]
        view.fail(mutation)
        assert [t["id"] for t in view.todos] == ["a"]

    def test_confirm_adopts_server_row_with_new_id(self):
        view = OptimisticTodoList([todo("a", "A", 1)])
        mutation = view.begin("temp-1", lambda _: todo("temp-1", "new", 5))
        view.confirm(mutation, todo("srv-9", "new", 5))
        assert view.status(mutation) == CONFIRMED
        assert [t["id"] for t in view.todos] == ["a", "srv-9"]

    def test_confirm_without_row_keeps_local_state(self):
        view = OptimisticTodoList([todo("a", "A", 1)])
        mutation = view.begin("a", completed)
        view.confirm(mutation)
        view.fail(mutation)
        assert view.status(mutation) == CONFIRMED
        assert view.todos[0]["is_completed"] is True

    def test_reorder_is_reflected_in_view_order(self):
        view = OptimisticTodoList([todo("a", "A", 1), todo("b", "B", 2)])
        view.begin("b", lambda t: dict(t, order=0))
        assert [t["id"] for t in view.todos] == ["b", "a"]

    def test_view_is_not_shared_with_caller(self):
        items = [todo("a", "A", 1)]
        view = OptimisticTodoList(items)
        items[0]["content"] = "mutated outside"
        view.todos[0]["content"] = "mutated copy"
        assert view.todos[0]["content"] == "A"
