from fastapi.testclient import TestClient

from src.api.main import app

from conftest import new_user_headers

client = TestClient(app)


def create_todo(headers, content="Parent"):
    res = client.post("/api/v1/todos/", json={"content": content}, headers=headers)
    assert res.status_code == 201
    return res.json()


def create_sub_todo(headers, todo_id, content="Step", image_url=None):
    payload = {"content": content}
    if image_url is not None:
        payload["image_url"] = image_url
    return client.post(f"/api/v1/todos/{todo_id}/subtodos", json=payload, headers=headers)


class TestSubTodos:
    def test_create_and_list_in_order(self, clock):
        headers = new_user_headers()
        todo = create_todo(headers)
        first = create_sub_todo(headers, todo["id"], "one")
        assert first.status_code == 201
        second = create_sub_todo(headers, todo["id"], "two", image_url="https://img.example/2.png")
        assert second.json()["order"] == first.json()["order"] + 1
        assert second.json()["image_url"] == "https://img.example/2.png"
        assert second.json()["is_completed"] is False

        listed = client.get(f"/api/v1/todos/{todo['id']}/subtodos", headers=headers).json()
        assert [s["content"] for s in listed] == ["one", "two"]

        parent = client.get("/api/v1/todos/", headers=headers).json()[0]
        assert [s["content"] for s in parent["sub_todos"]] == ["one", "two"]

    def test_blank_content_is_rejected(self):
        headers = new_user_headers()
        todo = create_todo(headers)
        res = create_sub_todo(headers, todo["id"], "   ")
        assert res.status_code == 422

    def test_create_under_unknown_todo(self):
        res = create_sub_todo(new_user_headers(), "missing")
        assert res.status_code == 404
        assert res.json()["message"] == "Todo not found or unauthorized"

    def test_toggle_update_and_delete(self):
        headers = new_user_headers()
        todo = create_todo(headers)
        sub = create_sub_todo(headers, todo["id"], "draft").json()

        res = client.post(f"/api/v1/subtodos/{sub['id']}/toggle", json={"is_completed": True}, headers=headers)
        assert res.status_code == 200
        assert res.json()["is_completed"] is True

        res = client.patch(f"/api/v1/subtodos/{sub['id']}", json={"content": "final"}, headers=headers)
        assert res.status_code == 200
        assert res.json()["content"] == "final"
        assert res.json()["is_completed"] is True

        res = client.delete(f"/api/v1/subtodos/{sub['id']}", headers=headers)
        assert res.status_code == 204
        assert client.get(f"/api/v1/todos/{todo['id']}/subtodos", headers=headers).json() == []
        assert client.delete(f"/api/v1/subtodos/{sub['id']}", headers=headers).status_code == 404


class TestSubTodoOwnership:
    def test_other_owner_cannot_touch_sub_todos(self):
        alice, bob = new_user_headers("Alice"), new_user_headers("Bob")
        todo = create_todo(alice)
        sub = create_sub_todo(alice, todo["id"], "private").json()

        assert create_sub_todo(bob, todo["id"]).status_code == 404
        assert client.get(f"/api/v1/todos/{todo['id']}/subtodos", headers=bob).json() == []
        assert (
            client.post(f"/api/v1/subtodos/{sub['id']}/toggle", json={"is_completed": True}, headers=bob).status_code
            == 404
        )
        assert client.patch(f"/api/v1/subtodos/{sub['id']}", json={"content": "x"}, headers=bob).status_code == 404
        assert client.delete(f"/api/v1/subtodos/{sub['id']}", headers=bob).status_code == 404

        listed = client.get(f"/api/v1/todos/{todo['id']}/subtodos", headers=alice).json()
        assert listed == [sub]

    def test_sub_todo_mutations_require_a_session(self):
        headers = new_user_headers()
        todo = create_todo(headers)
        assert create_sub_todo({}, todo["id"]).status_code == 401
