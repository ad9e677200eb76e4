import os
import tempfile
import uuid
from datetime import datetime, timedelta

import pytest

# Point the app at a throwaway database before anything imports the settings.
os.environ.setdefault("SQLITE_DB_PATH", os.path.join(tempfile.mkdtemp(prefix="todo-tests-"), "todos.db"))

from src.api.auth import ensure_user, get_store, issue_session  # noqa: E402
from src.api.lifecycle import get_clock  # noqa: E402
from src.api.main import app  # noqa: E402


class TickingClock:
    """Deterministic clock that advances by `step` on every call."""

    def __init__(self, start: datetime, step: timedelta = timedelta(seconds=1)) -> None:
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        value = self.current
        self.current += self.step
        return value


def new_user_headers(name: str = "Tester") -> dict:
    """Create a fresh user with a session and return Authorization headers for it."""
    store = get_store()
    user_id = f"user-{uuid.uuid4()}"
    ensure_user(store, user_id, name=name, email=f"{user_id}@example.com")
    token = issue_session(store, user_id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def clock():
    ticking = TickingClock(datetime(2030, 3, 15, 10, 0, 0))
    app.dependency_overrides[get_clock] = lambda: ticking
    yield ticking
    app.dependency_overrides.pop(get_clock, None)
