from datetime import datetime

from fastapi.testclient import TestClient

from src.api.errors import StoreError
from src.api.guest import GuestTodoRepository, InMemoryKeyValueStore
from src.api.lifecycle import TodoService
from src.api.main import app
from src.api.statistics import (
    MESSAGE_GET_STARTED,
    MESSAGE_LOGIN_REQUIRED,
    MESSAGE_POSITIVE,
    MESSAGE_STEADY_START,
    MESSAGE_UNAVAILABLE,
    TREND_PLACEHOLDER_PERCENTAGE,
    get_weekly_stats,
    trend_message,
    window_days,
)

from conftest import TickingClock, new_user_headers

client = TestClient(app)


def completed_todo(headers, content="done", tags=None):
    todo = client.post("/api/v1/todos/", json={"content": content, "tags": tags or []}, headers=headers).json()
    client.post(f"/api/v1/todos/{todo['id']}/toggle", json={"is_completed": True}, headers=headers)
    return todo


class TestWeeklyStatsApi:
    def test_counts_by_creation_day(self, clock):
        headers = new_user_headers()
        completed_todo(headers)
        completed_todo(headers)
        client.post("/api/v1/todos/", json={"content": "still open"}, headers=headers)
        clock.current = datetime(2030, 3, 12, 9, 0)
        completed_todo(headers)
        clock.current = datetime(2030, 3, 1, 9, 0)
        completed_todo(headers)
        clock.current = datetime(2030, 3, 15, 18, 0)

        res = client.get("/api/v1/stats/weekly", headers=headers)
        assert res.status_code == 200
        stats = res.json()
        assert stats["total_completed"] == 3
        assert [d["date"] for d in stats["daily_stats"]] == [
            "2030-03-09",
            "2030-03-10",
            "2030-03-11",
            "2030-03-12",
            "2030-03-13",
            "2030-03-14",
            "2030-03-15",
        ]
        assert [d["count"] for d in stats["daily_stats"]] == [0, 0, 0, 1, 0, 0, 2]
        assert stats["daily_stats"][-1]["day_name"] == "Fri"
        assert stats["daily_stats"][0]["day_name"] == "Sat"
        assert stats["trend_message"] == MESSAGE_STEADY_START
        assert stats["trend_percentage"] == 0

    def test_positive_message_with_placeholder_percentage(self, clock):
        headers = new_user_headers()
        for i in range(5):
            completed_todo(headers, content=f"done {i}", tags=["work"] if i < 3 else ["home"])
        stats = client.get("/api/v1/stats/weekly", headers=headers).json()
        assert stats["total_completed"] == 5
        assert stats["trend_percentage"] == TREND_PLACEHOLDER_PERCENTAGE
        assert stats["trend_message"] == MESSAGE_POSITIVE.format(percentage=TREND_PLACEHOLDER_PERCENTAGE)
        assert stats["tag_stats"] == [{"tag": "work", "count": 3}, {"tag": "home", "count": 2}]

    def test_no_completions(self, clock):
        stats = client.get("/api/v1/stats/weekly", headers=new_user_headers()).json()
        assert stats["total_completed"] == 0
        assert len(stats["daily_stats"]) == 7
        assert stats["trend_message"] == MESSAGE_GET_STARTED

    def test_anonymous_caller(self):
        stats = client.get("/api/v1/stats/weekly").json()
        assert stats == {
            "total_completed": 0,
            "daily_stats": [],
            "trend_message": MESSAGE_LOGIN_REQUIRED,
            "trend_percentage": 0,
            "tag_stats": [],
        }


class _BrokenRepository(GuestTodoRepository):
    def completed_counts_by_day(self, start, end):
        raise StoreError("Store query failed", detail="disk I/O error")


class TestWeeklyStatsService:
    def test_window_ends_today(self):
        days = window_days(datetime(2030, 1, 2).date())
        assert len(days) == 7
        assert days[0].isoformat() == "2029-12-27"
        assert days[-1].isoformat() == "2030-01-02"

    def test_trend_thresholds(self):
        assert trend_message(0) == MESSAGE_GET_STARTED
        assert trend_message(1) == MESSAGE_STEADY_START
        assert trend_message(4) == MESSAGE_STEADY_START
        assert trend_message(5) == MESSAGE_POSITIVE.format(percentage=TREND_PLACEHOLDER_PERCENTAGE)

    def test_guest_repository_stats(self):
        clock = TickingClock(datetime(2030, 3, 15, 8, 0))
        service = TodoService(GuestTodoRepository(InMemoryKeyValueStore()), now=clock)
        todo = service.create("guest task", tags=["solo"])
        service.toggle(todo["id"], True)
        stats = get_weekly_stats(service.repository, today=datetime(2030, 3, 15, 20, 0))
        assert stats.total_completed == 1
        assert stats.daily_stats[-1].count == 1
        assert [(t.tag, t.count) for t in stats.tag_stats] == [("solo", 1)]

    def test_store_failure_reports_unavailable(self):
        stats = get_weekly_stats(_BrokenRepository(InMemoryKeyValueStore()), today=datetime(2030, 3, 15))
        assert stats.total_completed == 0
        assert stats.daily_stats == []
        assert stats.trend_message == MESSAGE_UNAVAILABLE
