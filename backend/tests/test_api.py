"""
Tests for FastAPI endpoints in main.py.
Assistant calls are replaced with async fakes via monkeypatch.
"""
import asyncio
import pytest
import sys
import os
from datetime import datetime, timedelta

import httpx

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import assistant
from database import load_tasks, save_tasks
from models import AnalysisResult, SuggestedAction


def hour_minute(value: str) -> tuple[int, int]:
    due = datetime.fromisoformat(value)
    return due.hour, due.minute


@pytest.fixture
def suggestions(monkeypatch):
    """Make /command receive the given suggestions."""
    def _set(*actions):
        async def fake_process_command(text, current_tasks):
            return list(actions)
        monkeypatch.setattr(assistant, "process_command", fake_process_command)
    return _set


class TestTaskEndpoints:
    """Tests for /tasks endpoints."""

    def test_get_tasks_empty(self, app_client):
        """GET /tasks returns empty list when no tasks."""
        response = app_client.get("/tasks")
        assert response.status_code == 200
        assert response.json() == []

    def test_create_timed_task(self, app_client):
        response = app_client.post("/tasks", json={"text": "Dentist", "date": "2026-05-04", "time": "14:30",
                                                    "priority": "high"})
        assert response.status_code == 200
        task = response.json()
        assert task["text"] == "Dentist"
        assert task["due_date"] == "2026-05-04T14:30:00"
        assert task["is_time_set"] is True
        assert task["recurrence"] == "none"
        assert len(load_tasks()) == 1

    def test_create_untimed_task(self, app_client):
        task = app_client.post("/tasks", json={"text": "Groceries", "date": "2026-05-04",
                                               "recurrence": "weekly"}).json()
        assert task["due_date"] == "2026-05-04T23:59:00"
        assert task["is_time_set"] is False
        assert task["recurrence"] == "weekly"

    def test_new_tasks_go_first(self, app_client):
        app_client.post("/tasks", json={"text": "First"})
        app_client.post("/tasks", json={"text": "Second"})
        assert [t["text"] for t in app_client.get("/tasks").json()] == ["Second", "First"]

    def test_create_invalid_time(self, app_client):
        response = app_client.post("/tasks", json={"text": "Bad", "time": "25:61"})
        assert response.status_code == 422

    def test_create_empty_text(self, app_client):
        assert app_client.post("/tasks", json={"text": "   "}).status_code == 422

    def test_create_with_analysis(self, app_client, monkeypatch):
        async def fake_analyze(text):
            return AnalysisResult(checklist=["Agenda", "Slides"], priority="high", suggested_time="16:00")
        monkeypatch.setattr(assistant, "analyze_task", fake_analyze)

        task = app_client.post("/tasks", json={"text": "Pitch", "date": "2026-05-04", "analyze": True}).json()

        assert task["priority"] == "high"
        assert [item["text"] for item in task["checklist"]] == ["Agenda", "Slides"]
        assert task["due_date"] == "2026-05-04T16:00:00"
        assert task["is_time_set"] is True

    def test_analysis_keeps_explicit_time(self, app_client, monkeypatch):
        async def fake_analyze(text):
            return AnalysisResult(priority="low", suggested_time="16:00")
        monkeypatch.setattr(assistant, "analyze_task", fake_analyze)

        task = app_client.post("/tasks", json={"text": "Pitch", "date": "2026-05-04", "time": "10:00",
                                               "analyze": True}).json()
        assert task["due_date"] == "2026-05-04T10:00:00"

    def test_edit_task(self, app_client):
        task = app_client.post("/tasks", json={"text": "Old", "date": "2026-05-04", "time": "09:00"}).json()

        response = app_client.patch(f"/tasks/{task['id']}", json={"text": "New", "date": "2026-05-06"})
        assert response.status_code == 200
        edited = response.json()
        assert edited["text"] == "New"
        assert edited["due_date"] == "2026-05-06T09:00:00"
        assert edited["is_time_set"] is True

    def test_edit_clear_time(self, app_client):
        task = app_client.post("/tasks", json={"text": "Call", "date": "2026-05-04", "time": "09:00"}).json()
        edited = app_client.patch(f"/tasks/{task['id']}", json={"time": ""}).json()
        assert edited["due_date"] == "2026-05-04T23:59:00"
        assert edited["is_time_set"] is False

    def test_edit_not_found(self, app_client):
        assert app_client.patch("/tasks/nonexistent", json={"text": "x"}).status_code == 404

    def test_delete_task(self, app_client):
        task = app_client.post("/tasks", json={"text": "Delete me"}).json()

        response = app_client.delete(f"/tasks/{task['id']}")
        assert response.status_code == 200
        assert response.json()["status"] == "deleted"
        assert app_client.get("/tasks").json() == []

    def test_delete_task_not_found(self, app_client):
        assert app_client.delete("/tasks/nonexistent").status_code == 404

    def test_toggle_recurring(self, app_client):
        task = app_client.post("/tasks", json={"text": "Standup", "date": "2026-05-04", "time": "09:00",
                                               "recurrence": "daily"}).json()

        tasks = app_client.post(f"/tasks/{task['id']}/toggle").json()

        assert len(tasks) == 2
        assert tasks[0]["completed"] is False
        assert tasks[0]["due_date"] == "2026-05-05T09:00:00"
        assert tasks[1]["completed"] is True

    def test_toggle_not_found(self, app_client):
        assert app_client.post("/tasks/nonexistent/toggle").status_code == 404

    def test_toggle_checklist_item(self, app_client, monkeypatch):
        async def fake_analyze(text):
            return AnalysisResult(checklist=["Step"], priority="medium")
        monkeypatch.setattr(assistant, "analyze_task", fake_analyze)
        task = app_client.post("/tasks", json={"text": "Prep", "analyze": True}).json()
        item_id = task["checklist"][0]["id"]

        updated = app_client.post(f"/tasks/{task['id']}/checklist/{item_id}/toggle").json()
        assert updated["checklist"][0]["completed"] is True

        assert app_client.post(f"/tasks/{task['id']}/checklist/missing/toggle").status_code == 404


class TestCommandAndConflicts:
    """Tests for /command and /conflict endpoints."""

    def test_command_creates_tasks(self, app_client, suggestions):
        suggestions(SuggestedAction(action="create", text="Buy milk", priority="low", checklist=["Wallet"]))

        response = app_client.post("/command", json={"text": "buy milk"})
        assert response.status_code == 200
        body = response.json()
        assert body["conflict"] is None
        assert [t["text"] for t in body["tasks"]] == ["Buy milk"]
        assert len(load_tasks()) == 1

    def test_command_updates_task(self, app_client, suggestions):
        task = app_client.post("/tasks", json={"text": "Review", "date": "2026-05-04"}).json()
        suggestions(SuggestedAction(action="update", original_id=task["id"], suggested_time="10:00"))

        body = app_client.post("/command", json={"text": "review at 10"}).json()

        [updated] = body["tasks"]
        assert updated["due_date"] == "2026-05-04T10:00:00"
        assert updated["is_time_set"] is True
        assert updated["text"] == "Review"

    def test_standup_conflict_replace(self, app_client, suggestions):
        app_client.post("/tasks", json={"text": "Standup", "time": "09:00"})
        suggestions(
            SuggestedAction(action="create", text="Sync", priority="high", suggested_time="09:15"),
            SuggestedAction(action="create", text="Dropped", suggested_time="15:00"),
        )

        body = app_client.post("/command", json={"text": "sync at 9:15"}).json()
        assert body["conflict"]["new_item"]["text"] == "Sync"
        assert body["conflict"]["existing_item"]["text"] == "Standup"
        assert [a["text"] for a in body["dropped"]] == ["Dropped"]
        assert [t["text"] for t in load_tasks()] == ["Standup"]

        assert app_client.get("/conflict").json()["new_item"]["text"] == "Sync"

        # A second batch waits for the decision
        assert app_client.post("/command", json={"text": "more"}).status_code == 409

        tasks = app_client.post("/conflict/resolve", json={"strategy": "replace"}).json()
        by_text = {t["text"]: t for t in tasks}
        assert hour_minute(by_text["Standup"]["due_date"]) == (10, 0)
        assert hour_minute(by_text["Sync"]["due_date"]) == (9, 0)
        assert app_client.get("/conflict").json() is None

    def test_conflict_auto(self, app_client, suggestions):
        app_client.post("/tasks", json={"text": "Standup", "time": "09:00"})
        suggestions(SuggestedAction(action="create", text="Sync", suggested_time="09:15"))
        app_client.post("/command", json={"text": "sync"})

        tasks = app_client.post("/conflict/resolve", json={"strategy": "auto"}).json()
        by_text = {t["text"]: t for t in tasks}
        assert hour_minute(by_text["Standup"]["due_date"]) == (9, 0)
        assert hour_minute(by_text["Sync"]["due_date"]) == (11, 0)

    def test_conflict_keep(self, app_client, suggestions):
        app_client.post("/tasks", json={"text": "Standup", "time": "09:00"})
        suggestions(SuggestedAction(action="create", text="Sync", suggested_time="09:15"))
        app_client.post("/command", json={"text": "sync"})

        tasks = app_client.post("/conflict/resolve", json={"strategy": "keep"}).json()
        assert [t["text"] for t in tasks] == ["Standup"]
        assert app_client.get("/conflict").json() is None

    def test_resolve_without_conflict(self, app_client):
        assert app_client.post("/conflict/resolve", json={"strategy": "auto"}).status_code == 404

    def test_resolve_invalid_strategy(self, app_client):
        assert app_client.post("/conflict/resolve", json={"strategy": "merge"}).status_code == 422

    def test_concurrent_batches_are_serialized(self, app_client, monkeypatch):
        """A second batch sees the first one's commits and conflicts with them."""
        import main

        batches = [
            [SuggestedAction(action="create", text="A", suggested_time="09:00")],
            [SuggestedAction(action="create", text="B", suggested_time="09:00")],
        ]
        in_flight = []

        async def slow_process_command(text, current_tasks):
            in_flight.append(text)
            assert len(in_flight) == 1
            await asyncio.sleep(0.2)
            in_flight.remove(text)
            return batches.pop(0)
        monkeypatch.setattr(assistant, "process_command", slow_process_command)

        async def send_both():
            main.app.state.command_lock = asyncio.Lock()
            transport = httpx.ASGITransport(app=main.app)
            async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
                return await asyncio.gather(
                    client.post("/command", json={"text": "first"}),
                    client.post("/command", json={"text": "second"}),
                )

        responses = asyncio.run(send_both())

        assert [r.status_code for r in responses] == [200, 200]
        assert sorted(r.json()["conflict"] is None for r in responses) == [False, True]
        assert [t.text for t in load_tasks()] == ["A"]
        assert app_client.get("/conflict").json()["new_item"]["text"] == "B"

    def test_assistant_failure_is_empty_batch(self, app_client, monkeypatch):
        monkeypatch.setattr(assistant, "ANTHROPIC_API_KEY", None)
        body = app_client.post("/command", json={"text": "anything"}).json()
        assert body == {"tasks": [], "conflict": None, "dropped": []}


class TestViewEndpoints:
    """Tests for read-only view endpoints."""

    def test_today_view(self, app_client, make_task):
        now = datetime.now()
        high = make_task("High", priority="high").model_copy(update={"due_date": now.replace(hour=0, minute=1)})
        low = make_task("Low", priority="low").model_copy(update={"due_date": now.replace(hour=0, minute=0)})
        later = make_task("Later").model_copy(update={"due_date": now + timedelta(days=2)})
        save_tasks([low, high, later])

        view = app_client.get("/views/today").json()
        assert [t["text"] for t in view["critical"]] == ["High"]
        assert [t["text"] for t in view["routine"]] == ["Low"]

    def test_calendar_view(self, app_client, make_task):
        now = datetime.now()
        later = make_task("Later").model_copy(update={"due_date": now + timedelta(days=5)})
        save_tasks([later])

        groups = app_client.get("/views/calendar").json()
        assert [t["text"] for t in groups["upcoming"]] == ["Later"]
        assert groups["today"] == []

    def test_insights(self, app_client, make_task):
        save_tasks([make_task("A", priority="high"), make_task("B", completed=True)])
        assert app_client.get("/insights").json() == {
            "total": 2, "completed": 1, "active_high": 1, "completion_rate": 50,
        }

    def test_reminders_endpoint(self, app_client):
        assert app_client.get("/reminders").json() == []

    def test_briefing_uses_active_tasks(self, app_client, make_task, monkeypatch):
        seen = []

        async def fake_briefing(active_tasks):
            seen.extend(t.text for t in active_tasks)
            return "Stay focused."
        monkeypatch.setattr(assistant, "generate_briefing", fake_briefing)
        save_tasks([make_task("Open"), make_task("Closed", completed=True)])

        assert app_client.post("/briefing").json() == {"briefing": "Stay focused."}
        assert seen == ["Open"]

    def test_analyze_endpoint(self, app_client, monkeypatch):
        async def fake_analyze(text):
            return AnalysisResult(checklist=["a"], priority="low")
        monkeypatch.setattr(assistant, "analyze_task", fake_analyze)

        assert app_client.post("/analyze", json={"text": "x"}).json() == {
            "checklist": ["a"], "priority": "low", "suggested_time": None,
        }
