"""
Shared pytest fixtures for backend tests.
Uses a temp-file SQLite database for isolation.
"""
import pytest
import sqlite3
import sys
import os
from datetime import datetime

# Add backend to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import database
from identity import SequentialIds

# Tuesday morning; fixed so day-boundary tests don't depend on the wall clock
NOW = datetime(2026, 3, 10, 8, 0)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def ids():
    return SequentialIds("t")


@pytest.fixture
def test_db(monkeypatch, tmp_path):
    """
    Create an isolated test database for each test.
    Uses a temp file (not :memory:) because database.py opens new connections per operation.
    """
    db_path = str(tmp_path / "test.db")
    monkeypatch.setattr(database, "DATABASE_PATH", db_path)

    # Create tables directly (skip alembic for tests)
    conn = sqlite3.connect(db_path)
    conn.executescript("""
        CREATE TABLE tasks (
            id TEXT PRIMARY KEY,
            position INTEGER NOT NULL DEFAULT 0,
            text TEXT NOT NULL DEFAULT '',
            completed INTEGER DEFAULT 0,
            created_at TEXT,
            due_date TEXT,
            priority TEXT DEFAULT 'medium',
            checklist TEXT DEFAULT '[]',
            is_time_set INTEGER DEFAULT 0,
            recurrence TEXT DEFAULT 'none'
        );
    """)
    conn.commit()
    conn.close()

    yield db_path


@pytest.fixture
def app_client(test_db, monkeypatch):
    """
    Create a test client for the FastAPI app.
    Skips alembic migrations and uses deterministic ids.
    """
    from fastapi.testclient import TestClient
    import main

    # Skip alembic in tests - tables already created by test_db fixture
    monkeypatch.setattr(main, "init_db", lambda: None)
    monkeypatch.setattr(main, "ids", SequentialIds("api"))

    with TestClient(main.app) as client:
        yield client


@pytest.fixture
def make_task(ids, now):
    """Factory for tasks due relative to NOW; `at` is "HH:MM" on `now` + days (None = untimed)."""
    from tasks import new_task
    from timeutil import at_time_of_day, day_floor, end_of_day
    from datetime import timedelta

    def _make(text="Task", at="09:00", days=0, priority="medium", completed=False,
              recurrence="none", checklist=()):
        day = day_floor(now) + timedelta(days=days)
        due = at_time_of_day(day, at) if at else end_of_day(day)
        task = new_task(text, ids=ids, now=now, priority=priority, due_date=due,
                        checklist=checklist, is_time_set=at is not None, recurrence=recurrence)
        if completed:
            task = task.model_copy(update={"completed": True})
        return task

    return _make
