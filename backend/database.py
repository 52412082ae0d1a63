import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from typing import Optional

from pydantic import ValidationError

from config import get_settings
from models import ChecklistItem, Task

logger = logging.getLogger(__name__)

DATABASE_PATH = get_settings().database_path

PRIORITIES = ("high", "medium", "low")
RECURRENCES = ("none", "daily", "weekly", "monthly")


@contextmanager
def get_db():
    """Context manager for database connections."""
    conn = sqlite3.connect(DATABASE_PATH)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()


def init_db():
    """Initialize database by running Alembic migrations."""
    import subprocess
    import os

    # Run alembic upgrade from the backend directory
    backend_dir = os.path.dirname(os.path.abspath(__file__))
    subprocess.run(
        ["alembic", "upgrade", "head"],
        cwd=backend_dir,
        check=True
    )


def _parse_datetime(value, fallback: datetime) -> datetime:
    if not value:
        return fallback
    try:
        return datetime.fromisoformat(value)
    except (TypeError, ValueError):
        return fallback


def _parse_checklist(value) -> list[ChecklistItem]:
    if not value:
        return []
    try:
        raw_items = json.loads(value)
    except (TypeError, ValueError):
        return []
    if not isinstance(raw_items, list):
        return []
    items = []
    for raw in raw_items:
        try:
            items.append(ChecklistItem.model_validate(raw))
        except ValidationError:
            continue
    return items


def _row_to_task(row, now: Optional[datetime] = None) -> Task:
    """
    Convert a database row to a Task.
    Bad or missing values are defaulted one field at a time; a row is never rejected.
    """
    now = now or datetime.now()
    keys = row.keys()

    def get(field):
        return row[field] if field in keys else None

    priority = get("priority")
    recurrence = get("recurrence")
    return Task(
        id=row["id"],
        text=get("text") or "",
        completed=bool(get("completed")),
        created_at=_parse_datetime(get("created_at"), now),
        due_date=_parse_datetime(get("due_date"), now),
        priority=priority if priority in PRIORITIES else "medium",
        checklist=_parse_checklist(get("checklist")),
        is_time_set=bool(get("is_time_set")),
        recurrence=recurrence if recurrence in RECURRENCES else "none",
    )


def load_tasks() -> list[Task]:
    """The whole task collection, in stored order."""
    with get_db() as conn:
        rows = conn.execute("SELECT * FROM tasks ORDER BY position").fetchall()
        return [_row_to_task(row) for row in rows]


def save_tasks(tasks: list[Task]) -> None:
    """Replace the stored collection with `tasks` in one transaction (last write wins)."""
    records = [
        (
            t.id,
            position,
            t.text,
            int(t.completed),
            t.created_at.isoformat(),
            t.due_date.isoformat(),
            t.priority,
            json.dumps([item.model_dump() for item in t.checklist]),
            int(t.is_time_set),
            t.recurrence,
        )
        for position, t in enumerate(tasks)
    ]
    with get_db() as conn:
        conn.execute("DELETE FROM tasks")
        conn.executemany(
            """INSERT INTO tasks
               (id, position, text, completed, created_at, due_date, priority, checklist, is_time_set, recurrence)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            records,
        )
        conn.commit()
    logger.debug("Saved %d tasks", len(records))
