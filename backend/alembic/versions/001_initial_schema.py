"""Initial schema - task collection

Revision ID: 001
Revises: None
Create Date: 2026-09-28

"""
from typing import Sequence, Union

from alembic import op
from sqlalchemy import text

revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    conn = op.get_bind()
    conn.execute(text("""
        CREATE TABLE IF NOT EXISTS tasks (
            id TEXT PRIMARY KEY,
            position INTEGER NOT NULL DEFAULT 0,
            text TEXT NOT NULL DEFAULT '',
            completed INTEGER DEFAULT 0,
            created_at TEXT,
            due_date TEXT,
            priority TEXT DEFAULT 'medium',
            checklist TEXT DEFAULT '[]',
            is_time_set INTEGER DEFAULT 0
        )
    """))


def downgrade() -> None:
    conn = op.get_bind()
    conn.execute(text("DROP TABLE IF EXISTS tasks"))
