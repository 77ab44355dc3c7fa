"""Initial schema - users and productivity records

Revision ID: 001
Revises: None
Create Date: 2024-01-15

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
        CREATE TABLE IF NOT EXISTS users (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            preferences TEXT,
            created_at TEXT NOT NULL
        )
    """))

    conn.execute(text("""
        CREATE TABLE IF NOT EXISTS tasks (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            title TEXT NOT NULL,
            description TEXT,
            priority TEXT NOT NULL DEFAULT 'MEDIUM',
            category TEXT NOT NULL DEFAULT 'Geral',
            completed INTEGER DEFAULT 0,
            due_date TEXT,
            created_at TEXT NOT NULL
        )
    """))

    conn.execute(text("""
        CREATE TABLE IF NOT EXISTS notes (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            title TEXT NOT NULL,
            content TEXT NOT NULL,
            category TEXT NOT NULL DEFAULT 'Geral',
            tags TEXT NOT NULL DEFAULT '',
            created_at TEXT NOT NULL
        )
    """))

    conn.execute(text("""
        CREATE TABLE IF NOT EXISTS goals (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            title TEXT NOT NULL,
            description TEXT,
            target REAL NOT NULL,
            current REAL NOT NULL DEFAULT 0,
            category TEXT NOT NULL DEFAULT 'Pessoal',
            deadline TEXT,
            completed INTEGER DEFAULT 0,
            created_at TEXT NOT NULL
        )
    """))

    conn.execute(text("""
        CREATE TABLE IF NOT EXISTS events (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            title TEXT NOT NULL,
            description TEXT,
            location TEXT,
            category TEXT NOT NULL DEFAULT 'Evento',
            start_date TEXT NOT NULL,
            end_date TEXT,
            all_day INTEGER DEFAULT 0,
            priority TEXT NOT NULL DEFAULT 'MEDIUM',
            reminder TEXT,
            attendees TEXT,
            created_at TEXT NOT NULL
        )
    """))

    for table in ("tasks", "notes", "goals", "events"):
        conn.execute(text(f"CREATE INDEX IF NOT EXISTS idx_{table}_user ON {table} (user_id, created_at)"))


def downgrade() -> None:
    conn = op.get_bind()
    for table in ("events", "goals", "notes", "tasks", "users"):
        conn.execute(text(f"DROP TABLE IF EXISTS {table}"))
