"""
Shared pytest fixtures for backend tests.
Uses a temp-file SQLite database per test and a scripted completion client.
"""
import pytest
import sqlite3
import sys
import os

# Add backend to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import database
from completion import CompletionClient, CompletionError


class FakeCompletionClient(CompletionClient):
    """
    Completion client that replays scripted replies instead of calling the API.
    Each reply is either a string or an exception to raise.
    Records every request in `requests`.
    """

    def __init__(self, replies=None):
        super().__init__(api_key="test-key", model="test-model")
        self.replies = list(replies or [])
        self.requests = []

    async def complete(self, system_prompt, messages, temperature, max_tokens):
        self.requests.append({
            "system": system_prompt,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        })
        if not self.replies:
            raise CompletionError("No scripted reply left")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
def test_db(monkeypatch, tmp_path):
    """
    Create an isolated test database for each test.
    Uses a temp file (not :memory:) because database.py opens new connections per operation.
    """
    db_path = str(tmp_path / "test.db")
    monkeypatch.setattr(database, "DATABASE_PATH", db_path)
    monkeypatch.setattr(database, "init_db", lambda: None)

    # Create tables directly (skip alembic for tests)
    conn = sqlite3.connect(db_path)
    conn.executescript("""
        CREATE TABLE users (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            preferences TEXT,
            created_at TEXT NOT NULL
        );

        CREATE TABLE tasks (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            title TEXT NOT NULL,
            description TEXT,
            priority TEXT NOT NULL DEFAULT 'MEDIUM',
            category TEXT NOT NULL DEFAULT 'Geral',
            completed INTEGER DEFAULT 0,
            due_date TEXT,
            created_at TEXT NOT NULL
        );

        CREATE TABLE notes (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            title TEXT NOT NULL,
            content TEXT NOT NULL,
            category TEXT NOT NULL DEFAULT 'Geral',
            tags TEXT NOT NULL DEFAULT '',
            created_at TEXT NOT NULL
        );

        CREATE TABLE goals (
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
        );

        CREATE TABLE events (
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
        );

        CREATE TABLE financial_categories (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            name TEXT NOT NULL,
            type TEXT NOT NULL,
            icon TEXT,
            color TEXT,
            created_at TEXT NOT NULL
        );

        CREATE TABLE financial_transactions (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            title TEXT NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            amount REAL NOT NULL,
            type TEXT NOT NULL,
            category_id TEXT NOT NULL,
            payment_method TEXT NOT NULL DEFAULT 'CASH',
            date TEXT NOT NULL,
            tags TEXT NOT NULL DEFAULT '',
            created_at TEXT NOT NULL
        );

        CREATE TABLE chat_sessions (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            title TEXT NOT NULL DEFAULT 'Untitled',
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );

        CREATE TABLE chat_messages (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            session_id TEXT NOT NULL,
            role TEXT NOT NULL,
            content TEXT NOT NULL,
            function_calls TEXT,
            created_at TEXT NOT NULL
        );
    """)
    conn.commit()
    conn.close()

    yield db_path


@pytest.fixture
def fake_llm():
    """Scripted completion client; tests append replies before making requests."""
    return FakeCompletionClient()


@pytest.fixture
def app_client(test_db, fake_llm):
    """
    Create a test client for the FastAPI app.
    The completion client and caller identity are swapped through dependency overrides.
    """
    from fastapi.testclient import TestClient
    import main

    main.app.dependency_overrides[main.get_completion_client] = lambda: fake_llm
    main.app.dependency_overrides[main.get_current_user_id] = lambda: "user_1"
    with TestClient(main.app) as client:
        yield client
    main.app.dependency_overrides.clear()
