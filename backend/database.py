import sqlite3
import json
import uuid
from datetime import datetime
from typing import Any, Optional
from contextlib import contextmanager

from pydantic import BaseModel

from config import get_config
from temporal import current_datetime
from models import (
    User,
    Task,
    Note,
    Goal,
    Event,
    FinancialCategory,
    FinancialTransaction,
    ChatMessage,
    ChatSession,
)

DATABASE_PATH = get_config().database_path

# entity name -> (table, record model, writable columns)
ENTITIES: dict[str, tuple[str, type[BaseModel], frozenset[str]]] = {
    "task": ("tasks", Task, frozenset({
        "title", "description", "priority", "category", "completed", "due_date",
    })),
    "note": ("notes", Note, frozenset({
        "title", "content", "category", "tags",
    })),
    "goal": ("goals", Goal, frozenset({
        "title", "description", "target", "current", "category", "deadline", "completed",
    })),
    "event": ("events", Event, frozenset({
        "title", "description", "location", "category", "start_date", "end_date",
        "all_day", "priority", "reminder", "attendees",
    })),
    "financial_category": ("financial_categories", FinancialCategory, frozenset({
        "name", "type", "icon", "color",
    })),
    "financial_transaction": ("financial_transactions", FinancialTransaction, frozenset({
        "title", "description", "amount", "type", "category_id", "payment_method", "date", "tags",
    })),
}

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

def _entity(entity: str) -> tuple[str, type[BaseModel], frozenset[str]]:
    try:
        return ENTITIES[entity]
    except KeyError:
        raise ValueError(f"Unknown entity: {entity}")

def _check_columns(entity: str, columns, allowed: frozenset[str]) -> None:
    unknown = set(columns) - allowed
    if unknown:
        raise ValueError(f"Unknown {entity} fields: {', '.join(sorted(unknown))}")

def _to_db(value: Any) -> Any:
    """Convert Python values to SQLite storage values."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return value

def _row_to_record(model: type[BaseModel], row) -> BaseModel:
    """Convert a database row to its record model."""
    return model.model_validate(dict(row))


# Record store

def find_records(
    entity: str,
    user_id: str,
    filters: Optional[dict[str, Any]] = None,
    limit: Optional[int] = None
) -> list[BaseModel]:
    """
    Find a user's records, newest first.

    Args:
        entity: Entity name (task, note, goal, event, financial_category, financial_transaction)
        user_id: Owner of the records
        filters: Column equality filters
        limit: Maximum number of records to return
    """
    table, model, columns = _entity(entity)
    filters = filters or {}
    _check_columns(entity, filters.keys(), columns)

    clauses = ["user_id = ?"]
    values: list[Any] = [user_id]
    for field, value in filters.items():
        clauses.append(f"{field} = ?")
        values.append(_to_db(value))

    query = f"SELECT * FROM {table} WHERE {' AND '.join(clauses)} ORDER BY created_at DESC, rowid DESC"
    if limit is not None:
        query += " LIMIT ?"
        values.append(limit)

    with get_db() as conn:
        rows = conn.execute(query, values).fetchall()
        return [_row_to_record(model, row) for row in rows]

def get_record(entity: str, record_id: str, user_id: str) -> Optional[BaseModel]:
    """Get one record by id, only if it belongs to user_id."""
    table, model, _ = _entity(entity)
    with get_db() as conn:
        row = conn.execute(
            f"SELECT * FROM {table} WHERE id = ? AND user_id = ?",
            (record_id, user_id)
        ).fetchone()
        if row:
            return _row_to_record(model, row)
    return None

def create_record(entity: str, user_id: str, fields: dict[str, Any]) -> BaseModel:
    """Create a record owned by user_id and return it as stored."""
    table, model, columns = _entity(entity)
    _check_columns(entity, fields.keys(), columns)

    record_id = str(uuid.uuid4())
    created_at = current_datetime().isoformat()
    data = {"id": record_id, "user_id": user_id, "created_at": created_at}
    data.update({field: _to_db(value) for field, value in fields.items()})

    placeholders = ", ".join("?" for _ in data)
    with get_db() as conn:
        conn.execute(
            f"INSERT INTO {table} ({', '.join(data.keys())}) VALUES ({placeholders})",
            list(data.values())
        )
        conn.commit()
        row = conn.execute(f"SELECT * FROM {table} WHERE id = ?", (record_id,)).fetchone()
        return _row_to_record(model, row)

def update_record(entity: str, record_id: str, user_id: str, fields: dict[str, Any]) -> Optional[BaseModel]:
    """
    Update a record owned by user_id.
    Returns None when no record with this id belongs to the user.
    """
    table, model, columns = _entity(entity)
    _check_columns(entity, fields.keys(), columns)

    with get_db() as conn:
        row = conn.execute(
            f"SELECT * FROM {table} WHERE id = ? AND user_id = ?",
            (record_id, user_id)
        ).fetchone()
        if not row:
            return None

        if fields:
            set_clause = ", ".join(f"{field} = ?" for field in fields.keys())
            values = [_to_db(v) for v in fields.values()] + [record_id, user_id]
            conn.execute(f"UPDATE {table} SET {set_clause} WHERE id = ? AND user_id = ?", values)
            conn.commit()

        updated_row = conn.execute(f"SELECT * FROM {table} WHERE id = ?", (record_id,)).fetchone()
        return _row_to_record(model, updated_row)

def get_user(user_id: str) -> Optional[User]:
    with get_db() as conn:
        row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        if not row:
            return None
        preferences = json.loads(row["preferences"]) if row["preferences"] else {}
        return User(id=row["id"], name=row["name"], preferences=preferences, created_at=row["created_at"])

def create_user(user_id: str, name: str, preferences: Optional[dict] = None) -> User:
    created_at = current_datetime().isoformat()
    with get_db() as conn:
        conn.execute(
            "INSERT INTO users (id, name, preferences, created_at) VALUES (?, ?, ?, ?)",
            (user_id, name, json.dumps(preferences or {}), created_at)
        )
        conn.commit()
    return User(id=user_id, name=name, preferences=preferences or {}, created_at=created_at)


# Conversation history

def session_title(message: str) -> str:
    """Session title from the first message: 50 chars, with ellipsis when cut."""
    return message[:50] + ("..." if len(message) > 50 else "")

def get_session(session_id: str, user_id: str) -> Optional[ChatSession]:
    """Get a user's chat session with its messages in insertion order."""
    with get_db() as conn:
        row = conn.execute(
            "SELECT * FROM chat_sessions WHERE id = ? AND user_id = ?",
            (session_id, user_id)
        ).fetchone()
        if not row:
            return None
        message_rows = conn.execute(
            "SELECT role, content, function_calls, created_at FROM chat_messages WHERE session_id = ? ORDER BY id",
            (session_id,)
        ).fetchall()
        return ChatSession(
            id=row["id"],
            user_id=row["user_id"],
            title=row["title"],
            messages=[ChatMessage.model_validate(dict(m)) for m in message_rows],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

def create_session(session_id: str, user_id: str, title: str) -> ChatSession:
    now = current_datetime().isoformat()
    with get_db() as conn:
        conn.execute(
            "INSERT INTO chat_sessions (id, user_id, title, created_at, updated_at) VALUES (?, ?, ?, ?, ?)",
            (session_id, user_id, title, now, now)
        )
        conn.commit()
    return ChatSession(id=session_id, user_id=user_id, title=title, created_at=now, updated_at=now)

def append_turn(session_id: str, role: str, content: str, function_calls: Optional[str] = None) -> ChatMessage:
    """Append one message to a session. function_calls is an opaque JSON log, or None."""
    now = current_datetime().isoformat()
    with get_db() as conn:
        conn.execute(
            "INSERT INTO chat_messages (session_id, role, content, function_calls, created_at) VALUES (?, ?, ?, ?, ?)",
            (session_id, role, content, function_calls, now)
        )
        conn.execute("UPDATE chat_sessions SET updated_at = ? WHERE id = ?", (now, session_id))
        conn.commit()
    return ChatMessage(role=role, content=content, function_calls=function_calls, created_at=now)
