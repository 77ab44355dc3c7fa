"""
Tests for database.py - record store, users and conversation history.
"""
import pytest
import sqlite3
import sys
import os
from datetime import datetime
from zoneinfo import ZoneInfo

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import database
from database import (
    append_turn,
    create_record,
    create_session,
    create_user,
    find_records,
    get_record,
    get_session,
    get_user,
    session_title,
    update_record,
)


class TestRecordStore:
    """Tests for generic record create/find/get/update."""

    def test_create_record_defaults(self, test_db):
        """Create a task with only a title; store defaults fill the rest."""
        task = create_record("task", "user_1", {"title": "Buy groceries"})

        assert task.id
        assert task.user_id == "user_1"
        assert task.title == "Buy groceries"
        assert task.priority == "MEDIUM"
        assert task.category == "Geral"
        assert task.completed is False
        assert task.created_at

    def test_timestamps_use_configured_zone(self, test_db, monkeypatch):
        """Stored timestamps come from the same clock as the assistant's dates."""
        now = datetime(2024, 1, 20, 10, 0, tzinfo=ZoneInfo("America/Sao_Paulo"))
        monkeypatch.setattr(database, "current_datetime", lambda: now)

        task = create_record("task", "user_1", {"title": "Relógio"})
        session = create_session("s-1", "user_1", "T")
        message = append_turn("s-1", "user", "Oi")

        assert task.created_at == "2024-01-20T10:00:00-03:00"
        assert session.created_at == "2024-01-20T10:00:00-03:00"
        assert message.created_at == "2024-01-20T10:00:00-03:00"

    def test_create_record_unique_ids(self, test_db):
        first = create_record("note", "user_1", {"title": "A", "content": "a"})
        second = create_record("note", "user_1", {"title": "B", "content": "b"})
        assert first.id != second.id

    def test_booleans_round_trip(self, test_db):
        event = create_record("event", "user_1", {
            "title": "Feriado", "start_date": "2024-01-25T00:00:00", "all_day": True,
        })
        assert event.all_day is True

    def test_unknown_entity(self, test_db):
        with pytest.raises(ValueError):
            create_record("invoice", "user_1", {"title": "X"})

    def test_unknown_field(self, test_db):
        with pytest.raises(ValueError):
            create_record("task", "user_1", {"title": "X", "user_id": "user_2"})

    def test_find_records_newest_first(self, test_db):
        for title in ("first", "second", "third"):
            create_record("task", "user_1", {"title": title})

        titles = [t.title for t in find_records("task", "user_1")]
        assert titles == ["third", "second", "first"]

    def test_find_records_limit(self, test_db):
        for i in range(7):
            create_record("task", "user_1", {"title": f"T{i}"})
        assert len(find_records("task", "user_1", limit=5)) == 5

    def test_find_records_filters(self, test_db):
        create_record("goal", "user_1", {"title": "Open", "target": 3})
        create_record("goal", "user_1", {"title": "Done", "target": 3, "current": 3, "completed": True})

        goals = find_records("goal", "user_1", {"completed": False})
        assert [g.title for g in goals] == ["Open"]

    def test_find_records_scoped_to_user(self, test_db):
        create_record("task", "user_1", {"title": "Mine"})
        create_record("task", "user_2", {"title": "Theirs"})

        assert [t.title for t in find_records("task", "user_1")] == ["Mine"]
        assert [t.title for t in find_records("task", "user_2")] == ["Theirs"]

    def test_get_record_other_user(self, test_db):
        task = create_record("task", "user_1", {"title": "Private"})
        assert get_record("task", task.id, "user_1") is not None
        assert get_record("task", task.id, "user_2") is None

    def test_update_record(self, test_db):
        goal = create_record("goal", "user_1", {"title": "Read", "target": 12})
        updated = update_record("goal", goal.id, "user_1", {"current": 6})

        assert updated.current == 6
        assert updated.title == "Read"

    def test_update_record_not_found(self, test_db):
        assert update_record("task", "missing", "user_1", {"completed": True}) is None

    def test_update_record_other_user(self, test_db):
        task = create_record("task", "user_1", {"title": "Private"})
        assert update_record("task", task.id, "user_2", {"completed": True}) is None
        assert get_record("task", task.id, "user_1").completed is False


class TestUsers:
    """Tests for user profile storage."""

    def test_get_user_missing(self, test_db):
        assert get_user("nobody") is None

    def test_create_and_get_user(self, test_db):
        create_user("user_1", "Ana", {"tom": "formal"})
        user = get_user("user_1")

        assert user.name == "Ana"
        assert user.preferences == {"tom": "formal"}

    def test_user_without_preferences(self, test_db):
        create_user("user_1", "Ana")
        assert get_user("user_1").preferences == {}


class TestConversationHistory:
    """Tests for chat sessions and messages."""

    def test_session_title_short(self):
        assert session_title("Oi") == "Oi"

    def test_session_title_truncated(self):
        title = session_title("a" * 60)
        assert title == "a" * 50 + "..."

    def test_session_title_exactly_fifty(self):
        assert session_title("b" * 50) == "b" * 50

    def test_get_session_missing(self, test_db):
        assert get_session("nope", "user_1") is None

    def test_create_session(self, test_db):
        create_session("s-1", "user_1", "Primeira conversa")
        session = get_session("s-1", "user_1")

        assert session.title == "Primeira conversa"
        assert session.messages == []

    def test_session_scoped_to_user(self, test_db):
        create_session("s-1", "user_1", "Minha")
        assert get_session("s-1", "user_2") is None

    def test_duplicate_session_id(self, test_db):
        create_session("s-1", "user_1", "Minha")
        with pytest.raises(sqlite3.IntegrityError):
            create_session("s-1", "user_2", "Outra")

    def test_append_turn_order(self, test_db):
        """Messages come back in the order they were appended."""
        create_session("s-1", "user_1", "T")
        append_turn("s-1", "user", "Oi")
        append_turn("s-1", "assistant", "Olá!")
        append_turn("s-1", "user", "Crie uma tarefa")

        session = get_session("s-1", "user_1")
        assert [(m.role, m.content) for m in session.messages] == [
            ("user", "Oi"),
            ("assistant", "Olá!"),
            ("user", "Crie uma tarefa"),
        ]

    def test_append_turn_function_log(self, test_db):
        create_session("s-1", "user_1", "T")
        append_turn("s-1", "assistant", "Feito", '[{"name": "create_task"}]')

        message = get_session("s-1", "user_1").messages[0]
        assert message.function_calls == '[{"name": "create_task"}]'

    def test_append_turn_bumps_updated_at(self, test_db):
        created = create_session("s-1", "user_1", "T")
        append_turn("s-1", "user", "Oi")
        assert get_session("s-1", "user_1").updated_at >= created.updated_at

    def test_history_turns(self, test_db):
        create_session("s-1", "user_1", "T")
        append_turn("s-1", "user", "Oi")
        append_turn("s-1", "assistant", "Olá!")

        history = get_session("s-1", "user_1").history()
        assert [t.role for t in history] == ["user", "assistant"]
        assert history[1].content == "Olá!"
