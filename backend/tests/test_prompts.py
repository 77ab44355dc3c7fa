"""
Tests for prompts.py - system prompt and synthesis prompt composition.
"""
import pytest
import sys
import os
from datetime import datetime

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from functions import get_function, list_functions
from models import ExecutionResult, ExtractedCall, Goal, Note, Task, UserContext
from prompts import (
    PromptDirectives,
    compose_synthesis_prompt,
    compose_system_prompt,
    summarize_calls,
)
from temporal import get_temporal_context


@pytest.fixture
def temporal():
    return get_temporal_context(datetime(2024, 1, 20, 10, 15))


@pytest.fixture
def user_context():
    now = "2024-01-20T10:00:00"
    return UserContext(
        name="Ana",
        recent_tasks=[
            Task(id="t1", user_id="u", title="A", created_at=now),
            Task(id="t2", user_id="u", title="B", created_at=now),
        ],
        recent_notes=[Note(id="n1", user_id="u", title="N", content="c", created_at=now)],
        current_goals=[],
    )


class TestSystemPrompt:
    """Tests for compose_system_prompt."""

    def test_user_name_and_counts(self, user_context, temporal):
        prompt = compose_system_prompt(user_context, temporal)
        assert "- Nome: Ana" in prompt
        assert "- Tarefas recentes: 2 tarefas" in prompt
        assert "- Notas recentes: 1 notas" in prompt
        assert "- Metas ativas: 0 metas" in prompt

    def test_literal_dates_embedded(self, user_context, temporal):
        prompt = compose_system_prompt(user_context, temporal)
        assert "Data atual: 2024-01-20 (20/01/2024)" in prompt
        assert "Hora atual: 10:15" in prompt
        assert "Dia da semana: sábado" in prompt
        assert "Amanhã será: 2024-01-21" in prompt
        assert "Depois de amanhã: 2024-01-22" in prompt
        assert '"amanhã" = 2024-01-21' in prompt

    def test_example_uses_tomorrow_literal(self, user_context, temporal):
        prompt = compose_system_prompt(user_context, temporal)
        assert '[FUNCTION: create_event {"title": "Reunião", "startDate": "2024-01-21T12:00:00"' in prompt

    def test_call_grammar_present(self, user_context, temporal):
        prompt = compose_system_prompt(user_context, temporal)
        assert '[FUNCTION: nome_da_funcao {"parametro": "valor"}]' in prompt
        assert "você DEVE responder" in prompt

    def test_every_catalog_entry_rendered(self, user_context, temporal):
        prompt = compose_system_prompt(user_context, temporal)
        for spec in list_functions():
            assert spec.render_line() in prompt

    def test_custom_catalog(self, user_context, temporal):
        prompt = compose_system_prompt(user_context, temporal, catalog=[get_function("create_note")])
        assert "- create_note:" in prompt
        assert "- create_goal:" not in prompt

    def test_default_time_rules(self, user_context, temporal):
        prompt = compose_system_prompt(user_context, temporal)
        assert '"meio-dia" = 12:00' in prompt
        assert '"tarde" = 14:00' in prompt
        assert '"noite" = 19:00' in prompt
        assert "use 09:00" in prompt

    def test_no_unformatted_placeholders(self, user_context, temporal):
        prompt = compose_system_prompt(user_context, temporal)
        assert "{tomorrow}" not in prompt
        assert "{{" not in prompt

    def test_preferences_rendered(self, temporal):
        context = UserContext(name="Ana", preferences={"tom": "formal"})
        prompt = compose_system_prompt(context, temporal)
        assert "- Preferências: tom: formal" in prompt

    def test_braces_in_user_name_are_safe(self, temporal):
        prompt = compose_system_prompt(UserContext(name="{hacker}"), temporal)
        assert "- Nome: {hacker}" in prompt

    def test_directives_change_style(self, user_context, temporal):
        directives = PromptDirectives(assistant_name="Lia", use_emoji=False)
        prompt = compose_system_prompt(user_context, temporal, directives=directives)
        assert prompt.startswith("Você é o Lia")
        assert "Não use emojis" in prompt

    def test_goals_counted(self, temporal):
        goal = Goal(id="g1", user_id="u", title="Ler", target=12, created_at="2024-01-01T00:00:00")
        prompt = compose_system_prompt(UserContext(current_goals=[goal]), temporal)
        assert "- Metas ativas: 1 metas" in prompt
        assert "- Nome: Usuário" in prompt


class TestSynthesisPrompt:
    """Tests for the second round-trip prompt."""

    def test_summary_lists_every_call(self):
        calls = [
            ExtractedCall(name="create_task", parameters={}, result=ExecutionResult(success=True, message="Tarefa ok")),
            ExtractedCall(name="complete_task", parameters={}, result=ExecutionResult(success=False, message="Não achei")),
        ]
        summary = summarize_calls(calls)
        assert summary.splitlines() == [
            "- Função create_task (sucesso): Tarefa ok",
            "- Função complete_task (falhou): Não achei",
        ]

    def test_prompt_contains_original_message(self):
        calls = [ExtractedCall(name="create_note", result=ExecutionResult(success=True, message="Nota salva"))]
        prompt = compose_synthesis_prompt("Anote minha ideia", calls)
        assert 'O usuário disse: "Anote minha ideia"' in prompt
        assert "Nota salva" in prompt

    def test_prompt_names_the_user(self):
        calls = [ExtractedCall(name="create_note", result=ExecutionResult(success=True, message="Nota salva"))]
        assert "conversando com Ana" in compose_synthesis_prompt("Anote", calls, user_name="Ana")
        assert "conversando com Usuário" in compose_synthesis_prompt("Anote", calls)
