# System prompt for the conversational agent
# Dates are injected as literals so the model never computes them itself
# Calls are embedded in the reply as [FUNCTION: name {json}] markers
from typing import Optional

from pydantic import BaseModel

from functions import FunctionSpec, list_functions
from models import ExtractedCall, UserContext
from temporal import TemporalContext


class PromptDirectives(BaseModel):
    assistant_name: str = "CareAI"
    use_emoji: bool = True
    confirm_datetime: bool = True
    default_time: str = "09:00"
    morning_time: str = "09:00"
    noon_time: str = "12:00"
    afternoon_time: str = "14:00"
    evening_time: str = "19:00"


DEFAULT_DIRECTIVES = PromptDirectives()

SYSTEM_PROMPT = """Você é o {assistant_name}, um assistente pessoal inteligente em português brasileiro que ajuda com produtividade, organização e gestão financeira.

CONTEXTO DO USUÁRIO:
- Nome: {user_name}
- Tarefas recentes: {task_count} tarefas
- Notas recentes: {note_count} notas
- Metas ativas: {goal_count} metas{preferences}

INFORMAÇÕES DE DATA/HORA ATUAIS:
- Data atual: {date} ({formatted})
- Hora atual: {time}
- Dia da semana: {weekday}
- Amanhã será: {tomorrow}
- Depois de amanhã: {day_after_tomorrow}
- Próxima semana: {next_week}

CAPACIDADES ESPECIAIS:
Você pode executar ações REAIS no sistema do usuário.

IMPORTANTE: Quando o pedido do usuário corresponder a uma das funções abaixo, você DEVE responder de forma natural E incluir uma chamada de função no formato:
[FUNCTION: nome_da_funcao {{"parametro": "valor"}}]
O JSON deve ficar em uma única linha. Para várias ações, inclua uma chamada para cada uma.

FUNÇÕES DISPONÍVEIS:
{function_lines}

PALAVRAS-CHAVE PARA IDENTIFICAR:
- "agendar", "marcar", "compromisso", "reunião", "consulta", "evento" = create_event
- "tarefa", "fazer", "lembrar de" = create_task
- "anotar", "nota", "salvar ideia" = create_note
- "meta", "objetivo" = create_goal
- "gastei", "paguei", "recebi", "despesa", "receita" = create_financial_transaction

DATAS RELATIVAS (use exatamente estes valores):
- "hoje" = {date}
- "amanhã" = {tomorrow}
- "depois de amanhã" = {day_after_tomorrow}
- "próxima semana" = {next_week}
- Para outros dias da semana, conte a partir de hoje ({date}, {weekday})

EXEMPLOS DE USO:
Usuário: "Agendar reunião amanhã às 12:00"
Resposta: "Vou agendar essa reunião! [FUNCTION: create_event {{"title": "Reunião", "startDate": "{tomorrow}T12:00:00", "category": "Reunião", "priority": "MEDIUM"}}]"

Usuário: "Crie uma tarefa para estudar React"
Resposta: "Tarefa anotada! [FUNCTION: create_task {{"title": "Estudar React", "priority": "MEDIUM", "category": "Estudos"}}]"

DIRETRIZES PARA DATAS:
1. SEMPRE use as datas acima, nunca calcule a data de hoje por conta própria
2. "manhã" = {morning_time}, "meio-dia" = {noon_time}, "tarde" = {afternoon_time}, "noite" = {evening_time}
3. Se o horário não for especificado, use {default_time}
4. Use o formato ISO: YYYY-MM-DDTHH:MM:00

DIRETRIZES GERAIS:
1. SEMPRE use chamadas de função quando o pedido corresponder a uma ação
2. Nunca invente IDs; use apenas IDs que o usuário ou uma listagem forneceram
3. Seja conciso mas natural
{style_lines}
Seja natural e útil! Execute ações sempre que possível."""

SYNTHESIS_PROMPT = """Você é o {assistant_name}, conversando com {user_name}. O usuário disse: "{message}"

AÇÕES EXECUTADAS:
{summary}

Forneça uma resposta natural confirmando as ações que deram certo e dizendo claramente quais falharam. Ofereça mais ajuda se apropriado. Seja conciso{emoji_hint}."""


def _render_preferences(preferences: dict) -> str:
    if not preferences:
        return ""
    items = ", ".join(f"{key}: {value}" for key, value in preferences.items())
    return f"\n- Preferências: {items}"


def _render_style(directives: PromptDirectives) -> str:
    lines = []
    if directives.use_emoji:
        lines.append("Use emojis: ✅ 📝 🎯 📅 🏥 📋 🚀 💡 ⏰")
    else:
        lines.append("Não use emojis")
    if directives.confirm_datetime:
        lines.append("Confirme na resposta a data e a hora de cada ação agendada")
    return "".join(f"{i}. {line}\n" for i, line in enumerate(lines, start=4))


def compose_system_prompt(
    user_context: UserContext,
    temporal: TemporalContext,
    catalog: Optional[list[FunctionSpec]] = None,
    directives: PromptDirectives = DEFAULT_DIRECTIVES,
) -> str:
    """Build the system prompt for one turn. Pure; always returns a string."""
    if catalog is None:
        catalog = list_functions()
    return SYSTEM_PROMPT.format(
        assistant_name=directives.assistant_name,
        user_name=user_context.name,
        task_count=len(user_context.recent_tasks),
        note_count=len(user_context.recent_notes),
        goal_count=len(user_context.current_goals),
        preferences=_render_preferences(user_context.preferences),
        date=temporal.date,
        formatted=temporal.formatted,
        time=temporal.time,
        weekday=temporal.weekday,
        tomorrow=temporal.tomorrow,
        day_after_tomorrow=temporal.day_after_tomorrow,
        next_week=temporal.next_week,
        function_lines="\n".join(spec.render_line() for spec in catalog),
        morning_time=directives.morning_time,
        noon_time=directives.noon_time,
        afternoon_time=directives.afternoon_time,
        evening_time=directives.evening_time,
        default_time=directives.default_time,
        style_lines=_render_style(directives),
    )


def summarize_calls(calls: list[ExtractedCall]) -> str:
    """One line per executed call: name, outcome and the result message."""
    lines = []
    for call in calls:
        status = "sucesso" if call.result and call.result.success else "falhou"
        message = call.result.message if call.result else "sem resultado"
        lines.append(f"- Função {call.name} ({status}): {message}")
    return "\n".join(lines)


def compose_synthesis_prompt(
    original_message: str,
    calls: list[ExtractedCall],
    directives: PromptDirectives = DEFAULT_DIRECTIVES,
    user_name: str = "Usuário",
) -> str:
    return SYNTHESIS_PROMPT.format(
        assistant_name=directives.assistant_name,
        user_name=user_name,
        message=original_message,
        summary=summarize_calls(calls),
        emoji_hint=" e use emojis" if directives.use_emoji else "",
    )
