"""
Execute extracted function calls against the record store.

Every call yields exactly one ExecutionResult. Validation errors, store
errors and unknown names become failed results here; execute_all also
contains anything unexpected so one bad call never stops the batch.
"""
import json
import logging
import sqlite3
from typing import Any, Callable

from pydantic import ValidationError

from database import create_record, find_records, get_record, update_record
from functions import (
    CallParameters,
    CompleteTaskParams,
    CreateEventParams,
    CreateFinancialCategoryParams,
    CreateFinancialTransactionParams,
    CreateGoalParams,
    CreateNoteParams,
    CreateTaskParams,
    ListTasksParams,
    UpdateGoalProgressParams,
    get_function,
)
from models import ExecutionResult, ExtractedCall
from temporal import current_datetime

logger = logging.getLogger(__name__)

# Used in "Falha ao ..." messages
ACTION_LABELS = {
    "create_task": "criar tarefa",
    "create_note": "criar nota",
    "create_goal": "criar meta",
    "create_event": "agendar evento",
    "list_tasks": "listar tarefas",
    "complete_task": "concluir tarefa",
    "update_goal_progress": "atualizar meta",
    "create_financial_transaction": "registrar transação",
    "create_financial_category": "criar categoria financeira",
}

CATEGORY_ICONS = {"INCOME": "💰", "EXPENSE": "💸"}
CATEGORY_COLORS = {"INCOME": "#10B981", "EXPENSE": "#EF4444"}


def _number(value: float) -> str:
    """10.0 -> '10', 2.5 -> '2.5'"""
    return f"{value:g}"


def format_brl(amount: float) -> str:
    """1234.5 -> 'R$ 1.234,50'"""
    text = f"{amount:,.2f}".replace(",", "_").replace(".", ",").replace("_", ".")
    return f"R$ {text}"


def _create_task(params: CreateTaskParams, user_id: str) -> ExecutionResult:
    task = create_record("task", user_id, {
        "title": params.title,
        "description": params.description,
        "priority": params.priority,
        "category": params.category,
        "due_date": params.due_date,
    })
    return ExecutionResult(
        success=True,
        message=f'✅ Tarefa "{task.title}" criada com sucesso! (ID: {task.id})',
        data=task.model_dump(),
    )


def _create_note(params: CreateNoteParams, user_id: str) -> ExecutionResult:
    note = create_record("note", user_id, {
        "title": params.title,
        "content": params.content,
        "category": params.category,
        "tags": params.tags,
    })
    return ExecutionResult(
        success=True,
        message=f'📝 Nota "{note.title}" salva com sucesso!',
        data=note.model_dump(),
    )


def _create_goal(params: CreateGoalParams, user_id: str) -> ExecutionResult:
    goal = create_record("goal", user_id, {
        "title": params.title,
        "description": params.description,
        "target": params.target,
        "current": 0,
        "category": params.category,
        "deadline": params.deadline,
        "completed": False,
    })
    return ExecutionResult(
        success=True,
        message=f'🎯 Meta "{goal.title}" criada! Progresso: 0/{_number(goal.target)} (ID: {goal.id})',
        data=goal.model_dump(),
    )


def _create_event(params: CreateEventParams, user_id: str) -> ExecutionResult:
    event = create_record("event", user_id, {
        "title": params.title,
        "description": params.description,
        "location": params.location,
        "category": params.category,
        "start_date": params.start_date,
        "end_date": params.end_date,
        "all_day": params.all_day,
        "priority": params.priority,
        "reminder": params.reminder,
        "attendees": params.attendees,
    })
    when = params.start_date.strftime("%d/%m/%Y") if params.all_day else params.start_date.strftime("%d/%m/%Y às %H:%M")
    return ExecutionResult(
        success=True,
        message=f'📅 Evento "{event.title}" agendado para {when}!',
        data=event.model_dump(),
    )


def _list_tasks(params: ListTasksParams, user_id: str) -> ExecutionResult:
    filters: dict[str, Any] = {}
    if params.completed is not None:
        filters["completed"] = params.completed
    if params.priority:
        filters["priority"] = params.priority

    tasks = find_records("task", user_id, filters, limit=params.limit)
    lines = [f"✅ Encontrei {len(tasks)} tarefa(s)"]
    for task in tasks:
        status = "concluída" if task.completed else "pendente"
        lines.append(f'- "{task.title}" [{task.priority}, {status}] (ID: {task.id})')
    return ExecutionResult(
        success=True,
        message="\n".join(lines),
        data=[task.model_dump() for task in tasks],
    )


def _complete_task(params: CompleteTaskParams, user_id: str) -> ExecutionResult:
    # Scoped to the caller: another user's task id is reported as not found
    task = update_record("task", params.task_id, user_id, {"completed": True})
    if task is None:
        return ExecutionResult(success=False, message=f"❌ Tarefa {params.task_id} não encontrada")
    return ExecutionResult(
        success=True,
        message=f'✅ Tarefa "{task.title}" marcada como concluída!',
        data=task.model_dump(),
    )


def _update_goal_progress(params: UpdateGoalProgressParams, user_id: str) -> ExecutionResult:
    goal = get_record("goal", params.goal_id, user_id)
    if goal is None:
        return ExecutionResult(success=False, message=f"❌ Meta {params.goal_id} não encontrada")

    reached = params.current >= goal.target
    goal = update_record("goal", goal.id, user_id, {"current": params.current, "completed": reached})
    if goal is None:
        return ExecutionResult(success=False, message=f"❌ Meta {params.goal_id} não encontrada")

    if reached:
        status = "🎉 META ALCANÇADA!"
    else:
        status = f"📊 Progresso: {round(goal.current / goal.target * 100)}%"
    return ExecutionResult(
        success=True,
        message=f'🎯 Meta "{goal.title}" atualizada! {status} ({_number(goal.current)}/{_number(goal.target)})',
        data=goal.model_dump(),
    )


def _create_financial_transaction(params: CreateFinancialTransactionParams, user_id: str) -> ExecutionResult:
    amount = abs(params.amount)

    existing = find_records(
        "financial_category", user_id, {"name": params.category_name, "type": params.type}, limit=1
    )
    if existing:
        category = existing[0]
    else:
        category = create_record("financial_category", user_id, {
            "name": params.category_name,
            "type": params.type,
            "icon": CATEGORY_ICONS[params.type],
            "color": CATEGORY_COLORS[params.type],
        })
        logger.info("Created financial category %s for user %s", category.name, user_id)

    transaction = create_record("financial_transaction", user_id, {
        "title": params.title,
        "description": params.description,
        "amount": amount,
        "type": params.type,
        "category_id": category.id,
        "payment_method": params.payment_method,
        "date": params.date or current_datetime(),
        "tags": json.dumps(params.tags) if params.tags else "",
    })

    kind = "Receita" if params.type == "INCOME" else "Despesa"
    trend = "📈" if params.type == "INCOME" else "📉"
    data = transaction.model_dump()
    data["category"] = category.model_dump()
    return ExecutionResult(
        success=True,
        message=(
            f'💰 {trend} {kind} "{transaction.title}" registrada com sucesso! '
            f"Valor: {format_brl(amount)}, Categoria: {category.name}"
        ),
        data=data,
    )


def _create_financial_category(params: CreateFinancialCategoryParams, user_id: str) -> ExecutionResult:
    kind = "receitas" if params.type == "INCOME" else "despesas"
    existing = find_records("financial_category", user_id, {"name": params.name, "type": params.type}, limit=1)
    if existing:
        return ExecutionResult(
            success=False,
            message=f'❌ Já existe uma categoria "{params.name}" de {kind}',
        )

    category = create_record("financial_category", user_id, {
        "name": params.name,
        "type": params.type,
        "icon": params.icon or CATEGORY_ICONS[params.type],
        "color": params.color or CATEGORY_COLORS[params.type],
    })
    return ExecutionResult(
        success=True,
        message=f'🗂️ Categoria "{category.name}" criada com sucesso para {kind}!',
        data=category.model_dump(),
    )


# One handler per catalog entry
HANDLERS: dict[str, Callable[[Any, str], ExecutionResult]] = {
    "create_task": _create_task,
    "create_note": _create_note,
    "create_goal": _create_goal,
    "create_event": _create_event,
    "list_tasks": _list_tasks,
    "complete_task": _complete_task,
    "update_goal_progress": _update_goal_progress,
    "create_financial_transaction": _create_financial_transaction,
    "create_financial_category": _create_financial_category,
}


def _describe_errors(error: ValidationError) -> str:
    parts = []
    for err in error.errors():
        location = ".".join(str(part) for part in err["loc"]) or "parâmetros"
        parts.append(f"{location}: {err['msg']}")
    return "; ".join(parts)


def execute_function(name: str, parameters: dict[str, Any], user_id: str) -> ExecutionResult:
    """
    Validate and run one call on behalf of user_id.
    Unknown names, invalid parameters and record store errors come back as failed results.
    """
    spec = get_function(name)
    handler = HANDLERS.get(name)
    if spec is None or handler is None:
        logger.warning("Unknown function requested: %s", name)
        return ExecutionResult(success=False, message=f"❌ Função desconhecida: {name}")

    try:
        params: CallParameters = spec.parameters.model_validate(parameters)
    except ValidationError as e:
        logger.warning("Invalid parameters for %s: %s", name, e)
        return ExecutionResult(
            success=False,
            message=f"❌ Parâmetros inválidos para {name}: {_describe_errors(e)}",
        )

    try:
        return handler(params, user_id)
    except sqlite3.Error as e:
        logger.exception("Record store error in %s", name)
        return ExecutionResult(success=False, message=f"❌ Falha ao {ACTION_LABELS[name]}: {e}")


def execute_all(calls: list[ExtractedCall], user_id: str) -> list[ExecutionResult]:
    """Run calls in order, attaching each result to its call. Never raises."""
    results = []
    for call in calls:
        try:
            result = execute_function(call.name, call.parameters, user_id)
        except Exception as e:
            logger.exception("Unexpected error executing %s", call.name)
            label = ACTION_LABELS.get(call.name, f"executar {call.name}")
            result = ExecutionResult(success=False, message=f"❌ Falha ao {label}: {e}")
        logger.info("Executed %s: success=%s", call.name, result.success)
        call.result = result
        results.append(result)
    return results
