"""
Catalog of actions the assistant can invoke.

Each FunctionSpec owns a pydantic parameter model. That model is used both
to render the call signature shown to the model and to validate the
parameters before the dispatcher touches the record store, so the two
cannot drift apart.
"""
import types
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal, Optional, Union, get_args, get_origin

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator, model_validator
from pydantic_core import PydanticUndefined

Priority = Literal["LOW", "MEDIUM", "HIGH", "CRITICAL"]
Reminder = Literal["15min", "30min", "1hour", "1day"]
TransactionType = Literal["INCOME", "EXPENSE"]
PaymentMethod = Literal["CASH", "DEBIT", "CREDIT", "PIX", "TRANSFER"]

ISO_DATETIME_HINT = "YYYY-MM-DDTHH:MM:00"


def _unwrap_optional(annotation: Any) -> Any:
    if get_origin(annotation) in (Union, types.UnionType):
        args = [a for a in get_args(annotation) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return annotation


def _literal_values(annotation: Any) -> tuple:
    annotation = _unwrap_optional(annotation)
    if get_origin(annotation) is Literal:
        return get_args(annotation)
    return ()


def _split_list(value: Any) -> Any:
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return value


def _join_list(value: Any) -> Any:
    if isinstance(value, list):
        return ", ".join(str(v) for v in value)
    return value


class CallParameters(BaseModel):
    """Base for parameter models: camelCase aliases on the wire, unknown keys dropped."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore", coerce_numbers_to_str=True)

    @field_validator("*", mode="before")
    @classmethod
    def normalize_value(cls, value: Any, info: ValidationInfo) -> Any:
        field = cls.model_fields[info.field_name]
        # Explicit nulls fall back to the field default
        if value is None:
            if field.default_factory is not None:
                return field.default_factory()
            if field.default not in (None, PydanticUndefined):
                return field.default
        # Enumerations match case-insensitively ("high" -> "HIGH")
        choices = _literal_values(field.annotation)
        if choices and isinstance(value, str):
            for choice in choices:
                if choice.lower() == value.strip().lower():
                    return choice
        return value


class CreateTaskParams(CallParameters):
    title: str = Field(min_length=1, description="Título da tarefa")
    description: Optional[str] = Field(default=None, description="Descrição detalhada da tarefa")
    priority: Priority = Field(default="MEDIUM", description="Prioridade da tarefa")
    category: str = Field(default="Geral", description="Categoria da tarefa (ex: Trabalho, Pessoal, Estudos)")
    due_date: Optional[datetime] = Field(default=None, alias="dueDate", description="Data de vencimento no formato ISO")


class CreateNoteParams(CallParameters):
    title: str = Field(min_length=1, description="Título da nota")
    content: str = Field(description="Conteúdo da nota")
    category: str = Field(default="Geral", description="Categoria da nota (ex: Ideias, Receitas, Trabalho)")
    tags: str = Field(default="", description="Tags separadas por vírgula")

    join_tags = field_validator("tags", mode="before")(_join_list)


class CreateGoalParams(CallParameters):
    title: str = Field(min_length=1, description="Título da meta")
    target: float = Field(gt=0, description="Valor alvo da meta")
    description: Optional[str] = Field(default=None, description="Descrição da meta")
    category: str = Field(default="Pessoal", description="Categoria da meta (ex: Saúde, Educação, Carreira)")
    deadline: Optional[datetime] = Field(default=None, description="Prazo no formato ISO")


class CreateEventParams(CallParameters):
    title: str = Field(min_length=1, description="Título do evento/compromisso")
    start_date: datetime = Field(alias="startDate", description="Data e hora de início no formato ISO")
    description: Optional[str] = Field(default=None, description="Descrição do evento")
    location: Optional[str] = Field(default=None, description="Local do evento")
    category: str = Field(default="Evento", description="Reunião|Consulta|Evento|Pessoal")
    end_date: Optional[datetime] = Field(default=None, alias="endDate", description="Data e hora de fim no formato ISO")
    all_day: bool = Field(default=False, alias="allDay", description="Se é um evento de dia inteiro")
    priority: Priority = Field(default="MEDIUM", description="Prioridade do evento")
    reminder: Optional[Reminder] = Field(default=None, description="Lembrete antes do evento")
    attendees: Optional[str] = Field(default=None, description="Participantes separados por vírgula")

    join_attendees = field_validator("attendees", mode="before")(_join_list)

    @model_validator(mode="after")
    def end_after_start(self):
        if self.end_date is not None and self.end_date.replace(tzinfo=None) < self.start_date.replace(tzinfo=None):
            raise ValueError("endDate must not be before startDate")
        return self


class ListTasksParams(CallParameters):
    completed: Optional[bool] = Field(default=None, description="Filtrar por concluídas ou pendentes")
    priority: Optional[Priority] = Field(default=None, description="Filtrar por prioridade")
    limit: int = Field(default=10, ge=1, le=50, description="Quantidade máxima (padrão: 10)")


class CompleteTaskParams(CallParameters):
    task_id: str = Field(min_length=1, alias="taskId", description="ID da tarefa")


class UpdateGoalProgressParams(CallParameters):
    goal_id: str = Field(min_length=1, alias="goalId", description="ID da meta")
    current: float = Field(ge=0, description="Novo valor atual da meta")


class CreateFinancialTransactionParams(CallParameters):
    title: str = Field(min_length=1, description="Título da transação (ex: Supermercado, Salário)")
    amount: float = Field(description="Valor da transação")
    type: TransactionType = Field(description="INCOME para receitas, EXPENSE para despesas")
    category_name: str = Field(min_length=1, alias="categoryName", description="Nome da categoria (criada se não existir)")
    description: str = Field(default="", description="Descrição da transação")
    payment_method: PaymentMethod = Field(default="CASH", alias="paymentMethod", description="Método de pagamento")
    date: Optional[datetime] = Field(default=None, description="Data da transação no formato ISO (padrão: agora)")
    tags: list[str] = Field(default_factory=list, description="Tags da transação")

    split_tags = field_validator("tags", mode="before")(_split_list)

    @field_validator("amount")
    @classmethod
    def non_zero(cls, value: float) -> float:
        if value == 0:
            raise ValueError("amount must not be zero")
        return value


class CreateFinancialCategoryParams(CallParameters):
    name: str = Field(min_length=1, description="Nome da categoria (ex: Alimentação, Salário)")
    type: TransactionType = Field(description="INCOME para receitas, EXPENSE para despesas")
    icon: Optional[str] = Field(default=None, description="Emoji da categoria")
    color: Optional[str] = Field(default=None, description="Cor hexadecimal (ex: #FF5733)")


@dataclass(frozen=True)
class FunctionSpec:
    name: str
    description: str
    parameters: type[CallParameters]

    @property
    def required(self) -> list[str]:
        return [f.alias or name for name, f in self.parameters.model_fields.items() if f.is_required()]

    @property
    def optional(self) -> list[str]:
        return [f.alias or name for name, f in self.parameters.model_fields.items() if not f.is_required()]

    def render_signature(self) -> str:
        """Parameter template the model copies, e.g. {"title": "string", "target": number}."""
        parts = [f'"{f.alias or name}": {_render_type(f.annotation)}' for name, f in self.parameters.model_fields.items()]
        return "{" + ", ".join(parts) + "}"

    def render_line(self) -> str:
        required = ", ".join(self.required) if self.required else "nenhum"
        return f"- {self.name}: {self.description} {self.render_signature()} (obrigatórios: {required})"


def _render_type(annotation: Any) -> str:
    annotation = _unwrap_optional(annotation)
    choices = _literal_values(annotation)
    if choices:
        return '"' + "|".join(choices) + '"'
    if get_origin(annotation) is list:
        return "[" + _render_type(get_args(annotation)[0]) + "]"
    if annotation is bool:
        return "boolean"
    if annotation in (int, float):
        return "number"
    if annotation is datetime:
        return f'"{ISO_DATETIME_HINT}"'
    return '"string"'


CATALOG: tuple[FunctionSpec, ...] = (
    FunctionSpec("create_task", "Criar uma nova tarefa para o usuário", CreateTaskParams),
    FunctionSpec("create_note", "Criar uma nova nota para o usuário", CreateNoteParams),
    FunctionSpec("create_goal", "Criar uma nova meta para o usuário", CreateGoalParams),
    FunctionSpec("create_event", "Agendar um novo evento/compromisso", CreateEventParams),
    FunctionSpec("list_tasks", "Listar tarefas do usuário com filtros opcionais", ListTasksParams),
    FunctionSpec("complete_task", "Marcar uma tarefa como concluída", CompleteTaskParams),
    FunctionSpec("update_goal_progress", "Atualizar o progresso de uma meta", UpdateGoalProgressParams),
    FunctionSpec(
        "create_financial_transaction",
        "Registrar uma transação financeira (receita ou despesa)",
        CreateFinancialTransactionParams,
    ),
    FunctionSpec(
        "create_financial_category",
        "Criar uma nova categoria financeira",
        CreateFinancialCategoryParams,
    ),
)

FUNCTIONS_BY_NAME: dict[str, FunctionSpec] = {spec.name: spec for spec in CATALOG}


def list_functions() -> list[FunctionSpec]:
    return list(CATALOG)


def get_function(name: str) -> Optional[FunctionSpec]:
    return FUNCTIONS_BY_NAME.get(name)
