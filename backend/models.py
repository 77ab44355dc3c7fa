from pydantic import BaseModel, ConfigDict, Field, StrictStr
from typing import Any, Literal, Optional

# Records owned by the record store. Dates are ISO strings as stored in SQLite.

class User(BaseModel):
    id: str
    name: str
    preferences: dict[str, Any] = Field(default_factory=dict)
    created_at: str

class Task(BaseModel):
    id: str
    user_id: str
    title: str
    description: Optional[str] = None
    priority: str = "MEDIUM"
    category: str = "Geral"
    completed: bool = False
    due_date: Optional[str] = None  # ISO format: YYYY-MM-DDTHH:MM:SS
    created_at: str

class Note(BaseModel):
    id: str
    user_id: str
    title: str
    content: str
    category: str = "Geral"
    tags: str = ""  # comma separated
    created_at: str

class Goal(BaseModel):
    id: str
    user_id: str
    title: str
    description: Optional[str] = None
    target: float
    current: float = 0
    category: str = "Pessoal"
    deadline: Optional[str] = None
    completed: bool = False
    created_at: str

class Event(BaseModel):
    id: str
    user_id: str
    title: str
    description: Optional[str] = None
    location: Optional[str] = None
    category: str = "Evento"
    start_date: str
    end_date: Optional[str] = None
    all_day: bool = False
    priority: str = "MEDIUM"
    reminder: Optional[str] = None
    attendees: Optional[str] = None
    created_at: str

class FinancialCategory(BaseModel):
    id: str
    user_id: str
    name: str
    type: str  # INCOME or EXPENSE
    icon: Optional[str] = None
    color: Optional[str] = None
    created_at: str

class FinancialTransaction(BaseModel):
    id: str
    user_id: str
    title: str
    description: str = ""
    amount: float
    type: str
    category_id: str
    payment_method: str = "CASH"
    date: str
    tags: str = ""  # JSON encoded list
    created_at: str


# Conversation

class ConversationTurn(BaseModel):
    role: Literal["user", "assistant"]
    content: str

class ChatMessage(BaseModel):
    role: str
    content: str
    function_calls: Optional[str] = None  # JSON log of executed calls
    created_at: str

class ChatSession(BaseModel):
    id: str
    user_id: str
    title: str
    messages: list[ChatMessage] = Field(default_factory=list)
    created_at: str
    updated_at: str

    def history(self) -> list[ConversationTurn]:
        """Messages in stored order, as turns the model can replay."""
        return [
            ConversationTurn(role=m.role, content=m.content)
            for m in self.messages
            if m.role in ("user", "assistant")
        ]

class UserContext(BaseModel):
    """Read-only snapshot of the user's data, rebuilt for every request."""
    name: str = "Usuário"
    recent_tasks: list[Task] = Field(default_factory=list)
    recent_notes: list[Note] = Field(default_factory=list)
    current_goals: list[Goal] = Field(default_factory=list)
    preferences: dict[str, Any] = Field(default_factory=dict)


# Function calling

class ExecutionResult(BaseModel):
    success: bool
    message: str
    data: Optional[Any] = None  # created/updated record(s) as dicts

class ExtractedCall(BaseModel):
    name: str
    parameters: dict[str, Any] = Field(default_factory=dict)
    result: Optional[ExecutionResult] = None

class TurnResult(BaseModel):
    message: str
    session_id: str
    calls: list[ExtractedCall] = Field(default_factory=list)


# HTTP

class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: StrictStr = Field(min_length=1)
    session_id: Optional[str] = Field(default=None, alias="sessionId")
