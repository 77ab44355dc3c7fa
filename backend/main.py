from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import json
import logging
import sqlite3

import database
from completion import CompletionClient, CompletionError
from config import get_config
from models import ChatRequest
from orchestrator import process_message

config = get_config()

logging.basicConfig(
    level=config.log_level,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

PROCESSING_ERROR = "Erro ao processar mensagem"


@asynccontextmanager
async def lifespan(_app: FastAPI):
    # Startup
    database.init_db()
    if not config.api_key_configured:
        logger.warning("ANTHROPIC_API_KEY is not configured; chat requests will fail")
    yield
    # Shutdown (nothing to do)

app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(config.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

completion_client = CompletionClient(
    api_key=config.anthropic_api_key if config.api_key_configured else None,
    model=config.model,
    timeout=config.completion_timeout,
)


def get_completion_client() -> CompletionClient:
    return completion_client


def get_current_user_id() -> str:
    """Caller identity. Single-tenant for now: the configured user."""
    return config.user_id


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Bad chat bodies are a 400 with the presentation layer's error shape."""
    if request.url.path == "/chat":
        return JSONResponse(
            status_code=400,
            content={"error": "Message is required", "details": jsonable_encoder(exc.errors())},
        )
    return await request_validation_exception_handler(request, exc)


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.post("/chat")
async def chat(
    chat_request: ChatRequest,
    user_id: str = Depends(get_current_user_id),
    client: CompletionClient = Depends(get_completion_client),
) -> dict:
    """Run one assistant turn: completion, function calls, synthesized reply."""
    try:
        turn = await process_message(chat_request.message, chat_request.session_id, user_id, client)
    except CompletionError as e:
        logger.error("Chat turn failed: %s", e)
        return JSONResponse(
            status_code=500,
            content={"error": "Erro interno do servidor", "details": PROCESSING_ERROR},
        )
    except sqlite3.Error as e:
        logger.exception("Chat turn failed on the record store")
        return JSONResponse(
            status_code=500,
            content={"error": "Erro interno do servidor", "details": str(e)},
        )
    except Exception as e:
        logger.exception("Chat turn failed unexpectedly")
        return JSONResponse(
            status_code=500,
            content={"error": "Erro interno do servidor", "details": str(e) or PROCESSING_ERROR},
        )

    return {
        "message": turn.message,
        "sessionId": turn.session_id,
        "actionsExecuted": len(turn.calls),
        "functions": [
            {"name": call.name, "success": call.result.success, "message": call.result.message}
            for call in turn.calls
        ],
    }


@app.get("/chat/{session_id}")
def get_chat_session(session_id: str, user_id: str = Depends(get_current_user_id)) -> dict:
    """Get saved conversation history for a session."""
    session = database.get_session(session_id, user_id)
    if not session:
        raise HTTPException(status_code=404, detail="Session not found")
    return {
        "sessionId": session.id,
        "title": session.title,
        "messages": [
            {
                "role": m.role,
                "content": m.content,
                "functionCalls": json.loads(m.function_calls) if m.function_calls else None,
                "createdAt": m.created_at,
            }
            for m in session.messages
        ],
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
