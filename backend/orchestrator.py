"""
One conversational turn, start to finish:

    received -> composing -> awaiting completion -> extracting
        -> (no calls) replying
        -> (calls) executing -> synthesizing -> replying
    -> persisted

A CompletionError while awaiting the completion ends the turn: the user's
message is already logged, no call runs and no assistant turn is written.
Execution and synthesis failures are absorbed into the reply.
"""
import asyncio
import json
import logging
import sqlite3
import uuid
from typing import Optional

from completion import CompletionClient
from database import (
    append_turn,
    create_session,
    find_records,
    get_session,
    get_user,
    session_title,
)
from dispatcher import execute_all
from extractor import extract_function_calls
from models import ChatSession, TurnResult, UserContext
from prompts import DEFAULT_DIRECTIVES, PromptDirectives, compose_system_prompt
from synthesizer import synthesize_response
from temporal import get_temporal_context

logger = logging.getLogger(__name__)

RECENT_TASKS_LIMIT = 5
RECENT_NOTES_LIMIT = 3


async def load_user_context(user_id: str) -> UserContext:
    """Read the user's profile and recent records; the reads are independent and run concurrently."""
    user, tasks, notes, goals = await asyncio.gather(
        asyncio.to_thread(get_user, user_id),
        asyncio.to_thread(find_records, "task", user_id, None, RECENT_TASKS_LIMIT),
        asyncio.to_thread(find_records, "note", user_id, None, RECENT_NOTES_LIMIT),
        asyncio.to_thread(find_records, "goal", user_id, {"completed": False}),
    )
    return UserContext(
        name=user.name if user else "Usuário",
        recent_tasks=tasks,
        recent_notes=notes,
        current_goals=goals,
        preferences=user.preferences if user else {},
    )


async def _open_session(session_id: Optional[str], user_id: str, message: str) -> ChatSession:
    """Find the caller's session, or start a new one titled after the first message."""
    if session_id:
        session = await asyncio.to_thread(get_session, session_id, user_id)
        if session is not None:
            return session
        try:
            return await asyncio.to_thread(create_session, session_id, user_id, session_title(message))
        except sqlite3.IntegrityError:
            # The id is taken by another user's session
            logger.warning("Session id %s unavailable for user %s, starting a new one", session_id, user_id)
    return await asyncio.to_thread(create_session, str(uuid.uuid4()), user_id, session_title(message))


async def process_message(
    message: str,
    session_id: Optional[str],
    user_id: str,
    client: CompletionClient,
    directives: PromptDirectives = DEFAULT_DIRECTIVES,
) -> TurnResult:
    """
    Run one turn for user_id and persist it.

    Raises:
        CompletionError: the first completion failed; nothing was executed
    """
    session = await _open_session(session_id, user_id, message)
    history = session.history()
    context = await load_user_context(user_id)
    await asyncio.to_thread(append_turn, session.id, "user", message)

    temporal = get_temporal_context()
    system_prompt = compose_system_prompt(context, temporal, directives=directives)

    raw_reply = await client.complete_turn(system_prompt, history, message)
    logger.debug("Raw reply for session %s: %s", session.id, raw_reply)

    extraction = extract_function_calls(raw_reply)
    calls = extraction.calls
    reply = extraction.clean_text
    logger.info("Session %s: %d function call(s) extracted", session.id, len(calls))

    if calls:
        await asyncio.to_thread(execute_all, calls, user_id)
        reply = await synthesize_response(client, message, calls, context, history, directives)

    function_log = None
    if calls:
        function_log = json.dumps([call.model_dump(mode="json") for call in calls], ensure_ascii=False)
    await asyncio.to_thread(append_turn, session.id, "assistant", reply, function_log)

    return TurnResult(message=reply, session_id=session.id, calls=calls)
