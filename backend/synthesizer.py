import logging

from completion import CompletionClient, CompletionError
from models import ConversationTurn, ExtractedCall, UserContext
from prompts import DEFAULT_DIRECTIVES, PromptDirectives, compose_synthesis_prompt

logger = logging.getLogger(__name__)

SYNTHESIS_TEMPERATURE = 0.7
SYNTHESIS_MAX_TOKENS = 300
FALLBACK_CONFIRMATION = "Ação executada com sucesso! Como posso ajudar mais?"
PARTIAL_FAILURE_HEADER = "Executei as ações solicitadas, mas algumas falharam:"


def fallback_reply(calls: list[ExtractedCall]) -> str:
    """Canned confirmation plus each call's own result message, failures included."""
    if all(call.result and call.result.success for call in calls):
        lines = [FALLBACK_CONFIRMATION]
    else:
        lines = [PARTIAL_FAILURE_HEADER]
    for call in calls:
        if call.result is None:
            lines.append(f"❌ {call.name}: sem resultado")
        else:
            lines.append(call.result.message)
    return "\n".join(lines)


async def synthesize_response(
    client: CompletionClient,
    original_message: str,
    calls: list[ExtractedCall],
    user_context: UserContext,
    history: list[ConversationTurn],
    directives: PromptDirectives = DEFAULT_DIRECTIVES,
) -> str:
    """
    Ask the model to narrate the executed calls in one short reply.
    Never raises: a failed or empty synthesis degrades to fallback_reply().

    The reply addresses the user by name. Only the current message is sent;
    history is accepted for callers that thread the whole turn through and
    is not replayed.
    """
    system_prompt = compose_synthesis_prompt(original_message, calls, directives, user_name=user_context.name)
    logger.debug("Synthesizing reply for %s (%d prior turns)", user_context.name, len(history))
    try:
        text = await client.complete(
            system_prompt,
            [{"role": "user", "content": original_message}],
            SYNTHESIS_TEMPERATURE,
            SYNTHESIS_MAX_TOKENS,
        )
    except CompletionError as e:
        logger.warning("Synthesis failed, using fallback reply: %s", e)
        return fallback_reply(calls)

    text = text.strip()
    if not text:
        logger.warning("Synthesis returned an empty reply, using fallback")
        return fallback_reply(calls)
    return text
