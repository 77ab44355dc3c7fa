"""
Thin async adapter over the Anthropic Messages API.
Stateless: every call sends the full system prompt and message list.
"""
import logging
from typing import Optional

import anthropic

from models import ConversationTurn

logger = logging.getLogger(__name__)

# Low temperature: replies must carry machine-parseable call markers
TURN_TEMPERATURE = 0.3
TURN_MAX_TOKENS = 800


class CompletionError(Exception):
    """The completion service could not produce a reply."""


class CompletionClient:
    def __init__(
        self,
        api_key: Optional[str],
        model: str = "claude-sonnet-4-5",
        timeout: float = 30.0,
        client: Optional[anthropic.AsyncAnthropic] = None,
    ):
        self.model = model
        self._api_key = api_key
        self._timeout = timeout
        self._client = client

    def _get_client(self) -> anthropic.AsyncAnthropic:
        if self._client is None:
            if not self._api_key:
                raise CompletionError("API key not configured")
            # Failed calls are never retried; the turn reports the error instead
            self._client = anthropic.AsyncAnthropic(
                api_key=self._api_key,
                timeout=self._timeout,
                max_retries=0,
            )
        return self._client

    async def complete(
        self,
        system_prompt: str,
        messages: list[dict],
        temperature: float,
        max_tokens: int,
    ) -> str:
        """Send one request and return the reply text."""
        client = self._get_client()
        try:
            response = await client.messages.create(
                model=self.model,
                max_tokens=max_tokens,
                temperature=temperature,
                system=system_prompt,
                messages=messages,
            )
        except anthropic.APIError as e:
            logger.error("Completion request failed: %s", e)
            raise CompletionError(str(e)) from e

        text = "".join(block.text for block in response.content if block.type == "text")
        logger.debug("Completion reply: %s", text)
        return text

    async def complete_turn(
        self,
        system_prompt: str,
        history: list[ConversationTurn],
        user_message: str,
    ) -> str:
        """History is replayed verbatim; the new user message always goes last."""
        messages = [{"role": turn.role, "content": turn.content} for turn in history]
        messages.append({"role": "user", "content": user_message})
        return await self.complete(system_prompt, messages, TURN_TEMPERATURE, TURN_MAX_TOKENS)
