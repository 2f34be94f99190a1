"""Conversation Orchestrator - turns one user message into one reply.

For each message it:
1. Gets (or creates) the user's GPT-trainer session
2. Sends the message to GPT-trainer
3. Executes the function call embedded in the answer, if any
4. Composes the final reply text
"""
import logging
from typing import List, Optional

from gptbridge.api.gpt_trainer import GPTTrainerClient
from gptbridge.core.constants import NO_RESPONSE_TEXT, RESET_COMMANDS, SESSION_RESET_TEXT
from gptbridge.core.errors import UpstreamUnavailable, format_error_for_user
from gptbridge.models import Citation, MessageResult
from gptbridge.services.function_calling import FunctionDispatcher, format_function_call_result
from gptbridge.services.session import SessionStore

logger = logging.getLogger(__name__)


def format_citations(citations: List[Citation]) -> str:
    """Render citations as a numbered 'Sources' footer."""
    lines = ["Sources:"]
    for index, citation in enumerate(citations, start=1):
        name = citation.source_name or citation.source_id or "source"
        lines.append(f"{index}. {name} ({citation.source_url})" if citation.source_url else f"{index}. {name}")
    return "\n".join(lines)


class ConversationOrchestrator:
    """Coordinates the session store, GPT-trainer and the function dispatcher."""

    def __init__(
        self,
        sessions: SessionStore,
        client: GPTTrainerClient,
        dispatcher: FunctionDispatcher,
        show_citations: bool = True,
        max_reply_length: Optional[int] = None
    ):
        self.sessions = sessions
        self.client = client
        self.dispatcher = dispatcher
        self.show_citations = show_citations
        self.max_reply_length = max_reply_length

    async def handle_user_message(self, user_id: str, text: str) -> str:
        """Process a user message and return the reply text.

        Args:
            user_id: Chat user id
            text: Message text

        Returns:
            Reply text; session-creation failures become an apology
        """
        if text.strip().lower() in RESET_COMMANDS:
            return await self.reset_session(user_id)

        try:
            handle = await self.sessions.get_or_create(user_id)
        except UpstreamUnavailable as e:
            logger.error(f"[ORCHESTRATOR] No session for user {user_id}: {e.message}")
            return format_error_for_user(e)

        logger.info(f"[ORCHESTRATOR] Using session {handle} for user {user_id}")
        result = await self.client.send_message(handle, text)
        if result.degraded:
            logger.warning(f"[ORCHESTRATOR] Degraded reply for user {user_id} (session {handle})")

        return self._truncate(await self._compose_reply(result))

    async def reset_session(self, user_id: str) -> str:
        """Start a new conversation for the user."""
        try:
            await self.sessions.reset(user_id)
        except UpstreamUnavailable as e:
            logger.error(f"[ORCHESTRATOR] Could not reset session for user {user_id}: {e.message}")
            return format_error_for_user(e)
        return SESSION_RESET_TEXT

    async def _compose_reply(self, result: MessageResult) -> str:
        parts = []
        if result.text.strip():
            parts.append(result.text.strip())

        if result.function_call is not None:
            call = result.function_call
            outcome = await self.dispatcher.dispatch(call)
            parts.append(format_function_call_result(call.name, outcome))

        if self.show_citations and result.citations:
            parts.append(format_citations(result.citations))

        return "\n\n".join(parts) if parts else NO_RESPONSE_TEXT

    def _truncate(self, reply: str) -> str:
        if self.max_reply_length and len(reply) > self.max_reply_length:
            return reply[: self.max_reply_length - 1] + "…"
        return reply
