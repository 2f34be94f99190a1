"""
Message Relay

Connects a chat platform to the conversation orchestrator. For every inbound
message it posts a "thinking" placeholder in the thread, asks the
orchestrator for a reply and then replaces the placeholder with that reply.
"""

import logging
from typing import Optional

from gptbridge.core.errors import format_error_for_user
from gptbridge.interfaces.base import ChatPlatform, InboundMessage
from gptbridge.services.orchestrator import ConversationOrchestrator

logger = logging.getLogger(__name__)


class MessageRelay:
    """Relays chat messages to the orchestrator and replies in-thread."""

    def __init__(
        self,
        platform: ChatPlatform,
        orchestrator: ConversationOrchestrator,
        thinking_message: str = "Thinking...",
        error_title: str = "Error",
        error_message: str = "Something went wrong. Please try again.",
        bot_user_id: Optional[str] = None
    ):
        self.platform = platform
        self.orchestrator = orchestrator
        self.thinking_message = thinking_message
        self.error_title = error_title
        self.error_message = error_message
        self.bot_user_id = bot_user_id

    def attach(self) -> None:
        """Register this relay as a message handler on the platform."""
        self.platform.register_handler(self.handle)

    def should_ignore(self, message: InboundMessage) -> bool:
        if not message.user_id or not message.text or not message.text.strip():
            logger.debug("[RELAY] Ignoring message without user or text content")
            return True
        if self.bot_user_id and message.user_id == self.bot_user_id:
            return True
        return False

    async def handle(self, message: InboundMessage) -> Optional[str]:
        """
        Answer one inbound message. Never raises.

        Args:
            message: Message received from the platform

        Returns:
            The reply text, or None if the message was ignored or failed
        """
        if self.should_ignore(message):
            return None

        thread_id = message.reply_thread
        thinking_id: Optional[str] = None

        try:
            thinking_id = await self.platform.send_message(message.channel, self.thinking_message, thread_id)
            reply = await self.orchestrator.handle_user_message(message.user_id, message.text)
            await self.platform.update_message(message.channel, thinking_id, reply)
            logger.info(f"[RELAY] Sent response to thread {thread_id}")
            return reply
        except Exception as e:
            logger.exception(f"[RELAY] Error processing message from {message.user_id}: {e}")
            await self._report_error(message.channel, thread_id, thinking_id, e)
            return None

    async def _report_error(
        self,
        channel: str,
        thread_id: Optional[str],
        thinking_id: Optional[str],
        error: Exception
    ) -> None:
        text = f"{self.error_message} {format_error_for_user(error)}"
        if thinking_id:
            try:
                await self.platform.update_message(channel, thinking_id, text)
                return
            except Exception as e:
                logger.error(f"[RELAY] Error updating thinking message with error: {e}")

        try:
            await self.platform.send_message(channel, f"{self.error_title}: {text}", thread_id)
        except Exception as e:
            logger.error(f"[RELAY] Error sending error message: {e}")
