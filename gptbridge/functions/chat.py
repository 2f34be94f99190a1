"""
Local chat actions.

Functions the AI can call that act on the chat platform itself. They run in
process through the ChatPlatform interface and never reach the automation
server.
"""

import logging
from typing import Any, Dict, Optional

from gptbridge.core.errors import ValidationError
from gptbridge.core.registry import FunctionRegistry
from gptbridge.interfaces.base import ChatPlatform

logger = logging.getLogger(__name__)


def _require_text(value: str, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} must be a non-empty string", field=field)
    return value


def register_chat_functions(registry: FunctionRegistry, platform: ChatPlatform) -> None:
    """Register the chat actions backed by ``platform``.

    Args:
        registry: Registry to add the actions to
        platform: Chat platform the actions post through
    """

    async def send_message(channel: str, text: str, threadId: Optional[str] = None) -> Dict[str, Any]:
        """Send a message to a chat channel, optionally inside a thread.

        Args:
            channel: The ID of the channel to post in
            text: The message text
            threadId: The thread to reply in (optional)
        """
        _require_text(channel, "channel")
        _require_text(text, "text")
        message_id = await platform.send_message(channel, text, thread_id=threadId)
        logger.info(f"[CHAT] sendMessage posted {message_id} to {channel}")
        return {"success": True, "channel": channel, "messageId": message_id}

    async def update_message(channel: str, messageId: str, text: str) -> Dict[str, Any]:
        """Replace the text of a message the assistant posted earlier.

        Args:
            channel: The ID of the channel containing the message
            messageId: The ID of the message to update
            text: The new message text
        """
        _require_text(channel, "channel")
        _require_text(messageId, "messageId")
        _require_text(text, "text")
        await platform.update_message(channel, messageId, text)
        return {"success": True, "channel": channel, "messageId": messageId}

    async def send_direct_message(userId: str, text: str) -> Dict[str, Any]:
        """Send a direct message to a user.

        Args:
            userId: The ID of the user to message
            text: The message text
        """
        _require_text(userId, "userId")
        _require_text(text, "text")
        channel = await platform.open_direct_channel(userId)
        message_id = await platform.send_message(channel, text)
        logger.info(f"[CHAT] sendDirectMessage posted {message_id} to {userId}")
        return {"success": True, "userId": userId, "messageId": message_id}

    registry.register(send_message, name="sendMessage")
    registry.register(update_message, name="updateMessage")
    registry.register(send_direct_message, name="sendDirectMessage")
