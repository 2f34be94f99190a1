"""
Tests for the message relay between a chat platform and the orchestrator.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from gptbridge.core.errors import UpstreamUnavailable
from gptbridge.interfaces.base import InboundMessage
from gptbridge.interfaces.relay import MessageRelay

from tests.helpers import RecordingPlatform


def make_relay(platform, reply="hi", error=None) -> MessageRelay:
    orchestrator = MagicMock()
    orchestrator.handle_user_message = AsyncMock(return_value=reply, side_effect=error)
    return MessageRelay(
        platform,
        orchestrator,
        thinking_message="Thinking...",
        error_title="Error",
        error_message="Something went wrong.",
        bot_user_id="B1"
    )


def message(text="hello", user_id="U1", thread_id=None) -> InboundMessage:
    return InboundMessage(user_id=user_id, text=text, channel="C1", message_id="1700.1", thread_id=thread_id)


class TestMessageRelay:
    """Tests for MessageRelay.handle."""

    @pytest.mark.asyncio
    async def test_thinking_then_reply(self, platform):
        """Test that the thinking message is replaced by the reply."""
        relay = make_relay(platform)

        reply = await relay.handle(message())

        assert reply == "hi"
        assert platform.sent == [{"channel": "C1", "text": "Thinking...", "thread_id": "1700.1", "id": "m1"}]
        assert platform.updated == [{"channel": "C1", "id": "m1", "text": "hi"}]
        relay.orchestrator.handle_user_message.assert_awaited_once_with("U1", "hello")

    @pytest.mark.asyncio
    async def test_replies_in_existing_thread(self, platform):
        relay = make_relay(platform)

        await relay.handle(message(thread_id="1600.0"))

        assert platform.sent[0]["thread_id"] == "1600.0"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text,user_id", [("", "U1"), ("   ", "U1"), ("hello", ""), ("hello", "B1")])
    async def test_ignored_messages(self, platform, text, user_id):
        """Test that empty messages and the bot's own messages are ignored."""
        relay = make_relay(platform)

        assert await relay.handle(message(text=text, user_id=user_id)) is None
        assert platform.sent == []
        relay.orchestrator.handle_user_message.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failure_updates_thinking_message(self, platform):
        """Test that an orchestrator failure replaces the thinking message with the error."""
        relay = make_relay(platform, error=RuntimeError("boom"))

        assert await relay.handle(message()) is None
        assert platform.updated == [{
            "channel": "C1",
            "id": "m1",
            "text": "Something went wrong. An unexpected error occurred. Please try again later.",
        }]

    @pytest.mark.asyncio
    async def test_failure_detail_appended(self, platform):
        """Test that the user-facing description of the failure follows the error text."""
        relay = make_relay(platform, error=UpstreamUnavailable("no session"))

        await relay.handle(message())

        assert platform.updated[-1]["text"] == (
            "Something went wrong. "
            "I couldn't start a conversation with the assistant right now. Please try again in a moment."
        )

    @pytest.mark.asyncio
    async def test_failed_update_posts_new_error(self):
        """Test that a new error message is posted when updating fails."""
        platform = RecordingPlatform(fail_update=True)
        relay = make_relay(platform)

        assert await relay.handle(message()) is None
        assert platform.sent[-1]["text"].startswith("Error: Something went wrong. ")
        assert platform.sent[-1]["thread_id"] == "1700.1"

    @pytest.mark.asyncio
    async def test_never_raises(self):
        """Test that a platform that cannot post at all does not raise."""
        platform = RecordingPlatform(fail_send=True, fail_update=True)
        relay = make_relay(platform)

        assert await relay.handle(message()) is None

    @pytest.mark.asyncio
    async def test_attach_registers_handler(self, platform):
        """Test that inbound platform messages reach the relay."""
        relay = make_relay(platform)
        relay.attach()

        await platform._handle_incoming_message(message())

        assert platform.updated[0]["text"] == "hi"
