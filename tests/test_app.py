"""
End-to-end tests for the wired bridge.

Both backends are served by httpx.MockTransport; the chat platform records
what the bridge posts.
"""

import httpx
import pytest

from gptbridge.app import create_bridge
from gptbridge.core.errors import ConfigurationError
from gptbridge.interfaces.base import ChannelNotAvailableError, InboundMessage

from tests.helpers import json_response


def gpt_handler(answer):
    def handler(request):
        if request.url.path.endswith("/session/create"):
            return json_response({"uuid": "S1"})
        return json_response(answer)
    return handler


class TestCreateBridge:
    """Tests for create_bridge wiring."""

    def test_registers_chat_functions(self, config, platform):
        bridge = create_bridge(config, platform)

        assert bridge.registry.names() == ["sendMessage", "updateMessage", "sendDirectMessage"]
        assert bridge.client.chatbot_uuid == "bot-1"
        assert bridge.automation.retry_count == config.automation.retry_count

    @pytest.mark.asyncio
    async def test_start_and_stop(self, config, platform):
        bridge = create_bridge(config, platform)

        await bridge.start()
        try:
            assert platform.is_running
            assert bridge.sessions.cleanup_running
        finally:
            await bridge.stop()

        assert not platform.is_running
        assert not bridge.sessions.cleanup_running

    @pytest.mark.asyncio
    async def test_start_requires_available_platform(self, config, platform):
        bridge = create_bridge(config, platform)
        platform.is_available = lambda: False

        with pytest.raises(ChannelNotAvailableError):
            await bridge.start()

        assert not bridge.sessions.cleanup_running

    def test_missing_chat_handler_fails_startup(self, config, platform, monkeypatch):
        """Test that a declared chat action without a handler stops the bridge from being built."""
        def register_partial(registry, platform):
            registry.register(lambda channel, text: None, name="sendMessage")

        monkeypatch.setattr("gptbridge.app.register_chat_functions", register_partial)

        with pytest.raises(ConfigurationError) as exc_info:
            create_bridge(config, platform)

        assert "updateMessage" in exc_info.value.message

    def test_undeclared_chat_handler_fails_startup(self, config, platform, monkeypatch):
        """Test that a registered chat action missing from the catalog is rejected."""
        from gptbridge.functions.chat import register_chat_functions

        def register_extra(registry, platform):
            register_chat_functions(registry, platform)
            registry.register(lambda channel: None, name="archiveChannel")

        monkeypatch.setattr("gptbridge.app.register_chat_functions", register_extra)

        with pytest.raises(ConfigurationError) as exc_info:
            create_bridge(config, platform)

        assert "archiveChannel" in exc_info.value.message


class TestEndToEnd:
    """Tests for a message travelling through the whole bridge."""

    @pytest.mark.asyncio
    async def test_message_answered_in_thread(self, config, platform):
        """Test U1 says hello, gets session S1 and the answer hi."""
        bridge = create_bridge(config, platform, gpt_transport=httpx.MockTransport(gpt_handler({"text": "hi"})))

        await platform._handle_incoming_message(
            InboundMessage(user_id="U1", text="hello", channel="C1", message_id="1700.1")
        )

        assert bridge.sessions.get("U1") == "S1"
        assert platform.sent[0]["text"] == config.chat.thinking_message
        assert platform.updated[-1] == {"channel": "C1", "id": "m1", "text": "hi"}

    @pytest.mark.asyncio
    async def test_local_function_call(self, config, platform):
        """Test that a sendMessage call from the AI posts through the platform."""
        answer = {
            "text": "Posting it.",
            "function_call": {"name": "sendMessage", "arguments": {"channel": "C2", "text": "fyi"}},
        }
        create_bridge(config, platform, gpt_transport=httpx.MockTransport(gpt_handler(answer)))

        await platform._handle_incoming_message(
            InboundMessage(user_id="U1", text="tell C2", channel="C1", message_id="1700.1")
        )

        assert {"channel": "C2", "text": "fyi", "thread_id": None, "id": "m2"} in platform.sent
        assert platform.updated[-1]["text"] == "Posting it.\n\nI've sent your message to the channel."

    @pytest.mark.asyncio
    async def test_remote_function_call(self, config, platform):
        """Test that a remote function is sent to the automation server."""
        answer = {
            "text": "",
            "function_call": {"name": "createTicket", "arguments": {"title": "Printer", "description": "Jammed"}},
        }
        calls = []

        def automation_handler(request):
            calls.append(request.url.path)
            return json_response({"status": "success", "data": {"message": "Ticket T-9 created"}})

        create_bridge(
            config,
            platform,
            gpt_transport=httpx.MockTransport(gpt_handler(answer)),
            automation_transport=httpx.MockTransport(automation_handler)
        )

        await platform._handle_incoming_message(
            InboundMessage(user_id="U1", text="printer jammed", channel="C1", message_id="1700.1")
        )

        assert calls == ["/call"]
        assert platform.updated[-1]["text"] == "Ticket T-9 created"
