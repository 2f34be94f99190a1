"""
Tests for the console chat platform.
"""

import io
from unittest.mock import patch

import pytest
from rich.console import Console

from gptbridge.interfaces.base import MessageDeliveryError
from gptbridge.interfaces.cli.channel import CLIChannel


@pytest.fixture
def channel():
    return CLIChannel(console=Console(file=io.StringIO(), width=120))


def output(channel: CLIChannel) -> str:
    return channel.console.file.getvalue()


class TestCLIChannel:
    """Tests for CLIChannel."""

    @pytest.mark.asyncio
    async def test_send_and_update(self, channel):
        """Test that a posted message can be replaced by id."""
        message_id = await channel.send_message("cli", "Thinking...")
        await channel.update_message("cli", message_id, "**Done**")

        assert channel.messages[message_id] == "**Done**"
        assert "Thinking..." in output(channel)
        assert "Done" in output(channel)

    @pytest.mark.asyncio
    async def test_update_unknown_message(self, channel):
        with pytest.raises(MessageDeliveryError):
            await channel.update_message("cli", "cli_99", "text")

    @pytest.mark.asyncio
    async def test_run_delivers_lines_until_exit(self, channel):
        """Test that typed lines reach the handlers and 'exit' stops the loop."""
        received = []
        channel.register_handler(lambda message: received.append(message.text))

        with patch.object(channel.console, "input", side_effect=["hello", "  ", "exit", "never"]):
            await channel.run()

        assert received == ["hello", "  "]
        assert not channel.is_running

    @pytest.mark.asyncio
    async def test_run_stops_on_eof(self, channel):
        with patch.object(channel.console, "input", side_effect=EOFError):
            await channel.run()

        assert not channel.is_running
        assert channel.is_available()
