"""
CLI Channel Implementation

Console chat platform. Lets the bridge be used from a terminal: every line
typed is an inbound message, replies are rendered as markdown.
"""

import asyncio
import itertools
from typing import Any, Dict, Optional

from rich.console import Console
from rich.markdown import Markdown
from rich.markup import escape

from gptbridge.interfaces.base import ChatPlatform, InboundMessage, MessageDeliveryError

EXIT_COMMANDS = ("exit", "quit", "/exit", "/quit")


class CLIChannel(ChatPlatform):
    """
    Console chat platform.

    Posted messages are remembered by id so that update_message can render
    the final reply in place of the "thinking" placeholder.
    """

    def __init__(
        self,
        user_id: str = "cli-user",
        console: Optional[Console] = None,
        config: Optional[Dict[str, Any]] = None
    ):
        super().__init__(platform_id="cli", config=config)
        self.user_id = user_id
        self.console = console or Console()
        self.messages: Dict[str, str] = {}
        self._ids = itertools.count(1)

    async def send_message(self, channel: str, text: str, thread_id: Optional[str] = None) -> str:
        message_id = f"cli_{next(self._ids)}"
        self.messages[message_id] = text
        self.console.print(f"[dim]{escape(text)}[/dim]")
        return message_id

    async def update_message(self, channel: str, message_id: str, text: str) -> None:
        if message_id not in self.messages:
            raise MessageDeliveryError(f"Unknown message id: {message_id}")
        self.messages[message_id] = text
        self.console.print(Markdown(text) if text else "[dim]No content[/dim]")

    async def start(self):
        self._is_running = True
        self.logger.info("CLI channel started")

    async def stop(self):
        self._is_running = False
        self.logger.info("CLI channel stopped")

    def is_available(self) -> bool:
        """CLI is always available."""
        return True

    async def run(self, prompt: str = "[bold cyan]You[/bold cyan]: "):
        """Read lines from the console until EOF or an exit command."""
        await self.start()
        counter = itertools.count(1)
        try:
            while self._is_running:
                try:
                    line = await asyncio.to_thread(self.console.input, prompt)
                except (EOFError, KeyboardInterrupt):
                    break
                if line.strip().lower() in EXIT_COMMANDS:
                    break
                await self._handle_incoming_message(InboundMessage(
                    user_id=self.user_id,
                    text=line,
                    channel="cli",
                    message_id=f"in_{next(counter)}"
                ))
        finally:
            await self.stop()
