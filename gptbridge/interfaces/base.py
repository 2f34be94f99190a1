"""
Base classes for chat platforms.

The bridge only needs a few things from a chat platform: deliver inbound
messages to a handler, post a message (optionally in a thread) and edit a
message it posted earlier. Concrete platforms implement this contract.
"""

import inspect
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

logger = logging.getLogger(__name__)


@dataclass
class InboundMessage:
    """A user message received from a chat platform."""
    user_id: str
    text: str
    channel: str
    message_id: Optional[str] = None
    thread_id: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def reply_thread(self) -> Optional[str]:
        """Thread to answer in: the existing thread, or a new one under this message."""
        return self.thread_id or self.message_id


MessageHandler = Callable[[InboundMessage], Union[None, Awaitable[None]]]


class ChatPlatform(ABC):
    """
    Abstract base class for chat platforms.

    Subclasses translate between the platform's events/API and the plain
    (user, text) messages and message ids the bridge works with.
    """

    def __init__(self, platform_id: str, config: Optional[Dict[str, Any]] = None):
        """
        Initialize the platform.

        Args:
            platform_id: Unique identifier for this platform instance
            config: Platform-specific configuration
        """
        self.platform_id = platform_id
        self.config = config or {}
        self._message_handlers: List[MessageHandler] = []
        self._is_running = False
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @abstractmethod
    async def send_message(self, channel: str, text: str, thread_id: Optional[str] = None) -> str:
        """
        Post a message.

        Args:
            channel: Channel (or conversation) id
            text: Message text
            thread_id: Optional thread to post into

        Returns:
            Id of the posted message

        Raises:
            MessageDeliveryError: If the message could not be posted
        """

    @abstractmethod
    async def update_message(self, channel: str, message_id: str, text: str) -> None:
        """
        Replace the text of a previously posted message.

        Raises:
            MessageDeliveryError: If the message could not be updated
        """

    async def open_direct_channel(self, user_id: str) -> str:
        """Return the channel id used to message a user directly."""
        return user_id

    @abstractmethod
    async def start(self):
        """Start receiving inbound messages."""

    @abstractmethod
    async def stop(self):
        """Stop receiving inbound messages and release resources."""

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the platform is configured and can be used."""

    def register_handler(self, handler: MessageHandler):
        """
        Register a function to handle inbound messages.

        Args:
            handler: Sync or async callable taking an InboundMessage
        """
        self._message_handlers.append(handler)
        self.logger.info(f"Registered message handler: {getattr(handler, '__name__', repr(handler))}")

    async def _handle_incoming_message(self, message: InboundMessage):
        """
        Pass an inbound message to every registered handler in turn.

        A failing handler is logged and does not stop the others.
        """
        self.logger.debug(f"Processing incoming message from {message.user_id}")

        for handler in self._message_handlers:
            try:
                result = handler(message)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                self.logger.exception(f"Error in message handler: {e}")

    @property
    def is_running(self) -> bool:
        return self._is_running

    def __repr__(self):
        return f"<{self.__class__.__name__} id={self.platform_id} running={self._is_running}>"


class ChannelError(Exception):
    """Base exception for chat platform errors."""
    pass


class ChannelNotAvailableError(ChannelError):
    """Raised when trying to use a platform that is not configured."""
    pass


class MessageDeliveryError(ChannelError):
    """Raised when a message cannot be posted or updated."""
    pass
