"""
Chat Interfaces

The chat platform contract the bridge talks to, and the relay that connects a
platform to the conversation orchestrator.
"""

from gptbridge.interfaces.base import (
    ChatPlatform,
    InboundMessage,
    ChannelError,
    ChannelNotAvailableError,
    MessageDeliveryError,
)

__all__ = [
    'ChatPlatform',
    'InboundMessage',
    'ChannelError',
    'ChannelNotAvailableError',
    'MessageDeliveryError',
]
