"""
Bridge wiring.

Builds the clients, stores and services from a Config and connects them to a
chat platform. The resulting Bridge owns the lifecycle: start() begins the
session cleanup job and the platform, stop() ends both.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from gptbridge.api.automation import AutomationClient
from gptbridge.api.gpt_trainer import GPTTrainerClient
from gptbridge.core.config import Config
from gptbridge.core.registry import FunctionRegistry
from gptbridge.functions.catalog import advertised_function_names, remote_function_names
from gptbridge.functions.chat import register_chat_functions
from gptbridge.interfaces.base import ChannelNotAvailableError, ChatPlatform
from gptbridge.interfaces.relay import MessageRelay
from gptbridge.services.function_calling import FunctionDispatcher
from gptbridge.services.orchestrator import ConversationOrchestrator
from gptbridge.services.session import SessionStore

logger = logging.getLogger(__name__)


@dataclass
class Bridge:
    """All running parts of the bridge."""
    config: Config
    client: GPTTrainerClient
    automation: AutomationClient
    sessions: SessionStore
    registry: FunctionRegistry
    dispatcher: FunctionDispatcher
    orchestrator: ConversationOrchestrator
    platform: ChatPlatform
    relay: MessageRelay

    async def start(self) -> None:
        if not self.platform.is_available():
            raise ChannelNotAvailableError(f"Chat platform {self.platform.platform_id} is not available")
        self.sessions.start_cleanup()
        await self.platform.start()
        logger.info(f"[BRIDGE] Started on platform {self.platform.platform_id}")

    async def stop(self) -> None:
        self.sessions.stop_cleanup()
        await self.platform.stop()
        logger.info("[BRIDGE] Stopped")


def create_bridge(
    config: Config,
    platform: ChatPlatform,
    gpt_transport: Optional[httpx.AsyncBaseTransport] = None,
    automation_transport: Optional[httpx.AsyncBaseTransport] = None
) -> Bridge:
    """
    Build a Bridge for a chat platform.

    Args:
        config: Loaded configuration
        platform: Chat platform to relay messages from
        gpt_transport: Optional httpx transport for GPT-trainer (used by tests)
        automation_transport: Optional httpx transport for the automation server

    Returns:
        The wired Bridge, not yet started

    Raises:
        ConfigurationError: If the function catalog and the handlers disagree
    """
    gpt = config.gpt_trainer
    client = GPTTrainerClient(
        api_key=gpt.api_key,
        chatbot_uuid=gpt.chatbot_uuid,
        base_url=gpt.base_url,
        timeout=gpt.http_timeout,
        transport=gpt_transport
    )

    auto = config.automation
    automation = AutomationClient(
        base_url=auto.base_url,
        api_key=auto.api_key,
        timeout=auto.timeout,
        retry_count=auto.retry_count,
        retry_delay=auto.retry_delay,
        poll_interval=auto.poll_interval,
        max_wait=auto.max_wait,
        transport=automation_transport
    )

    sessions = SessionStore(
        client,
        max_idle_time=config.session.max_idle_time,
        cleanup_interval=config.session.cleanup_interval
    )

    registry = FunctionRegistry()
    register_chat_functions(registry, platform)
    advertised = advertised_function_names()
    registry.check_catalog(advertised, remote_function_names())
    logger.info(f"[BRIDGE] Function catalog: {', '.join(advertised)}")

    dispatcher = FunctionDispatcher(registry, automation)
    orchestrator = ConversationOrchestrator(
        sessions,
        client,
        dispatcher,
        show_citations=config.chat.show_citations,
        max_reply_length=config.chat.max_message_length
    )

    relay = MessageRelay(
        platform,
        orchestrator,
        thinking_message=config.chat.thinking_message,
        error_title=config.chat.error_title,
        error_message=config.chat.error_message,
        bot_user_id=config.chat.bot_user_id
    )
    relay.attach()

    return Bridge(
        config=config,
        client=client,
        automation=automation,
        sessions=sessions,
        registry=registry,
        dispatcher=dispatcher,
        orchestrator=orchestrator,
        platform=platform,
        relay=relay
    )
