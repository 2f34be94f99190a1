"""
GPT-trainer API Client

Async HTTP client for the GPT-trainer chatbot API. Creates sessions and
delivers user queries to them.

Message delivery always resolves to text: the streaming-shaped endpoint is
tried first (it is the more reliable of the two), the plain message endpoint
is the fallback, and a fixed apology is returned when both fail so the chat
user is never left without a reply.

Usage:
    client = GPTTrainerClient(api_key="...", chatbot_uuid="...")
    handle = await client.create_session()
    result = await client.send_message(handle, "Hello!")
"""

import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

import httpx
from pydantic import ValidationError as PydanticValidationError

from gptbridge.api.stream import StreamDecoder
from gptbridge.core.constants import (
    DEFAULT_HTTP_TIMEOUT,
    NO_RESPONSE_TEXT,
    STREAM_TIMEOUT_MULTIPLIER,
    UNAVAILABLE_TEXT,
)
from gptbridge.core.errors import GPTTrainerAPIError, StreamError
from gptbridge.models import Citation, FunctionCallRequest, MessageResult, StreamChunk

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://app.gpt-trainer.com"

ChunkCallback = Callable[[StreamChunk], Union[None, Awaitable[None]]]


class GPTTrainerClient:
    """Async HTTP client for the GPT-trainer API."""

    def __init__(
        self,
        api_key: str,
        chatbot_uuid: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """Initialize the client.

        Args:
            api_key: GPT-trainer API key
            chatbot_uuid: Chatbot the sessions belong to
            base_url: API base URL
            timeout: Base request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.api_key = api_key
        self.chatbot_uuid = chatbot_uuid
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

        logger.info(f"[GPT_TRAINER] Initialized client: {self.base_url} / {chatbot_uuid}")

    def _get_headers(self, accept: str = "application/json") -> Dict[str, str]:
        """Get request headers with authentication."""
        headers = {"Content-Type": "application/json", "Accept": accept}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=timeout, transport=self._transport)

    # -------------------------------------------------------------------------
    # Chatbot and sessions
    # -------------------------------------------------------------------------

    async def get_chatbot(self) -> Dict[str, Any]:
        """Get chatbot information.

        Returns:
            Chatbot dict with 'uuid', 'name', 'meta', etc.

        Raises:
            GPTTrainerAPIError: If the request fails
        """
        try:
            async with self._client(self.timeout) as client:
                response = await client.get(
                    f"/api/v1/chatbot/{self.chatbot_uuid}",
                    headers=self._get_headers()
                )
                response.raise_for_status()
                return response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"[GPT_TRAINER] Error getting chatbot information: {e}")
            raise GPTTrainerAPIError(f"Failed to get chatbot information: {e}", original_error=e)

    async def create_session(self) -> str:
        """Create a new conversation session.

        Returns:
            The session UUID issued by GPT-trainer

        Raises:
            GPTTrainerAPIError: On HTTP failure or a body without a session UUID
        """
        try:
            async with self._client(self.timeout) as client:
                response = await client.post(
                    f"/api/v1/chatbot/{self.chatbot_uuid}/session/create",
                    headers=self._get_headers(),
                    json={}
                )
                response.raise_for_status()
                body = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"[GPT_TRAINER] Error creating session: HTTP {e.response.status_code}")
            raise GPTTrainerAPIError(
                f"Failed to create session: HTTP {e.response.status_code}",
                original_error=e,
                status_code=e.response.status_code
            )
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"[GPT_TRAINER] Error creating session: {e}")
            raise GPTTrainerAPIError(f"Failed to create session: {e}", original_error=e)

        handle = body.get("uuid") if isinstance(body, dict) else None
        if not isinstance(handle, str) or not handle:
            logger.error(f"[GPT_TRAINER] Session response without uuid: {body}")
            raise GPTTrainerAPIError("Failed to create session: response did not include a session uuid")

        logger.info(f"[GPT_TRAINER] Created new session: {handle}")
        return handle

    # -------------------------------------------------------------------------
    # Messages
    # -------------------------------------------------------------------------

    async def send_message(self, session_uuid: str, query: str) -> MessageResult:
        """Send a message to a session and return the full answer.

        Never raises for delivery failures; see the module docstring.

        Args:
            session_uuid: Session UUID
            query: User query

        Returns:
            MessageResult whose ``source`` tells which path produced the text
        """
        try:
            try:
                return await self._send_via_stream_endpoint(session_uuid, query)
            except httpx.HTTPError as stream_error:
                self._log_http_error("Streaming endpoint failed", stream_error)

            logger.warning("[GPT_TRAINER] Streaming endpoint failed, trying non-streaming endpoint as fallback")
            try:
                result = await self._send_via_message_endpoint(session_uuid, query)
                if result is not None:
                    return result
            except httpx.HTTPError as fallback_error:
                self._log_http_error("Non-streaming fallback also failed", fallback_error)
        except Exception as e:
            logger.exception(f"[GPT_TRAINER] Unexpected error sending message: {e}")

        logger.warning("[GPT_TRAINER] All API endpoints failed, providing fallback response")
        return MessageResult(text=UNAVAILABLE_TEXT, source="placeholder")

    async def _send_via_stream_endpoint(self, session_uuid: str, query: str) -> MessageResult:
        url = f"/api/v1/session/{session_uuid}/message/stream"
        logger.debug(f"[GPT_TRAINER] Sending message to streaming endpoint: {url}")

        async with self._client(self.timeout * STREAM_TIMEOUT_MULTIPLIER) as client:
            response = await client.post(url, headers=self._get_headers(), json={"query": query})
            response.raise_for_status()

        try:
            body = response.json()
        except ValueError:
            # The endpoint usually answers with the plain response text
            body = response.text

        result = self._result_from_body(body, source="stream")
        if result is None:
            logger.warning(f"[GPT_TRAINER] Invalid response format from streaming endpoint: {str(body)[:200]}")
            return MessageResult(text=NO_RESPONSE_TEXT, source="placeholder")
        return result

    async def _send_via_message_endpoint(self, session_uuid: str, query: str) -> Optional[MessageResult]:
        url = f"/api/v1/session/{session_uuid}/message"

        async with self._client(self.timeout) as client:
            response = await client.post(url, headers=self._get_headers(), json={"query": query})
            response.raise_for_status()

        try:
            body = response.json()
        except ValueError:
            logger.warning("[GPT_TRAINER] Non-JSON body from message endpoint")
            return None

        if not isinstance(body, dict):
            return None
        return self._result_from_body(body, source="fallback")

    async def send_message_stream(
        self,
        session_uuid: str,
        query: str,
        on_chunk: ChunkCallback
    ) -> MessageResult:
        """Send a message and consume the answer incrementally.

        ``on_chunk`` is called once per stream record, in order. It may be a
        plain function or a coroutine function.

        Args:
            session_uuid: Session UUID
            query: User query
            on_chunk: Callback for each chunk of the response

        Returns:
            MessageResult with the text of all chunks joined

        Raises:
            StreamError: If the transport fails before a terminal chunk
        """
        url = f"/api/v1/session/{session_uuid}/message/stream"
        decoder = StreamDecoder()
        pieces: List[str] = []
        citations: List[Citation] = []
        done = False

        async def emit(chunk: StreamChunk) -> None:
            pieces.append(chunk.text)
            if chunk.citations:
                citations[:] = chunk.citations
            result = on_chunk(chunk)
            if inspect.isawaitable(result):
                await result

        try:
            async with self._client(self.timeout * STREAM_TIMEOUT_MULTIPLIER) as client:
                async with client.stream(
                    "POST",
                    url,
                    headers=self._get_headers(accept="text/event-stream"),
                    json={"query": query}
                ) as response:
                    response.raise_for_status()
                    async for data in response.aiter_bytes():
                        for chunk in decoder.feed(data):
                            await emit(chunk)
                            if chunk.done:
                                done = True
                                break
                        if done:
                            break
        except httpx.HTTPError as e:
            logger.error(f"[GPT_TRAINER] Stream error: {e}")
            raise StreamError(f"Failed to send message stream: {e}", original_error=e)

        if not done:
            for chunk in decoder.flush():
                await emit(chunk)
                if chunk.done:
                    break
            logger.debug("[GPT_TRAINER] Stream ended without a done record")

        return MessageResult(text="".join(pieces), citations=citations, source="stream")

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _result_from_body(self, body: Any, source: str) -> Optional[MessageResult]:
        """Build a MessageResult from a response body, or None if unusable."""
        if isinstance(body, str):
            return MessageResult(text=body, source=source) if body else None

        if not isinstance(body, dict) or not isinstance(body.get("text"), str):
            return None

        citations = []
        for raw in body.get("citations") or []:
            try:
                citations.append(Citation.model_validate(raw))
            except PydanticValidationError as e:
                logger.warning(f"[GPT_TRAINER] Skipping malformed citation: {e}")

        function_call = None
        raw_call = body.get("function_call")
        if raw_call:
            try:
                function_call = FunctionCallRequest.model_validate(raw_call)
            except (PydanticValidationError, ValueError) as e:
                logger.warning(f"[GPT_TRAINER] Ignoring malformed function call: {e}")

        return MessageResult(
            text=body["text"],
            citations=citations,
            function_call=function_call,
            source=source
        )

    def _log_http_error(self, message: str, error: httpx.HTTPError) -> None:
        if isinstance(error, httpx.HTTPStatusError):
            logger.error(
                f"[GPT_TRAINER] {message}: HTTP {error.response.status_code} "
                f"{error.response.reason_phrase}"
            )
            logger.debug(f"[GPT_TRAINER] Response: {error.response.text[:500]}")
        else:
            logger.error(f"[GPT_TRAINER] {message}: {error!r}")
