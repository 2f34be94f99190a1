"""
Automation (MCP) Server Client

Async client for the automation server that executes actions requested by the
AI. The server answers either synchronously (success/error) or with a pending
operation id that has to be polled until it reaches a terminal state.

Usage:
    client = AutomationClient(base_url="http://localhost:3001")
    response = await client.call_with_retry(AutomationRequest(action="createTicket", parameters={...}))
    if response.status == "pending":
        response = await client.wait_for_operation(response.operation_id)
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Dict, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from gptbridge.core.constants import (
    DEFAULT_MAX_WAIT,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_RETRY_COUNT,
    DEFAULT_RETRY_DELAY,
)
from gptbridge.core.errors import AutomationError, TransportError
from gptbridge.models import AutomationErrorDetail, AutomationRequest, AutomationResponse

logger = logging.getLogger(__name__)


def _is_retryable(error: httpx.HTTPError) -> bool:
    """Connection problems, timeouts and 5xx answers are worth retrying."""
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code >= 500
    return isinstance(error, httpx.TransportError)


class AutomationClient:
    """Async HTTP client for the automation server."""

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 30.0,
        retry_count: int = DEFAULT_RETRY_COUNT,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        max_wait: float = DEFAULT_MAX_WAIT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic
    ):
        """Initialize the client.

        Args:
            base_url: Automation server URL
            api_key: Bearer token (optional)
            timeout: Per-request timeout in seconds
            retry_count: Maximum attempts for a call on transport failure
            retry_delay: Seconds between attempts
            poll_interval: Seconds between operation status polls
            max_wait: Upper bound on the total time spent polling one operation
            transport: Optional httpx transport (used by tests)
            sleep: Coroutine used to wait between attempts and polls
            clock: Monotonic clock used to measure polling time
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.retry_count = max(1, retry_count)
        self.retry_delay = retry_delay
        self.poll_interval = poll_interval
        self.max_wait = max_wait
        self._transport = transport
        self._sleep = sleep
        self._clock = clock

        logger.info(f"[MCP] Initialized client: {self.base_url}")

    def _get_headers(self) -> Dict[str, str]:
        """Get request headers with authentication."""
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self._transport)

    @staticmethod
    def _parse_response(response: httpx.Response) -> AutomationResponse:
        try:
            return AutomationResponse.model_validate(response.json())
        except (ValueError, PydanticValidationError) as e:
            raise AutomationError(f"Malformed response from automation server: {e}", original_error=e)

    async def call(self, request: AutomationRequest) -> AutomationResponse:
        """Issue a single call to the automation server.

        Args:
            request: Action and parameters

        Returns:
            AutomationResponse (success, error or pending)

        Raises:
            httpx.HTTPError: On transport failure or non-2xx status
            AutomationError: If the body is not a valid response
        """
        logger.info(f"[MCP] Calling action: {request.action}")
        async with self._client() as client:
            response = await client.post("/call", headers=self._get_headers(), json=request.model_dump())
            response.raise_for_status()
        return self._parse_response(response)

    async def call_with_retry(self, request: AutomationRequest) -> AutomationResponse:
        """Call the automation server, retrying transport-level failures.

        Error responses from the server are business results and are returned
        as-is, without retrying.

        Raises:
            TransportError: If every attempt failed at the transport level
            AutomationError: On a non-retryable HTTP status or a malformed body
        """
        last_error: Optional[Exception] = None

        for attempt in range(1, self.retry_count + 1):
            try:
                return await self.call(request)
            except httpx.HTTPError as e:
                if not _is_retryable(e):
                    status = e.response.status_code if isinstance(e, httpx.HTTPStatusError) else 500
                    raise AutomationError(f"Automation call failed: {e}", original_error=e, status_code=status)
                last_error = e
                logger.warning(
                    f"[MCP] Attempt {attempt}/{self.retry_count} for '{request.action}' failed: {e!r}"
                )
                if attempt < self.retry_count:
                    await self._sleep(self.retry_delay)

        raise TransportError(
            f"Automation call '{request.action}' failed after {self.retry_count} attempts: {last_error}",
            original_error=last_error
        )

    async def get_operation(self, operation_id: str, timeout: Optional[float] = None) -> AutomationResponse:
        """Fetch the current state of an asynchronous operation.

        Args:
            operation_id: Id returned with the pending response
            timeout: Request timeout in seconds, defaults to the client timeout
        """
        async with self._client() as client:
            response = await client.get(
                f"/operation/{operation_id}",
                headers=self._get_headers(),
                timeout=self.timeout if timeout is None else timeout
            )
            response.raise_for_status()
        return self._parse_response(response)

    def _timed_out(self, operation_id: str, elapsed: float) -> AutomationResponse:
        logger.warning(f"[MCP] Operation {operation_id} timed out after {elapsed:.1f}s")
        return AutomationResponse(
            status="timed_out",
            operation_id=operation_id,
            error=AutomationErrorDetail(
                message=f"Operation {operation_id} did not complete within {self.max_wait:.0f}s",
                code="TIMED_OUT"
            )
        )

    async def wait_for_operation(self, operation_id: str) -> AutomationResponse:
        """Poll an operation until it succeeds, fails or the wait bound is hit.

        The first poll happens immediately; later polls are ``poll_interval``
        apart. Neither a sleep nor a poll request may run past ``max_wait``:
        each request's timeout is capped by the time left. Transient errors
        (transport failures, 5xx) are logged and polled again on the next
        tick. A 4xx answer is permanent and ends the wait with an ``error``
        response.

        Args:
            operation_id: Id returned with the pending response

        Returns:
            The terminal AutomationResponse, or one with status ``timed_out``
        """
        started = self._clock()
        polls = 0

        while True:
            remaining = self.max_wait - (self._clock() - started)
            if polls and remaining <= 0:
                return self._timed_out(operation_id, self._clock() - started)

            polls += 1
            timeout = min(self.timeout, remaining) if remaining > 0 else self.timeout
            try:
                response = await self.get_operation(operation_id, timeout=timeout)
                if response.is_terminal:
                    logger.info(f"[MCP] Operation {operation_id} finished with '{response.status}' after {polls} poll(s)")
                    return response
            except httpx.HTTPError as e:
                if not _is_retryable(e):
                    logger.error(f"[MCP] Operation {operation_id} cannot be polled: {e}")
                    return AutomationResponse(
                        status="error",
                        operation_id=operation_id,
                        error=AutomationErrorDetail(
                            message=f"Polling operation {operation_id} failed: {e}",
                            code="MCP_ERROR"
                        )
                    )
                logger.warning(f"[MCP] Poll {polls} for operation {operation_id} failed: {e!r}")
            except AutomationError as e:
                logger.warning(f"[MCP] Poll {polls} for operation {operation_id} failed: {e}")

            remaining = self.max_wait - (self._clock() - started)
            if remaining <= 0:
                return self._timed_out(operation_id, self._clock() - started)

            await self._sleep(min(self.poll_interval, remaining))
