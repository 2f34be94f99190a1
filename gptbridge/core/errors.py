"""
Error types for gptbridge.

Transport and validation errors are recovered close to where they happen and
turned into normal-shaped results. Only session-creation failures reach the
orchestrator, which turns them into a user-facing apology.
"""

from typing import Any, Optional


class BridgeError(Exception):
    """Base exception for all gptbridge errors."""

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        is_operational: bool = True
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.is_operational = is_operational


class UpstreamError(BridgeError):
    """Raised when an external API returns an error or an unusable body."""

    def __init__(
        self,
        message: str,
        source: str,
        original_error: Optional[Any] = None,
        code: str = "API_ERROR",
        status_code: int = 500
    ):
        super().__init__(message, code=code, status_code=status_code)
        self.source = source
        self.original_error = original_error


class GPTTrainerAPIError(UpstreamError):
    """GPT-trainer API error."""

    def __init__(self, message: str, original_error: Optional[Any] = None, status_code: int = 500):
        super().__init__(
            message,
            source="GPT-trainer API",
            original_error=original_error,
            code="GPT_TRAINER_API_ERROR",
            status_code=status_code
        )


class AutomationError(UpstreamError):
    """Automation (MCP) server error."""

    def __init__(self, message: str, original_error: Optional[Any] = None, status_code: int = 500):
        super().__init__(
            message,
            source="automation server",
            original_error=original_error,
            code="MCP_ERROR",
            status_code=status_code
        )


class UpstreamUnavailable(BridgeError):
    """Raised when a backend session could not be created."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(message, code="UPSTREAM_UNAVAILABLE", status_code=503)
        self.original_error = original_error


class TransportError(BridgeError):
    """Network-level failure talking to a backend."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(message, code="TRANSPORT_ERROR", status_code=502)
        self.original_error = original_error


class StreamError(TransportError):
    """The event stream failed before a terminal chunk was seen."""
    pass


class OperationTimedOut(BridgeError):
    """An automation operation did not finish within the wait bound."""

    def __init__(self, operation_id: str, waited: float):
        super().__init__(
            f"Operation {operation_id} did not complete within {waited:.0f}s",
            code="TIMED_OUT",
            status_code=504
        )
        self.operation_id = operation_id
        self.waited = waited


class ValidationError(BridgeError):
    """Malformed function-call arguments."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, code="VALIDATION_ERROR", status_code=400)
        self.field = field


class ConfigurationError(BridgeError):
    """Missing or inconsistent configuration."""

    def __init__(self, message: str):
        super().__init__(message, code="CONFIGURATION_ERROR", status_code=500)


def format_error_for_user(error: Exception) -> str:
    """Turn an exception into a message that is safe to show in chat.

    Args:
        error: The exception to describe

    Returns:
        User-friendly error message
    """
    if isinstance(error, UpstreamUnavailable):
        return "I couldn't start a conversation with the assistant right now. Please try again in a moment."
    if isinstance(error, UpstreamError):
        return f"There was an error communicating with the {error.source}. Please try again later."
    if isinstance(error, ValidationError):
        return f"Invalid input: {error.message}"
    if isinstance(error, ConfigurationError):
        return "There is a configuration issue with the application. Please contact support."
    return "An unexpected error occurred. Please try again later."
