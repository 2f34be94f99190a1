"""Pydantic schemas and session records."""
import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Citation(BaseModel):
    """Knowledge-base source attached to an answer."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    text: str = ""
    source_id: str = Field("", alias="document_id")
    source_name: str = Field("", alias="document_name")
    source_url: Optional[str] = Field(None, alias="document_url")


class FunctionCallRequest(BaseModel):
    """Action request embedded in an AI response."""
    name: str
    arguments: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("arguments", mode="before")
    @classmethod
    def _decode_arguments(cls, value):
        # Some backends send arguments as a JSON-encoded string
        if value is None:
            return {}
        if isinstance(value, str):
            return json.loads(value) if value.strip() else {}
        return value


class MessageResult(BaseModel):
    """One answer from GPT-trainer.

    ``source`` records which path produced the text: the streaming-shaped
    endpoint, the non-streaming fallback, or a fixed placeholder.
    """
    model_config = ConfigDict(frozen=True)

    text: str
    citations: List[Citation] = Field(default_factory=list)
    function_call: Optional[FunctionCallRequest] = None
    source: Literal["stream", "fallback", "placeholder"] = "stream"

    @property
    def degraded(self) -> bool:
        return self.source == "placeholder"


class StreamChunk(BaseModel):
    """A single `data:` record from the event stream."""
    text: str = ""
    done: bool = False
    citations: Optional[List[Citation]] = None


class AutomationRequest(BaseModel):
    """Request for the automation server."""
    action: str
    parameters: Dict[str, Any] = Field(default_factory=dict)


class AutomationErrorDetail(BaseModel):
    message: str = "Unknown error"
    code: Optional[str] = None


class AutomationResponse(BaseModel):
    """Response from the automation server.

    ``timed_out`` is never sent by the server; it is produced locally when
    polling gives up on a pending operation.
    """
    model_config = ConfigDict(populate_by_name=True)

    status: Literal["success", "error", "pending", "timed_out"]
    data: Any = None
    error: Optional[AutomationErrorDetail] = None
    operation_id: Optional[str] = Field(None, alias="operationId")

    @property
    def is_terminal(self) -> bool:
        return self.status != "pending"


@dataclass
class Session:
    """Binding between a chat user and a GPT-trainer session."""
    user_id: str
    handle: str
    created_at: datetime
    last_active_at: datetime
