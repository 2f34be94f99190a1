"""
Event stream decoding for the GPT-trainer streaming endpoint.

Records are separated by a blank line and carry a JSON payload:

    data: {"text": "Hel", "done": false}

    data: {"text": "lo", "done": true}

Network reads may split a record (or a multi-byte character) anywhere, so the
decoder buffers raw bytes until a full record is available.
"""

import json
import logging
from typing import List, Optional

from pydantic import ValidationError as PydanticValidationError

from gptbridge.models import StreamChunk

logger = logging.getLogger(__name__)

RECORD_SEPARATOR = b"\n\n"
DATA_PREFIX = "data:"


class StreamDecoder:
    """Incremental decoder turning byte reads into StreamChunks."""

    def __init__(self):
        self._buffer = b""

    def feed(self, data: bytes) -> List[StreamChunk]:
        """Add bytes from one network read and return the complete records.

        Args:
            data: Raw bytes as delivered by the transport

        Returns:
            Chunks parsed from every record completed by this read
        """
        self._buffer = (self._buffer + data).replace(b"\r\n", b"\n")
        chunks = []
        while RECORD_SEPARATOR in self._buffer:
            record, self._buffer = self._buffer.split(RECORD_SEPARATOR, 1)
            chunk = self._parse_record(record)
            if chunk is not None:
                chunks.append(chunk)
        return chunks

    def flush(self) -> List[StreamChunk]:
        """Parse whatever is left once the stream has ended."""
        record, self._buffer = self._buffer, b""
        if not record.strip():
            return []
        chunk = self._parse_record(record)
        return [chunk] if chunk is not None else []

    def _parse_record(self, record: bytes) -> Optional[StreamChunk]:
        try:
            text = record.decode("utf-8").strip()
        except UnicodeDecodeError as e:
            logger.error(f"[STREAM] Undecodable record skipped: {e}")
            return None

        # Multi-line records: concatenate every data: line
        payload_lines = [
            line[len(DATA_PREFIX):].lstrip()
            for line in text.split("\n")
            if line.startswith(DATA_PREFIX)
        ]
        if not payload_lines:
            if text:
                logger.debug(f"[STREAM] Ignoring non-data record: {text[:80]}")
            return None

        payload = "\n".join(payload_lines)
        try:
            return StreamChunk.model_validate(json.loads(payload))
        except (json.JSONDecodeError, PydanticValidationError, TypeError) as e:
            logger.error(f"[STREAM] Error parsing stream chunk: {e} (chunk: {payload[:200]})")
            return None
