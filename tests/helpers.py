"""Test doubles shared by the test modules."""

import json
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import httpx

from gptbridge.interfaces.base import ChatPlatform, MessageDeliveryError


class FakeClock:
    """Manually advanced datetime clock for the session store."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2024, 1, 1, 12, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float):
        self.now += timedelta(seconds=seconds)


class FakeMonotonic:
    """Monotonic clock that only moves when FakeSleep sleeps."""

    def __init__(self):
        self.value = 0.0

    def __call__(self) -> float:
        return self.value


class FakeSleep:
    """Records sleep durations and advances a FakeMonotonic instead of waiting."""

    def __init__(self, clock: Optional[FakeMonotonic] = None):
        self.clock = clock
        self.calls: List[float] = []

    async def __call__(self, seconds: float):
        self.calls.append(seconds)
        if self.clock is not None:
            self.clock.value += seconds

    @property
    def total(self) -> float:
        return sum(self.calls)


class RecordingPlatform(ChatPlatform):
    """In-memory chat platform recording every post and update."""

    def __init__(self, fail_send: bool = False, fail_update: bool = False):
        super().__init__(platform_id="test")
        self.sent: List[Dict[str, Any]] = []
        self.updated: List[Dict[str, Any]] = []
        self.fail_send = fail_send
        self.fail_update = fail_update

    async def send_message(self, channel, text, thread_id=None):
        if self.fail_send:
            raise MessageDeliveryError("send failed")
        message_id = f"m{len(self.sent) + 1}"
        self.sent.append({"channel": channel, "text": text, "thread_id": thread_id, "id": message_id})
        return message_id

    async def update_message(self, channel, message_id, text):
        if self.fail_update:
            raise MessageDeliveryError("update failed")
        self.updated.append({"channel": channel, "id": message_id, "text": text})

    async def open_direct_channel(self, user_id):
        return f"D-{user_id}"

    async def start(self):
        self._is_running = True

    async def stop(self):
        self._is_running = False

    def is_available(self):
        return True


def json_response(payload: Any, status_code: int = 200) -> httpx.Response:
    return httpx.Response(
        status_code,
        content=json.dumps(payload).encode(),
        headers={"Content-Type": "application/json"}
    )
