"""
gptbridge Test Configuration

Shared fixtures and configuration for pytest.
"""

import sys
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from gptbridge.core.config import Config  # noqa: E402
from tests.helpers import FakeClock, FakeMonotonic, FakeSleep, RecordingPlatform  # noqa: E402


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def monotonic() -> FakeMonotonic:
    return FakeMonotonic()


@pytest.fixture
def fake_sleep(monotonic) -> FakeSleep:
    return FakeSleep(monotonic)


@pytest.fixture
def platform() -> RecordingPlatform:
    return RecordingPlatform()


@pytest.fixture
def gpt_client() -> AsyncMock:
    """GPT-trainer client double handing out S1, S2, ... as session handles."""
    client = AsyncMock()
    counter = {"n": 0}

    async def create_session():
        counter["n"] += 1
        return f"S{counter['n']}"

    client.create_session.side_effect = create_session
    return client


@pytest.fixture
def config() -> Config:
    """Configuration with credentials and fast automation timings."""
    return Config(
        gpt_trainer={"api_key": "test-key", "chatbot_uuid": "bot-1", "base_url": "https://gpt.test"},
        automation={"base_url": "https://mcp.test", "retry_delay": 0, "poll_interval": 0.01, "max_wait": 1},
    )
