"""
Pytest configuration and shared fixtures for replybot tests.
"""

import asyncio
import random
import sys
from pathlib import Path

import pytest

# Add the project root to the path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from replybot.auto_reply.selector import CandidateSelector
from replybot.channels.base import BaseChannel, ChatMessage
from replybot.memory.store import ChannelMemory
from replybot.providers.base import TextGenerator


class FakeClock:
    """Monotonic clock whose sleep advances time instantly."""

    def __init__(self, start: float = 0.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += max(0.0, seconds)
        await asyncio.sleep(0)


class FakeChannel(BaseChannel):
    """In-memory platform that records every call."""

    name = "fake"

    def __init__(self, messages: list[ChatMessage] | None = None, self_id: str = "999"):
        self.messages = list(messages or [])
        self.self_id = self_id
        self.calls: list[str] = []
        self.sent: list[tuple[str, str, str]] = []
        self.send_error: Exception | None = None
        self.send_result = True
        self.identity_error: Exception | None = None

    async def fetch_messages(self, channel_id: str, limit: int = 50) -> list[ChatMessage]:
        self.calls.append("fetch_messages")
        return list(self.messages)[:limit]

    async def fetch_identity(self) -> str:
        self.calls.append("fetch_identity")
        if self.identity_error is not None:
            raise self.identity_error
        return self.self_id

    async def send_typing(self, channel_id: str) -> None:
        self.calls.append("typing")

    async def send_reply(self, channel_id: str, message_id: str, content: str) -> bool:
        self.calls.append("send_reply")
        if self.send_error is not None:
            raise self.send_error
        self.sent.append((channel_id, message_id, content))
        return self.send_result


class FakeGenerator(TextGenerator):
    """Returns queued candidate batches; queued exceptions are raised."""

    def __init__(self, responses: list | None = None):
        self.responses = list(responses or [])
        self.prompts: list[str] = []

    async def generate(self, prompt: str, context: dict | None = None) -> list[str]:
        self.prompts.append(prompt)
        if not self.responses:
            return []
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def get_usage_stats(self) -> dict:
        return {"calls": len(self.prompts)}


def make_message(message_id: str, content: str, author_id: str = "1", author_name: str = "alice") -> ChatMessage:
    return ChatMessage(id=message_id, author_id=author_id, author_name=author_name, content=content)


@pytest.fixture
def clock():
    """Fake clock shared by scheduler and loop."""
    return FakeClock()


@pytest.fixture
def memory():
    return ChannelMemory(max_turns=50)


@pytest.fixture
def selector(memory):
    """Selector that always picks the first stock denial."""
    return CandidateSelector(memory, chooser=lambda options: options[0])


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def config_dir(tmp_path):
    """Create a temporary config directory."""
    config = tmp_path / "config"
    config.mkdir()
    return config
