"""Base channel interface for chat platforms."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from replybot.auto_reply.queue import QueuedRequest, RequestKind, RequestScheduler


@dataclass
class ChatMessage:
    """A message fetched from a channel."""
    id: str
    author_id: str
    author_name: str
    content: str
    metadata: dict[str, Any] = field(default_factory=dict)


class BaseChannel(ABC):
    """
    Abstract chat platform.

    Implementations perform exactly one network call per operation and
    signal failures with the replybot error taxonomy (RateLimited,
    TransientNetworkError, PermanentError). They never retry on their own;
    the request scheduler does that.
    """

    name: str = "base"

    @abstractmethod
    async def fetch_messages(self, channel_id: str, limit: int = 50) -> list[ChatMessage]:
        """Most recent messages, newest first."""
        pass

    @abstractmethod
    async def fetch_identity(self) -> str:
        """Id of the account the bot runs as."""
        pass

    @abstractmethod
    async def send_typing(self, channel_id: str) -> None:
        pass

    @abstractmethod
    async def send_reply(self, channel_id: str, message_id: str, content: str) -> bool:
        """Reply to a message; True when the platform accepted it."""
        pass

    async def close(self) -> None:
        """Release network resources."""
        return None

    async def execute(self, request: QueuedRequest) -> Any:
        """Run a queued request against this platform."""
        payload = request.payload
        if request.kind == RequestKind.FETCH_MESSAGES:
            return await self.fetch_messages(payload["channel_id"], payload.get("limit", 50))
        if request.kind == RequestKind.FETCH_IDENTITY:
            return await self.fetch_identity()
        if request.kind == RequestKind.TYPING:
            return await self.send_typing(payload["channel_id"])
        if request.kind == RequestKind.SEND_REPLY:
            return await self.send_reply(
                payload["channel_id"],
                payload["message_id"],
                payload["content"],
            )
        raise ValueError(f"Unsupported request kind: {request.kind}")


class ScheduledChannel:
    """
    Funnels every platform operation through the request scheduler.

    The methods mirror BaseChannel but return only after the scheduler has
    dispatched the request, so callers observe the shared rate budget.
    """

    def __init__(self, scheduler: RequestScheduler):
        self.scheduler = scheduler

    async def fetch_messages(self, channel_id: str, limit: int = 50) -> list[ChatMessage]:
        return await self.scheduler.submit(
            RequestKind.FETCH_MESSAGES,
            {"channel_id": channel_id, "limit": limit},
        )

    async def fetch_identity(self) -> str:
        return await self.scheduler.submit(RequestKind.FETCH_IDENTITY)

    async def send_typing(self, channel_id: str) -> None:
        await self.scheduler.submit(RequestKind.TYPING, {"channel_id": channel_id})

    async def send_reply(self, channel_id: str, message_id: str, content: str) -> bool:
        return await self.scheduler.submit(
            RequestKind.SEND_REPLY,
            {"channel_id": channel_id, "message_id": message_id, "content": content},
        )
