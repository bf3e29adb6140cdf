"""
Outbound request scheduler for replybot.

Provides:
- Priority queue (higher first, FIFO within a priority)
- Single-lane dispatch with a minimum interval between dispatch starts
- Transparent retries via the retry wrapper
"""

import asyncio
import heapq
import itertools
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable

from loguru import logger

from replybot.auto_reply.errors import SchedulerClosed
from replybot.auto_reply.retry import RetryConfig, RetryPolicy, Sleeper


class RequestKind(str, Enum):
    """Operations the scheduler can carry."""
    FETCH_MESSAGES = "fetch_messages"
    FETCH_IDENTITY = "fetch_identity"
    TYPING = "typing"
    SEND_REPLY = "send_reply"


DEFAULT_PRIORITIES: dict[RequestKind, int] = {
    RequestKind.SEND_REPLY: 2,
    RequestKind.TYPING: 1,
    RequestKind.FETCH_MESSAGES: 0,
    RequestKind.FETCH_IDENTITY: 0,
}


@dataclass
class SchedulerConfig:
    """Configuration for the request scheduler."""
    min_interval_seconds: float = 1.0  # Between consecutive dispatch starts
    retry: RetryConfig = field(default_factory=RetryConfig)


@dataclass(frozen=True)
class QueuedRequest:
    """A tagged operation waiting for dispatch."""
    kind: RequestKind
    payload: dict[str, Any] = field(default_factory=dict)
    priority: int = 0  # Higher = more important
    sequence: int = 0
    future: asyncio.Future | None = field(default=None, compare=False, repr=False)

    def __lt__(self, other: "QueuedRequest") -> bool:
        """Compare by priority (higher first), then sequence (older first)."""
        if self.priority != other.priority:
            return self.priority > other.priority
        return self.sequence < other.sequence


RequestHandler = Callable[[QueuedRequest], Awaitable[Any]]


class RequestScheduler:
    """
    Serializes every outbound call through one lane.

    Features:
    - At most one request executes at a time
    - Dispatch starts are spaced by at least ``min_interval_seconds``
    - Each request's failure is isolated to its own future
    """

    def __init__(
        self,
        handler: RequestHandler,
        config: SchedulerConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Sleeper | None = None,
    ):
        self.handler = handler
        self.config = config or SchedulerConfig()
        self._clock = clock
        self._sleep = sleep or asyncio.sleep
        self.retry = RetryPolicy(self.config.retry, sleep=self._sleep)

        self._queue: list[QueuedRequest] = []
        self._sequence = itertools.count()
        self._draining = False
        self._drain_task: asyncio.Task | None = None
        self._closed = False
        self.last_dispatch: float | None = None

        # Stats
        self._total_submitted = 0
        self._total_dispatched = 0
        self._total_failed = 0

    def submit(
        self,
        kind: RequestKind,
        payload: dict[str, Any] | None = None,
        priority: int | None = None,
    ) -> asyncio.Future:
        """
        Enqueue a request without blocking.

        Args:
            kind: Operation to perform.
            payload: Operation arguments.
            priority: Overrides the default priority for ``kind``.

        Returns:
            Future resolved with the handler's result, or rejected with its
            terminal error.
        """
        loop = asyncio.get_running_loop()
        future = loop.create_future()
        if self._closed:
            future.set_exception(SchedulerClosed("Scheduler is closed"))
            return future

        request = QueuedRequest(
            kind=kind,
            payload=dict(payload or {}),
            priority=DEFAULT_PRIORITIES.get(kind, 0) if priority is None else priority,
            sequence=next(self._sequence),
            future=future,
        )
        heapq.heappush(self._queue, request)
        self._total_submitted += 1

        if not self._draining:
            self._draining = True
            self._drain_task = loop.create_task(self._drain())
        return future

    def pending(self) -> list[QueuedRequest]:
        """Queued requests in dispatch order."""
        return sorted(self._queue)

    async def _drain(self) -> None:
        """Dispatch queued requests until the queue is empty."""
        try:
            while self._queue:
                request = heapq.heappop(self._queue)
                if request.future is not None and request.future.done():
                    continue

                await self._wait_for_interval()
                if self._closed:
                    if request.future is not None and not request.future.done():
                        request.future.set_exception(SchedulerClosed("Scheduler closed before dispatch"))
                    break

                self.last_dispatch = self._clock()
                self._total_dispatched += 1
                await self._dispatch(request)
        finally:
            self._draining = False

    async def _wait_for_interval(self) -> None:
        if self.last_dispatch is None:
            return
        elapsed = self._clock() - self.last_dispatch
        remaining = self.config.min_interval_seconds - elapsed
        if remaining > 0:
            await self._sleep(remaining)

    async def _dispatch(self, request: QueuedRequest) -> None:
        future = request.future
        try:
            result = await self.retry.run(
                lambda: self.handler(request),
                label=request.kind.value,
            )
        except asyncio.CancelledError:
            if future is not None and not future.done():
                future.cancel()
            raise
        except Exception as e:
            self._total_failed += 1
            if future is not None and not future.done():
                future.set_exception(e)
            return

        if future is not None and not future.done():
            future.set_result(result)

    async def close(self) -> None:
        """Reject queued requests and let the in-flight one finish."""
        self._closed = True
        while self._queue:
            request = heapq.heappop(self._queue)
            if request.future is not None and not request.future.done():
                request.future.set_exception(SchedulerClosed("Scheduler closed before dispatch"))

        if self._drain_task is not None and not self._drain_task.done():
            await asyncio.gather(self._drain_task, return_exceptions=True)
        logger.debug("Request scheduler closed")

    @property
    def size(self) -> int:
        """Current queue size."""
        return len(self._queue)

    @property
    def is_draining(self) -> bool:
        return self._draining

    def get_stats(self) -> dict[str, Any]:
        """Get scheduler statistics."""
        return {
            "queue_size": self.size,
            "draining": self._draining,
            "total_submitted": self._total_submitted,
            "total_dispatched": self._total_dispatched,
            "total_failed": self._total_failed,
        }
