"""
Tests for the outbound request scheduler.

Tests:
- Minimum spacing between dispatch starts
- Priority ordering and FIFO within a priority
- Single-lane dispatch
- Failure isolation, cancellation and shutdown
"""

import asyncio

import pytest

from replybot.auto_reply.errors import PermanentError, RateLimited, SchedulerClosed
from replybot.auto_reply.queue import (
    DEFAULT_PRIORITIES,
    QueuedRequest,
    RequestKind,
    RequestScheduler,
    SchedulerConfig,
)

from conftest import FakeClock


class Recorder:
    """Request handler that logs (start time, kind, payload) per invocation."""

    def __init__(self, clock: FakeClock, work_seconds: float = 0.0, failures: dict | None = None):
        self.clock = clock
        self.work_seconds = work_seconds
        self.failures = failures or {}
        self.starts: list[tuple[float, RequestKind, dict]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def __call__(self, request: QueuedRequest):
        self.starts.append((self.clock(), request.kind, request.payload))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.work_seconds:
                await self.clock.sleep(self.work_seconds)
            tag = request.payload.get("tag")
            if tag in self.failures:
                raise self.failures[tag]
            return tag
        finally:
            self.in_flight -= 1


def make_scheduler(handler, clock: FakeClock, interval: float = 1.0) -> RequestScheduler:
    return RequestScheduler(
        handler,
        SchedulerConfig(min_interval_seconds=interval),
        clock=clock,
        sleep=clock.sleep,
    )


class TestQueuedRequest:
    """Tests for request ordering."""

    def test_higher_priority_sorts_first(self):
        low = QueuedRequest(RequestKind.FETCH_MESSAGES, priority=0, sequence=0)
        high = QueuedRequest(RequestKind.SEND_REPLY, priority=2, sequence=1)
        assert high < low
        assert sorted([low, high]) == [high, low]

    def test_sequence_breaks_ties(self):
        first = QueuedRequest(RequestKind.TYPING, priority=1, sequence=0)
        second = QueuedRequest(RequestKind.TYPING, priority=1, sequence=1)
        assert first < second

    def test_default_priorities(self):
        assert DEFAULT_PRIORITIES[RequestKind.SEND_REPLY] == 2
        assert DEFAULT_PRIORITIES[RequestKind.TYPING] == 1
        assert DEFAULT_PRIORITIES[RequestKind.FETCH_MESSAGES] == 0
        assert DEFAULT_PRIORITIES[RequestKind.FETCH_IDENTITY] == 0


class TestSpacing:
    """Tests for the minimum dispatch interval."""

    @pytest.mark.asyncio
    async def test_burst_is_spaced(self, clock):
        handler = Recorder(clock)
        scheduler = make_scheduler(handler, clock)

        futures = [scheduler.submit(RequestKind.FETCH_MESSAGES, {"tag": i}) for i in range(5)]
        results = await asyncio.gather(*futures)

        assert results == [0, 1, 2, 3, 4]
        starts = [start for start, _, _ in handler.starts]
        assert all(b - a >= 1.0 for a, b in zip(starts, starts[1:]))

    @pytest.mark.asyncio
    async def test_long_request_needs_no_extra_wait(self, clock):
        handler = Recorder(clock, work_seconds=3.0)
        scheduler = make_scheduler(handler, clock)

        await asyncio.gather(
            scheduler.submit(RequestKind.FETCH_MESSAGES, {"tag": "a"}),
            scheduler.submit(RequestKind.FETCH_MESSAGES, {"tag": "b"}),
        )

        starts = [start for start, _, _ in handler.starts]
        assert starts == [0.0, 3.0]

    @pytest.mark.asyncio
    async def test_spacing_holds_across_idle_restarts(self, clock):
        handler = Recorder(clock)
        scheduler = make_scheduler(handler, clock, interval=2.0)

        await scheduler.submit(RequestKind.FETCH_IDENTITY, {"tag": "a"})
        clock.now += 0.5
        await scheduler.submit(RequestKind.FETCH_IDENTITY, {"tag": "b"})

        first, second = (start for start, _, _ in handler.starts)
        assert second - first >= 2.0

    @pytest.mark.asyncio
    async def test_one_request_at_a_time(self, clock):
        handler = Recorder(clock, work_seconds=0.5)
        scheduler = make_scheduler(handler, clock, interval=0.0)

        await asyncio.gather(*[
            scheduler.submit(RequestKind.TYPING, {"tag": i}) for i in range(4)
        ])

        assert handler.max_in_flight == 1


class TestOrdering:
    """Tests for priority dispatch."""

    @pytest.mark.asyncio
    async def test_send_overtakes_queued_fetch(self, clock):
        handler = Recorder(clock)
        scheduler = make_scheduler(handler, clock)

        fetch = scheduler.submit(RequestKind.FETCH_MESSAGES, {"tag": "fetch"})
        send = scheduler.submit(RequestKind.SEND_REPLY, {"tag": "send"})
        await asyncio.gather(fetch, send)

        assert [kind for _, kind, _ in handler.starts] == [
            RequestKind.SEND_REPLY,
            RequestKind.FETCH_MESSAGES,
        ]

    @pytest.mark.asyncio
    async def test_sends_then_typing(self, clock):
        """Three sends and one typing submitted together: sends FIFO, then typing."""
        handler = Recorder(clock)
        scheduler = make_scheduler(handler, clock)

        futures = [
            scheduler.submit(RequestKind.TYPING, {"tag": "typing"}),
            scheduler.submit(RequestKind.SEND_REPLY, {"tag": "s1"}),
            scheduler.submit(RequestKind.SEND_REPLY, {"tag": "s2"}),
            scheduler.submit(RequestKind.SEND_REPLY, {"tag": "s3"}),
        ]
        await asyncio.gather(*futures)

        assert [payload["tag"] for _, _, payload in handler.starts] == ["s1", "s2", "s3", "typing"]
        starts = [start for start, _, _ in handler.starts]
        assert all(b - a >= 1.0 for a, b in zip(starts, starts[1:]))

    @pytest.mark.asyncio
    async def test_explicit_priority_override(self, clock):
        handler = Recorder(clock)
        scheduler = make_scheduler(handler, clock)

        await asyncio.gather(
            scheduler.submit(RequestKind.SEND_REPLY, {"tag": "send"}),
            scheduler.submit(RequestKind.FETCH_MESSAGES, {"tag": "urgent"}, priority=5),
        )

        assert [payload["tag"] for _, _, payload in handler.starts] == ["urgent", "send"]

    @pytest.mark.asyncio
    async def test_pending_reports_dispatch_order(self, clock):
        handler = Recorder(clock)
        scheduler = make_scheduler(handler, clock)

        scheduler.submit(RequestKind.FETCH_MESSAGES, {"tag": "fetch"})
        scheduler.submit(RequestKind.TYPING, {"tag": "typing"})
        scheduler.submit(RequestKind.SEND_REPLY, {"tag": "send"})

        assert [r.kind for r in scheduler.pending()] == [
            RequestKind.SEND_REPLY,
            RequestKind.TYPING,
            RequestKind.FETCH_MESSAGES,
        ]
        await scheduler.close()


class TestFailures:
    """Tests for per-request failure handling."""

    @pytest.mark.asyncio
    async def test_failure_is_isolated(self, clock):
        handler = Recorder(clock, failures={"bad": PermanentError("forbidden", status_code=403)})
        scheduler = make_scheduler(handler, clock)

        bad = scheduler.submit(RequestKind.SEND_REPLY, {"tag": "bad"})
        good = scheduler.submit(RequestKind.SEND_REPLY, {"tag": "good"})

        with pytest.raises(PermanentError):
            await bad
        assert await good == "good"

        stats = scheduler.get_stats()
        assert stats["total_failed"] == 1
        assert stats["total_dispatched"] == 2

    @pytest.mark.asyncio
    async def test_rate_limit_is_retried_inside_the_lane(self, clock):
        calls = {"n": 0}

        async def handler(request):
            calls["n"] += 1
            if calls["n"] == 1:
                raise RateLimited("slow down", retry_after=2.0)
            return "sent"

        scheduler = make_scheduler(handler, clock)
        assert await scheduler.submit(RequestKind.SEND_REPLY, {"tag": "x"}) == "sent"
        assert calls["n"] == 2
        assert clock.now >= 2.25

    @pytest.mark.asyncio
    async def test_cancelled_request_is_skipped(self, clock):
        handler = Recorder(clock)
        scheduler = make_scheduler(handler, clock)

        first = scheduler.submit(RequestKind.FETCH_MESSAGES, {"tag": "a"})
        dropped = scheduler.submit(RequestKind.FETCH_MESSAGES, {"tag": "b"})
        last = scheduler.submit(RequestKind.FETCH_MESSAGES, {"tag": "c"})
        dropped.cancel()

        await asyncio.gather(first, last)
        assert [payload["tag"] for _, _, payload in handler.starts] == ["a", "c"]


class TestShutdown:
    """Tests for closing the scheduler."""

    @pytest.mark.asyncio
    async def test_close_rejects_queued_requests(self, clock):
        handler = Recorder(clock)
        scheduler = make_scheduler(handler, clock)

        first = scheduler.submit(RequestKind.FETCH_MESSAGES, {"tag": "a"})
        second = scheduler.submit(RequestKind.FETCH_MESSAGES, {"tag": "b"})
        await scheduler.close()

        for future in (first, second):
            with pytest.raises(SchedulerClosed):
                await future
        assert handler.starts == []
        assert scheduler.size == 0

    @pytest.mark.asyncio
    async def test_submit_after_close_fails_fast(self, clock):
        scheduler = make_scheduler(Recorder(clock), clock)
        await scheduler.close()

        with pytest.raises(SchedulerClosed):
            await scheduler.submit(RequestKind.TYPING, {"tag": "late"})

    @pytest.mark.asyncio
    async def test_drain_stops_when_queue_empties(self, clock):
        scheduler = make_scheduler(Recorder(clock), clock)

        await scheduler.submit(RequestKind.TYPING, {"tag": "only"})
        await asyncio.sleep(0)

        assert not scheduler.is_draining
        assert scheduler.get_stats()["total_submitted"] == 1

    @pytest.mark.asyncio
    async def test_close_during_interval_wait_rejects_request(self, clock):
        """A request popped before close() but still waiting is never dispatched."""
        handler = Recorder(clock)
        gate = asyncio.Event()
        waiting = asyncio.Event()

        async def gated_sleep(seconds):
            waiting.set()
            await gate.wait()
            await clock.sleep(seconds)

        scheduler = RequestScheduler(
            handler,
            SchedulerConfig(min_interval_seconds=1.0),
            clock=clock,
            sleep=gated_sleep,
        )
        assert await scheduler.submit(RequestKind.FETCH_MESSAGES, {"tag": "a"}) == "a"

        second = scheduler.submit(RequestKind.FETCH_MESSAGES, {"tag": "b"})
        await waiting.wait()
        closing = asyncio.ensure_future(scheduler.close())
        await asyncio.sleep(0)
        gate.set()
        await closing

        with pytest.raises(SchedulerClosed):
            await second
        assert [payload["tag"] for _, _, payload in handler.starts] == ["a"]
        assert not scheduler.is_draining
