"""
Reply loop for replybot.

Polls one channel and answers at most one message per cycle:
- Human-like pacing (poll, read, typing and send delays)
- Skips own, handled, stale and banned messages
- Candidate generation, selection and a scheduled send
- Memory and ledger updates after a confirmed send
"""

import asyncio
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from loguru import logger

from replybot.auto_reply.errors import StartupError
from replybot.auto_reply.selector import CandidateSelector
from replybot.memory.store import ChannelMemory, ReplyLedger
from replybot.providers.base import TextGenerator
from replybot.providers.prompt import PromptBuilder

if TYPE_CHECKING:
    from replybot.channels.base import ChatMessage, ScheduledChannel


class LoopState(str, Enum):
    """Where the reply loop currently is."""
    IDLE_WAIT = "idle_wait"
    FETCH = "fetch"
    ITERATE_MESSAGES = "iterate_messages"
    READ_DELAY = "read_delay"
    GENERATE = "generate"
    TYPING_DELAY = "typing_delay"
    SEND = "send"
    STOPPED = "stopped"


@dataclass
class DispatchConfig:
    """Configuration for the reply loop (delays in seconds)."""
    channel_id: str
    poll_delay_min: float = 60.0
    poll_delay_max: float = 60.0
    read_delay: float = 15.0
    human_delay_min: float = 1.0
    human_delay_max: float = 5.0
    typing_cps_min: float = 7.0
    typing_cps_max: float = 15.0
    typing_min: float = 0.9
    typing_max: float = 6.0
    fetch_limit: int = 50
    banned_words: list[str] = field(default_factory=list)


def contains_banned_word(text: str, banned_words: list[str]) -> bool:
    """Whole-word, case-insensitive banned word check."""
    if not banned_words:
        return False
    banned = {w.lower() for w in banned_words}
    return any(word in banned for word in (text or "").lower().split())


class AutoReplyLoop:
    """
    Drives the poll -> generate -> select -> send cycle for one channel.

    Flow per cycle:
    1. Wait a random poll delay
    2. Fetch recent messages through the scheduler
    3. Walk them oldest-first, skipping anything not eligible
    4. For the first eligible message: read, generate, select
    5. Type, wait, send; remember the turn on success

    The loop is the only writer of channel memory and the reply ledger.
    """

    def __init__(
        self,
        channel: "ScheduledChannel",
        generator: TextGenerator,
        selector: CandidateSelector,
        config: DispatchConfig,
        memory: ChannelMemory | None = None,
        ledger: ReplyLedger | None = None,
        prompt_builder: PromptBuilder | None = None,
        rng: random.Random | None = None,
        sleep: Callable[[float], Awaitable[Any]] | None = None,
    ):
        self.channel = channel
        self.generator = generator
        self.selector = selector
        self.config = config
        self.memory = memory or selector.memory
        self.ledger = ledger or ReplyLedger()
        self.prompt_builder = prompt_builder or PromptBuilder()
        self._rng = rng or random.Random()
        self._sleep = sleep or asyncio.sleep

        self.self_id: str | None = None
        self.state = LoopState.STOPPED
        self._running = False

        # Stats
        self._cycles = 0
        self._replies_sent = 0
        self._send_failures = 0

    @property
    def is_running(self) -> bool:
        return self._running

    async def initialize(self) -> str:
        """
        Resolve the bot's own account id.

        Raises:
            StartupError: The identity could not be fetched.
        """
        try:
            self_id = await self.channel.fetch_identity()
        except Exception as e:
            raise StartupError(f"Cannot get user ID: {e}") from e
        if not self_id:
            raise StartupError("Cannot get user ID. Check your Discord token.")
        self.self_id = str(self_id)
        return self.self_id

    async def run(self, max_cycles: int | None = None) -> None:
        """
        Run cycles until stopped.

        Args:
            max_cycles: Stop on its own after this many cycles (None = forever).
        """
        if self.self_id is None:
            await self.initialize()

        self._running = True
        logger.info(f"Bot started on channel {self.config.channel_id} as user ID {self.self_id}")

        try:
            completed = 0
            while self._running:
                await self.run_cycle()
                completed += 1
                if max_cycles is not None and completed >= max_cycles:
                    break
        finally:
            self._running = False
            self.state = LoopState.STOPPED
            logger.info("Reply loop stopped")

    def stop(self) -> None:
        """Ask the loop to exit at its next checkpoint."""
        if not self._running:
            logger.info("Bot already stopped")
            return
        self._running = False
        logger.info("Reply loop stopping")

    async def run_cycle(self) -> bool:
        """
        Run one poll cycle.

        Returns:
            True if a reply was sent during this cycle.
        """
        self._cycles += 1
        self.state = LoopState.IDLE_WAIT
        delay = self._rng.uniform(self.config.poll_delay_min, self.config.poll_delay_max)
        logger.info(f"Waiting for {round(delay)} seconds before checking messages...")
        await self._sleep(delay)
        if not self._running:
            return False

        self.state = LoopState.FETCH
        messages = await self._fetch_messages()
        if not messages:
            logger.info("No messages or failed to fetch messages.")
            return False

        return await self.process_messages(messages)

    async def process_messages(self, messages: list["ChatMessage"]) -> bool:
        """
        Answer the first eligible message of a fetched batch.

        Args:
            messages: Batch as returned by the platform (newest first).

        Returns:
            True if a reply was sent.
        """
        self.state = LoopState.ITERATE_MESSAGES
        channel_id = self.config.channel_id

        # Platform returns newest first; walk oldest first
        for message in reversed(messages):
            if not self._running:
                break
            if not self._is_eligible(message):
                continue

            text = message.content
            if contains_banned_word(text, self.config.banned_words):
                logger.info(
                    f"Skipped message from {message.author_name} ({message.author_id}) "
                    f"due to banned word: \"{text}\""
                )
                self.ledger.mark_handled(message.id)
                continue

            logger.info(f"Processing new message from {message.author_name} ({message.author_id}): \"{text}\"")

            self.state = LoopState.READ_DELAY
            await self._sleep(self.config.read_delay)
            if not self._running:
                break

            self.state = LoopState.GENERATE
            reply = await self._generate_reply(message)
            if not reply:
                logger.info(f"No valid reply generated for: \"{text}\"")
                self.ledger.mark_handled(message.id)
                self.state = LoopState.ITERATE_MESSAGES
                continue

            logger.info(f"- Reply generated: \"{reply}\"")
            self.state = LoopState.TYPING_DELAY
            await self._simulate_typing(reply)

            human_delay = self._rng.uniform(self.config.human_delay_min, self.config.human_delay_max)
            await self._sleep(human_delay)
            if not self._running:
                break

            self.state = LoopState.SEND
            if await self._send(message, reply):
                self.ledger.mark_handled(message.id)
                self.ledger.advance(message.id)
                self.memory.remember(channel_id, text, reply)
                self._replies_sent += 1
                logger.info(f"==> Successfully replied to {message.author_name}: \"{reply}\"")
                self.state = LoopState.IDLE_WAIT
                return True

            # Poison messages must not be retried forever
            self.ledger.mark_handled(message.id)
            self.state = LoopState.ITERATE_MESSAGES

        return False

    def _is_eligible(self, message: "ChatMessage") -> bool:
        if self.self_id is not None and message.author_id == self.self_id:
            return False
        if self.ledger.is_handled(message.id):
            return False
        if self.ledger.is_stale(message.id):
            return False
        return bool(message.content)

    async def _fetch_messages(self) -> list["ChatMessage"]:
        try:
            return await self.channel.fetch_messages(self.config.channel_id, self.config.fetch_limit)
        except Exception as e:
            logger.critical(f"Failed to get messages: {e}")
            return []

    async def _generate_reply(self, message: "ChatMessage") -> str | None:
        prompt = self.prompt_builder.build(message.content)
        context = {
            "channel_id": self.config.channel_id,
            "author_id": message.author_id,
            "author_name": message.author_name,
        }
        try:
            candidates = await self.generator.generate(prompt, context)
        except Exception as e:
            logger.critical(f"Generation failed: {e}")
            return None
        if not candidates:
            return None
        return self.selector.select(candidates, self.config.channel_id, message.content)

    def typing_duration(self, text: str) -> float:
        """Seconds of simulated typing for a reply."""
        cps = self._rng.uniform(self.config.typing_cps_min, self.config.typing_cps_max)
        length = len(text) if text else 20
        return min(self.config.typing_max, max(self.config.typing_min, length / cps))

    async def _simulate_typing(self, text: str) -> None:
        try:
            await self.channel.send_typing(self.config.channel_id)
        except Exception as e:
            logger.critical(f"Failed to simulate typing: {e}")
        await self._sleep(self.typing_duration(text))

    async def _send(self, message: "ChatMessage", reply: str) -> bool:
        try:
            ok = await self.channel.send_reply(self.config.channel_id, message.id, reply)
        except Exception as e:
            logger.critical(f"Failed to send reply: {e}")
            ok = False

        if not ok:
            self._send_failures += 1
            logger.critical(f"Failed to send reply for message ID {message.id}")
        return bool(ok)

    def status(self) -> dict[str, Any]:
        """Get loop status and statistics."""
        return {
            "running": self._running,
            "state": self.state.value,
            "channel_id": self.config.channel_id,
            "user_id": self.self_id,
            "replied_messages": len(self.ledger),
            "last_seen_id": self.ledger.last_seen_id,
            "cycles": self._cycles,
            "replies_sent": self._replies_sent,
            "send_failures": self._send_failures,
            "scheduler": self.channel.scheduler.get_stats(),
        }
