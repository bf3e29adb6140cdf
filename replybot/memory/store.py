"""
Conversation memory for replybot.

Manages:
- Per-channel turn history (bounded, oldest evicted first)
- The reply ledger: handled message ids and the high-water mark id

Nothing here is persisted; state lives for the lifetime of the process.
"""

import time
from collections import deque
from dataclasses import dataclass, field, asdict
from typing import Any


@dataclass
class Turn:
    """One remembered exchange in a channel."""
    input_text: str
    output_text: str
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for inspection."""
        return asdict(self)


class ChannelMemory:
    """
    Bounded per-channel ring buffer of past turns.

    Supplies recency context to the candidate selector. Channels never share
    history, and an unknown channel behaves as an empty one.
    """

    def __init__(self, max_turns: int = 50):
        if max_turns < 1:
            raise ValueError("max_turns must be at least 1")
        self.max_turns = max_turns
        self._channels: dict[str, deque[Turn]] = {}

    def remember(self, channel_id: str, input_text: str, output_text: str) -> Turn:
        """
        Append a turn to a channel's history.

        Args:
            channel_id: Channel the exchange happened in.
            input_text: The message that was answered.
            output_text: The reply that was sent.

        Returns:
            The stored turn.
        """
        history = self._channels.get(channel_id)
        if history is None:
            history = deque(maxlen=self.max_turns)
            self._channels[channel_id] = history

        turn = Turn(input_text=input_text, output_text=output_text)
        history.append(turn)
        return turn

    def recent(self, channel_id: str, n: int) -> list[Turn]:
        """Last ``n`` turns of a channel, oldest first."""
        if n <= 0:
            return []
        history = self._channels.get(channel_id)
        if not history:
            return []
        return list(history)[-n:]

    def recent_outputs(self, channel_id: str, n: int) -> list[str]:
        """Output texts of the last ``n`` turns, oldest first."""
        return [turn.output_text or "" for turn in self.recent(channel_id, n)]

    def size(self, channel_id: str) -> int:
        history = self._channels.get(channel_id)
        return len(history) if history else 0

    def clear(self, channel_id: str | None = None) -> None:
        """Forget one channel, or everything when no channel is given."""
        if channel_id is None:
            self._channels.clear()
        else:
            self._channels.pop(channel_id, None)

    def get_stats(self) -> dict[str, Any]:
        """Get memory statistics."""
        return {
            "channels": len(self._channels),
            "turns": sum(len(h) for h in self._channels.values()),
            "max_turns": self.max_turns,
        }


class ReplyLedger:
    """
    Tracks which messages were already handled.

    Message ids are snowflakes: large unsigned integers carried as strings.
    They are always compared as ``int`` so precision is never lost.
    """

    def __init__(self):
        self._handled: set[str] = set()
        self._last_seen_id: int | None = None

    @property
    def last_seen_id(self) -> int | None:
        return self._last_seen_id

    def is_handled(self, message_id: str) -> bool:
        return str(message_id) in self._handled

    def is_stale(self, message_id: str) -> bool:
        """True when the id is at or below the high-water mark."""
        if self._last_seen_id is None:
            return False
        return int(message_id) <= self._last_seen_id

    def mark_handled(self, message_id: str) -> None:
        self._handled.add(str(message_id))

    def advance(self, message_id: str) -> None:
        """Move the high-water mark forward; it never moves back."""
        value = int(message_id)
        if self._last_seen_id is None or value > self._last_seen_id:
            self._last_seen_id = value

    def __len__(self) -> int:
        return len(self._handled)
