"""
Conversation memory for replybot.

Provides:
- Per-channel turn history
- Reply ledger (handled ids and high-water mark)
"""

from replybot.memory.store import (
    ChannelMemory,
    ReplyLedger,
    Turn,
)

__all__ = [
    "ChannelMemory",
    "ReplyLedger",
    "Turn",
]
