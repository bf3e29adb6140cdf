"""Chat platform channels."""

from replybot.channels.base import BaseChannel, ChatMessage, ScheduledChannel
from replybot.channels.discord import DiscordChannel

__all__ = ["BaseChannel", "ChatMessage", "ScheduledChannel", "DiscordChannel"]
