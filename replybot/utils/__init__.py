"""Utility helpers for replybot."""

from replybot.utils.seeded import Mulberry32, channel_seed, seeded_rng

__all__ = ["Mulberry32", "channel_seed", "seeded_rng"]
