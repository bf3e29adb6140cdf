"""
Deterministic per-channel randomness.

Each channel id hashes to a 32-bit seed (base-31 rolling hash over the
character codes) which drives a mulberry32 generator, so the same channel
always produces the same sequence.
"""

from typing import Sequence, TypeVar

_MASK = 0xFFFFFFFF

T = TypeVar("T")


def channel_seed(channel_id: str) -> int:
    """Base-31 rolling hash of ``channel_id`` modulo 2**32."""
    seed = 0
    for char in channel_id:
        seed = (seed * 31 + ord(char)) & _MASK
    return seed


def _imul(a: int, b: int) -> int:
    return (a * b) & _MASK


class Mulberry32:
    """Small fast 32-bit generator yielding floats in [0, 1)."""

    def __init__(self, seed: int):
        self._state = seed & _MASK

    def random(self) -> float:
        self._state = (self._state + 0x6D2B79F5) & _MASK
        t = self._state
        t = _imul(t ^ (t >> 15), t | 1)
        t ^= (t + _imul(t ^ (t >> 7), t | 61)) & _MASK
        return ((t ^ (t >> 14)) & _MASK) / 4294967296

    def choice(self, options: Sequence[T]) -> T:
        if not options:
            raise IndexError("Cannot choose from an empty sequence")
        return options[int(self.random() * len(options))]

    def __call__(self) -> float:
        return self.random()


def seeded_rng(channel_id: str | None) -> Mulberry32:
    """Create the generator for a channel (``"default"`` when unknown)."""
    return Mulberry32(channel_seed(channel_id or "default"))
