"""
Reply candidate selection for replybot.

Turns a batch of raw generated candidates into (at most) one reply:
1. Strip emoji unless the user used them
2. Drop candidates opening with an overused filler word
3. Suppress near-duplicates within the batch
4. Score against recent channel history and pick one
5. Rewrite perspective, deflect insider questions, normalize style
6. Reject replies that collapsed into nothing usable
"""

import random
import re
from dataclasses import dataclass
from typing import Callable, Sequence

from loguru import logger

from replybot.auto_reply import style
from replybot.auto_reply.similarity import similarity
from replybot.memory.store import ChannelMemory
from replybot.utils.seeded import Mulberry32, seeded_rng

_NEWLINES = re.compile(r"\n+")


@dataclass
class SelectorConfig:
    """Configuration for candidate selection."""
    overused_starters: tuple[str, ...] = ("ah", "fr", "tbh", "ngl")
    starter_window: int = 5  # Recent outputs inspected for openers
    starter_max_repeats: int = 2
    duplicate_threshold: float = 0.75  # Above this, a candidate is a near-duplicate
    novelty_window: int = 10  # Recent outputs scored against
    max_words: int = style.MAX_WORDS


def clean_candidates(raw_candidates: Sequence[str | None]) -> list[str]:
    """Trim candidates, flatten newlines and drop empties."""
    cleaned = []
    for candidate in raw_candidates:
        text = (candidate or "").strip()
        if not text:
            continue
        cleaned.append(_NEWLINES.sub(" ", text).strip())
    return cleaned


def filter_overused_starters(
    candidates: list[str],
    recent_outputs: Sequence[str],
    starters: Sequence[str] = SelectorConfig.overused_starters,
    max_repeats: int = SelectorConfig.starter_max_repeats,
) -> list[str]:
    """Drop candidates whose opener was already used too often recently."""
    starter_count: dict[str, int] = {}
    for output in recent_outputs:
        first_word = (output or "").lower().split(" ")[0]
        if first_word in starters:
            starter_count[first_word] = starter_count.get(first_word, 0) + 1

    kept = []
    for candidate in candidates:
        first_word = candidate.lower().split(" ")[0]
        if first_word in starters and starter_count.get(first_word, 0) >= max_repeats:
            continue
        kept.append(candidate)
    return kept


def dedupe_candidates(
    candidates: list[str],
    threshold: float = SelectorConfig.duplicate_threshold,
) -> list[str]:
    """Greedy near-duplicate suppression; earlier candidates win."""
    unique: list[str] = []
    for candidate in candidates:
        lowered = candidate.lower()
        if not any(similarity(kept.lower(), lowered) > threshold for kept in unique):
            unique.append(candidate)
    return unique


def novelty_score(candidate: str, recent_outputs: Sequence[str]) -> float:
    """Sum of (1 - similarity) between a candidate and recent outputs."""
    lowered = candidate.lower()
    return sum(1 - similarity(lowered, (prev or "").lower()) for prev in recent_outputs)


def pick_novel_candidate(candidates: list[str], recent_outputs: Sequence[str]) -> str:
    """
    Pick the candidate with the lowest novelty score.

    Minimizing the summed dissimilarity favours candidates that resemble
    recent history on average. This matches the deployed behaviour and is
    kept as-is; the first candidate wins ties.
    """
    best = candidates[0]
    best_score = float("inf")
    for candidate in candidates:
        score = novelty_score(candidate, recent_outputs)
        if score < best_score:
            best_score = score
            best = candidate
    return best


class CandidateSelector:
    """
    Picks one reply out of a batch of generated candidates.

    Randomness is injectable: denials come from ``chooser`` and hedge
    insertion draws from a per-channel seeded generator, so a channel's
    output is reproducible run to run.
    """

    def __init__(
        self,
        memory: ChannelMemory,
        config: SelectorConfig | None = None,
        chooser: Callable[[Sequence[str]], str] | None = None,
        rng_factory: Callable[[str], Mulberry32] = seeded_rng,
    ):
        self.memory = memory
        self.config = config or SelectorConfig()
        self._chooser = chooser or random.choice
        self._rng_factory = rng_factory
        self._rngs: dict[str, Mulberry32] = {}

    def rng_for(self, channel_id: str) -> Mulberry32:
        """Get or create the seeded generator for a channel."""
        if channel_id not in self._rngs:
            self._rngs[channel_id] = self._rng_factory(channel_id)
        return self._rngs[channel_id]

    def shortlist(self, raw_candidates: Sequence[str | None], channel_id: str, input_text: str) -> list[str]:
        """Run the filtering stages and return the surviving candidates."""
        candidates = clean_candidates(raw_candidates)
        if not style.has_pictographic(input_text):
            # Emoji-only candidates must not survive as empty strings
            candidates = clean_candidates([style.strip_pictographic(c) for c in candidates])

        recent = self.memory.recent_outputs(channel_id, self.config.starter_window)
        candidates = filter_overused_starters(
            candidates,
            recent,
            self.config.overused_starters,
            self.config.starter_max_repeats,
        )
        return dedupe_candidates(candidates, self.config.duplicate_threshold)

    def postprocess(self, text: str, channel_id: str, input_text: str) -> str:
        """Apply perspective, insider deflection and style normalization."""
        out = style.enforce_perspective(text)
        out = style.override_if_insider(input_text, out, self._chooser)
        out = style.humanize(out, self.rng_for(channel_id))
        out = style.enforce_shortness(out, self.config.max_words)
        return style.sanitize_final(out)

    def select(
        self,
        raw_candidates: Sequence[str | None],
        channel_id: str,
        input_text: str = "",
    ) -> str | None:
        """
        Choose the reply to send.

        Args:
            raw_candidates: Candidate texts from the generator.
            channel_id: Channel whose history is consulted.
            input_text: The message being answered.

        Returns:
            The final reply, or None when nothing usable survived.
        """
        unique = self.shortlist(raw_candidates, channel_id, input_text)
        if not unique:
            logger.debug(f"No candidates survived filtering for channel {channel_id}")
            return None

        recent = self.memory.recent_outputs(channel_id, self.config.novelty_window)
        chosen = pick_novel_candidate(unique, recent)
        chosen = self.postprocess(chosen, channel_id, input_text)

        if style.is_weak_reply(chosen):
            logger.debug(f"Rejected weak reply for channel {channel_id}: {chosen!r}")
            return None
        return chosen

