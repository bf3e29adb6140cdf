"""
Text transforms applied to a chosen reply.

Supports:
- Emoji detection and stripping
- Perspective rewriting (team voice -> community voice)
- Insider-question deflection
- Casual style normalization (hedges, length cap, lowercase)
"""

import random
import re
from typing import Callable, Sequence

# Faces, symbols & pictographs, transport & map
_EMOJI_DETECT = re.compile("[\U0001F600-\U0001F64F\U0001F300-\U0001F5FF\U0001F680-\U0001F6FF]")

# Broader pictographic block list used for stripping
_PICTOGRAPHIC = re.compile(
    "["
    "\u00A9\u00AE\u203C\u2049\u2122\u2139"
    "\u2194-\u2199\u21A9\u21AA"  # arrows
    "\u231A\u231B\u2328\u2388\u23CF\u23E9-\u23F3\u23F8-\u23FA"  # misc technical
    "\u24C2\u25AA\u25AB\u25B6\u25C0\u25FB-\u25FE"  # enclosed letters, geometric shapes
    "\u2600-\u2605\u2607-\u2612\u2614-\u2685\u2690-\u2705\u2708-\u2712"  # misc symbols, dingbats
    "\u2714\u2716\u271D\u2721\u2728\u2733\u2734\u2744\u2747\u274C\u274E"
    "\u2753-\u2755\u2757\u2763-\u2767\u2795-\u2797\u27A1\u27B0\u27BF"
    "\u2934\u2935\u2B05-\u2B07\u2B1B\u2B1C\u2B50\u2B55"
    "\u3030\u303D\u3297\u3299"
    "\U0001F000-\U0001F0FF\U0001F10D-\U0001F10F\U0001F12F\U0001F16C-\U0001F171"
    "\U0001F17E\U0001F17F\U0001F18E\U0001F191-\U0001F19A\U0001F1AD-\U0001F1E5"
    "\U0001F201-\U0001F20F\U0001F21A\U0001F22F\U0001F232-\U0001F23A\U0001F23C-\U0001F23F"
    "\U0001F249-\U0001F3FA\U0001F400-\U0001F53D\U0001F546-\U0001F64F\U0001F680-\U0001F6FF"
    "\U0001F774-\U0001F77F\U0001F7D5-\U0001F7FF\U0001F80C-\U0001F80F\U0001F848-\U0001F84F"
    "\U0001F85A-\U0001F85F\U0001F888-\U0001F88F\U0001F8AE-\U0001F8FF\U0001F90C-\U0001F93A"
    "\U0001F93C-\U0001F945\U0001F947-\U0001FAFF\U0001FC00-\U0001FFFD"
    "]"
)

_DASHES = re.compile(r"[–—]")
_WHITESPACE = re.compile(r"\s+")
_SPACE_BEFORE_PUNCT = re.compile(r" +([,?])")
_TRAILING_BANG_DOT = re.compile(r"[\s!.]+$")
_APOSTROPHES = re.compile(r"['’]")

PERSPECTIVE_RULES: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"\bour team\b", re.IGNORECASE), "the team"),
    (re.compile(r"\bwe are\b", re.IGNORECASE), "they are"),
    (re.compile(r"\bwe were\b", re.IGNORECASE), "they were"),
    (re.compile(r"\bwe will\b", re.IGNORECASE), "they will"),
    (re.compile(r"\bwe do\b", re.IGNORECASE), "they do"),
    (re.compile(r"\bwe\b", re.IGNORECASE), "they"),
    (re.compile(r"\bours\b", re.IGNORECASE), "theirs"),
    (re.compile(r"\bour\b", re.IGNORECASE), "their"),
    (re.compile(r"\bi (know|confirm|guarantee)\b", re.IGNORECASE), "from what i know"),
]

INSIDER_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"\b(hire|hiring|recruit|application|apply for|job opening|position available)\b", re.IGNORECASE),
    re.compile(r"\b(roadmap|timeline|release date|launch date|when will.*release)\b", re.IGNORECASE),
    re.compile(r"\b(are you (staff|team|admin|mod)|team member|official response)\b", re.IGNORECASE),
    re.compile(r"\b(partnership with|funding round|investor|vc)\b", re.IGNORECASE),
    re.compile(r"\b(whitelist spot|airdrop allocation|insider.*info)\b", re.IGNORECASE),
]

_DENIAL_PATTERN = re.compile(
    r"\b(dont know|no clue|not sure|cant say|no idea|wish i knew|haven.*heard)\b",
    re.IGNORECASE,
)

DENIAL_REPLIES = (
    "no clue tbh",
    "not sure honestly",
    "wish i knew",
    "havent heard anything",
    "no idea bout that",
)

HEDGES = ("honestly,", "tbh,", "i think", "fwiw,")

WEAK_REPLIES = frozenset({"i dont know"})

MAX_WORDS = 12
HEDGE_PROBABILITY = 0.10
HEDGE_MIN_LENGTH = 25


def has_pictographic(text: str) -> bool:
    """Check whether text contains emoji."""
    return bool(_EMOJI_DETECT.search(text or ""))


def strip_pictographic(text: str) -> str:
    return _PICTOGRAPHIC.sub("", text or "")


def enforce_perspective(text: str) -> str:
    """Rewrite first-person team language into a bystander's voice."""
    out = text or ""
    for pattern, replacement in PERSPECTIVE_RULES:
        out = pattern.sub(replacement, out)
    return out


def is_insider_question(prompt: str) -> bool:
    lower = (prompt or "").lower()
    return any(pattern.search(lower) for pattern in INSIDER_PATTERNS)


def is_denial(text: str) -> bool:
    return bool(_DENIAL_PATTERN.search(text or ""))


def override_if_insider(
    prompt: str,
    reply: str,
    chooser: Callable[[Sequence[str]], str] = random.choice,
) -> str:
    """
    Deflect questions that ask for insider knowledge.

    Args:
        prompt: The message being answered.
        reply: The candidate reply.
        chooser: Picks one of the stock denials.

    Returns:
        The reply unchanged, or a stock denial.
    """
    if not is_insider_question(prompt):
        return reply
    if is_denial(reply):
        return reply
    return chooser(DENIAL_REPLIES)


def humanize(text: str, rng: Callable[[], float]) -> str:
    """Tidy punctuation and occasionally open with a casual hedge."""
    out = (text or "").strip()
    out = _DASHES.sub(",", out)
    out = _WHITESPACE.sub(" ", out)
    out = _SPACE_BEFORE_PUNCT.sub(r"\1", out)
    if rng() < HEDGE_PROBABILITY and len(out) > HEDGE_MIN_LENGTH:
        hedge = HEDGES[int(rng() * len(HEDGES))]
        out = f"{hedge} {out[:1].lower()}{out[1:]}"
    return out


def enforce_shortness(text: str, max_words: int = MAX_WORDS) -> str:
    clean = _DASHES.sub(",", text or "")
    words = clean.split()
    if len(words) > max_words:
        clean = " ".join(words[:max_words])
    clean = _TRAILING_BANG_DOT.sub("", clean.strip())
    return clean.strip()


def sanitize_final(text: str) -> str:
    """Final pass: no dashes, single spaces, no apostrophes, lowercase."""
    out = (text or "").strip()
    out = _DASHES.sub(",", out)
    out = _WHITESPACE.sub(" ", out)
    out = _APOSTROPHES.sub("", out)
    out = out.lower()
    out = _TRAILING_BANG_DOT.sub("", out)
    return out.strip()


def is_weak_reply(text: str | None) -> bool:
    s = (text or "").strip().lower()
    return not s or s in WEAK_REPLIES
