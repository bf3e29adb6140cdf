"""Edit-distance similarity between short texts."""


def levenshtein_distance(a: str, b: str) -> int:
    """Classic character-level Levenshtein distance."""
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            if char_a == char_b:
                current.append(previous[j - 1])
            else:
                current.append(min(previous[j - 1], previous[j], current[j - 1]) + 1)
        previous = current
    return previous[-1]


def similarity(a: str, b: str) -> float:
    """
    Normalized similarity in [0, 1].

    Computed as ``(len(longer) - distance) / len(longer)``; two empty
    strings are identical.
    """
    longer, shorter = (a, b) if len(a) > len(b) else (b, a)
    if not longer:
        return 1.0
    return (len(longer) - levenshtein_distance(longer, shorter)) / len(longer)
