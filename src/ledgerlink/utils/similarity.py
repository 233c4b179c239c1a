"""String similarity helpers used for counterparty name matching."""

from rapidfuzz.distance import Levenshtein

EXACT = 1.0
CONTAINS = 0.9


def levenshtein(a: str, b: str) -> int:
    """Return the edit distance between two strings."""
    return Levenshtein.distance(a, b)


def similarity(a: str, b: str) -> float:
    """Score how alike two names are, from 0.0 to 1.0.

    Comparison is case-insensitive and ignores surrounding whitespace:
    - identical names score 1.0
    - one name containing the other scores 0.9
    - otherwise ``(max_len - levenshtein) / max_len``

    Empty names never match anything.
    """
    a = (a or "").strip().lower()
    b = (b or "").strip().lower()

    if not a or not b:
        return 0.0
    if a == b:
        return EXACT
    if a in b or b in a:
        return CONTAINS

    return Levenshtein.normalized_similarity(a, b)
