"""String similarity primitives for fuzzy search."""

import re

# Slashes and hyphens survive so dates like 3/14/2025 stay one token
_PUNCTUATION = re.compile(r"[^\w\s/-]")


def levenshtein(a: str, b: str) -> int:
    """Single-character edits needed to turn ``a`` into ``b``."""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            cost = 0 if char_a == char_b else 1
            current.append(
                min(
                    previous[j] + 1,
                    current[j - 1] + 1,
                    previous[j - 1] + cost,
                )
            )
        previous = current
    return previous[-1]


def similarity(a: str, b: str) -> float:
    """Normalized edit similarity in [0, 1]; 0 when either side is empty."""
    if not a or not b:
        return 0.0
    return 1 - levenshtein(a, b) / max(len(a), len(b))


def tokenize(text: str | None) -> list[str]:
    if not text:
        return []
    return _PUNCTUATION.sub("", text.lower()).split()
