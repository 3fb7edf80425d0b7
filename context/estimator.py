"""Token estimation and text trimming helpers.

Estimates are a character-count heuristic, not a tokenizer: cheap and
deterministic, good enough to decide how content is split across calls.
"""

import math
from typing import List, Optional

DEFAULT_CHARS_PER_TOKEN = 4
TRUNCATION_MARKER = "\n\n... [Content truncated to fit context limit] ..."


def estimate_tokens(text: Optional[str], chars_per_token: int = DEFAULT_CHARS_PER_TOKEN) -> int:
    """Estimate the token cost of a text (0 for None or empty)."""
    if not text:
        return 0
    return math.ceil(len(text) / chars_per_token)


def tokens_to_chars(tokens: int, chars_per_token: int = DEFAULT_CHARS_PER_TOKEN) -> int:
    """Character budget matching a token budget."""
    return max(0, tokens) * chars_per_token


def smart_truncate(text: str, max_chars: int, preserve_structure: bool = True) -> str:
    """Shorten text to at most max_chars.

    With preserve_structure, whole lines are kept and a marker is appended.
    Without it the text is cut hard and suffixed with '...'.
    """
    if len(text) <= max_chars:
        return text

    if not preserve_structure:
        return text[: max(0, max_chars - 3)] + "..."

    budget = max(0, max_chars - len(TRUNCATION_MARKER))
    kept: List[str] = []
    used = 0
    for line in text.split("\n"):
        cost = len(line) + (1 if kept else 0)
        if used + cost > budget:
            break
        kept.append(line)
        used += cost

    if not kept:
        # First line alone is over budget
        return text[:budget] + TRUNCATION_MARKER
    return "\n".join(kept) + TRUNCATION_MARKER


def split_text(text: str, max_tokens: int, chars_per_token: int = DEFAULT_CHARS_PER_TOKEN) -> List[str]:
    """Split text into ordered pieces of at most max_tokens each.

    Splits on line boundaries; a single line longer than the budget is cut hard.
    """
    max_chars = tokens_to_chars(max(1, max_tokens), chars_per_token)
    if len(text) <= max_chars:
        return [text]

    pieces: List[str] = []
    current: List[str] = []
    current_len = 0

    def flush():
        nonlocal current, current_len
        if current:
            pieces.append("\n".join(current))
        current = []
        current_len = 0

    for line in text.split("\n"):
        while len(line) > max_chars:
            flush()
            pieces.append(line[:max_chars])
            line = line[max_chars:]
        cost = len(line) + (1 if current else 0)
        if current_len + cost > max_chars:
            flush()
            cost = len(line)
        current.append(line)
        current_len += cost

    flush()
    return [p for p in pieces if p]
