"""Render chunks and framing text into generation prompts."""

from typing import List, Optional, Sequence, Tuple

from contracts import ContentChunk
from context.estimator import DEFAULT_CHARS_PER_TOKEN, estimate_tokens
from structured_logging import get_logger

logger = get_logger(__name__)


def section_title(name: str) -> str:
    """'question_answers' -> 'QUESTION ANSWERS'."""
    return name.upper().replace("_", " ")


def format_section(chunk: ContentChunk) -> str:
    return f"=== {section_title(chunk.name)} ===\n{chunk.text}"


def format_sections(chunks: Sequence[ContentChunk]) -> str:
    return "\n\n".join(format_section(c) for c in chunks)


def build_prompt(
    instruction: str,
    chunks: Sequence[ContentChunk] = (),
    preamble: Optional[str] = None,
    closing: Optional[str] = None,
) -> str:
    """Assemble a prompt: task, optional preamble, chunk sections, optional closing."""
    parts = [f"# TASK\n\n{instruction}"]
    if preamble:
        parts.append(preamble)
    if chunks:
        parts.append(format_sections(chunks))
    if closing:
        parts.append(f"---\n\n{closing}")
    return "\n\n".join(parts)


def build_prompt_within_limit(
    chunks: Sequence[ContentChunk],
    instruction: str,
    max_tokens: int,
    reserve_tokens: int = 1000,
    chars_per_token: int = DEFAULT_CHARS_PER_TOKEN,
) -> Tuple[str, List[str], List[str]]:
    """Pack chunks into one prompt and drop whatever does not fit.

    Only used to preview what a single call could hold; the assemblers never drop content.

    Returns:
        Tuple of (prompt, used chunk names, dropped chunk names)
    """
    remaining = max_tokens - estimate_tokens(instruction, chars_per_token) - reserve_tokens
    used: List[ContentChunk] = []
    dropped: List[str] = []

    for chunk in chunks:
        if chunk.estimated_tokens <= remaining:
            used.append(chunk)
            remaining -= chunk.estimated_tokens
        else:
            dropped.append(chunk.name)
            logger.warning(
                f"Dropped {chunk.name} ({chunk.estimated_tokens} tokens) - would exceed limit"
            )

    return build_prompt(instruction, used), [c.name for c in used], dropped
