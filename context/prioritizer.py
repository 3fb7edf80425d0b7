"""Chunk prioritizer: named texts -> sized, priority-ordered ContentChunks."""

from typing import List, Mapping

from contracts import ChunkPriority, ContentChunk
from context.estimator import DEFAULT_CHARS_PER_TOKEN, estimate_tokens, split_text

UNNAMED_CHUNK = "unnamed"


def build_chunks(
    named_texts: Mapping[str, str],
    chars_per_token: int = DEFAULT_CHARS_PER_TOKEN,
) -> List[ContentChunk]:
    """Build ContentChunks sorted ascending by priority.

    Unknown names get the metadata tier instead of failing, so new template
    variables keep working. Blank names become "unnamed" in the same tier.
    Blank texts are skipped. The sort is stable: equal priorities keep their
    input order.
    """
    chunks: List[ContentChunk] = []
    for name, text in named_texts.items():
        if not text or not text.strip():
            continue
        chunks.append(ContentChunk(
            name=name.strip() or UNNAMED_CHUNK,
            text=text,
            priority=int(ChunkPriority.for_name(name)),
            estimated_tokens=estimate_tokens(text, chars_per_token),
        ))

    return sorted(chunks, key=lambda c: c.priority)


def split_oversized(
    chunks: List[ContentChunk],
    max_tokens: int,
    chars_per_token: int = DEFAULT_CHARS_PER_TOKEN,
) -> List[ContentChunk]:
    """Replace chunks larger than max_tokens with ordered parts.

    Parts keep the parent's priority and position, e.g. 'file_content (part 2/3)'.
    """
    result: List[ContentChunk] = []
    for chunk in chunks:
        if chunk.estimated_tokens <= max_tokens:
            result.append(chunk)
            continue
        pieces = split_text(chunk.text, max_tokens, chars_per_token)
        for i, piece in enumerate(pieces, 1):
            result.append(ContentChunk(
                name=f"{chunk.name} (part {i}/{len(pieces)})",
                text=piece,
                priority=chunk.priority,
                estimated_tokens=estimate_tokens(piece, chars_per_token),
            ))
    return result


def total_tokens(chunks: List[ContentChunk]) -> int:
    return sum(c.estimated_tokens for c in chunks)
