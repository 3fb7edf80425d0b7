"""Budget planner: chooses none / sequential / hierarchical processing."""

from typing import List

from contracts import ChunkingStrategy, ContentChunk, ContextConfig, ContextPlan
from context.prioritizer import total_tokens
from errors import PlanningError


def validate_context_config(config: ContextConfig) -> ContextConfig:
    """Check the budget configuration.

    Raises:
        PlanningError: If context_limit is not positive or the hierarchical
            threshold does not sit above it
    """
    if config.context_limit <= 0:
        raise PlanningError(f"context_limit must be positive, got {config.context_limit}")
    if config.hierarchical_threshold <= config.context_limit:
        raise PlanningError(
            f"hierarchical_threshold ({config.hierarchical_threshold}) must be greater "
            f"than context_limit ({config.context_limit})"
        )
    return config


def choose_strategy(total: int, context_limit: int, hierarchical_threshold: int) -> ChunkingStrategy:
    if total <= context_limit:
        return ChunkingStrategy.NONE
    if total <= hierarchical_threshold:
        return ChunkingStrategy.SEQUENTIAL
    return ChunkingStrategy.HIERARCHICAL


def plan(
    chunks: List[ContentChunk],
    context_limit: int,
    hierarchical_threshold: int,
) -> ContextPlan:
    """Size the request and pick a strategy.

    Oversized content is never rejected; it only changes how many
    generation calls are made.
    """
    total = total_tokens(chunks)
    return ContextPlan(
        total_estimated_tokens=total,
        context_limit=context_limit,
        hierarchical_threshold=hierarchical_threshold,
        strategy=choose_strategy(total, context_limit, hierarchical_threshold),
        chunks=list(chunks),
    )
