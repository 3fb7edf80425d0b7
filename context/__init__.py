"""Context assembly: token estimation, chunk prioritization and budget planning."""

from .estimator import estimate_tokens, smart_truncate, split_text, tokens_to_chars
from .prioritizer import build_chunks, split_oversized, total_tokens
from .planner import plan, validate_context_config, choose_strategy
from .prompt_builder import build_prompt, build_prompt_within_limit, format_section

__all__ = [
    "estimate_tokens",
    "smart_truncate",
    "split_text",
    "tokens_to_chars",
    "build_chunks",
    "split_oversized",
    "total_tokens",
    "plan",
    "validate_context_config",
    "choose_strategy",
    "build_prompt",
    "build_prompt_within_limit",
    "format_section",
]
