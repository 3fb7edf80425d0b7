"""LLM provider abstraction and the generation service used by the assemblers."""

from .base import LLMProvider, LLMResponse
from .factory import get_provider, list_providers
from .generation import GenerationService, TokenUsage

__all__ = [
    "LLMProvider",
    "LLMResponse",
    "get_provider",
    "list_providers",
    "GenerationService",
    "TokenUsage",
]
