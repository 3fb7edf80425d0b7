"""Factory for creating LLM providers."""

import os
from typing import Dict, Optional

from .base import LLMProvider
from .litellm_provider import LiteLLMProvider, MODEL_ALIASES, PROVIDER_SYNONYMS, to_litellm_model


# Env var LiteLLM reads for each provider
PROVIDER_KEYS: Dict[str, str] = {
    "anthropic": "ANTHROPIC_API_KEY",
    "openai": "OPENAI_API_KEY",
    "gemini": "GEMINI_API_KEY",
    "deepseek": "DEEPSEEK_API_KEY",
}

# Gemini also accepts the Google key
FALLBACK_KEYS: Dict[str, str] = {
    "gemini": "GOOGLE_API_KEY",
}


def get_provider(
    provider_name: Optional[str] = None,
    model: Optional[str] = None,
    metadata: Optional[dict] = None,
) -> LLMProvider:
    """Get an LLM provider instance.

    Args:
        provider_name: Explicit provider name (anthropic, openai, gemini, deepseek)
        model: Model name; aliases such as 'claude-haiku' resolve to full LiteLLM strings
        metadata: Optional metadata forwarded with every call

    Returns:
        LLMProvider instance

    Examples:
        get_provider("anthropic")
        get_provider(model="gpt-4o")
        get_provider()  # settings.default_model
    """
    if provider_name:
        key = PROVIDER_SYNONYMS.get(provider_name.lower(), provider_name.lower())
        if key not in MODEL_ALIASES:
            raise ValueError(
                f"Unknown provider: {provider_name}. "
                f"Available: {list(MODEL_ALIASES.keys())}"
            )
    return LiteLLMProvider(
        model=to_litellm_model(provider_name, model),
        metadata=metadata,
    )


def _has_key(provider: str) -> bool:
    for env_var in (PROVIDER_KEYS.get(provider), FALLBACK_KEYS.get(provider)):
        if env_var and os.environ.get(env_var, "").strip():
            return True
    return False


def list_providers() -> Dict[str, bool]:
    """List all providers and whether an API key is present.

    Returns:
        Dict mapping provider name to availability status
    """
    return {name: _has_key(name) for name in PROVIDER_KEYS}
