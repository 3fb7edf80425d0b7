"""LiteLLM-backed provider. Single implementation for all generation calls."""

from typing import Optional

from config import settings
from .base import LLMProvider, LLMResponse


# Map provider + optional model -> LiteLLM model string (OpenAI can omit the prefix)
MODEL_ALIASES = {
    "anthropic": {
        None: "anthropic/claude-sonnet-4-20250514",
        "claude-sonnet": "anthropic/claude-sonnet-4-20250514",
        "claude-opus": "anthropic/claude-opus-4-20250514",
        "claude-haiku": "anthropic/claude-3-5-haiku-20241022",
    },
    "openai": {
        None: "gpt-4o-mini",
        "gpt-4o": "gpt-4o",
        "gpt-4o-mini": "gpt-4o-mini",
        "gpt-4-turbo": "gpt-4-turbo",
        "gpt-4.1": "gpt-4.1",
        "gpt-4.1-mini": "gpt-4.1-mini",
    },
    "gemini": {
        None: "gemini/gemini-2.0-flash",
        "gemini-2.0-flash": "gemini/gemini-2.0-flash",
        "gemini-2.5-flash": "gemini/gemini-2.5-flash",
        "gemini-2.5-pro": "gemini/gemini-2.5-pro",
    },
    "deepseek": {
        None: "deepseek/deepseek-chat",
        "deepseek-chat": "deepseek/deepseek-chat",
        "deepseek-reasoner": "deepseek/deepseek-reasoner",
    },
}

PROVIDER_SYNONYMS = {"claude": "anthropic", "gpt": "openai", "google": "gemini"}


def _match_alias(aliases: dict, model_lower: str) -> Optional[str]:
    # Longest alias first (gpt-4o-mini before gpt-4o)
    for alias in sorted((a for a in aliases if a), key=len, reverse=True):
        if model_lower == alias or model_lower.startswith(alias + "-") or model_lower.startswith(alias + "."):
            return aliases[alias]
    return None


def to_litellm_model(provider_name: Optional[str], model: Optional[str]) -> str:
    """Map provider + model to a LiteLLM model string."""
    if provider_name:
        key = PROVIDER_SYNONYMS.get(provider_name.lower(), provider_name.lower())
        if key in MODEL_ALIASES:
            aliases = MODEL_ALIASES[key]
            if model:
                matched = _match_alias(aliases, model.lower())
                if matched:
                    return matched
                if key == "openai" or "/" in model:
                    return model
                return f"{key}/{model}"
            return aliases[None]
    if model:
        for aliases in MODEL_ALIASES.values():
            matched = _match_alias(aliases, model.lower())
            if matched:
                return matched
        return model
    return settings.default_model


class LiteLLMProvider(LLMProvider):
    """Single provider that delegates to litellm.completion()."""

    name = "litellm"

    def __init__(self, model: str, metadata: Optional[dict] = None):
        """Initialize with the LiteLLM model string every call uses.

        Args:
            model: LiteLLM model string (e.g. gpt-4o-mini, anthropic/claude-sonnet-4-20250514).
            metadata: Optional dict forwarded to litellm with every call.
        """
        super().__init__(model)
        self._metadata = metadata or {}

    def complete(self, system_prompt: str, prompt_text: str, max_tokens: int) -> LLMResponse:
        import litellm

        response = litellm.completion(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": prompt_text},
            ],
            max_tokens=max_tokens,
            timeout=settings.api_timeout_seconds,
            num_retries=settings.api_num_retries,
            metadata={**self._metadata},
        )

        content = response.choices[0].message.content or ""
        usage = getattr(response, "usage", None)
        hidden = getattr(response, "_hidden_params", None) or {}

        return LLMResponse(
            content=content,
            input_tokens=getattr(usage, "prompt_tokens", 0) or 0,
            output_tokens=getattr(usage, "completion_tokens", 0) or 0,
            model=getattr(response, "model", None) or self.model,
            provider=self.name,
            cost=float(hidden.get("response_cost", 0) or 0),
        )
