"""Generation service: prompt text in, document text out.

The one seam between the assemblers and a language model. Every provider
failure surfaces as GenerationError; nothing is retried here.
"""

from typing import Optional

from pydantic import BaseModel

from config import settings
from context.prompts import SYSTEM_PROMPT
from errors import GenerationError
from providers.base import LLMProvider
from providers.factory import get_provider


class TokenUsage(BaseModel):
    """Usage accumulated over one request's generation calls."""
    calls: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    cost_usd: float = 0.0


class GenerationService:
    """Wraps an LLMProvider behind generate(prompt_text) -> result_text."""

    def __init__(
        self,
        provider: Optional[LLMProvider] = None,
        system_prompt: str = SYSTEM_PROMPT,
        max_tokens: Optional[int] = None,
    ):
        """Initialize the service.

        Args:
            provider: LLM provider; defaults to LiteLLM with settings.default_model
            system_prompt: System prompt sent with every call
            max_tokens: Output cap per call (default settings.max_tokens_per_call)
        """
        self.provider = provider or get_provider()
        self.system_prompt = system_prompt
        self.max_tokens = max_tokens or settings.max_tokens_per_call
        self.usage = TokenUsage()

    def generate(self, prompt_text: str) -> str:
        """Run one generation call.

        Raises:
            GenerationError: On quota, rate-limit, network or malformed-response failures
        """
        try:
            response = self.provider.complete(
                system_prompt=self.system_prompt,
                prompt_text=prompt_text,
                max_tokens=self.max_tokens,
            )
        except GenerationError:
            raise
        except Exception as e:
            raise GenerationError(f"{type(e).__name__}: {e}") from e

        self.usage.calls += 1
        self.usage.input_tokens += response.input_tokens
        self.usage.output_tokens += response.output_tokens
        self.usage.cost_usd += response.cost

        if not response.content or not response.content.strip():
            raise GenerationError(f"Empty completion from {response.model}")
        return response.content
