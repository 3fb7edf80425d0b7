"""Provider interface behind the generation service."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class LLMResponse:
    """One completion plus the usage GenerationService accumulates per request."""
    content: str
    input_tokens: int
    output_tokens: int
    model: str
    provider: str
    cost: float = 0.0


class LLMProvider(ABC):
    """Turns one assembled generation prompt into one completion.

    A provider is bound to a single model for its lifetime; the system
    prompt, output cap and usage accounting belong to GenerationService.
    """

    name: str = "provider"

    def __init__(self, model: str):
        self.model = model

    @abstractmethod
    def complete(self, system_prompt: str, prompt_text: str, max_tokens: int) -> LLMResponse:
        """Generate a completion.

        Args:
            system_prompt: Writer persona sent with every call
            prompt_text: The assembled single, sequential, grounding, detail or merge prompt
            max_tokens: Maximum tokens in the response

        Returns:
            LLMResponse with content, token counts and cost
        """
        pass
