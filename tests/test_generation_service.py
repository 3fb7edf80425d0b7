"""Tests for GenerationService."""

import pytest
from unittest.mock import MagicMock

from context.prompts import SYSTEM_PROMPT
from errors import GenerationError
from providers import GenerationService, LLMProvider, LLMResponse


def make_response(content="Draft", input_tokens=100, output_tokens=20, cost=0.01):
    return LLMResponse(
        content=content,
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        model="gpt-4o-mini",
        provider="litellm",
        cost=cost,
    )


class TestGenerationService:
    """GenerationService wraps a provider behind generate()."""

    def test_generate_returns_content(self):
        provider = MagicMock()
        provider.complete.return_value = make_response()
        service = GenerationService(provider=provider, max_tokens=512)

        assert service.generate("Write the brief.") == "Draft"
        provider.complete.assert_called_once_with(
            system_prompt=SYSTEM_PROMPT,
            prompt_text="Write the brief.",
            max_tokens=512,
        )

    def test_usage_accumulates(self):
        provider = MagicMock()
        provider.complete.return_value = make_response()
        service = GenerationService(provider=provider)

        service.generate("one")
        service.generate("two")

        assert service.usage.calls == 2
        assert service.usage.input_tokens == 200
        assert service.usage.output_tokens == 40
        assert service.usage.cost_usd == pytest.approx(0.02)

    def test_provider_exception_becomes_generation_error(self):
        provider = MagicMock()
        provider.complete.side_effect = TimeoutError("read timed out")
        service = GenerationService(provider=provider)

        with pytest.raises(GenerationError, match="TimeoutError: read timed out"):
            service.generate("prompt")
        assert service.usage.calls == 0

    def test_empty_completion_is_an_error(self):
        provider = MagicMock()
        provider.complete.return_value = make_response(content="   ")
        service = GenerationService(provider=provider)

        with pytest.raises(GenerationError, match="Empty completion"):
            service.generate("prompt")

    def test_works_with_any_provider_subclass(self):
        class FixedProvider(LLMProvider):
            name = "fixed"

            def complete(self, system_prompt, prompt_text, max_tokens):
                return LLMResponse(
                    content=f"{self.model}: {prompt_text}",
                    input_tokens=3,
                    output_tokens=2,
                    model=self.model,
                    provider=self.name,
                )

        service = GenerationService(provider=FixedProvider("stub-model"))

        assert service.generate("Write.") == "stub-model: Write."
        assert service.usage.cost_usd == 0.0
