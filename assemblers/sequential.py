"""Sequential assembly for requests somewhat over the context limit.

Pipeline:
  Pass 1..N: instruction + next chunks in priority order (+ excerpt of pass k-1)
  MERGE:     pass outputs in pass order -> final document
"""

from typing import List, Optional

from contracts import ChunkingStrategy, ContextPlan
from context.estimator import smart_truncate, tokens_to_chars
from context.prompt_builder import build_prompt
from context.prompts import CONTINUITY_PROMPT, SEQUENTIAL_PART_PROMPT
from assemblers.base_assembler import BaseAssembler
from config import Settings


class SequentialAssembler(BaseAssembler):
    """Splits chunks across passes that each fit the context limit.

    Later passes see only a short excerpt of the previous output, never
    the full text, so every prompt stays within budget.
    """

    @property
    def strategy(self) -> ChunkingStrategy:
        return ChunkingStrategy.SEQUENTIAL

    def _excerpt(self, text: str) -> Optional[str]:
        tokens = self.settings.continuity_excerpt_tokens
        if tokens <= 0:
            return None
        return smart_truncate(text, tokens_to_chars(tokens, self.settings.chars_per_token))

    def _assemble(self, plan: ContextPlan) -> str:
        instruction, instruction_names, content = self._split_instruction(plan.chunks)

        # Framing and the excerpt are paid for in every pass
        framing = SEQUENTIAL_PART_PROMPT.format(total=99, index=99) + CONTINUITY_PROMPT
        budget = self._pass_budget(plan.context_limit, instruction, framing) - (
            self.settings.continuity_excerpt_tokens
        )
        budget = max(self.settings.min_batch_tokens, budget)
        batches = self._pack(content, budget)

        outputs: List[str] = []
        for i, batch in enumerate(batches, 1):
            preamble_parts = []
            if len(batches) > 1:
                preamble_parts.append(SEQUENTIAL_PART_PROMPT.format(total=len(batches), index=i))
            if outputs:
                excerpt = self._excerpt(outputs[-1])
                if excerpt:
                    preamble_parts.append(CONTINUITY_PROMPT.format(excerpt=excerpt))

            prompt = build_prompt(
                instruction,
                batch,
                preamble="\n\n".join(preamble_parts) or None,
                closing=self._final_closing(None) if len(batches) == 1 else None,
            )
            names = instruction_names + [c.name for c in batch]
            outputs.append(self._call("sequential", i, names, prompt))

        return self._merge(instruction, outputs, plan.context_limit)


def run_sequential(plan: ContextPlan, generator, settings: Optional[Settings] = None, **kwargs) -> str:
    """Run sequential assembly for a plan and return the merged document."""
    return SequentialAssembler(generator, settings=settings, **kwargs).assemble(plan)
