"""Single-pass assembly: everything fits one generation call."""

from contracts import ChunkingStrategy, ContextPlan
from context.prompt_builder import build_prompt
from assemblers.base_assembler import BaseAssembler


class SinglePassAssembler(BaseAssembler):
    """One call with the instruction and every chunk."""

    @property
    def strategy(self) -> ChunkingStrategy:
        return ChunkingStrategy.NONE

    def _assemble(self, plan: ContextPlan) -> str:
        instruction, instruction_names, content = self._split_instruction(plan.chunks)
        prompt = build_prompt(instruction, content, closing=self._final_closing(None))
        names = instruction_names + [c.name for c in content]
        return self._call("single", 1, names, prompt)
