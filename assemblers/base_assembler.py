"""Base assembler class for turning a context plan into a document.

Provides the common infrastructure shared by the single-pass, sequential
and hierarchical strategies: pass budgeting, greedy batch packing, the
guarded generation call, and merging of partial outputs.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Protocol, Sequence, Tuple

from config import Settings, settings as default_settings
from contracts import ChunkingStrategy, ChunkPriority, ContentChunk, ContextPlan, GenerationPass
from context.estimator import estimate_tokens
from context.prioritizer import split_oversized
from context.prompt_builder import build_prompt
from context.prompts import BACKGROUND_HEADER, MERGE_PROMPT
from errors import GenerationCancelled, GenerationError
from assemblers.cancellation import CancellationToken
from structured_logging import get_logger, log_with_context

logger = get_logger(__name__)

DEFAULT_INSTRUCTION = "Generate the document from the project context below."


class Generator(Protocol):
    """Anything with generate(prompt_text) -> result_text."""

    def generate(self, prompt_text: str) -> str:
        ...


@dataclass
class AssemblyRun:
    """Record of an assembler execution."""
    strategy: str
    request_id: Optional[str] = None
    started_at: datetime = field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None
    passes: List[GenerationPass] = field(default_factory=list)
    merge_calls: int = 0
    status: str = "running"
    error: Optional[str] = None


class BaseAssembler(ABC):
    """Base class for generation strategies.

    Provides:
    - Guarded generation calls (cancellation, logging, error wrapping)
    - Pass records in execution order
    - Greedy, order-preserving batch packing
    - Merging of partial outputs
    """

    def __init__(
        self,
        generator: Generator,
        settings: Optional[Settings] = None,
        cancel_token: Optional[CancellationToken] = None,
        request_id: Optional[str] = None,
        output_instructions: Optional[str] = None,
    ):
        """Initialize the assembler.

        Args:
            generator: Generation service (or any object with generate())
            settings: Budget knobs; defaults to the global settings
            cancel_token: Checked before every generation call
            request_id: Correlation id carried into log lines
            output_instructions: Extra instructions for the final call only
                (used for structured JSON output)
        """
        self.generator = generator
        self.settings = settings or default_settings
        self.cancel_token = cancel_token or CancellationToken()
        self.request_id = request_id
        self.output_instructions = output_instructions
        self.run = AssemblyRun(strategy=self.strategy.value, request_id=request_id)

    @property
    @abstractmethod
    def strategy(self) -> ChunkingStrategy:
        """Return the strategy this assembler implements."""
        pass

    @abstractmethod
    def _assemble(self, plan: ContextPlan) -> str:
        pass

    @property
    def passes(self) -> List[GenerationPass]:
        return self.run.passes

    def assemble(self, plan: ContextPlan) -> str:
        """Produce the final document for a plan.

        Raises:
            GenerationError: If any generation call fails; no partial document is returned
        """
        try:
            document = self._assemble(plan)
        except GenerationError as e:
            self.run.status = "failed"
            self.run.error = str(e)
            raise
        self.run.status = "completed"
        self.run.completed_at = datetime.now()
        return document

    # ------------------------------------------------------------------
    # Helpers for subclasses
    # ------------------------------------------------------------------

    def _tokens(self, text: Optional[str]) -> int:
        return estimate_tokens(text, self.settings.chars_per_token)

    def _split_instruction(self, chunks: Sequence[ContentChunk]) -> Tuple[str, List[str], List[ContentChunk]]:
        """Separate the template prompt from content chunks.

        Returns:
            Tuple of (instruction text, instruction chunk names, content chunks)
        """
        instruction_chunks = [c for c in chunks if c.priority == ChunkPriority.TEMPLATE_PROMPT]
        content = [c for c in chunks if c.priority != ChunkPriority.TEMPLATE_PROMPT]
        if not instruction_chunks:
            return DEFAULT_INSTRUCTION, [], content
        instruction = "\n\n".join(c.text for c in instruction_chunks)
        return instruction, [c.name for c in instruction_chunks], content

    def _pass_budget(self, context_limit: int, *fixed_texts: Optional[str]) -> int:
        """Tokens left for content once the fixed parts of a prompt are paid for."""
        fixed = sum(self._tokens(t) for t in fixed_texts)
        budget = context_limit - fixed - self.settings.prompt_reserve_tokens
        return max(self.settings.min_batch_tokens, budget)

    def _pack(self, chunks: Sequence[ContentChunk], budget: int) -> List[List[ContentChunk]]:
        """Greedily pack chunks into ordered batches of at most budget tokens."""
        sized = split_oversized(list(chunks), budget, self.settings.chars_per_token)
        batches: List[List[ContentChunk]] = []
        current: List[ContentChunk] = []
        used = 0
        for chunk in sized:
            if current and used + chunk.estimated_tokens > budget:
                batches.append(current)
                current, used = [], 0
            current.append(chunk)
            used += chunk.estimated_tokens
        if current:
            batches.append(current)
        return batches

    def _invoke(self, phase: str, index: int, chunk_names: List[str], prompt: str) -> GenerationPass:
        """Run one generation call without recording it.

        Safe to call from worker threads; the caller records the pass.
        """
        if self.cancel_token.cancelled:
            raise GenerationCancelled(
                self.cancel_token.reason or "cancelled",
                phase=phase,
                index=index,
                completed_passes=self.passes,
            )

        prompt_tokens = self._tokens(prompt)
        log_with_context(
            logger,
            logging.INFO,
            "Generation call",
            request_id=self.request_id,
            phase=phase,
            index=index,
            chunks=",".join(chunk_names) or "-",
            prompt_tokens=prompt_tokens,
        )

        try:
            result = self.generator.generate(prompt)
        except GenerationError as e:
            message = e.args[0] if e.args else str(e)
            raise type(e)(message, phase=phase, index=index, completed_passes=self.passes) from e
        except Exception as e:
            raise GenerationError(
                f"{type(e).__name__}: {e}", phase=phase, index=index, completed_passes=self.passes
            ) from e

        return GenerationPass(
            phase=phase,
            index=index,
            chunks_included=list(chunk_names),
            prompt_text=prompt,
            result_text=result,
            estimated_prompt_tokens=prompt_tokens,
        )

    def _call(self, phase: str, index: int, chunk_names: List[str], prompt: str) -> str:
        """Run and record one generation call, returning its text."""
        generation_pass = self._invoke(phase, index, chunk_names, prompt)
        self.run.passes.append(generation_pass)
        return generation_pass.result_text

    def _final_closing(self, closing: Optional[str]) -> Optional[str]:
        if not self.output_instructions:
            return closing
        if not closing:
            return self.output_instructions
        return f"{closing}\n\n{self.output_instructions}"

    # ------------------------------------------------------------------
    # Merging
    # ------------------------------------------------------------------

    def _merge_prompt(
        self,
        instruction: str,
        partials: Sequence[Tuple[str, str]],
        grounding: Optional[str],
        final: bool,
    ) -> str:
        drafts = "\n\n".join(f"=== {label.upper()} ===\n{text}" for label, text in partials)
        preamble = f"{BACKGROUND_HEADER}\n{grounding}\n\n{drafts}" if grounding else drafts
        closing = self._final_closing(MERGE_PROMPT) if final else MERGE_PROMPT
        return build_prompt(instruction, preamble=preamble, closing=closing)

    def _group_partials(
        self,
        instruction: str,
        partials: List[Tuple[str, str]],
        grounding: Optional[str],
        context_limit: int,
    ) -> List[List[Tuple[str, str]]]:
        budget = self._pass_budget(context_limit, instruction, grounding, MERGE_PROMPT)
        groups: List[List[Tuple[str, str]]] = []
        current: List[Tuple[str, str]] = []
        used = 0
        for label, text in partials:
            cost = self._tokens(text)
            if current and used + cost > budget:
                groups.append(current)
                current, used = [], 0
            current.append((label, text))
            used += cost
        if current:
            groups.append(current)
        return groups

    def _merge(
        self,
        instruction: str,
        partials: List[str],
        context_limit: int,
        grounding: Optional[str] = None,
    ) -> str:
        """Combine ordered partial outputs into the final document.

        Partials too large for one merge call are merged group-wise, level by
        level. When grouping can no longer shrink the input, the remaining
        partials are concatenated in order.
        """
        if len(partials) == 1:
            return partials[0]
        if self.settings.merge_strategy == "concatenate":
            return "\n\n".join(partials)

        level = [(f"draft {i}", text) for i, text in enumerate(partials, 1)]
        while True:
            prompt = self._merge_prompt(instruction, level, grounding, final=True)
            if self._tokens(prompt) <= context_limit:
                return self._merge_call(level, grounding, prompt)

            groups = self._group_partials(instruction, level, grounding, context_limit)
            if all(len(group) == 1 for group in groups):
                log_with_context(
                    logger,
                    logging.WARNING,
                    "Partials too large to merge; concatenating in order",
                    request_id=self.request_id,
                    partials=len(level),
                )
                return "\n\n".join(text for _, text in level)

            merged_level: List[Tuple[str, str]] = []
            for i, group in enumerate(groups, 1):
                if len(group) == 1:
                    merged_level.append(group[0])
                    continue
                group_prompt = self._merge_prompt(instruction, group, grounding, final=False)
                label = f"merged draft {i}"
                merged_level.append((label, self._merge_call(group, grounding, group_prompt)))
            level = merged_level

    def _merge_call(
        self,
        drafts: Sequence[Tuple[str, str]],
        grounding: Optional[str],
        prompt: str,
    ) -> str:
        self.run.merge_calls += 1
        names = [label for label, _ in drafts]
        if grounding:
            names.insert(0, "grounding_summary")
        return self._call("merge", self.run.merge_calls, names, prompt)
