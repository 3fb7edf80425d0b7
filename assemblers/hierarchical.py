"""Hierarchical assembly for requests far over the context limit.

Pipeline:
  PHASE 1 (grounding): instruction + project summary (+ Q&A that fits) -> grounding summary
  PHASE 2 (detail):    BASE CONTEXT (summary) + ADDITIONAL DETAILS (batch) -> partial, per batch;
                       every non-summary chunk, Q&A used for grounding included
  MERGE:               partials in planned order, summary as background -> final document
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, List, Optional, Tuple

from contracts import ChunkingStrategy, ChunkPriority, ContentChunk, ContextPlan, GenerationPass
from context.estimator import smart_truncate, tokens_to_chars
from context.prioritizer import split_oversized
from context.prompt_builder import build_prompt
from context.prompts import DETAIL_PROMPT, GROUNDING_PROMPT
from assemblers.base_assembler import BaseAssembler
from config import Settings
from errors import GenerationError
from structured_logging import get_logger, log_with_context

logger = get_logger(__name__)

BASE_CONTEXT_HEADER = "BASE CONTEXT:"
DETAILS_HEADER = "ADDITIONAL DETAILS:"


class HierarchicalAssembler(BaseAssembler):
    """Summarize-then-detail generation.

    Phase 1 condenses the most important context into a grounding summary.
    Every Phase 2 batch carries that summary so each partial stays
    consistent with the whole project. Only Phase 2 partials are merged.
    """

    @property
    def strategy(self) -> ChunkingStrategy:
        return ChunkingStrategy.HIERARCHICAL

    def _select_critical(
        self,
        instruction: str,
        content: List[ContentChunk],
        context_limit: int,
    ) -> Tuple[List[ContentChunk], List[ContentChunk]]:
        """Split content into Phase 1 chunks and the Phase 2 remainder.

        Project summary chunks are always taken; Q&A-tier chunks follow in
        order while they fit the Phase 1 share of the limit. Q&A chunks taken
        for grounding also stay in the remainder, so every non-summary chunk
        reaches a detail batch.
        """
        summary_room = self._pass_budget(context_limit, instruction, GROUNDING_PROMPT)
        summaries = [c for c in content if c.priority == ChunkPriority.PROJECT_SUMMARY]
        rest = [c for c in content if c.priority != ChunkPriority.PROJECT_SUMMARY]

        critical: List[ContentChunk] = []
        overflow: List[ContentChunk] = []
        used = 0
        for chunk in split_oversized(summaries, summary_room, self.settings.chars_per_token):
            if used + chunk.estimated_tokens <= summary_room:
                critical.append(chunk)
                used += chunk.estimated_tokens
            else:
                overflow.append(chunk)
        if overflow:
            log_with_context(
                logger,
                logging.WARNING,
                "Project summary exceeds the grounding budget; remainder moved to detail batches",
                request_id=self.request_id,
                moved=",".join(c.name for c in overflow),
            )

        phase1_budget = int(context_limit * self.settings.phase1_budget_ratio)
        used += self._tokens(instruction)
        remaining: List[ContentChunk] = list(overflow)
        taking = True
        for chunk in rest:
            if taking and chunk.priority == ChunkPriority.QUESTION_ANSWERS:
                if used + chunk.estimated_tokens <= phase1_budget:
                    critical.append(chunk)
                    used += chunk.estimated_tokens
                else:
                    taking = False
            remaining.append(chunk)

        return critical, remaining

    def _grounding(self, instruction: str, instruction_names: List[str], critical: List[ContentChunk]) -> str:
        cap = self.settings.grounding_summary_tokens
        prompt = build_prompt(instruction, critical, closing=GROUNDING_PROMPT.format(max_tokens=cap))
        names = instruction_names + [c.name for c in critical]
        summary = self._call("grounding", 1, names, prompt)
        return smart_truncate(summary, tokens_to_chars(cap, self.settings.chars_per_token))

    def _detail_prompt(self, instruction: str, summary: str, batch: List[ContentChunk], final: bool) -> str:
        preamble = f"{BASE_CONTEXT_HEADER}\n{summary}\n\n{DETAILS_HEADER}"
        closing = self._final_closing(DETAIL_PROMPT) if final else DETAIL_PROMPT
        return build_prompt(instruction, batch, preamble=preamble, closing=closing)

    def _run_parallel(
        self,
        jobs: List[Tuple[int, List[str], str]],
    ) -> List[str]:
        """Run detail batches on a thread pool; results come back in planned order."""
        results: Dict[int, GenerationPass] = {}
        workers = min(self.settings.max_parallel_batches, len(jobs))

        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {
                executor.submit(self._invoke, "detail", index, names, prompt): index
                for index, names, prompt in jobs
            }
            try:
                for future in as_completed(futures):
                    results[futures[future]] = future.result()
            except GenerationError as e:
                if not self.cancel_token.cancelled:
                    self.cancel_token.cancel(f"detail batch {e.index} failed")
                for pending in futures:
                    pending.cancel()
                e.completed_passes = self.passes + [results[i] for i in sorted(results)]
                raise

        ordered = [results[index] for index, _, _ in jobs]
        self.run.passes.extend(ordered)
        return [p.result_text for p in ordered]

    def _assemble(self, plan: ContextPlan) -> str:
        instruction, instruction_names, content = self._split_instruction(plan.chunks)

        critical, remaining = self._select_critical(instruction, content, plan.context_limit)
        summary = self._grounding(instruction, instruction_names, critical)

        framing = f"{BASE_CONTEXT_HEADER}\n\n{DETAILS_HEADER}\n{DETAIL_PROMPT}"
        budget = self._pass_budget(plan.context_limit, instruction, summary, framing)
        batches = self._pack(remaining, budget)
        if not batches:
            return summary

        final = len(batches) == 1
        jobs = [
            (
                i,
                instruction_names + [c.name for c in batch],
                self._detail_prompt(instruction, summary, batch, final),
            )
            for i, batch in enumerate(batches, 1)
        ]

        if self.settings.max_parallel_batches > 1 and len(jobs) > 1:
            partials = self._run_parallel(jobs)
        else:
            partials = [self._call("detail", index, names, prompt) for index, names, prompt in jobs]

        return self._merge(instruction, partials, plan.context_limit, grounding=summary)


def run_hierarchical(plan: ContextPlan, generator, settings: Optional[Settings] = None, **kwargs) -> str:
    """Run hierarchical assembly for a plan and return the merged document."""
    return HierarchicalAssembler(generator, settings=settings, **kwargs).assemble(plan)
