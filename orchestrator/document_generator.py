"""Document Generator - Central entry point for DocForge.

The Document Generator:
1. Turns named texts plus a template prompt into prioritized chunks
2. Sizes them against the budget and picks a strategy
3. Dispatches to the matching assembler
4. Returns the document with its plan, passes and usage
"""

import logging
import uuid
from typing import Dict, Iterable, Mapping, Optional

from assemblers import (
    BaseAssembler,
    CancellationToken,
    HierarchicalAssembler,
    SequentialAssembler,
    SinglePassAssembler,
)
from config import Settings, settings as default_settings
from contracts import ChunkingStrategy, ContextConfig, ContextPlan, GenerationResult
from context.planner import plan as plan_context, validate_context_config
from context.prioritizer import build_chunks
from documents import parse_structured_response, structured_output_instructions
from errors import GenerationError
from providers.generation import GenerationService, TokenUsage
from resolver import VariableResolver
from resolver.store import ProjectDataStore
from structured_logging import get_logger, log_with_context

logger = get_logger(__name__)

ASSEMBLERS = {
    ChunkingStrategy.NONE: SinglePassAssembler,
    ChunkingStrategy.SEQUENTIAL: SequentialAssembler,
    ChunkingStrategy.HIERARCHICAL: HierarchicalAssembler,
}


def _usage_delta(before: TokenUsage, after: TokenUsage) -> Dict[str, float]:
    return {
        "calls": after.calls - before.calls,
        "input_tokens": after.input_tokens - before.input_tokens,
        "output_tokens": after.output_tokens - before.output_tokens,
        "cost_usd": round(after.cost_usd - before.cost_usd, 6),
    }


class DocumentGenerator:
    """Orchestrates one document generation request at a time.

    Holds no state between requests apart from the generator it was given;
    every plan, pass record and error belongs to a single run() call.
    """

    def __init__(
        self,
        generator=None,
        settings: Optional[Settings] = None,
    ):
        """Initialize the Document Generator.

        Args:
            generator: Object with generate(prompt_text) -> str; defaults to a
                GenerationService on the configured model, created on first use
            settings: Budget knobs; defaults to the global settings
        """
        self._generator = generator
        self.settings = settings or default_settings

    @property
    def generator(self):
        if self._generator is None:
            self._generator = GenerationService()
        return self._generator

    def _context_config(self, config: Optional[ContextConfig]) -> ContextConfig:
        if config is None:
            config = ContextConfig(
                context_limit=self.settings.context_limit,
                hierarchical_threshold=self.settings.hierarchical_threshold,
            )
        return validate_context_config(config)

    def prepare(
        self,
        named_texts: Mapping[str, str],
        template_prompt: str,
        config: Optional[ContextConfig] = None,
    ) -> ContextPlan:
        """Build chunks and the context plan without calling the model.

        Raises:
            PlanningError: If the budget configuration is invalid
        """
        config = self._context_config(config)
        texts = {name: text for name, text in named_texts.items() if name != "template_prompt"}
        texts["template_prompt"] = template_prompt
        chunks = build_chunks(texts, self.settings.chars_per_token)
        return plan_context(chunks, config.context_limit, config.hierarchical_threshold)

    def run(
        self,
        named_texts: Mapping[str, str],
        template_prompt: str,
        config: Optional[ContextConfig] = None,
        title: Optional[str] = None,
        structured: bool = False,
        project_name: Optional[str] = None,
        client_name: Optional[str] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> GenerationResult:
        """Generate a document.

        Args:
            named_texts: Chunk name -> text (e.g. from VariableResolver.resolve)
            template_prompt: Document instructions; always sent with every pass
            config: Budget override; defaults to the configured limits
            title: Document title (structured output and logs)
            structured: Ask the final call for DocumentStructure JSON
            project_name: Project name for structured metadata
            client_name: Client name for structured metadata
            cancel_token: Checked before every generation call of this request

        Returns:
            GenerationResult with the document, plan and pass records

        Raises:
            PlanningError: Invalid budget configuration
            GenerationError: A generation call failed; no partial document is returned
        """
        request_id = uuid.uuid4().hex[:12]
        context_plan = self.prepare(named_texts, template_prompt, config)

        log_with_context(
            logger,
            logging.INFO,
            "Generation request",
            request_id=request_id,
            title=title or "-",
            chunk_count=len(context_plan.chunks),
            total_tokens=context_plan.total_estimated_tokens,
            context_limit=context_plan.context_limit,
            strategy=context_plan.strategy.value,
            chunks=",".join(f"{c.name}:{c.estimated_tokens}" for c in context_plan.chunks),
        )

        output_instructions = None
        if structured:
            output_instructions = structured_output_instructions(
                title or "Untitled Document", project_name, client_name
            )

        assembler: BaseAssembler = ASSEMBLERS[context_plan.strategy](
            self.generator,
            settings=self.settings,
            cancel_token=cancel_token or CancellationToken(),
            request_id=request_id,
            output_instructions=output_instructions,
        )

        usage_before = getattr(self.generator, "usage", None)
        if isinstance(usage_before, TokenUsage):
            usage_before = usage_before.model_copy()

        try:
            document = assembler.assemble(context_plan)
        except GenerationError as e:
            log_with_context(
                logger,
                logging.ERROR,
                "Generation failed",
                request_id=request_id,
                phase=e.phase or "-",
                index=e.index if e.index is not None else "-",
                completed_passes=len(e.completed_passes),
                error=e,
            )
            raise

        usage: Dict[str, float] = {}
        if isinstance(usage_before, TokenUsage):
            usage = _usage_delta(usage_before, self.generator.usage)

        structure = parse_structured_response(document) if structured else None

        log_with_context(
            logger,
            logging.INFO,
            "Generation complete",
            request_id=request_id,
            strategy=context_plan.strategy.value,
            iterations=len(assembler.passes),
            document_chars=len(document),
            structured=structure is not None,
        )

        return GenerationResult(
            document=document,
            strategy=context_plan.strategy,
            plan=context_plan,
            passes=list(assembler.passes),
            iterations=len(assembler.passes),
            structure=structure,
            usage=usage,
        )

    def run_for_project(
        self,
        project_id: str,
        store: ProjectDataStore,
        template_prompt: str,
        config: Optional[ContextConfig] = None,
        title: Optional[str] = None,
        structured: bool = False,
        variables: Optional[Iterable[str]] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> GenerationResult:
        """Resolve a project's variables from a store, then generate.

        Raises:
            DataStoreError: If the project cannot be read
            PlanningError: Invalid budget configuration
            GenerationError: A generation call failed
        """
        resolver = VariableResolver(store)
        bundle = store.load_bundle(project_id)
        names = list(variables) if variables is not None else resolver.chunk_variables(template_prompt)
        texts = resolver.resolve_bundle(bundle, names, document_title=title or "Untitled Document")

        return self.run(
            texts,
            resolver.render_template(template_prompt, bundle.project),
            config=config,
            title=title,
            structured=structured,
            project_name=bundle.project.name,
            client_name=bundle.client.name if bundle.client else None,
            cancel_token=cancel_token,
        )


def generate_document(
    named_texts: Mapping[str, str],
    template_prompt: str,
    config: Optional[ContextConfig] = None,
    generator=None,
) -> str:
    """Generate a document and return only its text.

    Deterministic for a deterministic generator: identical inputs produce
    identical prompts in the same order.

    Raises:
        PlanningError: Invalid budget configuration
        GenerationError: A generation call failed
    """
    return DocumentGenerator(generator=generator).run(named_texts, template_prompt, config).document
