"""Chunking contracts: content chunks, context plans and generation passes."""

from enum import Enum, IntEnum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

from .document_contracts import DocumentStructure


class ChunkPriority(IntEnum):
    """Fixed chunk ordering. Lower value = higher priority.

    Decides what is packed first, what the grounding pass summarises,
    and the section order of the merged document.
    """
    PROJECT_SUMMARY = 0
    TEMPLATE_PROMPT = 1
    QUESTION_ANSWERS = 2
    STAKEHOLDER_PROFILES = 3
    FILE_CONTENT = 4
    QUESTIONS_LIST = 5
    METADATA = 6

    @classmethod
    def for_name(cls, name: str) -> "ChunkPriority":
        """Priority for a chunk name; unknown names fall to the metadata tier."""
        return _ALIASES.get((name or "").strip().lower(), cls.METADATA)


_ALIASES: Dict[str, ChunkPriority] = {
    "project_summary": ChunkPriority.PROJECT_SUMMARY,
    "template_prompt": ChunkPriority.TEMPLATE_PROMPT,
    "question_answers": ChunkPriority.QUESTION_ANSWERS,
    "interview_responses": ChunkPriority.QUESTION_ANSWERS,
    "stakeholder_responses": ChunkPriority.QUESTION_ANSWERS,
    "responses_by_category": ChunkPriority.QUESTION_ANSWERS,
    "responses_by_stakeholder": ChunkPriority.QUESTION_ANSWERS,
    "stakeholder_profiles": ChunkPriority.STAKEHOLDER_PROFILES,
    "stakeholders": ChunkPriority.STAKEHOLDER_PROFILES,
    "file_content": ChunkPriority.FILE_CONTENT,
    "uploads": ChunkPriority.FILE_CONTENT,
    "files": ChunkPriority.FILE_CONTENT,
    "questions_list": ChunkPriority.QUESTIONS_LIST,
    "question_list": ChunkPriority.QUESTIONS_LIST,
    "questions": ChunkPriority.QUESTIONS_LIST,
    "metadata": ChunkPriority.METADATA,
}


class ChunkingStrategy(str, Enum):
    """How many generation calls a request needs and how they relate."""
    NONE = "none"
    SEQUENTIAL = "sequential"
    HIERARCHICAL = "hierarchical"


class ContentChunk(BaseModel):
    """A named, sized block of text destined for a generation prompt."""
    name: str = Field(..., min_length=1, description="Unique key, e.g. 'file_content'")
    text: str
    priority: int = Field(..., ge=0)
    estimated_tokens: int = Field(..., ge=0)


class ContextConfig(BaseModel):
    """Token budget configuration for a generation request."""
    context_limit: int = Field(..., description="Single-call budget in estimated tokens")
    hierarchical_threshold: int = Field(
        ..., description="Total above which hierarchical processing is used"
    )


class ContextPlan(BaseModel):
    """Sized, ordered chunks plus the chosen processing strategy."""
    total_estimated_tokens: int = Field(..., ge=0)
    context_limit: int
    hierarchical_threshold: int
    strategy: ChunkingStrategy
    chunks: List[ContentChunk] = Field(default_factory=list)

    @model_validator(mode="after")
    def _strategy_matches_budget(self) -> "ContextPlan":
        fits = self.total_estimated_tokens <= self.context_limit
        if fits != (self.strategy == ChunkingStrategy.NONE):
            raise ValueError(
                f"strategy {self.strategy.value} inconsistent with "
                f"{self.total_estimated_tokens} tokens against limit {self.context_limit}"
            )
        return self

    def chunk_names(self) -> List[str]:
        return [c.name for c in self.chunks]


class GenerationPass(BaseModel):
    """One invocation of the generation service."""
    phase: str = Field(..., description="single, sequential, grounding, detail or merge")
    index: int = Field(..., ge=1)
    chunks_included: List[str] = Field(default_factory=list)
    prompt_text: str
    result_text: str = ""
    estimated_prompt_tokens: int = 0


class GenerationResult(BaseModel):
    """Outcome of a document generation request."""
    document: str
    strategy: ChunkingStrategy
    plan: ContextPlan
    passes: List[GenerationPass] = Field(default_factory=list)
    iterations: int = 0
    structure: Optional[DocumentStructure] = None
    usage: Dict[str, Any] = Field(default_factory=dict)
