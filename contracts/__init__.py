"""Pydantic contracts for DocForge.

Everything that crosses a component boundary (resolver -> chunker ->
planner -> assembler -> caller) is typed through these contracts.
"""

from .document_contracts import (
    CalloutType,
    Callout,
    DocumentTable,
    DocumentItem,
    DocumentSubsection,
    DocumentSection,
    DocumentAppendix,
    DocumentStructure,
)

from .chunk_contracts import (
    ChunkPriority,
    ChunkingStrategy,
    ContentChunk,
    ContextConfig,
    ContextPlan,
    GenerationPass,
    GenerationResult,
)

from .project_contracts import (
    ResponseType,
    ContentType,
    ExtractionStatus,
    Client,
    Project,
    Stakeholder,
    Question,
    InterviewResponse,
    ExtractedUpload,
    ProjectBundle,
)

__all__ = [
    # Documents
    "CalloutType",
    "Callout",
    "DocumentTable",
    "DocumentItem",
    "DocumentSubsection",
    "DocumentSection",
    "DocumentAppendix",
    "DocumentStructure",
    # Chunking
    "ChunkPriority",
    "ChunkingStrategy",
    "ContentChunk",
    "ContextConfig",
    "ContextPlan",
    "GenerationPass",
    "GenerationResult",
    # Project data
    "ResponseType",
    "ContentType",
    "ExtractionStatus",
    "Client",
    "Project",
    "Stakeholder",
    "Question",
    "InterviewResponse",
    "ExtractedUpload",
    "ProjectBundle",
]
