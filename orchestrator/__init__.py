"""Orchestrator module for DocForge request execution."""

from assemblers.cancellation import CancellationToken
from .document_generator import DocumentGenerator, generate_document

__all__ = [
    "CancellationToken",
    "DocumentGenerator",
    "generate_document",
]
