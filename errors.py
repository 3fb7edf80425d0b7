"""Error types for DocForge.

Missing extracted content on an upload is not an error. The resolver degrades
those uploads to a metadata-only line instead of raising.
"""

from typing import List, Optional


class DocForgeError(Exception):
    """Base class for all DocForge errors."""


class EstimationError(DocForgeError):
    """Token estimation failure. Estimation is pure arithmetic and never raises this."""


class PlanningError(DocForgeError):
    """Invalid budget configuration (e.g. hierarchical_threshold <= context_limit).

    Raised at config validation time, never per request.
    """


class GenerationError(DocForgeError):
    """A call to the generation service failed.

    Attributes:
        phase: Which phase failed (single, sequential, grounding, detail, merge)
        index: 1-based pass/batch index within the phase
        completed_passes: GenerationPass records that finished before the failure.
            Held in memory only, so a caller can see how far the run got.
    """

    def __init__(
        self,
        message: str,
        phase: Optional[str] = None,
        index: Optional[int] = None,
        completed_passes: Optional[List] = None,
    ):
        self.phase = phase
        self.index = index
        self.completed_passes = list(completed_passes or [])
        super().__init__(message)

    @property
    def location(self) -> str:
        """Human-readable pass label, e.g. 'sequential pass 2'."""
        if self.phase is None:
            return "generation"
        if self.index is None:
            return self.phase
        return f"{self.phase} pass {self.index}"

    def __str__(self) -> str:
        base = super().__str__()
        if self.phase is None:
            return base
        return f"[{self.location}] {base}"


class GenerationCancelled(GenerationError):
    """Run was cancelled (user abort or deadline) before a generation call."""


class DataStoreError(DocForgeError):
    """The project data store could not be read."""
