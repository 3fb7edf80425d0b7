"""Cancellation token threaded through every generation call."""

import threading
import time
from typing import Optional

from errors import GenerationCancelled


class CancellationToken:
    """Cooperative cancellation with an optional deadline.

    Assemblers call check() before each generation call, so a user abort or
    an upstream timeout stops the run at the next call boundary.
    """

    def __init__(self, deadline: Optional[float] = None):
        """Initialize the token.

        Args:
            deadline: Absolute time.monotonic() value after which the token counts as cancelled
        """
        self._event = threading.Event()
        self.deadline = deadline
        self.reason: Optional[str] = None

    @classmethod
    def with_timeout(cls, seconds: float) -> "CancellationToken":
        return cls(deadline=time.monotonic() + seconds)

    def cancel(self, reason: str = "cancelled by caller") -> None:
        self.reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self.deadline is not None and time.monotonic() >= self.deadline:
            self.reason = self.reason or "deadline exceeded"
            return True
        return False

    def check(self, phase: Optional[str] = None, index: Optional[int] = None) -> None:
        """Raise GenerationCancelled if the token has been cancelled."""
        if self.cancelled:
            raise GenerationCancelled(self.reason or "cancelled", phase=phase, index=index)
