"""Cooperative cancellation for long-running store operations.

A Context carries an optional deadline and a cancel flag. Operations call
`check()` between statements, cleanup rules and backup steps; nothing is
interrupted mid-statement.
"""

from __future__ import annotations

import threading
import time
from typing import Optional

from .errors import OperationCancelled


class Context:
    """Deadline and cancellation signal supplied by the caller."""

    def __init__(self, timeout: Optional[float] = None, deadline: Optional[float] = None):
        """
        Args:
            timeout: Seconds from now until the deadline
            deadline: Absolute deadline on the time.monotonic() clock
        """
        if timeout is not None:
            deadline = time.monotonic() + timeout
        self.deadline = deadline
        self._cancelled = threading.Event()

    @classmethod
    def background(cls) -> Context:
        """A context that never expires unless cancelled."""
        return cls()

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def expired(self) -> bool:
        return self.deadline is not None and time.monotonic() >= self.deadline

    def check(self, operation: str = "operation") -> None:
        """Raise OperationCancelled if cancelled or past the deadline."""
        if self.cancelled:
            raise OperationCancelled(f"{operation} cancelled")
        if self.expired:
            raise OperationCancelled(f"{operation} deadline exceeded")
