# unixls/core/context.py - Cancellation context threaded through one listing

import threading
import time
from typing import Optional

from .errors import ContextCancelledError


class Context:
    """
    Cancellation token with an optional deadline.

    One Context is created per invocation and passed to every call that may
    block (entry enumeration, block fetches). Cancelling it is safe from any
    thread.
    """

    def __init__(self, timeout: Optional[float] = None):
        self._cancelled = threading.Event()
        self._deadline = time.monotonic() + timeout if timeout else None

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def deadline_exceeded(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set() or self.deadline_exceeded

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None if there is no deadline."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def check(self) -> None:
        """Raises ContextCancelledError once the context is done."""
        if self._cancelled.is_set():
            raise ContextCancelledError()
        if self.deadline_exceeded:
            raise ContextCancelledError(deadline_exceeded=True)
