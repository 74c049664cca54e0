"""
Cancellation and deadline handling for inventory calls.

A Context is passed explicitly to every resource operation and checked by the
pagination loop before each page request, so a cancelled run stops issuing
provider calls instead of returning a partial result.
"""

import threading
import time
from typing import Optional

from cloud_inventory.core.exceptions import OperationCancelled


class Context:
    """Cancellation flag with an optional deadline.

    Child contexts created with ``with_timeout`` are cancelled together with
    their parent but may carry a shorter deadline of their own.
    """

    def __init__(self, timeout: Optional[float] = None, parent: Optional["Context"] = None):
        """Create a context.

        Args:
            timeout: Seconds until the deadline, or None for no deadline
            parent: Context whose cancellation also cancels this one
        """
        self._cancel_requested = threading.Event()
        self._parent = parent
        self._deadline = time.monotonic() + timeout if timeout is not None else None

    @classmethod
    def background(cls) -> "Context":
        """Context that is never cancelled unless ``cancel`` is called."""
        return cls()

    def with_timeout(self, timeout: float) -> "Context":
        """Derive a child context that expires after ``timeout`` seconds."""
        return Context(timeout=timeout, parent=self)

    def cancel(self) -> None:
        """Request cancellation."""
        self._cancel_requested.set()

    @property
    def deadline_exceeded(self) -> bool:
        if self._deadline is not None and time.monotonic() >= self._deadline:
            return True
        return self._parent is not None and self._parent.deadline_exceeded

    def is_cancelled(self) -> bool:
        """Check if cancellation was requested or the deadline passed."""
        if self._cancel_requested.is_set() or self.deadline_exceeded:
            return True
        return self._parent is not None and self._parent.is_cancelled()

    def remaining(self) -> Optional[float]:
        """Seconds left before the nearest deadline, or None if unbounded."""
        candidates = []
        if self._deadline is not None:
            candidates.append(max(0.0, self._deadline - time.monotonic()))
        if self._parent is not None:
            parent_remaining = self._parent.remaining()
            if parent_remaining is not None:
                candidates.append(parent_remaining)
        return min(candidates) if candidates else None

    def check(self) -> None:
        """Raise OperationCancelled if this context is no longer live."""
        if self.deadline_exceeded:
            raise OperationCancelled("Operation deadline exceeded")
        if self.is_cancelled():
            raise OperationCancelled()
