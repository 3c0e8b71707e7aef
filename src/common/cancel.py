"""Cooperative cancellation shared by sibling tasks of a parallel run."""

from __future__ import annotations

import threading
from typing import Optional

from errors import OperationCancelled


class CancelToken:
    """Thread-safe flag checked at every blocking call boundary.

    Cancellation never interrupts a running network request or subprocess;
    the next boundary check raises ``OperationCancelled`` instead.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._reason: Optional[str] = None
        self._lock = threading.Lock()

    def cancel(self, reason: str = "cancelled") -> None:
        with self._lock:
            if not self._event.is_set():
                self._reason = reason
                self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def raise_if_cancelled(self, operation: str) -> None:
        """Raise ``OperationCancelled`` naming ``operation`` if cancel() was called."""
        if self._event.is_set():
            raise OperationCancelled(f"{operation} cancelled: {self._reason}")


def check_cancelled(token: Optional[CancelToken], operation: str) -> None:
    """Shorthand for callers that accept an optional token."""
    if token is not None:
        token.raise_if_cancelled(operation)
