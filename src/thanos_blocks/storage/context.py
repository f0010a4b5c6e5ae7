"""
Cancellation for bucket transfers.

A TransferContext is passed to every transfer helper, which checks it before
each object operation. Cancelling (or passing the deadline) stops a transfer
between objects. ``TransferContext.background()`` can never be cancelled and
is used for cleanup that must run even when the parent operation was aborted.
"""
from __future__ import annotations

import threading
import time
from typing import Optional

from .errors import TransferCancelled

__all__ = ["TransferContext"]


class TransferContext:
    """
    Cancellation token with an optional deadline.

    Thread-safe: cancel() may be called from another thread while a transfer
    runs.
    """

    def __init__(self, *, timeout_s: Optional[float] = None, cancellable: bool = True) -> None:
        if timeout_s is not None and timeout_s <= 0:
            raise ValueError(f"timeout_s must be positive, got {timeout_s}")
        self._cancelled = threading.Event()
        self._cancellable = cancellable
        self._deadline = time.monotonic() + timeout_s if timeout_s is not None else None

    @classmethod
    def background(cls) -> TransferContext:
        """Context that is never cancelled and has no deadline."""
        return cls(cancellable=False)

    @property
    def cancellable(self) -> bool:
        return self._cancellable

    def cancel(self) -> None:
        """Request cancellation. No-op on background contexts."""
        if self._cancellable:
            self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        if not self._cancellable:
            return False
        if self._cancelled.is_set():
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    def raise_if_cancelled(self, operation: str) -> None:
        """
        Raise if the context is done.

        Raises:
            TransferCancelled: If cancelled or past the deadline
        """
        if not self.cancelled:
            return
        reason = "cancelled" if self._cancelled.is_set() else "deadline exceeded"
        raise TransferCancelled(f"{operation}: {reason}")
