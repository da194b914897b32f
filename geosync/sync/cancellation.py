"""Cooperative cancellation tokens.

Every asynchronous call that may be superseded receives a
``CancellationToken``.  Cancelling the token runs the callbacks that the
I/O layer registered (typically cancelling its request task); nothing is
hard-killed.  A cancelled token stays cancelled: a superseded request's
token is invalidated, not reset.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from geosync.core.exceptions import TransientError

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger("geosync.sync.cancellation")


class OperationCancelledError(TransientError):
    """Raised by ``raise_if_cancelled`` on a cancelled token."""

    default_stage = "cancellation"
    default_code = "OPERATION_CANCELLED"


class CancellationToken:
    """One-shot cancellation signal.

    Example usage::

        token = CancellationToken(label="pois#3")
        unregister = token.add_callback(task.cancel)
        ...
        token.cancel()      # runs task.cancel()
        unregister()        # no-op once cancelled
    """

    def __init__(self, label: str = "") -> None:
        self._label = label
        self._cancelled = False
        self._callbacks: list[Callable[[], object]] = []

    @property
    def label(self) -> str:
        return self._label

    @property
    def cancelled(self) -> bool:
        """Whether ``cancel()`` has been called."""
        return self._cancelled

    def cancel(self) -> None:
        """Cancel the token and run registered callbacks once (idempotent)."""
        if self._cancelled:
            return
        self._cancelled = True
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            try:
                callback()
            except Exception:
                logger.exception("Cancellation callback failed | token=%s", self._label)

    def add_callback(self, callback: Callable[[], object]) -> Callable[[], None]:
        """Register *callback* to run on cancellation.

        If the token is already cancelled the callback runs immediately.

        Returns:
            A function that unregisters the callback.
        """
        if self._cancelled:
            callback()
            return _noop
        self._callbacks.append(callback)

        def unregister() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unregister

    def raise_if_cancelled(self) -> None:
        """Raise ``OperationCancelledError`` if the token is cancelled."""
        if self._cancelled:
            msg = f"Operation cancelled ({self._label or 'unlabelled'})"
            raise OperationCancelledError(msg)

    def __repr__(self) -> str:
        return f"CancellationToken(label={self._label!r}, cancelled={self._cancelled})"


def _noop() -> None:
    return None
