"""Cooperative cancellation for long-running store operations."""

from __future__ import annotations

import threading

from filestore.errors import OperationCancelledError


class CancellationToken:
    """A thread-safe flag checked by backends between SDK calls.

    Backends never interrupt an in-flight request; a cancelled token takes
    effect at the next page, part or delete flush.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        """Request cancellation."""
        self._event.set()

    @property
    def cancelled(self) -> bool:
        """True once cancel() has been called."""
        return self._event.is_set()

    def raise_if_cancelled(self, path: str | None = None) -> None:
        """Raise OperationCancelledError if cancellation was requested."""
        if self._event.is_set():
            raise OperationCancelledError(path=path)


def check_cancelled(token: CancellationToken | None, path: str | None = None) -> None:
    """Raise if an optional token has been cancelled."""
    if token is not None:
        token.raise_if_cancelled(path)
