"""Cooperative cancellation handle for in-flight gateway requests."""

from __future__ import annotations

import logging
from typing import Callable, List, Optional

from ..errors import RequestCancelled

_logger = logging.getLogger(__name__)

CancelCallback = Callable[[str], None]


class CancellationToken:
    """Caller-owned flag that a running request checks and reacts to.

    ``cancel()`` is idempotent.  Callbacks registered through
    :meth:`add_callback` run once, synchronously, when the token is cancelled;
    a callback added to an already-cancelled token runs immediately.
    """

    def __init__(self) -> None:
        self._reason: Optional[str] = None
        self._callbacks: List[CancelCallback] = []

    @property
    def is_cancelled(self) -> bool:
        return self._reason is not None

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def cancel(self, reason: str = "cancelled") -> None:
        if self._reason is not None:
            return
        self._reason = reason
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            try:
                callback(reason)
            except Exception as exc:
                _logger.error("Cancellation callback %r failed: %s", callback, exc)

    def add_callback(self, callback: CancelCallback) -> Callable[[], None]:
        """Register *callback* and return a function that unregisters it."""
        if self._reason is not None:
            callback(self._reason)
            return lambda: None
        self._callbacks.append(callback)

        def _remove() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return _remove

    def raise_if_cancelled(self) -> None:
        if self._reason is not None:
            raise RequestCancelled(self._reason)

    def __repr__(self) -> str:
        state = f"cancelled={self._reason!r}" if self.is_cancelled else "active"
        return f"<CancellationToken {state}>"
