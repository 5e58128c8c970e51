"""Trailing-edge debouncer for search text input."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from shelfview.config import SEARCH_DEBOUNCE_MS
from shelfview.domain.models import normalize_query

from .signal import Signal

_logger = logging.getLogger(__name__)


class SearchDebouncer:
    """Coalesce a burst of text changes into one trailing event.

    Each :meth:`on_change` cancels the pending timer before arming a new one,
    so only the last change inside any ``delay_ms`` window reaches
    ``triggered`` (with the trimmed text).  After :meth:`dispose` nothing is
    emitted again.
    """

    def __init__(
        self,
        delay_ms: int = SEARCH_DEBOUNCE_MS,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        self._delay = delay_ms / 1000.0
        self._loop = loop
        self._handle: Optional[asyncio.TimerHandle] = None
        self._latest: str = ""
        self._disposed = False
        self.triggered = Signal()  # emits (text)

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def connect(self, listener: Callable[[str], None]) -> None:
        self.triggered.connect(listener)

    def on_change(self, text: str) -> None:
        if self._disposed:
            return
        self._latest = text
        self.cancel()
        loop = self._loop or asyncio.get_running_loop()
        self._handle = loop.call_later(self._delay, self._fire)

    def flush(self) -> None:
        """Fire the pending event now instead of waiting for the timer."""
        if self._handle is None:
            return
        self.cancel()
        self._emit()

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def dispose(self) -> None:
        self.cancel()
        self._disposed = True
        self.triggered.disconnect_all()

    def _fire(self) -> None:
        self._handle = None
        self._emit()

    def _emit(self) -> None:
        if self._disposed:
            return
        text = normalize_query(self._latest)
        _logger.debug("Debounced search text: %r", text)
        self.triggered.emit(text)
