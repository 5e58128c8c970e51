"""Fire-once "near the end of the list" detector."""

from __future__ import annotations

from typing import Callable, Optional

from shelfview.config import SCROLL_NEAR_END_THRESHOLD

from .signal import Signal


class ScrollProximityTrigger:
    """Emit ``near_end`` once per approach to the end of the content.

    The trigger disarms after firing and re-arms when the remaining distance
    grows past the threshold again, or when :meth:`rearm` is called after a
    page was appended or the list was reset.  While ``can_fire()`` is false
    it stays armed without firing.
    """

    def __init__(
        self,
        threshold: float = SCROLL_NEAR_END_THRESHOLD,
        can_fire: Optional[Callable[[], bool]] = None,
    ) -> None:
        self._threshold = threshold
        self._can_fire = can_fire or (lambda: True)
        self._armed = True
        self.near_end = Signal()

    @property
    def armed(self) -> bool:
        return self._armed

    @staticmethod
    def remaining(scroll_offset: float, viewport_extent: float, content_extent: float) -> float:
        return content_extent - (scroll_offset + viewport_extent)

    def update(self, scroll_offset: float, viewport_extent: float, content_extent: float) -> bool:
        """Feed a scroll position; return True when ``near_end`` was emitted."""
        remaining = self.remaining(scroll_offset, viewport_extent, content_extent)
        if remaining > self._threshold:
            self._armed = True
            return False
        if not self._armed or not self._can_fire():
            return False
        self._armed = False
        self.near_end.emit()
        return True

    def rearm(self) -> None:
        self._armed = True
