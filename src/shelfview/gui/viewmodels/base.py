"""BaseViewModel: pure Python, no GUI toolkit dependency.

Provides subscription and task lifecycle management so that concrete
ViewModels can subscribe to ``EventBus`` events and schedule coroutines on the
running loop, and have both cleaned up automatically via ``dispose()``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Coroutine, Optional, Set, Type

from shelfview.events.bus import EventBus, Subscription

_logger = logging.getLogger(__name__)


class BaseViewModel:
    """ViewModel base class."""

    def __init__(self) -> None:
        self._subscriptions: list[Subscription] = []
        self._tasks: Set[asyncio.Task] = set()
        self._disposed = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    def subscribe_event(
        self,
        event_bus: EventBus,
        event_type: Type,
        handler: Callable,
    ) -> Subscription:
        """Subscribe to an event type and track the subscription."""
        sub = event_bus.subscribe(event_type, handler)
        self._subscriptions.append(sub)
        return sub

    def schedule(self, coro: Coroutine) -> Optional[asyncio.Task]:
        """Run *coro* as a tracked task on the running loop.

        Returns ``None`` (and closes the coroutine) once the ViewModel has been
        disposed.
        """
        if self._disposed:
            coro.close()
            return None
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            _logger.error("Background task %r failed: %s", task, exc, exc_info=exc)

    def dispose(self) -> None:
        """Cancel all tracked event subscriptions and pending tasks."""
        self._disposed = True
        for sub in self._subscriptions:
            sub.cancel()
        self._subscriptions.clear()
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()
