"""Central error reporting: log, publish on the bus, notify the screen."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from shelfview.events.bus import Event, EventBus

from . import CredentialStoreError, RequestCancelled, RequestFailed, Unauthorized


class ErrorSeverity(Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


@dataclass(kw_only=True)
class ErrorOccurredEvent(Event):
    error: Exception
    severity: ErrorSeverity
    message: str = ""
    context: dict = field(default_factory=dict)


def default_severity(error: Exception) -> ErrorSeverity:
    """Severity used when the caller does not pick one."""
    if isinstance(error, RequestCancelled):
        return ErrorSeverity.INFO
    if isinstance(error, (Unauthorized, RequestFailed, CredentialStoreError)):
        return ErrorSeverity.WARNING
    return ErrorSeverity.ERROR


def user_message(error: Exception) -> str:
    """Text suitable for an inline error label."""
    if isinstance(error, Unauthorized):
        return error.message
    text = str(error)
    return text or error.__class__.__name__


class ErrorHandler:
    """Routes recoverable failures to the log and the event bus.

    Screens show the returned message inline; anything else interested in
    failures subscribes to ``ErrorOccurredEvent``.
    """

    def __init__(self, logger: logging.Logger, event_bus: EventBus):
        self._logger = logger
        self._events = event_bus

    def handle(
        self,
        error: Exception,
        severity: Optional[ErrorSeverity] = None,
        context: Optional[dict] = None,
    ) -> str:
        """Report *error* and return the message shown to the user."""
        severity = severity or default_severity(error)
        context = context or {}
        message = user_message(error)

        log_method = getattr(self._logger, severity.value, self._logger.error)
        if context:
            log_method("%s: %s %s", error.__class__.__name__, message, context)
        else:
            log_method("%s: %s", error.__class__.__name__, message)

        self._events.publish(ErrorOccurredEvent(
            error=error,
            severity=severity,
            message=message,
            context=context,
        ))

        return message
