from .bus import Event, EventBus, Subscription
from .session_events import (
    SESSION_EXPIRED,
    SESSION_LOGOUT,
    LoggedInEvent,
    ProductsPageLoadedEvent,
    SessionEndedEvent,
)

__all__ = [
    "Event",
    "EventBus",
    "LoggedInEvent",
    "ProductsPageLoadedEvent",
    "SESSION_EXPIRED",
    "SESSION_LOGOUT",
    "SessionEndedEvent",
    "Subscription",
]
