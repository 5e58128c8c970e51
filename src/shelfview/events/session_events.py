from dataclasses import dataclass

from .bus import Event

# ``SessionEndedEvent.reason`` values.
SESSION_EXPIRED = "expired"
SESSION_LOGOUT = "logout"


@dataclass(kw_only=True)
class LoggedInEvent(Event):
    username: str = ""


@dataclass(kw_only=True)
class SessionEndedEvent(Event):
    reason: str = SESSION_LOGOUT


@dataclass(kw_only=True)
class ProductsPageLoadedEvent(Event):
    query: str = ""
    offset: int = 0
    count: int = 0
