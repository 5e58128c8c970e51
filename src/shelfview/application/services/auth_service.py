import logging

from shelfview.domain.repositories import ICredentialStore, IProductGateway
from shelfview.events.bus import EventBus
from shelfview.events.session_events import SESSION_LOGOUT, LoggedInEvent, SessionEndedEvent


class AuthService:
    """Session entry and exit points shared by the login screen and the CLI."""

    def __init__(
        self,
        gateway: IProductGateway,
        credentials: ICredentialStore,
        event_bus: EventBus,
    ):
        self._gateway = gateway
        self._credentials = credentials
        self._events = event_bus
        self._logger = logging.getLogger(__name__)

    async def login(self, username: str, password: str) -> None:
        """Authenticate; the gateway persists the token on success."""
        await self._gateway.authenticate(username, password)
        self._events.publish(LoggedInEvent(username=username))

    async def logout(self) -> None:
        await self._credentials.clear()
        self._logger.info("Logged out")
        self._events.publish(SessionEndedEvent(reason=SESSION_LOGOUT))

    async def is_authenticated(self) -> bool:
        return await self._credentials.read() is not None
