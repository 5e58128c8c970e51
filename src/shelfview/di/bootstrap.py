
import httpx

from .container import Container
from .lifetime import Lifetime
from ..application.services.auth_service import AuthService
from ..domain.repositories import ICredentialStore, IProductGateway
from ..errors.handler import ErrorHandler
from ..events.bus import EventBus
from ..gui.viewmodels.login_viewmodel import LoginViewModel
from ..infrastructure.http.api_gateway import HttpProductGateway, create_http_client
from ..infrastructure.repositories.file_credential_store import FileCredentialStore
from ..settings.manager import SettingsManager
from ..utils.logging import get_logger


def bootstrap(container: Container, settings: SettingsManager) -> None:
    """Register all application services in the DI container."""
    container.register_instance(SettingsManager, settings)
    container.register_singleton(EventBus, EventBus)

    if not container.is_registered(ICredentialStore):
        container.register_factory(
            ICredentialStore,
            lambda c: FileCredentialStore(c.resolve(SettingsManager).credentials_path()),
        )

    def _http_client(c: Container) -> httpx.AsyncClient:
        cfg = c.resolve(SettingsManager)
        connect, send, receive = cfg.timeouts()
        return create_http_client(
            cfg.api_base_url(),
            connect_timeout=connect,
            send_timeout=send,
            receive_timeout=receive,
        )

    if not container.is_registered(httpx.AsyncClient):
        container.register_factory(httpx.AsyncClient, _http_client)

    container.register_factory(
        IProductGateway,
        lambda c: HttpProductGateway(
            client=c.resolve(httpx.AsyncClient),
            credentials=c.resolve(ICredentialStore),
        ),
    )
    container.register_factory(
        ErrorHandler,
        lambda c: ErrorHandler(get_logger("errors"), c.resolve(EventBus)),
    )
    container.register_factory(
        AuthService,
        lambda c: AuthService(
            gateway=c.resolve(IProductGateway),
            credentials=c.resolve(ICredentialStore),
            event_bus=c.resolve(EventBus),
        ),
    )
    container.register_factory(
        LoginViewModel,
        lambda c: LoginViewModel(c.resolve(AuthService)),
        lifetime=Lifetime.TRANSIENT,
    )
