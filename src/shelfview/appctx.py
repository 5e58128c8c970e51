"""Application-wide context shared by the screens and the CLI."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import httpx

from .application.services.auth_service import AuthService
from .di import Container, bootstrap
from .domain.repositories import ICredentialStore, IProductGateway
from .errors.handler import ErrorHandler
from .events.bus import EventBus
from .gui.viewmodels.login_viewmodel import LoginViewModel
from .gui.viewmodels.product_list_viewmodel import ProductListViewModel
from .settings.manager import SettingsManager


def _create_settings_manager() -> SettingsManager:
    manager = SettingsManager()
    manager.load()
    return manager


@dataclass
class AppContext:
    """Container-built collaborators plus factories for per-screen ViewModels.

    ViewModels are created fresh for every screen and disposed when the
    screen goes away; the HTTP client, the credential store and the event bus
    live as long as the context.
    """

    settings: SettingsManager = field(default_factory=_create_settings_manager)
    container: Container = field(default_factory=Container)

    def __post_init__(self) -> None:
        bootstrap(self.container, self.settings)

    @classmethod
    def from_settings_path(cls, path: Optional[Path]) -> "AppContext":
        settings = SettingsManager(path=path)
        settings.load()
        return cls(settings=settings)

    # -- services ----------------------------------------------------------

    @property
    def event_bus(self) -> EventBus:
        return self.container.resolve(EventBus)

    @property
    def credentials(self) -> ICredentialStore:
        return self.container.resolve(ICredentialStore)

    @property
    def gateway(self) -> IProductGateway:
        return self.container.resolve(IProductGateway)

    @property
    def auth(self) -> AuthService:
        return self.container.resolve(AuthService)

    # -- screens -----------------------------------------------------------

    def create_product_list(self, **kwargs) -> ProductListViewModel:
        return ProductListViewModel(
            gateway=self.gateway,
            credentials=self.credentials,
            event_bus=self.event_bus,
            error_handler=self.container.resolve(ErrorHandler),
            **kwargs,
        )

    def create_login(self) -> LoginViewModel:
        return self.container.resolve(LoginViewModel)

    async def aclose(self) -> None:
        """Close the HTTP client if it was ever created."""
        client = self.container.singletons().get(httpx.AsyncClient)
        if client is not None:
            await client.aclose()
