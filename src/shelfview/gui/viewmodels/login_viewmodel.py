"""Login form ViewModel: validation and submission without widgets."""

from __future__ import annotations

import logging
from typing import Dict

from shelfview.application.services.auth_service import AuthService
from shelfview.errors import CredentialStoreError, RequestFailed, Unauthorized

from .base import BaseViewModel
from .signal import ObservableProperty, Signal

REQUIRED_MESSAGE = "Required"


class LoginViewModel(BaseViewModel):
    def __init__(self, auth_service: AuthService) -> None:
        super().__init__()
        self._auth = auth_service
        self._logger = logging.getLogger(__name__)

        self.submitting = ObservableProperty(False)
        self.error = ObservableProperty(None)
        self.field_errors = ObservableProperty({})

        self.logged_in = Signal()  # emits (username)

    @staticmethod
    def validate(username: str, password: str) -> Dict[str, str]:
        """Return a ``field -> message`` mapping; empty when the form is valid."""
        errors: Dict[str, str] = {}
        if not username or not username.strip():
            errors["username"] = REQUIRED_MESSAGE
        if not password:
            errors["password"] = REQUIRED_MESSAGE
        return errors

    async def submit(self, username: str, password: str) -> bool:
        """Validate and log in; returns True once the token is stored."""
        if self.disposed or self.submitting.value:
            return False
        errors = self.validate(username, password)
        self.field_errors.value = errors
        if errors:
            return False

        username = username.strip()
        self.submitting.value = True
        self.error.value = None
        try:
            await self._auth.login(username, password)
        except Unauthorized as exc:
            self.error.value = exc.message
            return False
        except (RequestFailed, CredentialStoreError) as exc:
            self._logger.warning("Login failed: %s", exc)
            self.error.value = f"Error: {exc}"
            return False
        finally:
            self.submitting.value = False

        self.logged_in.emit(username)
        return True
