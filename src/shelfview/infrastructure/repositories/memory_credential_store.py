from typing import Optional

from shelfview.domain.repositories import ICredentialStore


class MemoryCredentialStore(ICredentialStore):
    """Credential store kept in process memory; gone when the process exits."""

    def __init__(self, token: Optional[str] = None):
        self._token = token

    async def save(self, token: str) -> None:
        self._token = token

    async def read(self) -> Optional[str]:
        return self._token

    async def clear(self) -> None:
        self._token = None
