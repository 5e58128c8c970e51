"""Credential store persisted as an owner-only JSON file."""

from __future__ import annotations

import asyncio
import json
import os
from pathlib import Path
from typing import Optional

from shelfview.config import CREDENTIALS_FILE_NAME, TOKEN_KEY
from shelfview.domain.repositories import ICredentialStore
from shelfview.errors import CredentialStoreError
from shelfview.settings.manager import default_config_dir
from shelfview.utils.jsonio import read_json, write_json
from shelfview.utils.logging import get_logger

logger = get_logger()

_FILE_MODE = 0o600


def default_credentials_path() -> Path:
    return default_config_dir() / CREDENTIALS_FILE_NAME


class FileCredentialStore(ICredentialStore):
    """Stores the bearer token in ``credentials.json`` next to the settings.

    The file is created with mode ``0o600`` and replaced atomically.  File
    I/O runs in a worker thread so the event loop is never blocked.  A
    missing or unreadable document reads as "no token".
    """

    def __init__(self, path: Optional[Path] = None):
        self._path = Path(path) if path is not None else default_credentials_path()

    @property
    def path(self) -> Path:
        return self._path

    async def save(self, token: str) -> None:
        await asyncio.to_thread(self._write, token)

    async def read(self) -> Optional[str]:
        return await asyncio.to_thread(self._read)

    async def clear(self) -> None:
        await asyncio.to_thread(self._delete)

    # ------------------------------------------------------------------
    # Blocking helpers
    # ------------------------------------------------------------------
    def _write(self, token: str) -> None:
        try:
            write_json(self._path, {TOKEN_KEY: token}, mode=_FILE_MODE)
        except OSError as exc:
            raise CredentialStoreError(f"Cannot write {self._path}: {exc}") from exc

    def _read(self) -> Optional[str]:
        try:
            payload = read_json(self._path)
        except FileNotFoundError:
            return None
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            logger.warning("Ignoring unreadable credential file %s: %s", self._path, exc)
            return None
        except OSError as exc:
            raise CredentialStoreError(f"Cannot read {self._path}: {exc}") from exc
        if not isinstance(payload, dict):
            logger.warning("Ignoring malformed credential file %s", self._path)
            return None
        token = payload.get(TOKEN_KEY)
        if not isinstance(token, str) or not token:
            return None
        return token

    def _delete(self) -> None:
        try:
            os.unlink(self._path)
        except FileNotFoundError:
            return
        except OSError as exc:
            raise CredentialStoreError(f"Cannot remove {self._path}: {exc}") from exc
