"""Settings file management with validation and change notifications."""

from __future__ import annotations

import json
import os
import sys
from copy import deepcopy
from pathlib import Path
from typing import Any, Mapping, Optional

from jsonschema import ValidationError

from ..config import API_BASE_URL_ENV, DEFAULT_API_BASE_URL, SETTINGS_DIR_NAME, SETTINGS_FILE_NAME
from ..errors import SettingsLoadError, SettingsValidationError
from ..gui.viewmodels.signal import Signal
from ..utils.jsonio import read_json, write_json
from .schema import DEFAULT_SETTINGS, merge_with_defaults


def default_config_dir() -> Path:
    """Return the per-user configuration directory for the current platform."""

    if os.name == "nt":
        base = os.environ.get("APPDATA")
        if base:
            return Path(base) / SETTINGS_DIR_NAME
        return Path.home() / "AppData" / "Roaming" / SETTINGS_DIR_NAME
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / SETTINGS_DIR_NAME
    base = os.environ.get("XDG_CONFIG_HOME")
    if base:
        return Path(base) / SETTINGS_DIR_NAME
    return Path.home() / ".config" / SETTINGS_DIR_NAME


def default_settings_path() -> Path:
    """Return the default settings.json location for the current platform."""

    return default_config_dir() / SETTINGS_FILE_NAME


class SettingsManager:
    """Load, validate and persist user settings for the application."""

    def __init__(
        self,
        path: Path | None = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._path = path
        self._environ = environ if environ is not None else os.environ
        self._data: dict[str, Any] = deepcopy(DEFAULT_SETTINGS)
        self.settings_changed = Signal()  # emits (key, value)

    @property
    def path(self) -> Path:
        return self._path or default_settings_path()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------
    def load(self, persist: bool = True) -> None:
        """Load the settings JSON from disk, creating defaults if missing."""

        path = self.path
        self._path = path
        if path.exists():
            try:
                payload = read_json(path)
            except (OSError, json.JSONDecodeError, UnicodeDecodeError) as exc:
                raise SettingsLoadError(str(exc)) from exc
            if not isinstance(payload, dict):
                raise SettingsLoadError(f"{path} does not contain a JSON object")
        else:
            payload = None
        try:
            self._data = merge_with_defaults(payload)
        except ValidationError as exc:
            raise SettingsValidationError(exc.message) from exc
        if persist:
            self._write()

    def get(self, key: str, default: Any | None = None) -> Any:
        """Return the value for *key*, supporting dotted access for nested keys."""

        target = self._data
        parts = key.split(".")
        for index, part in enumerate(parts):
            if not isinstance(target, dict) or part not in target:
                return default
            value = target[part]
            if index == len(parts) - 1:
                return value
            target = value
        return default

    def set(self, key: str, value: Any) -> None:
        """Update *key* with *value* and persist the change."""

        if isinstance(value, Path):
            value = str(value)
        candidate = deepcopy(self._data)
        parts = key.split(".")
        target: dict[str, Any] = candidate
        for part in parts[:-1]:
            branch = target.get(part)
            if not isinstance(branch, dict):
                branch = {}
                target[part] = branch
            target = branch
        target[parts[-1]] = value
        try:
            self._data = merge_with_defaults(candidate)
        except ValidationError as exc:
            raise SettingsValidationError(exc.message) from exc
        self._write()
        self.settings_changed.emit(key, value)

    # ------------------------------------------------------------------
    # Resolved values
    # ------------------------------------------------------------------
    def api_base_url(self) -> str:
        """Resolve the API base URL: environment, then settings, then fallback."""

        url = self._environ.get(API_BASE_URL_ENV) or self.get("api.base_url") or DEFAULT_API_BASE_URL
        return str(url).rstrip("/")

    def credentials_path(self) -> Optional[Path]:
        value = self.get("credentials_path")
        if not value:
            return None
        return Path(value).expanduser()

    def timeouts(self) -> tuple[float, float, float]:
        """Return ``(connect, send, receive)`` timeouts in seconds."""

        return (
            float(self.get("api.connect_timeout")),
            float(self.get("api.send_timeout")),
            float(self.get("api.receive_timeout")),
        )

    # ------------------------------------------------------------------
    # Internal utilities
    # ------------------------------------------------------------------
    def _write(self) -> None:
        path = self.path
        self._path = path
        write_json(path, self._data)


__all__ = ["SettingsManager", "default_config_dir", "default_settings_path"]
