"""Schema helpers for the application settings file."""

from __future__ import annotations

from copy import deepcopy
from typing import Any

from jsonschema import Draft202012Validator

from ..config import (
    CONNECT_TIMEOUT_SEC,
    DEFAULT_API_BASE_URL,
    RECEIVE_TIMEOUT_SEC,
    SEND_TIMEOUT_SEC,
)

SETTINGS_SCHEMA: dict[str, Any] = {
    "$id": "shelfview/settings.schema.json",
    "type": "object",
    "required": ["schema", "api"],
    "properties": {
        "schema": {"const": "shelfview/settings@1"},
        "api": {
            "type": "object",
            "required": ["base_url"],
            "properties": {
                "base_url": {"type": "string", "pattern": "^https?://"},
                "connect_timeout": {"type": "number", "exclusiveMinimum": 0},
                "send_timeout": {"type": "number", "exclusiveMinimum": 0},
                "receive_timeout": {"type": "number", "exclusiveMinimum": 0},
            },
            "additionalProperties": True,
        },
        "credentials_path": {"type": ["string", "null"]},
        "log_level": {
            "type": "string",
            "enum": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        },
    },
    "additionalProperties": True,
}

DEFAULT_SETTINGS: dict[str, Any] = {
    "schema": "shelfview/settings@1",
    "api": {
        "base_url": DEFAULT_API_BASE_URL,
        "connect_timeout": CONNECT_TIMEOUT_SEC,
        "send_timeout": SEND_TIMEOUT_SEC,
        "receive_timeout": RECEIVE_TIMEOUT_SEC,
    },
    "credentials_path": None,
    "log_level": "WARNING",
}

_validator = Draft202012Validator(SETTINGS_SCHEMA)


def merge_with_defaults(data: dict[str, Any] | None) -> dict[str, Any]:
    """Merge *data* with :data:`DEFAULT_SETTINGS` and validate the result."""

    merged = deepcopy(DEFAULT_SETTINGS)
    if data:
        for key, value in data.items():
            if key == "api" and isinstance(value, dict):
                target = merged.setdefault("api", {})
                for sub_key, sub_value in value.items():
                    target[sub_key] = sub_value
                continue
            if key == "log_level" and isinstance(value, str):
                merged[key] = value.upper()
                continue
            merged[key] = value
    _validator.validate(merged)
    return merged


__all__ = ["DEFAULT_SETTINGS", "SETTINGS_SCHEMA", "merge_with_defaults"]
