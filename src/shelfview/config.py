"""Default configuration values for shelfview."""

from __future__ import annotations

from typing import Final

# Base URL used when neither the environment nor the settings file provide
# one.  Points at a backend started locally on the developer machine; an
# Android emulator reaches the host through ``http://10.0.2.2:8000`` instead.
DEFAULT_API_BASE_URL: Final[str] = "http://127.0.0.1:8000"
API_BASE_URL_ENV: Final[str] = "SHELFVIEW_API_BASE_URL"

LOGIN_PATH: Final[str] = "/auth/login/"
PRODUCTS_PATH: Final[str] = "/products"

# Key under which the bearer token is persisted by the credential stores.
TOKEN_KEY: Final[str] = "access_token"

# ---------------------------------------------------------------------------
# Transport timeouts
# ---------------------------------------------------------------------------

CONNECT_TIMEOUT_SEC: Final[float] = 10.0
SEND_TIMEOUT_SEC: Final[float] = 10.0
RECEIVE_TIMEOUT_SEC: Final[float] = 20.0

# ---------------------------------------------------------------------------
# List interaction constants
# ---------------------------------------------------------------------------

# Page size requested from ``GET /products``.  A page shorter than this marks
# the end of the result set.
PAGE_LIMIT: Final[int] = 20

SEARCH_DEBOUNCE_MS: Final[int] = 400

# Remaining scroll distance, in view units, below which the next page is
# requested.
SCROLL_NEAR_END_THRESHOLD: Final[float] = 200.0

SETTINGS_DIR_NAME: Final[str] = "shelfview"
SETTINGS_FILE_NAME: Final[str] = "settings.json"
CREDENTIALS_FILE_NAME: Final[str] = "credentials.json"
