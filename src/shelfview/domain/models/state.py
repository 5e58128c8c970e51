from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from .core import Product


class ListState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    REFRESHING = "refreshing"
    ERROR = "error"
    # Terminal: the credential was rejected or the user logged out.
    LOGGED_OUT = "logged_out"

    @property
    def is_busy(self) -> bool:
        return self in (ListState.LOADING, ListState.REFRESHING)


@dataclass(frozen=True)
class ProductListSnapshot:
    """Immutable view of the list state handed to the rendering layer."""

    items: Tuple[Product, ...] = ()
    loading: bool = False
    refreshing: bool = False
    error: Optional[str] = None
    has_more: bool = True
    state: ListState = ListState.IDLE
    query: str = ""

    @property
    def is_empty(self) -> bool:
        """True when there is nothing to show and nothing on the way."""
        return not self.items and not self.loading and not self.refreshing

    @property
    def show_footer_spinner(self) -> bool:
        return self.has_more and self.error is None
