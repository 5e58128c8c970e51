"""Pure-Python bookkeeping for an offset-paginated product listing.

Tracks the accumulated items, the next offset and whether another page is
expected.  The loader performs no I/O; the list ViewModel asks it for the next
:class:`PageRequest` and feeds the received page back through
:meth:`PaginatedProductLoader.apply_page`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Sequence

from shelfview.config import PAGE_LIMIT
from shelfview.domain.models import PageRequest, Product, normalize_query
from shelfview.utils.logging import get_logger

LOGGER = get_logger("paginated_loader")


@dataclass
class PageResult:
    """Result of applying a single page."""

    items: List[Product] = field(default_factory=list)
    offset: int = 0
    limit: int = PAGE_LIMIT

    @property
    def count(self) -> int:
        return len(self.items)

    @property
    def has_more(self) -> bool:
        return self.count >= self.limit


class PaginatedProductLoader:
    """Stateful result-set accumulator for one query at a time.

    ``offset`` is the sum of the items received since the last
    :meth:`reset`, not ``pages * limit``: the final page may be short.
    Items are not deduplicated by id; if the server window shifts between
    fetches the list may contain duplicates or gaps.
    """

    def __init__(self, limit: int = PAGE_LIMIT) -> None:
        if limit <= 0:
            raise ValueError(f"limit must be > 0, got {limit}")
        self._limit = limit

        # State
        self._items: List[Product] = []
        self._offset: int = 0
        self._has_more: bool = True
        self._query: str = ""

    # -- properties --------------------------------------------------------

    @property
    def items(self) -> List[Product]:
        return self._items

    @property
    def offset(self) -> int:
        return self._offset

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def has_more(self) -> bool:
        return self._has_more

    @property
    def query(self) -> str:
        return self._query

    # -- public API --------------------------------------------------------

    def reset(self, query: str) -> None:
        """Start a new query session, discarding everything accumulated."""
        self._query = normalize_query(query)
        self._items = []
        self._offset = 0
        self._has_more = True

    def next_request(self) -> PageRequest:
        return PageRequest(query=self._query, offset=self._offset, limit=self._limit)

    def apply_page(self, items: Sequence[Product]) -> PageResult:
        """**Append** a received page and advance the window."""
        received = list(items)
        result = PageResult(items=received, offset=self._offset, limit=self._limit)
        self._items = self._items + received
        self._offset += len(received)
        self._has_more = result.has_more
        LOGGER.debug(
            "Applied page q=%r offset=%d count=%d has_more=%s",
            self._query,
            result.offset,
            result.count,
            self._has_more,
        )
        return result
