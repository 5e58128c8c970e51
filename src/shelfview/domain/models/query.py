from dataclasses import dataclass
from typing import Dict, Optional, Union


def normalize_query(text: Optional[str]) -> str:
    """Return the trimmed search text; ``None`` and blanks mean "no filter"."""
    if text is None:
        return ""
    return text.strip()


@dataclass(frozen=True)
class PageRequest:
    """The (query, offset, limit) triple identifying one page fetch."""

    query: str = ""
    offset: int = 0
    limit: int = 20

    def __post_init__(self):
        if self.offset < 0:
            raise ValueError(f"offset must be >= 0, got {self.offset}")
        if self.limit <= 0:
            raise ValueError(f"limit must be > 0, got {self.limit}")
        object.__setattr__(self, "query", normalize_query(self.query))

    def params(self) -> Dict[str, Union[str, int]]:
        """Query-string parameters for ``GET /products``; ``q`` only when filtering."""
        params: Dict[str, Union[str, int]] = {}
        if self.query:
            params["q"] = self.query
        params["offset"] = self.offset
        params["limit"] = self.limit
        return params
