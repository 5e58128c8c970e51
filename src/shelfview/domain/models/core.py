from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from numbers import Real
from typing import Any, Mapping, Optional

from dateutil.parser import isoparse


def _optional_str(payload: Mapping[str, Any], key: str) -> Optional[str]:
    value = payload.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"product field '{key}' must be a string, got {type(value).__name__}")
    return value


def _integer(payload: Mapping[str, Any], key: str) -> Optional[int]:
    value = payload.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, Real):
        raise ValueError(f"product field '{key}' must be a number, got {value!r}")
    if not math.isfinite(value):
        raise ValueError(f"product field '{key}' must be finite, got {value!r}")
    return int(value)


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if not isinstance(value, str) or not value:
        return None
    try:
        return isoparse(value)
    except (ValueError, OverflowError):
        return None


@dataclass(frozen=True)
class Product:
    """One row of the product listing.

    ``id`` is the identity of the item and stays stable across pages.
    """

    id: int
    name: str
    kcal_100g: Optional[int] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_json(cls, payload: Any) -> Product:
        """Build a product from its JSON object.

        Raises ``ValueError`` when the object does not have the expected
        shape.  ``kcal_100g`` is truncated to an integer and an unparsable
        ``updated_at`` is treated as absent.
        """
        if not isinstance(payload, Mapping):
            raise ValueError(f"product must be an object, got {type(payload).__name__}")

        product_id = _integer(payload, "id")
        if product_id is None:
            raise ValueError("product field 'id' is missing")
        name = payload.get("name")
        if not isinstance(name, str):
            raise ValueError(f"product {product_id} has no 'name'")

        return cls(
            id=product_id,
            name=name,
            kcal_100g=_integer(payload, "kcal_100g"),
            description=_optional_str(payload, "description"),
            image_url=_optional_str(payload, "image_url"),
            updated_at=_parse_timestamp(payload.get("updated_at")),
        )
