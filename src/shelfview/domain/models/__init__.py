from .core import Product
from .query import PageRequest, normalize_query
from .state import ListState, ProductListSnapshot

__all__ = [
    "ListState",
    "PageRequest",
    "Product",
    "ProductListSnapshot",
    "normalize_query",
]
