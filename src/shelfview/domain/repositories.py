from abc import ABC, abstractmethod
from typing import List, Optional

from ..utils.cancellation import CancellationToken
from .models import Product


class ICredentialStore(ABC):
    """Holds at most one bearer token.

    Every operation is asynchronous and none of them fails on a missing key.
    """

    @abstractmethod
    async def save(self, token: str) -> None:
        pass

    @abstractmethod
    async def read(self) -> Optional[str]:
        """Return the stored token, or ``None`` when the store is empty."""
        pass

    @abstractmethod
    async def clear(self) -> None:
        pass


class IProductGateway(ABC):
    """Remote operations of the product API.

    Implementations report outcomes through ``Unauthorized``,
    ``RequestCancelled`` and ``RequestFailed`` and never act on them.
    """

    @abstractmethod
    async def authenticate(self, username: str, password: str) -> str:
        """Log in, persist the returned token and return it."""
        pass

    @abstractmethod
    async def list_products(
        self,
        query: Optional[str],
        offset: int,
        limit: int,
        cancel_token: Optional[CancellationToken] = None,
    ) -> List[Product]:
        pass
