import asyncio
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

# Make the sources importable without an editable install.
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from shelfview.domain.models import Product  # noqa: E402
from shelfview.domain.repositories import IProductGateway  # noqa: E402
from shelfview.errors import RequestCancelled  # noqa: E402
from shelfview.utils.cancellation import CancellationToken  # noqa: E402


def make_products(count: int, start: int = 0, prefix: str = "item") -> List[Product]:
    return [Product(id=start + i, name=f"{prefix}-{start + i}") for i in range(count)]


@dataclass
class PendingCall:
    query: Optional[str]
    offset: int
    limit: int
    cancel_token: Optional[CancellationToken]
    future: asyncio.Future = field(repr=False)

    def resolve(self, result: Any) -> None:
        """Complete the call with a list of products or an exception."""
        if not self.future.done():
            self.future.set_result(result)


class ManualGateway(IProductGateway):
    """Gateway double whose ``list_products`` calls are completed by the test.

    With ``honor_cancel=False`` a cancelled token does not abort the call,
    modelling a transport that delivers the response anyway.
    """

    def __init__(self, honor_cancel: bool = True):
        self.honor_cancel = honor_cancel
        self.calls: List[PendingCall] = []
        self.tokens: List[str] = []

    async def authenticate(self, username: str, password: str) -> str:
        self.tokens.append(username)
        return f"token-{username}"

    async def list_products(self, query, offset, limit, cancel_token=None):
        future = asyncio.get_running_loop().create_future()
        call = PendingCall(query, offset, limit, cancel_token, future)
        self.calls.append(call)
        remove = None
        if cancel_token is not None and self.honor_cancel:
            remove = cancel_token.add_callback(lambda _r: future.cancel())
        try:
            result = await future
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
            if cancel_token is not None and cancel_token.is_cancelled:
                raise RequestCancelled(cancel_token.reason or "cancelled") from None
            raise
        finally:
            if remove is not None:
                remove()
        if isinstance(result, BaseException):
            raise result
        return list(result)


class ScriptedGateway(IProductGateway):
    """Gateway double answering each call with the next scripted result."""

    def __init__(self, *results: Any):
        self.results = list(results)
        self.requests: List[tuple] = []

    async def authenticate(self, username: str, password: str) -> str:
        return "scripted-token"

    async def list_products(self, query, offset, limit, cancel_token=None):
        self.requests.append((query, offset, limit))
        result = self.results.pop(0)
        if isinstance(result, BaseException):
            raise result
        return list(result)


async def settle(rounds: int = 5) -> None:
    """Let scheduled tasks and callbacks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def products_factory():
    return make_products
