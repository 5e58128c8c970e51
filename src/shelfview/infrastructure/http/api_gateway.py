"""HTTP adapter for the product API."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, List, Optional

import httpx

from shelfview.config import (
    CONNECT_TIMEOUT_SEC,
    LOGIN_PATH,
    PRODUCTS_PATH,
    RECEIVE_TIMEOUT_SEC,
    SEND_TIMEOUT_SEC,
    TOKEN_KEY,
)
from shelfview.domain.models import PageRequest, Product
from shelfview.domain.repositories import ICredentialStore, IProductGateway
from shelfview.errors import RequestCancelled, RequestFailed, Unauthorized
from shelfview.utils.cancellation import CancellationToken

logger = logging.getLogger(__name__)


def create_http_client(
    base_url: str,
    connect_timeout: float = CONNECT_TIMEOUT_SEC,
    send_timeout: float = SEND_TIMEOUT_SEC,
    receive_timeout: float = RECEIVE_TIMEOUT_SEC,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Build the shared client; every request is bounded by these timeouts."""
    timeout = httpx.Timeout(
        connect=connect_timeout,
        write=send_timeout,
        read=receive_timeout,
        pool=connect_timeout,
    )
    return httpx.AsyncClient(
        base_url=base_url,
        timeout=timeout,
        headers={"Accept": "application/json"},
        transport=transport,
    )


def _extract_items(payload: Any) -> Optional[list]:
    """Accept a bare array or an ``{"items": [...]}`` envelope."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict) and isinstance(payload.get("items"), list):
        return payload["items"]
    return None


class HttpProductGateway(IProductGateway):
    """Talks to ``/auth/login/`` and ``/products`` with httpx.

    Outcomes are classified, never acted upon: a 401 becomes
    ``Unauthorized``, a caller cancellation ``RequestCancelled`` and every
    other failure ``RequestFailed``.
    """

    def __init__(self, client: httpx.AsyncClient, credentials: ICredentialStore) -> None:
        self._client = client
        self._credentials = credentials

    async def authenticate(self, username: str, password: str) -> str:
        try:
            response = await self._client.post(
                LOGIN_PATH,
                json={"username": username, "password": password},
            )
        except httpx.TimeoutException as exc:
            logger.warning("Login timed out: %s", exc)
            raise RequestFailed(f"Login timed out ({exc.__class__.__name__})") from exc
        except httpx.RequestError as exc:
            logger.warning("Login request failed: %s", exc)
            raise RequestFailed(f"Login failed ({exc})") from exc

        if response.status_code == 401:
            raise Unauthorized("Invalid credentials")
        if response.status_code != 200:
            logger.error("Login failed: status=%d", response.status_code)
            raise RequestFailed.from_status("Login", response.status_code)

        try:
            data = response.json()
        except ValueError:
            data = None
        token = data.get(TOKEN_KEY) if isinstance(data, dict) else None
        if not isinstance(token, str) or not token:
            raise Unauthorized("Invalid login response: token missing")

        await self._credentials.save(token)
        logger.info("Logged in as %s", username)
        return token

    async def list_products(
        self,
        query: Optional[str],
        offset: int,
        limit: int,
        cancel_token: Optional[CancellationToken] = None,
    ) -> List[Product]:
        token = await self._credentials.read()
        if token is None:
            raise Unauthorized("Token absent")

        page = PageRequest(query=query or "", offset=offset, limit=limit)
        request = self._client.build_request(
            "GET",
            PRODUCTS_PATH,
            params=page.params(),
            headers={"Authorization": f"Bearer {token}"},
        )
        response = await self._send(request, cancel_token)

        if response.status_code == 401:
            raise Unauthorized("Token expired or invalid")
        if response.status_code != 200:
            logger.error("GET %s failed: status=%d", PRODUCTS_PATH, response.status_code)
            raise RequestFailed.from_status(f"GET {PRODUCTS_PATH}", response.status_code)

        return self._parse_products(response)

    # ------------------------------------------------------------------
    # Internal utilities
    # ------------------------------------------------------------------
    async def _send(
        self,
        request: httpx.Request,
        cancel_token: Optional[CancellationToken],
    ) -> httpx.Response:
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()

        task = asyncio.ensure_future(self._client.send(request))
        remove = (
            cancel_token.add_callback(lambda _reason: task.cancel())
            if cancel_token is not None
            else None
        )
        try:
            response = await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
            if cancel_token is not None and cancel_token.is_cancelled and task.cancelled():
                logger.debug("%s %s cancelled: %s", request.method, request.url, cancel_token.reason)
                raise RequestCancelled(cancel_token.reason or "cancelled") from None
            raise
        except httpx.TimeoutException as exc:
            logger.warning("%s %s timed out: %s", request.method, request.url.path, exc)
            raise RequestFailed(
                f"{request.method} {request.url.path} timed out ({exc.__class__.__name__})"
            ) from exc
        except httpx.RequestError as exc:
            logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
            raise RequestFailed(f"{request.method} {request.url.path} failed ({exc})") from exc
        finally:
            if remove is not None:
                remove()

        # The transport could not abort in time; the late answer is still stale.
        if cancel_token is not None and cancel_token.is_cancelled:
            raise RequestCancelled(cancel_token.reason or "cancelled")
        return response

    @staticmethod
    def _parse_products(response: httpx.Response) -> List[Product]:
        try:
            payload = response.json()
        except ValueError as exc:
            raise RequestFailed(f"Invalid JSON in {PRODUCTS_PATH} response: {exc}") from exc

        items = _extract_items(payload)
        if items is None and isinstance(payload, str):
            # Some deployments double-encode the body as a JSON string.
            try:
                items = _extract_items(json.loads(payload))
            except ValueError:
                items = None
        if items is None:
            raise RequestFailed("Unexpected response format")

        try:
            return [Product.from_json(item) for item in items]
        except ValueError as exc:
            raise RequestFailed(f"Malformed product in response: {exc}") from exc
