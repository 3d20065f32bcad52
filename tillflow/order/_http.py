"""
Storefront HTTP client — cart, addresses and order creation over httpx.

Responses are wrapped as ``{"data": {...}, "message": "..."}``; non-2xx
answers raise ``OrderBackendError`` carrying the backend message verbatim.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import httpx

from tillflow._errors import OrderBackendError
from tillflow._log import get_logger
from tillflow.pricing import CartSnapshot
from tillflow.order._source import parse_addresses, parse_cart
from tillflow.order._types import Address, OrderRequest

log = get_logger(__name__)

DEFAULT_TIMEOUT = 30.0


def _dig(body: Any, *path: str) -> Any:
    for key in path:
        if not isinstance(body, Mapping):
            return None
        body = body.get(key)
    return body


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    message = _dig(body, "message")
    if isinstance(message, str) and message:
        return message
    return f"Request failed with status {response.status_code}"


class StorefrontApi:
    """
    Cart source and order backend backed by the storefront REST API.

    The client carries base URL and auth headers:

        client = httpx.AsyncClient(
            base_url="https://api.example.com/api/v1",
            headers={"Authorization": f"Bearer {token}"},
        )
        api = StorefrontApi(client)
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        response = await self._client.request(method, path, **kwargs)
        if not response.is_success:
            message = _error_message(response)
            log.warning(
                "storefront.request_failed",
                method=method,
                path=path,
                status=response.status_code,
                message=message,
            )
            raise OrderBackendError(response.status_code, message)
        return response.json()

    async def get_cart(self) -> CartSnapshot:
        body = await self._request("GET", "/cart")
        items = _dig(body, "data", "cart", "items")
        return parse_cart(items if isinstance(items, list) else None)

    async def get_addresses(self) -> list[Address]:
        body = await self._request("GET", "/customers/profile")
        addresses = _dig(body, "data", "customer", "addresses")
        return parse_addresses(addresses if isinstance(addresses, list) else None)

    async def create_order(self, request: OrderRequest) -> str:
        """Submit the order; returns the backend order id ("" if absent)."""
        body = await self._request("POST", "/orders", json=request.to_payload())
        order_id = _dig(body, "data", "order", "_id")
        return str(order_id) if order_id else ""


def storefront_client(
    base_url: str,
    token: str | None = None,
    *,
    timeout: float = DEFAULT_TIMEOUT,
) -> httpx.AsyncClient:
    """AsyncClient for the storefront API."""
    headers = {"Accept": "application/json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return httpx.AsyncClient(base_url=base_url, headers=headers, timeout=timeout)


__all__ = ("StorefrontApi", "storefront_client", "DEFAULT_TIMEOUT")
