"""
Shopify Admin GraphQL client - authenticated requests for one shop at a time.
Knows nothing about local entities; returns decoded JSON or raises RemoteError.
No retries: callers decide what a failed page means.
"""
import logging
from typing import Any, Optional

import httpx

from app.config import settings
from app.exceptions import RemoteDataError, RemoteError
from app.models import Shop
from app.services.credentials import get_access_token
from app.services.shopify_queries import (
    COLLECTIONS_QUERY,
    ORDERS_QUERY,
    PRODUCTS_QUERY,
    WEBHOOK_SUBSCRIPTION_CREATE,
)

logger = logging.getLogger(__name__)


def _log_shopify_response(method: str, url: str, status: int, body_preview: str = "") -> None:
    """Log every Shopify API call for debugging. No sensitive data."""
    if status >= 400:
        logger.warning("Shopify API %s %s -> %s %s", method, url, status, body_preview[:200] if body_preview else "")
    else:
        logger.info("Shopify API %s %s -> %s", method, url, status)


def _graphql_url(shop_domain: str, api_version: str) -> str:
    shop = shop_domain.lower().strip()
    return f"https://{shop}/admin/api/{api_version}/graphql.json"


def _headers(access_token: str) -> dict:
    return {
        "X-Shopify-Access-Token": access_token,
        "Content-Type": "application/json",
    }


def page_of(response: dict, root: str) -> tuple[list[dict], bool, Optional[str]]:
    """
    Flatten a connection response: data.<root>.edges[].node + pageInfo.
    Returns (nodes, has_next_page, end_cursor).
    """
    connection = ((response or {}).get("data") or {}).get(root) or {}
    nodes = [edge.get("node") or {} for edge in connection.get("edges") or [] if isinstance(edge, dict)]
    page_info = connection.get("pageInfo") or {}
    return nodes, bool(page_info.get("hasNextPage")), page_info.get("endCursor")


class ShopifyGraphQLClient:
    """GraphQL transport for the Admin API. Pass `transport` to swap the network (tests)."""

    def __init__(
        self,
        api_version: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_version = api_version or settings.SHOPIFY_API_VERSION
        self.timeout = timeout if timeout is not None else settings.SHOPIFY_HTTP_TIMEOUT
        self.transport = transport

    async def query(self, shop: Shop, document: str, variables: Optional[dict[str, Any]] = None) -> dict:
        url = _graphql_url(shop.shop_domain, self.api_version)
        payload = {"query": document, "variables": variables or {}}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(url, json=payload, headers=_headers(get_access_token(shop)))
        except httpx.HTTPError as e:
            logger.warning("Shopify API POST %s failed: %s", url, e)
            raise RemoteError(f"Shopify API request failed: {e}", body=str(e)) from e

        body = response.text or ""
        _log_shopify_response("POST", url, response.status_code, body)
        if response.is_error:
            raise RemoteError(
                f"Shopify API request failed: HTTP {response.status_code}",
                status_code=response.status_code,
                body=body,
            )
        try:
            return response.json()
        except ValueError as e:
            raise RemoteError("Shopify API returned a non-JSON body", status_code=response.status_code, body=body) from e

    async def fetch_products(self, shop: Shop, limit: int = 50, cursor: Optional[str] = None) -> dict:
        return await self.query(shop, PRODUCTS_QUERY, {"limit": limit, "cursor": cursor})

    async def fetch_collections(self, shop: Shop, limit: int = 50, cursor: Optional[str] = None) -> dict:
        return await self.query(shop, COLLECTIONS_QUERY, {"limit": limit, "cursor": cursor})

    async def fetch_orders(self, shop: Shop, limit: int = 50, cursor: Optional[str] = None) -> dict:
        return await self.query(shop, ORDERS_QUERY, {"limit": limit, "cursor": cursor})

    async def create_webhook_subscription(self, shop: Shop, topic: str, callback_url: str) -> list[dict]:
        """
        Register callback_url for topic (e.g. PRODUCTS_CREATE).
        Returns the mutation's userErrors (empty list on success); the caller decides what to do with them.
        """
        data = await self.query(
            shop,
            WEBHOOK_SUBSCRIPTION_CREATE,
            {
                "topic": topic,
                "webhookSubscription": {"callbackUrl": callback_url, "format": "JSON"},
            },
        )
        if data.get("errors"):
            raise RemoteDataError(data["errors"])
        result = (data.get("data") or {}).get("webhookSubscriptionCreate") or {}
        return list(result.get("userErrors") or [])
