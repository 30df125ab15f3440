"""
Projection of Shopify records into local entity fields.

The sync engine (GraphQL nodes) and the webhook handlers (REST payloads) both
go through this module so the two write paths agree on the idempotency key and
on every stored field. Each ``project_*`` function returns
``(external_id, fields)`` where ``fields`` maps column name to value.
"""
import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from app.http.requests.schemas import CustomerRecord, ImageRecord, LineItemRecord, VariantRecord
from app.models import ProductStatus

logger = logging.getLogger(__name__)


def extract_id(gid: Any) -> str:
    """gid://shopify/Product/123456 -> "123456". Plain ids pass through as strings."""
    if gid is None:
        return ""
    return str(gid).rstrip("/").split("/")[-1]


def require_id(gid: Any) -> str:
    """extract_id for the idempotency key of a stored entity; an empty id is a malformed record."""
    external_id = extract_id(gid).strip()
    if not external_id:
        raise ValueError(f"Shopify record has no id: {gid!r}")
    return external_id


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
    """ISO timestamp -> naive UTC. GraphQL sends UTC, REST payloads send shop-local offsets."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        logger.debug("Unparseable timestamp from Shopify: %s", value)
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _decimal(value: Any) -> Decimal:
    try:
        return Decimal(str(value if value not in (None, "") else 0))
    except InvalidOperation:
        return Decimal("0")


def _nodes(connection: Optional[dict]) -> list[dict]:
    """edges[].node of a nested GraphQL connection."""
    return [edge.get("node") or {} for edge in (connection or {}).get("edges") or [] if isinstance(edge, dict)]


def _product_status(value: Optional[str]) -> ProductStatus:
    try:
        return ProductStatus((value or "active").lower())
    except ValueError:
        logger.warning("Unknown product status %r; storing as active", value)
        return ProductStatus.ACTIVE


def _split_tags(tags: Any) -> list[str]:
    """REST payloads send "a, b, c"; GraphQL sends a list."""
    if isinstance(tags, list):
        return [str(t).strip() for t in tags if str(t).strip()]
    return [t.strip() for t in str(tags or "").split(",") if t.strip()]


# GraphQL nodes (full sync)

def project_product_node(node: dict) -> tuple[str, dict]:
    variants = [
        VariantRecord(
            id=extract_id(v.get("id")),
            title=v.get("title") or "",
            price=str(v.get("price") or "0"),
            sku=v.get("sku") or "",
        ).model_dump()
        for v in _nodes(node.get("variants"))
    ]
    images = [
        ImageRecord(
            id=extract_id(i.get("id")),
            url=i.get("url") or "",
            alt=i.get("altText") or "",
        ).model_dump()
        for i in _nodes(node.get("images"))
    ]
    return require_id(node.get("id")), {
        "title": node.get("title") or "",
        "body_html": node.get("descriptionHtml") or "",
        "vendor": node.get("vendor") or "",
        "product_type": node.get("productType") or "",
        "status": _product_status(node.get("status")),
        "tags": _split_tags(node.get("tags")),
        "variants": variants,
        "images": images,
        "published_at": _parse_datetime(node.get("publishedAt")),
    }


def project_collection_node(node: dict) -> tuple[str, dict]:
    count = node.get("productsCount")
    if isinstance(count, dict):
        # newer API versions wrap the count: {"count": N}
        count = count.get("count")
    return require_id(node.get("id")), {
        "title": node.get("title") or "",
        "body_html": node.get("descriptionHtml") or "",
        "handle": node.get("handle") or "",
        "products_count": int(count or 0),
        "published_at": _parse_datetime(node.get("publishedAt")),
    }


def project_order_node(node: dict) -> tuple[str, dict]:
    money = ((node.get("totalPriceSet") or {}).get("shopMoney")) or {}
    line_items = [
        LineItemRecord(
            id=extract_id(li.get("id")),
            title=li.get("title") or "",
            quantity=int(li.get("quantity") or 0),
            price=str((li.get("variant") or {}).get("price") or "0"),
        ).model_dump()
        for li in _nodes(node.get("lineItems"))
    ]
    c = node.get("customer")
    customer = None
    if c:
        customer = CustomerRecord(
            id=extract_id(c.get("id")),
            first_name=c.get("firstName") or "",
            last_name=c.get("lastName") or "",
            email=c.get("email") or "",
        ).model_dump()
    return require_id(node.get("id")), {
        "order_number": node.get("name") or "",
        "email": node.get("email") or "",
        "total_price": _decimal(money.get("amount")),
        "currency": money.get("currencyCode") or "USD",
        "financial_status": node.get("displayFinancialStatus") or "",
        "fulfillment_status": node.get("displayFulfillmentStatus") or "",
        "line_items": line_items,
        "customer": customer,
        "processed_at": _parse_datetime(node.get("processedAt")),
    }


# REST payloads (webhooks)

def project_product_payload(payload: dict) -> tuple[str, dict]:
    """products/create|update webhook body -> same fields as project_product_node."""
    variants = [
        VariantRecord(
            id=extract_id(v.get("id")),
            title=v.get("title") or "",
            price=str(v.get("price") or "0"),
            sku=v.get("sku") or "",
        ).model_dump()
        for v in payload.get("variants") or []
        if isinstance(v, dict)
    ]
    images = [
        ImageRecord(
            id=extract_id(i.get("id")),
            url=i.get("src") or "",
            alt=i.get("alt") or "",
        ).model_dump()
        for i in payload.get("images") or []
        if isinstance(i, dict)
    ]
    return require_id(payload.get("id")), {
        "title": payload.get("title") or "",
        "body_html": payload.get("body_html") or "",
        "vendor": payload.get("vendor") or "",
        "product_type": payload.get("product_type") or "",
        "status": _product_status(payload.get("status")),
        "tags": _split_tags(payload.get("tags")),
        "variants": variants,
        "images": images,
        "published_at": _parse_datetime(payload.get("published_at")),
    }
