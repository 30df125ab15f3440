"""
Shopify product webhooks: apply single-record deltas keyed by (shop, external id).
Uses the same projection as the full sync. Every handler returns an outcome dict
and never raises, so one bad delivery cannot affect another.
"""
import base64
import hmac
import hashlib
import logging
from typing import Callable, Optional

from sqlalchemy.orm import Session

from app.exceptions import ShopUnknown
from app.models import Product, Shop
from app.services.catalog_store import delete_by_external_id, insert, update_if_exists
from app.services.credentials import get_shop_by_domain
from app.services.shopify_mapping import project_product_payload, require_id

logger = logging.getLogger(__name__)


def verify_webhook_hmac(body: bytes, hmac_header: Optional[str], secret: Optional[str]) -> bool:
    """
    Verify X-Shopify-Hmac-Sha256: HMAC-SHA256(raw_body, secret) base64 == header.
    """
    if not secret or not hmac_header or not body:
        return False
    computed = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()
    computed_b64 = base64.b64encode(computed).decode("utf-8")
    return hmac.compare_digest(computed_b64, hmac_header.strip())


def _resolve_shop(db: Session, shop_domain: Optional[str]) -> Shop:
    shop = get_shop_by_domain(db, shop_domain or "")
    if not shop:
        raise ShopUnknown(f"No credential for shop {shop_domain!r}")
    return shop


def _apply(db: Session, shop_domain: Optional[str], topic: str, payload: dict, action: Callable[[Session, Shop, dict], bool]) -> dict:
    try:
        shop = _resolve_shop(db, shop_domain)
        applied = action(db, shop, payload)
        db.commit()
        return {"success": True, "applied": applied}
    except ShopUnknown as e:
        logger.warning("Webhook %s: %s", topic, e)
        return {"success": False, "error": "ShopUnknown", "message": str(e)}
    except Exception as e:
        db.rollback()
        logger.exception("Webhook %s failed for shop %s: %s", topic, shop_domain, e)
        return {"success": False, "error": type(e).__name__, "message": str(e)}


def _create(db: Session, shop: Shop, payload: dict) -> bool:
    # Unconditional insert: a duplicate delivery fails on the (shop_id, shopify_id) constraint
    external_id, fields = project_product_payload(payload)
    insert(db, Product, shop.id, external_id, fields)
    logger.info("Product created via webhook: %s (%s)", fields["title"], external_id)
    return True


def _update(db: Session, shop: Shop, payload: dict) -> bool:
    external_id, fields = project_product_payload(payload)
    row = update_if_exists(db, Product, shop.id, external_id, fields)
    if row is None:
        logger.info("Product update webhook for unknown product %s on %s: ignored", external_id, shop.shop_domain)
        return False
    logger.info("Product updated via webhook: %s (%s)", fields["title"], external_id)
    return True


def _delete(db: Session, shop: Shop, payload: dict) -> bool:
    external_id = require_id(payload.get("id"))
    deleted = delete_by_external_id(db, Product, shop.id, external_id)
    logger.info("Product deleted via webhook: %s (%s row(s))", external_id, deleted)
    return deleted > 0


def handle_product_create(db: Session, shop_domain: Optional[str], payload: dict) -> dict:
    return _apply(db, shop_domain, "products/create", payload, _create)


def handle_product_update(db: Session, shop_domain: Optional[str], payload: dict) -> dict:
    return _apply(db, shop_domain, "products/update", payload, _update)


def handle_product_delete(db: Session, shop_domain: Optional[str], payload: dict) -> dict:
    return _apply(db, shop_domain, "products/delete", payload, _delete)


PRODUCT_HANDLERS = {
    "create": handle_product_create,
    "update": handle_product_update,
    "delete": handle_product_delete,
}
