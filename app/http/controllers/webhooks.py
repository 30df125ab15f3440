"""
Webhook routes. Shopify product receivers are public (no session); the shop comes
from X-Shopify-Shop-Domain. Subscription registration needs an installed shop.
"""
import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.exceptions import RemoteDataError, RemoteError
from app.http.requests import WebhookRegistrationResponse
from app.http.session import get_current_shop
from app.models import Shop
from app.services.shopify_client import ShopifyGraphQLClient
from app.services.shopify_webhook_handler import PRODUCT_HANDLERS, verify_webhook_hmac

logger = logging.getLogger(__name__)

router = APIRouter()

PRODUCT_TOPICS = {
    "create": "PRODUCTS_CREATE",
    "update": "PRODUCTS_UPDATE",
    "delete": "PRODUCTS_DELETE",
}


def get_shopify_client() -> ShopifyGraphQLClient:
    return ShopifyGraphQLClient()


async def _receive_product(request: Request, action: str, db: Session) -> dict:
    shop_domain = (request.headers.get("X-Shopify-Shop-Domain") or "").strip()
    body = await request.body()

    if settings.SHOPIFY_WEBHOOK_VERIFY:
        hmac_header = request.headers.get("X-Shopify-Hmac-Sha256")
        if not verify_webhook_hmac(body, hmac_header, settings.SHOPIFY_API_SECRET):
            logger.warning("Shopify webhook: HMAC verification failed for shop=%s action=%s", shop_domain, action)
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid webhook signature")

    try:
        payload = json.loads(body.decode("utf-8") if body else "{}")
    except (ValueError, UnicodeDecodeError) as e:
        logger.warning("Shopify webhook: invalid JSON %s", e)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid JSON")
    if not isinstance(payload, dict):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid JSON")

    outcome = PRODUCT_HANDLERS[action](db, shop_domain, payload)
    if outcome["success"]:
        return {"success": True}
    if outcome.get("error") == "ShopUnknown":
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Shop not found")
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Webhook processing failed")


@router.post("/webhooks/products/create")
async def product_create(request: Request, db: Session = Depends(get_db)):
    return await _receive_product(request, "create", db)


@router.post("/webhooks/products/update")
async def product_update(request: Request, db: Session = Depends(get_db)):
    return await _receive_product(request, "update", db)


@router.post("/webhooks/products/delete")
async def product_delete(request: Request, db: Session = Depends(get_db)):
    return await _receive_product(request, "delete", db)


@router.post("/api/webhooks/register", response_model=WebhookRegistrationResponse)
async def register_product_webhooks(
    shop: Shop = Depends(get_current_shop),
    client: ShopifyGraphQLClient = Depends(get_shopify_client),
):
    """Subscribe the current shop's product create/update/delete topics to this app"""
    base_url = (settings.WEBHOOK_BASE_URL or settings.APP_URL).rstrip("/")
    registered = []
    errors = []
    for action, topic in PRODUCT_TOPICS.items():
        callback_url = f"{base_url}/webhooks/products/{action}"
        try:
            user_errors = await client.create_webhook_subscription(shop, topic, callback_url)
        except (RemoteError, RemoteDataError) as e:
            logger.error("Webhook registration %s failed for %s: %s", topic, shop.shop_domain, e)
            errors.append({"topic": topic, "message": str(e)})
            continue
        if user_errors:
            logger.warning("Webhook registration %s for %s returned userErrors: %s", topic, shop.shop_domain, user_errors)
            errors.append({"topic": topic, "message": "; ".join(str(u.get("message")) for u in user_errors)})
        else:
            logger.info("Registered webhook %s -> %s for %s", topic, callback_url, shop.shop_domain)
            registered.append(topic)
    return WebhookRegistrationResponse(registered=registered, errors=errors)
