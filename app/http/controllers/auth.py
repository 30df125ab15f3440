"""
Shopify install routes: redirect to the authorization screen, then handle the callback
"""
import logging
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.exceptions import InvalidShop, SignatureInvalid, StateMismatch, TokenExchangeFailed
from app.http.session import SESSION_SHOP_ID_KEY, load_session, save_session
from app.services.shopify_oauth import SESSION_SHOP_KEY, ShopifyOAuthService

logger = logging.getLogger(__name__)

router = APIRouter()


def get_oauth_service() -> ShopifyOAuthService:
    return ShopifyOAuthService()


@router.get("/install")
async def install(
    request: Request,
    shop: str = Query(None),
    oauth_service: ShopifyOAuthService = Depends(get_oauth_service),
):
    """Start the install: store a nonce in the session and send the merchant to Shopify"""
    session = load_session(request)
    try:
        auth_url = oauth_service.begin_install(shop, session)
    except InvalidShop as e:
        logger.warning("Install rejected: %s", e)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    response = RedirectResponse(url=auth_url, status_code=status.HTTP_302_FOUND)
    save_session(response, session)
    return response


@router.get("/auth/callback")
async def callback(
    request: Request,
    db: Session = Depends(get_db),
    oauth_service: ShopifyOAuthService = Depends(get_oauth_service),
):
    """
    Shopify redirects here with shop, code, state, timestamp and hmac.
    Verifies state and signature, exchanges the code and stores the credential.
    """
    session = load_session(request)
    params = dict(request.query_params)
    try:
        shop_id = await oauth_service.complete_callback(db, params, session)
    except (StateMismatch, SignatureInvalid, InvalidShop) as e:
        logger.warning("Shopify OAuth callback rejected: %s", e)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except TokenExchangeFailed as e:
        logger.error("Shopify OAuth token exchange failed: %s", e)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Token exchange with Shopify failed")

    session[SESSION_SHOP_ID_KEY] = shop_id
    shop = params.get("shop")
    session[SESSION_SHOP_KEY] = shop
    logger.info("Shopify OAuth complete for shop %s", shop)

    response = RedirectResponse(
        url=f"{settings.FRONTEND_URL}?{urlencode({'shop': shop})}",
        status_code=status.HTTP_302_FOUND,
    )
    save_session(response, session)
    return response
