"""
Shopify OAuth service: install redirect, callback verification, token exchange.
The caller's transient session is passed in explicitly as a mutable mapping.
"""
import hashlib
import hmac
import logging
import re
import secrets
from typing import Mapping, MutableMapping
from urllib.parse import urlencode

import httpx
from sqlalchemy.orm import Session

from app.config import settings
from app.exceptions import InvalidShop, SignatureInvalid, StateMismatch, TokenExchangeFailed
from app.services.credentials import save_shop_credential

logger = logging.getLogger(__name__)

SHOP_DOMAIN_RE = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9\-]*\.myshopify\.com$")

SESSION_NONCE_KEY = "shopify_nonce"
SESSION_SHOP_KEY = "shop_domain"


class ShopifyOAuthService:
    """Handle Shopify OAuth flow. Uses provided values or falls back to settings (env)."""

    def __init__(
        self,
        api_key: str | None = None,
        api_secret: str | None = None,
        scopes: str | None = None,
        redirect_uri: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = (api_key or "").strip() or settings.SHOPIFY_API_KEY
        self.api_secret = (api_secret or "").strip() or settings.SHOPIFY_API_SECRET
        self.scopes = (scopes or "").strip() or settings.SHOPIFY_SCOPES
        self.redirect_uri = redirect_uri or settings.OAUTH_REDIRECT_URI
        self.transport = transport

    def validate_shop_domain(self, shop_domain: str | None) -> str:
        """Return the shop domain if it is a *.myshopify.com storefront, else raise InvalidShop."""
        shop = (shop_domain or "").strip()
        if not SHOP_DOMAIN_RE.match(shop):
            raise InvalidShop(f"Invalid shop domain: {shop_domain!r}")
        return shop

    def get_install_url(self, shop_domain: str, state: str) -> str:
        params = {
            "client_id": self.api_key,
            "scope": self.scopes,
            "redirect_uri": self.redirect_uri,
            "state": state,
        }
        return f"https://{shop_domain}/admin/oauth/authorize?{urlencode(params)}"

    def begin_install(self, shop_domain: str, session: MutableMapping) -> str:
        """Validate shop, store a fresh anti-replay nonce in session, return the authorization URL."""
        shop = self.validate_shop_domain(shop_domain)
        nonce = secrets.token_hex(16)
        session[SESSION_NONCE_KEY] = nonce
        session[SESSION_SHOP_KEY] = shop
        logger.info("Generated OAuth install URL for shop: %s", shop)
        return self.get_install_url(shop, nonce)

    def compute_hmac(self, params: Mapping[str, str]) -> str:
        """Hex HMAC-SHA256 over the sorted, URL-encoded params minus hmac/signature."""
        message = urlencode(sorted((k, v) for k, v in params.items() if k not in ("hmac", "signature")))
        return hmac.new(self.api_secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).hexdigest()

    def verify_hmac(self, params: Mapping[str, str]) -> bool:
        received = params.get("hmac")
        if not received or not self.api_secret:
            logger.warning("HMAC verification failed: missing hmac parameter or api_secret")
            return False
        # Constant-time comparison
        return hmac.compare_digest(self.compute_hmac(params), str(received))

    async def exchange_code_for_token(self, shop_domain: str, code: str) -> dict:
        url = f"https://{shop_domain}/admin/oauth/access_token"
        logger.info("Exchanging code for token for shop: %s", shop_domain)
        try:
            async with httpx.AsyncClient(timeout=settings.SHOPIFY_HTTP_TIMEOUT, transport=self.transport) as client:
                response = await client.post(
                    url,
                    json={
                        "client_id": self.api_key,
                        "client_secret": self.api_secret,
                        "code": code,
                    },
                )
            response.raise_for_status()
            token_data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error("Token exchange failed for shop %s: HTTP %s - %s", shop_domain, e.response.status_code, e.response.text[:200])
            raise TokenExchangeFailed(f"Token endpoint returned HTTP {e.response.status_code}") from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Token exchange error for shop %s: %s", shop_domain, e)
            raise TokenExchangeFailed(str(e)) from e

        if not isinstance(token_data, dict) or not str(token_data.get("access_token") or "").strip():
            raise TokenExchangeFailed("No access_token in Shopify response")
        # Log success (but not the token itself)
        logger.info("Successfully exchanged code for token for shop: %s", shop_domain)
        return token_data

    async def complete_callback(self, db: Session, params: Mapping[str, str], session: MutableMapping) -> str:
        """
        Verify state and signature, exchange the code, persist the shop credential.
        Returns the Shop id for the caller to attach to its own session.
        """
        expected = session.get(SESSION_NONCE_KEY)
        if not expected or params.get("state") != expected:
            raise StateMismatch("Invalid state parameter")

        shop = self.validate_shop_domain(params.get("shop"))

        if not self.verify_hmac(params):
            raise SignatureInvalid("HMAC verification failed")

        # Drops the nonce from this session only. The cookie is client-held, so a copy kept from before
        # the callback still passes the state check; Shopify rejects a second exchange of the same code.
        session.pop(SESSION_NONCE_KEY, None)

        token_data = await self.exchange_code_for_token(shop, params.get("code") or "")
        record = save_shop_credential(
            db,
            shop,
            str(token_data["access_token"]).strip(),
            token_data.get("scope") or "",
        )
        return record.id
