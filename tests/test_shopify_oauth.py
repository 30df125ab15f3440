"""
OAuth install flow: shop validation, install URL, callback HMAC/state, token exchange
"""
import json
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from app.exceptions import InvalidShop, SignatureInvalid, StateMismatch, TokenExchangeFailed
from app.models import Shop
from app.services.credentials import decrypt_token
from app.services.shopify_oauth import SESSION_NONCE_KEY, SESSION_SHOP_KEY, ShopifyOAuthService
from helpers import SHOP_DOMAIN


def token_transport(status_code=200, body=None, seen=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        if body is None:
            return httpx.Response(status_code, json={"access_token": "shpat_new_token", "scope": "read_products"})
        return httpx.Response(status_code, **body)

    return httpx.MockTransport(handler)


@pytest.fixture
def oauth():
    return ShopifyOAuthService(api_key="key-123", api_secret="secret-abc", scopes="read_products")


def signed_params(oauth, **overrides):
    params = {"code": "auth-code", "shop": SHOP_DOMAIN, "state": "nonce-1", "timestamp": "1700000000"}
    params.update(overrides)
    params["hmac"] = oauth.compute_hmac(params)
    return params


class TestShopDomain:
    @pytest.mark.parametrize("shop", ["my-store.myshopify.com", "store1.myshopify.com", "  padded.myshopify.com "])
    def test_valid_domains(self, oauth, shop):
        assert oauth.validate_shop_domain(shop) == shop.strip()

    @pytest.mark.parametrize(
        "shop",
        [None, "", "evil.com", "my-store.myshopify.com.evil.com", "-bad.myshopify.com", "https://my-store.myshopify.com", "my store.myshopify.com"],
    )
    def test_invalid_domains(self, oauth, shop):
        with pytest.raises(InvalidShop):
            oauth.validate_shop_domain(shop)


class TestInstallUrl:
    def test_install_url_targets_the_shop(self, oauth):
        url = oauth.get_install_url(SHOP_DOMAIN, "nonce-xyz")
        parsed = urlparse(url)
        query = parse_qs(parsed.query)

        assert parsed.scheme == "https"
        assert parsed.hostname == SHOP_DOMAIN
        assert parsed.path == "/admin/oauth/authorize"
        assert query["client_id"] == ["key-123"]
        assert query["scope"] == ["read_products"]
        assert query["state"] == ["nonce-xyz"]
        assert query["redirect_uri"][0].endswith("/auth/callback")

    def test_begin_install_stores_fresh_nonce(self, oauth):
        session = {}
        url = oauth.begin_install(SHOP_DOMAIN, session)
        first = session[SESSION_NONCE_KEY]

        assert len(first) == 32
        assert session[SESSION_SHOP_KEY] == SHOP_DOMAIN
        assert parse_qs(urlparse(url).query)["state"] == [first]

        oauth.begin_install(SHOP_DOMAIN, session)
        assert session[SESSION_NONCE_KEY] != first

    def test_begin_install_rejects_bad_shop(self, oauth):
        session = {}
        with pytest.raises(InvalidShop):
            oauth.begin_install("not-a-shop.example.com", session)
        assert SESSION_NONCE_KEY not in session


class TestVerifyHmac:
    def test_exact_signature_accepted(self, oauth):
        assert oauth.verify_hmac(signed_params(oauth)) is True

    def test_one_character_off_rejected(self, oauth):
        params = signed_params(oauth)
        last = params["hmac"][-1]
        params["hmac"] = params["hmac"][:-1] + ("0" if last != "0" else "1")
        assert oauth.verify_hmac(params) is False

    def test_tampered_param_rejected(self, oauth):
        params = signed_params(oauth)
        params["shop"] = "other-shop.myshopify.com"
        assert oauth.verify_hmac(params) is False

    def test_signature_key_is_excluded(self, oauth):
        params = signed_params(oauth)
        params["signature"] = "ignored"
        assert oauth.verify_hmac(params) is True

    def test_missing_hmac_rejected(self, oauth):
        assert oauth.verify_hmac({"shop": SHOP_DOMAIN, "code": "x"}) is False

    def test_wrong_secret_rejected(self, oauth):
        params = signed_params(oauth)
        other = ShopifyOAuthService(api_key="key-123", api_secret="another-secret")
        assert other.verify_hmac(params) is False


class TestTokenExchange:
    async def test_exchange_posts_code_and_credentials(self):
        seen = []
        oauth = ShopifyOAuthService(api_key="key-123", api_secret="secret-abc", transport=token_transport(seen=seen))

        data = await oauth.exchange_code_for_token(SHOP_DOMAIN, "auth-code")

        assert data["access_token"] == "shpat_new_token"
        request = seen[0]
        assert request.url.host == SHOP_DOMAIN
        assert request.url.path == "/admin/oauth/access_token"
        assert json.loads(request.content) == {"client_id": "key-123", "client_secret": "secret-abc", "code": "auth-code"}

    async def test_http_error_raises(self):
        oauth = ShopifyOAuthService(api_secret="s", transport=token_transport(400, {"json": {"error": "invalid_request"}}))
        with pytest.raises(TokenExchangeFailed):
            await oauth.exchange_code_for_token(SHOP_DOMAIN, "bad-code")

    async def test_missing_token_raises(self):
        oauth = ShopifyOAuthService(api_secret="s", transport=token_transport(200, {"json": {"scope": "read_products"}}))
        with pytest.raises(TokenExchangeFailed):
            await oauth.exchange_code_for_token(SHOP_DOMAIN, "code")

    async def test_non_json_body_raises(self):
        oauth = ShopifyOAuthService(api_secret="s", transport=token_transport(200, {"text": "<html>oops</html>"}))
        with pytest.raises(TokenExchangeFailed):
            await oauth.exchange_code_for_token(SHOP_DOMAIN, "code")


class TestCompleteCallback:
    @pytest.fixture
    def oauth(self):
        return ShopifyOAuthService(api_key="key-123", api_secret="secret-abc", transport=token_transport())

    async def test_valid_callback_persists_encrypted_token(self, db_session, oauth):
        session = {SESSION_NONCE_KEY: "nonce-1"}
        shop_id = await oauth.complete_callback(db_session, signed_params(oauth), session)

        shop = db_session.query(Shop).filter(Shop.id == shop_id).one()
        assert shop.shop_domain == SHOP_DOMAIN
        assert shop.access_token != "shpat_new_token"
        assert decrypt_token(shop.access_token) == "shpat_new_token"
        assert shop.scope == "read_products"
        assert SESSION_NONCE_KEY not in session

    async def test_state_mismatch_with_valid_hmac(self, db_session, oauth):
        session = {SESSION_NONCE_KEY: "expected-nonce"}
        with pytest.raises(StateMismatch):
            await oauth.complete_callback(db_session, signed_params(oauth, state="other-nonce"), session)
        assert db_session.query(Shop).count() == 0

    async def test_missing_session_nonce(self, db_session, oauth):
        with pytest.raises(StateMismatch):
            await oauth.complete_callback(db_session, signed_params(oauth), {})

    async def test_bad_signature(self, db_session, oauth):
        params = signed_params(oauth)
        params["hmac"] = "0" * 64
        with pytest.raises(SignatureInvalid):
            await oauth.complete_callback(db_session, params, {SESSION_NONCE_KEY: "nonce-1"})
        assert db_session.query(Shop).count() == 0

    async def test_invalid_shop_in_callback(self, db_session, oauth):
        params = signed_params(oauth, shop="evil.example.com")
        with pytest.raises(InvalidShop):
            await oauth.complete_callback(db_session, params, {SESSION_NONCE_KEY: "nonce-1"})

    async def test_replayed_callback_is_rejected(self, db_session, oauth):
        session = {SESSION_NONCE_KEY: "nonce-1"}
        params = signed_params(oauth)
        await oauth.complete_callback(db_session, params, session)
        with pytest.raises(StateMismatch):
            await oauth.complete_callback(db_session, params, session)

    async def test_reinstall_overwrites_credential(self, db_session, oauth, shop):
        session = {SESSION_NONCE_KEY: "nonce-1"}
        shop_id = await oauth.complete_callback(db_session, signed_params(oauth), session)

        assert shop_id == shop.id
        assert db_session.query(Shop).count() == 1
        db_session.refresh(shop)
        assert decrypt_token(shop.access_token) == "shpat_new_token"
