"""
Shop credential store: one row per shop domain, access token encrypted at rest.
"""
import base64
import logging
from datetime import datetime, timezone
from typing import Optional

from cryptography.fernet import Fernet
from sqlalchemy.orm import Session

from app.config import settings
from app.models import Shop

logger = logging.getLogger(__name__)

def get_encryption_key() -> bytes:
    """Derive the Fernet key from ENCRYPTION_KEY"""
    key_str = settings.ENCRYPTION_KEY
    # Ensure key is 32 bytes for Fernet
    key_bytes = key_str.encode()[:32].ljust(32, b'0')
    return base64.urlsafe_b64encode(key_bytes)

def encrypt_token(token: str) -> str:
    """Encrypt a token"""
    f = Fernet(get_encryption_key())
    return f.encrypt(token.encode()).decode()

def decrypt_token(encrypted: str) -> str:
    """Decrypt a token"""
    f = Fernet(get_encryption_key())
    return f.decrypt(encrypted.encode()).decode()


def get_shop(db: Session, shop_id: str) -> Optional[Shop]:
    return db.query(Shop).filter(Shop.id == shop_id).first()


def get_shop_by_domain(db: Session, shop_domain: str) -> Optional[Shop]:
    if not shop_domain:
        return None
    return db.query(Shop).filter(Shop.shop_domain == shop_domain.strip()).first()


def get_access_token(shop: Shop) -> str:
    """Plaintext token for the remote client. Callers must not log or return it."""
    return decrypt_token(shop.access_token)


def save_shop_credential(db: Session, shop_domain: str, access_token: str, scope: str | None) -> Shop:
    """Create or overwrite the credential for shop_domain and commit."""
    shop = get_shop_by_domain(db, shop_domain)
    if shop:
        shop.access_token = encrypt_token(access_token)
        shop.scope = scope
        logger.info("Updated credential for shop: %s", shop_domain)
    else:
        shop = Shop(
            shop_domain=shop_domain,
            access_token=encrypt_token(access_token),
            scope=scope,
        )
        db.add(shop)
        logger.info("Created credential for shop: %s", shop_domain)
    db.commit()
    db.refresh(shop)
    return shop


def mark_synced(db: Session, shop: Shop) -> None:
    shop.last_sync_at = datetime.now(timezone.utc)
    db.commit()
