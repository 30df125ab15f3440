"""
Transient install session: a small dict carried in a signed cookie (HS256 JWT).
Holds the OAuth nonce, the shop being installed and, once installed, its shop_id.
"""
import logging
from datetime import datetime, timedelta, timezone

from fastapi import Depends, HTTPException, Request, Response, status
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.models import Shop
from app.services.credentials import get_shop

logger = logging.getLogger(__name__)

SESSION_SHOP_ID_KEY = "shop_id"

_RESERVED_CLAIMS = ("exp", "iat")


def load_session(request: Request) -> dict:
    """Decoded session from the cookie; empty dict when absent, expired or tampered with."""
    raw = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if not raw:
        return {}
    try:
        data = jwt.decode(raw, settings.SESSION_SECRET, algorithms=[settings.SESSION_ALGORITHM])
    except JWTError as e:
        logger.debug("Session cookie rejected: %s", e)
        return {}
    return {k: v for k, v in data.items() if k not in _RESERVED_CLAIMS}


def save_session(response: Response, session: dict) -> None:
    now = datetime.now(timezone.utc)
    claims = dict(session)
    claims["iat"] = now
    claims["exp"] = now + timedelta(seconds=settings.SESSION_MAX_AGE_SECONDS)
    token = jwt.encode(claims, settings.SESSION_SECRET, algorithm=settings.SESSION_ALGORITHM)
    response.set_cookie(
        settings.SESSION_COOKIE_NAME,
        token,
        max_age=settings.SESSION_MAX_AGE_SECONDS,
        httponly=True,
        secure=settings.IS_PRODUCTION,
        samesite="lax",
    )


def get_current_shop(request: Request, db: Session = Depends(get_db)) -> Shop:
    """Dependency: the installed shop attached to this session, else 401."""
    shop_id = load_session(request).get(SESSION_SHOP_ID_KEY)
    shop = get_shop(db, shop_id) if shop_id else None
    if not shop:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No installed shop in session",
        )
    return shop
