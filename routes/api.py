"""
Central route registration. Install/callback and Shopify webhook receivers live at the
root (their URLs are configured in the Shopify app); the operator API sits under /api.
"""
import logging
from fastapi import FastAPI

from app.http.controllers import (
    auth,
    sync,
    webhooks,
)

logger = logging.getLogger(__name__)


def register_routes(app: FastAPI, settings) -> None:
    """Register all routers. Call from main.py after creating the FastAPI app."""
    app.include_router(auth.router, tags=["auth"])
    app.include_router(sync.router, prefix="/api/sync", tags=["sync"])
    app.include_router(webhooks.router, tags=["webhooks"])
    logger.info("Routes registered (Shopify API version %s)", settings.SHOPIFY_API_VERSION)
