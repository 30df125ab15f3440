#!/usr/bin/env python3
"""
Run a full sync for one explicitly named shop from the command line
"""
import sys
import os
import asyncio
import json
import logging

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.database import SessionLocal
from app.services.credentials import get_shop_by_domain
from app.services.sync_engine import SyncEngine

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)

KINDS = ("products", "collections", "orders", "all")


async def run_sync(shop_domain: str, kind: str) -> dict:
    db = SessionLocal()
    try:
        shop = get_shop_by_domain(db, shop_domain)
        if not shop:
            raise SystemExit(f"No installed shop named {shop_domain!r}. Install it first (or run seed.py).")
        engine = SyncEngine(db)
        logger.info("Starting %s sync for %s", kind, shop.shop_domain)
        return await getattr(engine, f"sync_{kind}")(shop)
    finally:
        db.close()


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage: python sync_shop.py <shop_domain> [products|collections|orders|all]")
        sys.exit(1)

    shop_domain = sys.argv[1].strip()
    kind = sys.argv[2].lower() if len(sys.argv) > 2 else "all"
    if kind not in KINDS:
        print(f"Unknown kind: {kind}. Expected one of: {', '.join(KINDS)}")
        sys.exit(1)

    result = asyncio.run(run_sync(shop_domain, kind))
    print(json.dumps(result, indent=2, default=str))
