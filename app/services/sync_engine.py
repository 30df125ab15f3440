"""
Full sync engine: walks Shopify GraphQL cursors and upserts every node by (shop, external id).
One invocation runs its page loop sequentially; nothing is raised past sync_* methods.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.exceptions import RemoteDataError
from app.models import (
    Collection,
    Order,
    Product,
    Shop,
    SyncJob,
    SyncJobStatus,
    SyncJobType,
)
from app.services.catalog_store import upsert_by_external_id
from app.services.credentials import mark_synced
from app.services.shopify_client import ShopifyGraphQLClient, page_of
from app.services.shopify_mapping import (
    project_collection_node,
    project_order_node,
    project_product_node,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EntityKind:
    job_type: SyncJobType
    root: str  # connection field in the GraphQL response
    model: type
    fetch: str  # ShopifyGraphQLClient method name
    project: Callable[[dict], tuple[str, dict]]
    touches_last_sync: bool = False


PRODUCTS = EntityKind(SyncJobType.PRODUCTS, "products", Product, "fetch_products", project_product_node, touches_last_sync=True)
COLLECTIONS = EntityKind(SyncJobType.COLLECTIONS, "collections", Collection, "fetch_collections", project_collection_node)
ORDERS = EntityKind(SyncJobType.ORDERS, "orders", Order, "fetch_orders", project_order_node)


class SyncEngine:
    """Pull-based mirror of products, collections and orders for one shop per call"""

    def __init__(self, db: Session, client: ShopifyGraphQLClient | None = None, page_size: int | None = None):
        self.db = db
        self.client = client or ShopifyGraphQLClient()
        self.page_size = page_size or settings.SYNC_PAGE_SIZE

    async def sync_products(self, shop: Shop) -> dict:
        return await self._sync(shop, PRODUCTS)

    async def sync_collections(self, shop: Shop) -> dict:
        return await self._sync(shop, COLLECTIONS)

    async def sync_orders(self, shop: Shop) -> dict:
        return await self._sync(shop, ORDERS)

    async def sync_all(self, shop: Shop) -> dict:
        """Products, then collections, then orders. Each kind reports independently."""
        return {
            "products": await self.sync_products(shop),
            "collections": await self.sync_collections(shop),
            "orders": await self.sync_orders(shop),
        }

    async def _sync(self, shop: Shop, kind: EntityKind) -> dict:
        sync_job = None
        job_id = None
        shop_domain = None
        synced = 0
        committed = 0
        cursor = None
        page = 0
        fetch = getattr(self.client, kind.fetch)
        try:
            shop_domain = shop.shop_domain
            sync_job = SyncJob(
                shop_id=shop.id,
                job_type=kind.job_type,
                status=SyncJobStatus.RUNNING,
                started_at=datetime.now(timezone.utc),
            )
            self.db.add(sync_job)
            self.db.commit()
            job_id = sync_job.id

            while True:
                page += 1
                response = await fetch(shop, limit=self.page_size, cursor=cursor)
                if response.get("errors"):
                    raise RemoteDataError(response["errors"])

                nodes, has_next_page, end_cursor = page_of(response, kind.root)
                for node in nodes:
                    external_id, fields = kind.project(node)
                    upsert_by_external_id(self.db, kind.model, shop.id, external_id, fields)
                    synced += 1
                # Commit per page: a later failure keeps what is already written
                self.db.commit()
                committed = synced
                logger.info("Shopify %s page %s for %s: %s node(s) (total so far: %s)", kind.root, page, shop_domain, len(nodes), synced)

                if not has_next_page:
                    break
                if not end_cursor or end_cursor == cursor:
                    raise RemoteDataError([{"message": f"hasNextPage without a new endCursor on page {page}"}])
                cursor = end_cursor

            if kind.touches_last_sync:
                mark_synced(self.db, shop)

            message = f"Successfully synced {synced} {kind.root}"
            self._finish(sync_job, SyncJobStatus.SUCCESS, synced)
            logger.info("%s for %s", message, shop_domain)
            return {"success": True, "count": synced, "message": message, "jobId": job_id}
        except Exception as e:
            if isinstance(e, SQLAlchemyError):
                self.db.rollback()
                synced = committed
            else:
                # Rows flushed before the failure are valid; keep them
                try:
                    self.db.commit()
                except SQLAlchemyError:
                    self.db.rollback()
                    synced = committed
            logger.error("Shopify %s sync failed for %s after %s node(s): %s", kind.root, shop_domain, synced, e)
            if job_id is not None:
                self._finish(sync_job, SyncJobStatus.FAILED, synced, error=str(e))
            return {"success": False, "count": synced, "message": f"Sync failed: {e}", "jobId": job_id}

    def _finish(self, sync_job: SyncJob, status: SyncJobStatus, processed: int, error: str | None = None) -> None:
        try:
            sync_job.status = status
            sync_job.finished_at = datetime.now(timezone.utc)
            sync_job.records_processed = processed
            sync_job.error_message = error[:500] if error else None
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning("Could not record sync job outcome %s: %s", status.value, e)

    def get_sync_history(self, shop_id: str, limit: int = 50) -> list:
        """Recent sync jobs for a shop, newest first"""
        jobs = (
            self.db.query(SyncJob)
            .filter(SyncJob.shop_id == shop_id)
            .order_by(SyncJob.started_at.desc())
            .limit(limit)
            .all()
        )
        return [
            {
                "id": job.id,
                "jobType": job.job_type.value,
                "status": job.status.value,
                "startedAt": job.started_at.isoformat() if job.started_at else None,
                "completedAt": job.finished_at.isoformat() if job.finished_at else None,
                "recordsProcessed": job.records_processed,
                "errorMessage": job.error_message,
            }
            for job in jobs
        ]
