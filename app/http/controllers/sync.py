"""
Sync routes: pull the session's shop from Shopify on demand
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.database import get_db
from app.http.requests import SyncJobResponse, SyncResultResponse
from app.http.session import get_current_shop
from app.models import Shop
from app.services.shopify_client import ShopifyGraphQLClient
from app.services.sync_engine import SyncEngine

router = APIRouter()


def get_shopify_client() -> ShopifyGraphQLClient:
    return ShopifyGraphQLClient()


def _engine(db: Session, client: ShopifyGraphQLClient) -> SyncEngine:
    return SyncEngine(db, client=client)


@router.post("/products", response_model=SyncResultResponse)
async def sync_products(
    db: Session = Depends(get_db),
    shop: Shop = Depends(get_current_shop),
    client: ShopifyGraphQLClient = Depends(get_shopify_client),
):
    """Full product sync for the current shop"""
    return await _engine(db, client).sync_products(shop)


@router.post("/collections", response_model=SyncResultResponse)
async def sync_collections(
    db: Session = Depends(get_db),
    shop: Shop = Depends(get_current_shop),
    client: ShopifyGraphQLClient = Depends(get_shopify_client),
):
    return await _engine(db, client).sync_collections(shop)


@router.post("/orders", response_model=SyncResultResponse)
async def sync_orders(
    db: Session = Depends(get_db),
    shop: Shop = Depends(get_current_shop),
    client: ShopifyGraphQLClient = Depends(get_shopify_client),
):
    return await _engine(db, client).sync_orders(shop)


@router.post("/all")
async def sync_all(
    db: Session = Depends(get_db),
    shop: Shop = Depends(get_current_shop),
    client: ShopifyGraphQLClient = Depends(get_shopify_client),
):
    """Products, collections and orders in sequence; each reports its own outcome"""
    return await _engine(db, client).sync_all(shop)


@router.get("/jobs")
async def list_sync_jobs(
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    shop: Shop = Depends(get_current_shop),
):
    """Recent sync jobs for the current shop"""
    history = SyncEngine(db).get_sync_history(shop.id, limit=limit)
    return {"jobs": [SyncJobResponse(**job) for job in history]}
