"""
Store-scoped persistence for mirrored entities, keyed by (shop_id, shopify_id).
Used by SyncEngine and the webhook handlers so both paths share one write contract.
Nothing here commits; the caller owns the transaction.
"""
from typing import Optional, Type, TypeVar

from sqlalchemy.orm import Session

from app.models import Collection, Order, Product


MirroredModel = TypeVar("MirroredModel", Product, Collection, Order)


def get_by_external_id(db: Session, model: Type[MirroredModel], shop_id: str, external_id: str) -> Optional[MirroredModel]:
    return (
        db.query(model)
        .filter(model.shop_id == shop_id, model.shopify_id == str(external_id))
        .first()
    )


def upsert_by_external_id(
    db: Session, model: Type[MirroredModel], shop_id: str, external_id: str, fields: dict
) -> tuple[MirroredModel, bool]:
    """Create or update the row for (shop_id, external_id). Returns (row, created)."""
    row = get_by_external_id(db, model, shop_id, external_id)
    created = row is None
    if created:
        row = model(shop_id=shop_id, shopify_id=str(external_id), **fields)
        db.add(row)
    else:
        for key, value in fields.items():
            setattr(row, key, value)
    db.flush()
    return row, created


def insert(db: Session, model: Type[MirroredModel], shop_id: str, external_id: str, fields: dict) -> MirroredModel:
    """Plain insert; a duplicate key surfaces as IntegrityError from the flush."""
    row = model(shop_id=shop_id, shopify_id=str(external_id), **fields)
    db.add(row)
    db.flush()
    return row


def update_if_exists(
    db: Session, model: Type[MirroredModel], shop_id: str, external_id: str, fields: dict
) -> Optional[MirroredModel]:
    row = get_by_external_id(db, model, shop_id, external_id)
    if row is None:
        return None
    for key, value in fields.items():
        setattr(row, key, value)
    db.flush()
    return row


def delete_by_external_id(db: Session, model: Type[MirroredModel], shop_id: str, external_id: str) -> int:
    """Returns number of rows removed (0 when nothing matched)."""
    deleted = (
        db.query(model)
        .filter(model.shop_id == shop_id, model.shopify_id == str(external_id))
        .delete(synchronize_session=False)
    )
    db.flush()
    return deleted


def count_for_shop(db: Session, model: Type[MirroredModel], shop_id: str) -> int:
    return db.query(model).filter(model.shop_id == shop_id).count()
