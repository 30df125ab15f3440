"""
SQLAlchemy models for the local storefront mirror.
All model and enum definitions live here for simplicity and to avoid circular imports.
"""
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Numeric, Text, Enum as SQLEnum, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base
import enum
import uuid

# Enums
class ProductStatus(str, enum.Enum):
    ACTIVE = "active"
    DRAFT = "draft"
    ARCHIVED = "archived"

class SyncJobType(str, enum.Enum):
    PRODUCTS = "PRODUCTS"
    COLLECTIONS = "COLLECTIONS"
    ORDERS = "ORDERS"

class SyncJobStatus(str, enum.Enum):
    RUNNING = "RUNNING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"

# Models
class Shop(Base):
    __tablename__ = "shops"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    shop_domain = Column("shop_domain", String, unique=True, nullable=False, index=True)
    access_token = Column("access_token", String, nullable=False)  # Encrypted
    scope = Column("scope", String, nullable=True)
    installed_at = Column("installed_at", DateTime, server_default=func.now())
    last_sync_at = Column("last_sync_at", DateTime, nullable=True)

    products = relationship("Product", back_populates="shop", cascade="all, delete-orphan")
    collections = relationship("Collection", back_populates="shop", cascade="all, delete-orphan")
    orders = relationship("Order", back_populates="shop", cascade="all, delete-orphan")
    sync_jobs = relationship("SyncJob", back_populates="shop", cascade="all, delete-orphan")

    def __repr__(self):
        # access_token stays out of reprs and logs
        return f"<Shop {self.shop_domain}>"

class Product(Base):
    __tablename__ = "products"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    shop_id = Column("shop_id", String, ForeignKey("shops.id", ondelete="CASCADE"), nullable=False, index=True)
    shopify_id = Column("shopify_id", String, nullable=False)
    title = Column(String, nullable=False)
    body_html = Column("body_html", Text, nullable=True)
    vendor = Column(String, nullable=True)
    product_type = Column("product_type", String, nullable=True)
    status = Column(SQLEnum(ProductStatus), default=ProductStatus.ACTIVE, index=True)
    tags = Column(JSON, default=list)
    variants = Column(JSON, default=list)
    images = Column(JSON, default=list)
    published_at = Column("published_at", DateTime, nullable=True)
    created_at = Column("created_at", DateTime, server_default=func.now())
    updated_at = Column("updated_at", DateTime, server_default=func.now(), onupdate=func.now())

    shop = relationship("Shop", back_populates="products")

    __table_args__ = (UniqueConstraint("shop_id", "shopify_id", name="products_shop_shopify_id_unique"),)

class Collection(Base):
    __tablename__ = "collections"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    shop_id = Column("shop_id", String, ForeignKey("shops.id", ondelete="CASCADE"), nullable=False, index=True)
    shopify_id = Column("shopify_id", String, nullable=False)
    title = Column(String, nullable=False)
    body_html = Column("body_html", Text, nullable=True)
    handle = Column(String, nullable=True)
    products_count = Column("products_count", Integer, default=0)
    published_at = Column("published_at", DateTime, nullable=True)
    created_at = Column("created_at", DateTime, server_default=func.now())
    updated_at = Column("updated_at", DateTime, server_default=func.now(), onupdate=func.now())

    shop = relationship("Shop", back_populates="collections")

    __table_args__ = (UniqueConstraint("shop_id", "shopify_id", name="collections_shop_shopify_id_unique"),)

class Order(Base):
    __tablename__ = "orders"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    shop_id = Column("shop_id", String, ForeignKey("shops.id", ondelete="CASCADE"), nullable=False, index=True)
    shopify_id = Column("shopify_id", String, nullable=False)
    order_number = Column("order_number", String, nullable=False, index=True)
    email = Column(String, nullable=True)
    total_price = Column("total_price", Numeric(10, 2), nullable=False, default=0)
    currency = Column(String(3), default="USD")
    financial_status = Column("financial_status", String, nullable=True)
    fulfillment_status = Column("fulfillment_status", String, nullable=True)
    line_items = Column("line_items", JSON, default=list)
    customer = Column(JSON, nullable=True)
    processed_at = Column("processed_at", DateTime, nullable=True)
    created_at = Column("created_at", DateTime, server_default=func.now())
    updated_at = Column("updated_at", DateTime, server_default=func.now(), onupdate=func.now())

    shop = relationship("Shop", back_populates="orders")

    __table_args__ = (UniqueConstraint("shop_id", "shopify_id", name="orders_shop_shopify_id_unique"),)

class SyncJob(Base):
    __tablename__ = "sync_jobs"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    shop_id = Column("shop_id", String, ForeignKey("shops.id", ondelete="CASCADE"), nullable=False, index=True)
    job_type = Column("job_type", SQLEnum(SyncJobType), nullable=False)
    status = Column(SQLEnum(SyncJobStatus), default=SyncJobStatus.RUNNING)
    started_at = Column("started_at", DateTime, nullable=True)
    finished_at = Column("finished_at", DateTime, nullable=True)
    records_processed = Column("records_processed", Integer, default=0)
    error_message = Column("error_message", String, nullable=True)
    created_at = Column("created_at", DateTime, server_default=func.now())

    shop = relationship("Shop", back_populates="sync_jobs")
