"""
Shared fixtures: in-memory SQLite database, installed test shop, API client
"""
import os

# Must be set before any app module reads settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENV"] = "TEST"
os.environ["APP_URL"] = "https://mirror.test"
os.environ["FRONTEND_URL"] = "https://frontend.test/dashboard"
os.environ["WEBHOOK_BASE_URL"] = "https://hooks.mirror.test"
os.environ["SHOPIFY_API_KEY"] = "test-api-key"
os.environ["SHOPIFY_API_SECRET"] = "test-api-secret"
os.environ["SHOPIFY_SCOPES"] = "read_products,write_products,read_orders"
os.environ["ENCRYPTION_KEY"] = "test-encryption-key-32-chars-ok!"
os.environ["SESSION_SECRET"] = "test-session-secret"

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from main import app
from app.config import settings
from app.database import get_db, Base
from app.services.credentials import save_shop_credential
from helpers import SHOP_DOMAIN, SHOP_TOKEN


# Test database setup
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session():
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def shop(db_session):
    return save_shop_credential(db_session, SHOP_DOMAIN, SHOP_TOKEN, "read_products,read_orders")


@pytest.fixture
def client(db_session):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def authed_client(client, shop):
    """Client whose session cookie already carries the installed shop."""
    token = jwt.encode({"shop_id": shop.id}, settings.SESSION_SECRET, algorithm=settings.SESSION_ALGORITHM)
    client.cookies.set(settings.SESSION_COOKIE_NAME, token)
    return client
