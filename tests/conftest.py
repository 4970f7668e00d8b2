"""
Pytest configuration and shared fixtures.

Tests run against an in-memory SQLite database (one shared connection via
StaticPool), fakeredis instead of redis and an in-memory Celery broker.
"""

import os

# must be set before ordering.utils.settings is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CELERY_BROKER_URL"] = "memory://"
os.environ["CELERY_RESULT_BACKEND"] = "cache+memory://"
os.environ["MENU_SERVICE_URL"] = ""

from decimal import Decimal
from unittest.mock import MagicMock

import fakeredis
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from ordering.api import create_app
from ordering.api.deps import get_cache, get_menu, get_publisher
from ordering.data.database import get_db, init_db
from ordering.services.cache_service import CartCache
from ordering.services.cart_service import CartService
from ordering.services.event_publisher import EventPublisher
from ordering.services.order_service import OrderService
from ordering.services.pricing import PricingPolicy


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture
def engine():
    """In-memory SQLite engine with all tables created."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=True)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


# ============================================================================
# Collaborators
# ============================================================================

@pytest.fixture
def redis_client():
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture
def cache(redis_client):
    return CartCache(client=redis_client)


@pytest.fixture
def pricing():
    """8% tax, 2.99 delivery fee."""
    return PricingPolicy(tax_rate=Decimal("0.08"), delivery_fee=Decimal("2.99"))


@pytest.fixture
def publisher():
    """Publisher whose transport always accepts."""
    return MagicMock(spec=EventPublisher)


@pytest.fixture
def cart_service(db, cache, pricing):
    return CartService(db=db, cache=cache, pricing=pricing)


@pytest.fixture
def order_service(db, cache, publisher):
    return OrderService(db=db, cache=cache, publisher=publisher)


@pytest.fixture
def filled_cart(cart_service):
    """Cart of customer-1 bound to restaurant napoli with 3 x 7.99."""
    cart = cart_service.create_cart(customer_id="customer-1", restaurant_id="napoli")
    return cart_service.add_item(
        cart.id,
        menu_item_id="margherita",
        name="Pizza Margherita",
        price=Decimal("7.99"),
        quantity=3,
        restaurant_id="napoli",
    )


# ============================================================================
# API
# ============================================================================

@pytest.fixture
def client(session_factory, cache, publisher):
    app = create_app()

    def override_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_cache] = lambda: cache
    app.dependency_overrides[get_publisher] = lambda: publisher
    app.dependency_overrides[get_menu] = lambda: None

    with TestClient(app) as test_client:
        yield test_client
