"""
Shared fixtures.

Environment defaults are set before anything from storefront is imported so
settings never point at the docker services.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("NOTIFICATIONS_ENABLED", "false")
os.environ.setdefault("STRICT_ORDER_TRANSITIONS", "true")

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from storefront.api import deps
from storefront.domain.exceptions import NotFoundError
from storefront.main import create_app
from storefront.repos.store import InMemoryDocumentStore
from storefront.services.cache import TTLCache
from storefront.services.cart_service import CartService
from storefront.services.notification_service import RecordingNotificationSink
from storefront.services.order_service import OrderService
from storefront.services.product_client import ProductClient


class FakeClock:
    """Monotonic seconds that only move when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class SteppingUtcClock:
    """UTC datetimes one second apart on every call, so creation order is strict."""

    def __init__(self):
        self.current = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


class FakeProductClient(ProductClient):
    PRODUCTS = {
        "p1": {"id": "p1", "name": "Cotton Kurta", "price": 100, "original_price": 150, "image": "/kurta.jpg"},
        "p2": {"id": "p2", "name": "Denim Jacket", "price": 250, "image": "/jacket.jpg"},
    }

    def __init__(self):
        super().__init__(base_url="http://products.test")

    def fetch_product(self, product_id):
        try:
            return dict(self.PRODUCTS[product_id])
        except KeyError:
            raise NotFoundError(f"Product with ID {product_id} not found")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return TTLCache(ttl_seconds=60, clock=clock)


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def sink():
    return RecordingNotificationSink()


@pytest.fixture
def cart_service(store):
    return CartService(store)


@pytest.fixture
def order_service(store, cache, sink):
    return OrderService(
        store,
        cache,
        sink,
        strict_transitions=True,
        admin_channel="admin-room",
        clock=SteppingUtcClock(),
    )


@pytest.fixture
def address():
    return {
        "full_name": "Asha Rao",
        "street": "12 MG Road",
        "city": "Bengaluru",
        "state": "KA",
        "postal_code": "560001",
        "phone": "9000000000",
    }


@pytest.fixture
def make_order_data(address):
    """Order input: 2 x 100 + 20 shipping - 10 discount = 210."""

    def _make(user_id="user-1", **overrides):
        data = {
            "user_id": user_id,
            "items": [
                {"product_id": "p1", "name": "Cotton Kurta", "unit_price": 100, "quantity": 2},
            ],
            "shipping_address": dict(address),
            "payment_method": "cod",
            "shipping_cost": 20,
            "discount_amount": 10,
            "total_amount": 210,
        }
        data.update(overrides)
        return data

    return _make


@pytest.fixture
def app(store, cache, sink):
    application = create_app()
    application.dependency_overrides[deps.get_store] = lambda: store
    application.dependency_overrides[deps.get_order_cache] = lambda: cache
    application.dependency_overrides[deps.get_notifier] = lambda: sink
    application.dependency_overrides[deps.get_product_client] = FakeProductClient
    return application


@pytest.fixture
def client(app):
    return TestClient(app)
