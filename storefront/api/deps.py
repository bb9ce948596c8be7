# storefront/api/deps.py
from functools import lru_cache

from fastapi import Depends

from storefront.repos.store import DocumentStore, InMemoryDocumentStore
from storefront.services.cache import TTLCache
from storefront.services.cart_service import CartService
from storefront.services.notification_service import (
    CompositeNotificationSink,
    EmailNotificationSink,
    NotificationSink,
    RecordingNotificationSink,
    RedisNotificationSink,
)
from storefront.services.order_service import OrderService
from storefront.services.product_client import ProductClient
from storefront.utils import settings
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


# process-wide collaborators, built on first use; tests swap them
# through app.dependency_overrides
@lru_cache
def get_store() -> DocumentStore:
    if settings.STORE_BACKEND == "memory":
        logger.info("Using in-memory document store")
        return InMemoryDocumentStore()

    from storefront.data.database import SessionLocal
    from storefront.repos.sql_store import SqlDocumentStore

    return SqlDocumentStore(SessionLocal)


@lru_cache
def get_order_cache() -> TTLCache:
    return TTLCache(ttl_seconds=settings.ORDER_CACHE_TTL_SECONDS)


@lru_cache
def get_notifier() -> NotificationSink:
    if not settings.NOTIFICATIONS_ENABLED:
        return RecordingNotificationSink()
    return CompositeNotificationSink([RedisNotificationSink(), EmailNotificationSink()])


def get_product_client() -> ProductClient:
    return ProductClient()


def get_cart_service(store: DocumentStore = Depends(get_store)) -> CartService:
    return CartService(store)


def get_order_service(
    store: DocumentStore = Depends(get_store),
    cache: TTLCache = Depends(get_order_cache),
    notifier: NotificationSink = Depends(get_notifier),
) -> OrderService:
    return OrderService(store, cache, notifier)
