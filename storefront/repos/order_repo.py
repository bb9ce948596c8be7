# storefront/repos/order_repo.py
from datetime import datetime

from storefront.domain.order_status import OrderStatus
from storefront.domain.schemas import Order, OrderCreate
from storefront.repos.store import DocumentStore, Filter, QueryOptions

ORDERS = "orders"

NEWEST_FIRST = QueryOptions(order_by="created_at", descending=True)


class OrderRepo:
    def __init__(self, store: DocumentStore):
        self.store = store

    def create_order(self, data: OrderCreate, now: datetime) -> Order:
        order = Order.from_create(self.store.generate_id(), data, now)
        doc = self.store.set(ORDERS, order.id, order.to_document())
        return Order.model_validate(doc)

    def get_order(self, order_id: str) -> Order | None:
        doc = self.store.get(ORDERS, order_id)
        return Order.model_validate(doc) if doc else None

    def update_order_status(self, order: Order, status: OrderStatus, now: datetime) -> Order:
        """Conditional on the version the caller read."""
        patch = order.model_copy(update={"status": status, "updated_at": now}).to_document()
        doc = self.store.update(
            ORDERS,
            order.id,
            {"status": patch["status"], "updated_at": patch["updated_at"]},
            if_version=order.version,
        )
        return Order.model_validate(doc)

    def delete_order(self, order_id: str) -> None:
        self.store.delete(ORDERS, order_id)

    def get_user_orders(self, user_id: str, include_test: bool = False) -> list[Order]:
        filters = [Filter("user_id", "==", user_id)]
        if not include_test:
            filters.append(Filter("is_test_order", "!=", True))
        docs = self.store.query(ORDERS, filters, NEWEST_FIRST)
        return [Order.model_validate(d) for d in docs]

    def get_all_orders(self, status: OrderStatus | None = None, limit: int | None = None) -> list[Order]:
        filters = [Filter("is_test_order", "!=", True)]
        if status is not None:
            filters.append(Filter("status", "==", status.value))
        options = QueryOptions(order_by="created_at", descending=True, limit=limit)
        return [Order.model_validate(d) for d in self.store.query(ORDERS, filters, options)]
