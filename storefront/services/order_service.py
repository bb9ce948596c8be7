# storefront/services/order_service.py
from collections import Counter
from datetime import datetime
from typing import Callable

from pydantic import ValidationError as PydanticValidationError

from storefront.domain.exceptions import IllegalStateError, OrderNotFoundError, ValidationError
from storefront.domain.order_status import CANCELLABLE_STATUSES, OrderStatus, can_transition
from storefront.domain.schemas import Order, OrderCreate, utcnow
from storefront.repos.order_repo import OrderRepo
from storefront.repos.store import DocumentStore, store_errors
from storefront.services.cache import TTLCache
from storefront.services.notification_service import NotificationSink, user_channel
from storefront.utils import settings
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def _order_key(order_id: str) -> str:
    return f"order:{order_id}"


def _user_orders_key(user_id: str) -> str:
    return f"user-orders:{user_id}"


def _validation_error(e: PydanticValidationError) -> ValidationError:
    errors = []
    missing = None
    for err in e.errors():
        field = ".".join(str(p) for p in err["loc"]) or "order"
        if err["type"] == "missing" and missing is None:
            missing = field
        errors.append(f"{field}: {err['msg']}")

    if missing:
        return ValidationError(f"Missing required field: {missing}", errors=errors)
    return ValidationError("Invalid order data", errors=errors)


class OrderService:
    """
    Use cases for the order domain, kept separate from CartService.

    Reads go through a short TTL cache (single orders and per-user lists).
    Every write follows the same order: persist, invalidate the cache,
    publish. Publishing is best effort and never undoes a stored change.
    """

    def __init__(
        self,
        store: DocumentStore,
        cache: TTLCache,
        notifier: NotificationSink,
        strict_transitions: bool | None = None,
        admin_channel: str | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.repo = OrderRepo(store)
        self.cache = cache
        self.notifier = notifier
        self.strict_transitions = (
            settings.STRICT_ORDER_TRANSITIONS if strict_transitions is None else strict_transitions
        )
        self.admin_channel = admin_channel or settings.ADMIN_CHANNEL
        self._clock = clock

    # =====================================================
    # COMMANDS
    # =====================================================
    def create_order(self, data: OrderCreate | dict) -> Order:
        """
        Use Case: Place an order at checkout.

        1. Validates required fields and total_amount == subtotal + shipping - discount
        2. Snapshots the line items and stores the order as pending
        3. Invalidates the user's order list, caches the new order
        4. Publishes order-created to the user and new-order to the admins
        """
        if not isinstance(data, OrderCreate):
            try:
                data = OrderCreate.model_validate(data)
            except PydanticValidationError as e:
                raise _validation_error(e) from e

        with store_errors("Failed to create order", user_id=data.user_id):
            order = self.repo.create_order(data, self._clock())

        logger.info(
            f"Order {order.id} created for user {order.user_id}: "
            f"{len(order.items)} items, total {order.total_amount}"
            + (" (test order)" if order.is_test_order else "")
        )

        self.cache.invalidate(_user_orders_key(order.user_id))
        self.cache.set(_order_key(order.id), order)

        self._notify(user_channel(order.user_id), "order-created", order)
        self._notify(self.admin_channel, "new-order", order)

        return order.model_copy(deep=True)

    def update_order_status(
        self,
        order_id: str,
        new_status: str | OrderStatus,
        user_id: str | None = None,
        force: bool = False,
    ) -> Order:
        """
        Use Case: Change an order's status.

        Reads the order straight from the store so the decision is not made
        on a cached status. With strict transitions on, only the moves of the
        order lifecycle are accepted unless the caller forces the change.
        """
        status = OrderStatus.parse(new_status)
        if status is None:
            raise ValidationError(f"Invalid status: {new_status}")

        order = self._load_for_write(order_id, user_id)

        if (
            self.strict_transitions
            and not force
            and status != order.status
            and not can_transition(order.status, status)
        ):
            raise IllegalStateError(
                order_id,
                order.status.value,
                f"Cannot change order status from '{order.status.value}' to '{status.value}'",
            )

        return self._write_status(order, status)

    def cancel_order(self, order_id: str, user_id: str) -> Order:
        """
        Use Case: The owner cancels an order. Only pending or processing
        orders can be cancelled.
        """
        order = self._load_for_write(order_id, user_id)

        if order.status not in CANCELLABLE_STATUSES:
            if order.status == OrderStatus.CANCELLED:
                message = f"Order {order_id} is already cancelled"
            else:
                message = "Cannot cancel order that has been shipped or delivered"
            raise IllegalStateError(order_id, order.status.value, message)

        logger.info(f"User {user_id} cancels order {order_id} ({order.status.value})")
        return self._write_status(order, OrderStatus.CANCELLED)

    def delete_order(self, order_id: str) -> None:
        """Use Case: Admin removes an order for good."""
        order = self._load_for_write(order_id, None)

        with store_errors("Failed to delete order", order_id=order_id):
            self.repo.delete_order(order_id)

        self.cache.invalidate(_order_key(order_id))
        self.cache.invalidate(_user_orders_key(order.user_id))
        logger.info(f"Order {order_id} of user {order.user_id} deleted")

    # =====================================================
    # QUERIES
    # =====================================================
    def get_order_by_id(self, order_id: str, user_id: str | None = None) -> Order:
        """
        Use Case: Fetch one order. With user_id, an order owned by someone
        else is reported exactly like a missing one.
        """
        cached = self.cache.get(_order_key(order_id))
        if cached is not None:
            if user_id is not None and cached.user_id != user_id:
                raise OrderNotFoundError(order_id)
            return cached.model_copy(deep=True)

        with store_errors("Failed to get order", order_id=order_id):
            order = self.repo.get_order(order_id)

        if order is None:
            raise OrderNotFoundError(order_id)
        if user_id is not None and order.user_id != user_id:
            logger.warning(f"User {user_id} requested order {order_id} owned by someone else")
            raise OrderNotFoundError(order_id)

        self.cache.set(_order_key(order_id), order)
        return order.model_copy(deep=True)

    def get_user_orders(self, user_id: str) -> list[Order]:
        """
        Use Case: The user's real orders, newest first.
        Empty results are not cached so a first order shows up immediately.
        """
        key = _user_orders_key(user_id)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"Returning {len(cached)} cached orders for user {user_id}")
            return [o.model_copy(deep=True) for o in cached]

        with store_errors("Failed to get orders", user_id=user_id):
            orders = self.repo.get_user_orders(user_id)

        logger.info(f"Found {len(orders)} orders for user {user_id}")
        if orders:
            self.cache.set(key, orders)
        return [o.model_copy(deep=True) for o in orders]

    def get_recent_orders(self, user_id: str, limit: int = 5) -> list[Order]:
        return self.get_user_orders(user_id)[:limit]

    def get_order_counts_by_status(self, user_id: str) -> dict[str, int]:
        """Use Case: Dashboard summary. Uncached scan of every order of the user."""
        with store_errors("Failed to get order counts", user_id=user_id):
            orders = self.repo.get_user_orders(user_id, include_test=True)
        return dict(Counter(o.status.value for o in orders))

    def list_orders(self, status: str | None = None, limit: int | None = None) -> list[Order]:
        """Use Case: Admin listing of every real order, newest first."""
        parsed = None
        if status is not None:
            parsed = OrderStatus.parse(status)
            if parsed is None:
                raise ValidationError(f"Invalid status: {status}")
        if limit is not None and limit < 1:
            raise ValidationError("Limit must be at least 1")

        with store_errors("Failed to list orders"):
            return self.repo.get_all_orders(parsed, limit)

    # =====================================================
    # HELPERS
    # =====================================================
    def _load_for_write(self, order_id: str, user_id: str | None) -> Order:
        with store_errors("Failed to get order", order_id=order_id):
            order = self.repo.get_order(order_id)

        if order is None:
            raise OrderNotFoundError(order_id)
        if user_id is not None and order.user_id != user_id:
            logger.warning(f"User {user_id} tried to modify order {order_id} owned by someone else")
            raise OrderNotFoundError(order_id)
        return order

    def _write_status(self, order: Order, status: OrderStatus) -> Order:
        with store_errors("Failed to update order status", order_id=order.id):
            updated = self.repo.update_order_status(order, status, self._clock())

        logger.info(f"Order {order.id} status {order.status.value} -> {status.value}")

        self.cache.invalidate(_order_key(order.id))
        self.cache.invalidate(_user_orders_key(order.user_id))

        self._notify(user_channel(order.user_id), "order-updated", updated)
        self._notify(self.admin_channel, "order-status-changed", updated)

        return updated

    def _notify(self, channel: str, event: str, order: Order) -> None:
        try:
            self.notifier.publish(channel, event, order.model_dump(mode="json"))
        except Exception as e:
            logger.error(f"Failed to publish {event} for order {order.id} on {channel}: {e}")
