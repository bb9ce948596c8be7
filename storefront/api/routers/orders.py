# storefront/api/routers/orders.py
from fastapi import APIRouter, Depends, Query

from storefront.api.deps import get_cart_service, get_order_service
from storefront.api.responses import ok
from storefront.domain.exceptions import ConflictError, StorefrontError
from storefront.domain.schemas import CheckoutIn
from storefront.services.cart_service import CartService
from storefront.services.order_service import OrderService
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("", status_code=201)
def create_order(
    payload: CheckoutIn,
    user_id: str = Query(..., min_length=1),
    orders: OrderService = Depends(get_order_service),
    carts: CartService = Depends(get_cart_service),
):
    """
    Checkout. Without items in the body the user's cart is snapshotted
    into the order and emptied afterwards.
    """
    from_cart = payload.items is None
    snapshot = carts.get_cart(user_id) if from_cart else None
    items = snapshot.items if from_cart else payload.items

    data = payload.model_dump(exclude={"items"})
    data["user_id"] = user_id
    data["items"] = [i.model_dump() for i in items]

    order = orders.create_order(data)

    if from_cart:
        # the order is already stored; a stale cart must not fail the checkout
        try:
            carts.clear_cart(user_id, expected_version=snapshot.version)
        except ConflictError:
            logger.warning(
                f"Order {order.id} placed but cart of user {user_id} changed during checkout, not cleared"
            )
        except StorefrontError as e:
            logger.warning(f"Order {order.id} placed but cart of user {user_id} not cleared: {e}")

    return ok(order)


@router.get("")
def list_my_orders(
    user_id: str = Query(..., min_length=1),
    orders: OrderService = Depends(get_order_service),
):
    return ok(orders.get_user_orders(user_id))


@router.get("/counts")
def order_counts(
    user_id: str = Query(..., min_length=1),
    orders: OrderService = Depends(get_order_service),
):
    return ok(orders.get_order_counts_by_status(user_id))


@router.get("/{order_id}")
def get_order(
    order_id: str,
    user_id: str = Query(..., min_length=1),
    orders: OrderService = Depends(get_order_service),
):
    return ok(orders.get_order_by_id(order_id, user_id))


@router.post("/{order_id}/cancel")
def cancel_order(
    order_id: str,
    user_id: str = Query(..., min_length=1),
    orders: OrderService = Depends(get_order_service),
):
    return ok(orders.cancel_order(order_id, user_id))
