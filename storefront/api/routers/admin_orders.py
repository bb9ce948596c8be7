# storefront/api/routers/admin_orders.py
from fastapi import APIRouter, Depends, Query

from storefront.api.deps import get_order_service
from storefront.api.responses import ok
from storefront.domain.schemas import StatusUpdateIn
from storefront.services.order_service import OrderService

# admin authentication happens in the gateway in front of this service
router = APIRouter(prefix="/admin/orders", tags=["admin"])


@router.get("")
def list_orders(
    status: str | None = Query(None),
    limit: int | None = Query(None),
    orders: OrderService = Depends(get_order_service),
):
    return ok(orders.list_orders(status=status, limit=limit))


@router.get("/{order_id}")
def get_order(order_id: str, orders: OrderService = Depends(get_order_service)):
    return ok(orders.get_order_by_id(order_id))


@router.put("/{order_id}")
def update_order_status(
    order_id: str,
    payload: StatusUpdateIn,
    orders: OrderService = Depends(get_order_service),
):
    """force=true skips the lifecycle check and sets any known status."""
    return ok(orders.update_order_status(order_id, payload.status, force=payload.force))


@router.delete("/{order_id}")
def delete_order(order_id: str, orders: OrderService = Depends(get_order_service)):
    orders.delete_order(order_id)
    return ok({"id": order_id})
