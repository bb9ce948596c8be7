# storefront/api/routers/carts.py
from fastapi import APIRouter, Depends, Query

from storefront.api.deps import get_cart_service, get_product_client
from storefront.api.responses import ok
from storefront.domain.schemas import ItemIn, QuantityIn
from storefront.services.cart_service import CartService
from storefront.services.product_client import ProductClient

router = APIRouter(prefix="/cart", tags=["cart"])


@router.get("")
def get_cart(
    user_id: str = Query(..., min_length=1),
    svc: CartService = Depends(get_cart_service),
):
    return ok(svc.get_cart(user_id))


@router.post("/items")
def add_item(
    payload: ItemIn,
    user_id: str = Query(..., min_length=1),
    svc: CartService = Depends(get_cart_service),
    products: ProductClient = Depends(get_product_client),
):
    """Adds a product at its current catalogue price."""
    item = products.line_item(payload.product_id, color=payload.color, size=payload.size)
    return ok(svc.add_item(user_id, item, payload.quantity))


@router.put("/items/{product_id}")
def update_quantity(
    product_id: str,
    payload: QuantityIn,
    user_id: str = Query(..., min_length=1),
    svc: CartService = Depends(get_cart_service),
):
    return ok(
        svc.update_quantity(
            user_id,
            product_id,
            payload.quantity,
            color=payload.color,
            size=payload.size,
        )
    )


@router.delete("/items/{product_id}")
def remove_item(
    product_id: str,
    user_id: str = Query(..., min_length=1),
    color: str | None = Query(None),
    size: str | None = Query(None),
    svc: CartService = Depends(get_cart_service),
):
    return ok(svc.remove_item(user_id, product_id, color=color, size=size))


@router.delete("")
def clear_cart(
    user_id: str = Query(..., min_length=1),
    svc: CartService = Depends(get_cart_service),
):
    return ok(svc.clear_cart(user_id))
