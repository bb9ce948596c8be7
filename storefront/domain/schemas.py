# storefront/domain/schemas.py
from copy import deepcopy
from datetime import datetime, timezone
from typing import Annotated, List

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, computed_field, model_validator

from storefront.domain.order_status import OrderStatus


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso_utc(value: datetime) -> str:
    # fixed width so stored timestamps sort lexicographically
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


Timestamp = Annotated[datetime, PlainSerializer(_iso_utc, return_type=str, when_used="json")]


# =====================================================
# CART
# =====================================================
class CartLineItem(BaseModel):
    """One product variant and its quantity, in a cart or an order snapshot."""

    product_id: str = Field(..., min_length=1)
    name: str
    unit_price: int = Field(..., ge=0, description="Whole rupees")
    original_unit_price: int | None = Field(default=None, ge=0)
    image: str = ""
    quantity: int = Field(default=1, ge=1)
    color: str | None = None
    size: str | None = None

    @property
    def key(self) -> tuple[str, str | None, str | None]:
        return (self.product_id, self.color, self.size)

    def matches(self, product_id: str, color: str | None = None, size: str | None = None) -> bool:
        """Exact (product_id, color, size) match; None only matches None."""
        return self.key == (product_id, color, size)

    @property
    def line_total(self) -> int:
        return self.unit_price * self.quantity


class Cart(BaseModel):
    owner_id: str
    items: List[CartLineItem] = Field(default_factory=list)
    version: int = 0
    created_at: Timestamp = Field(default_factory=utcnow)
    updated_at: Timestamp = Field(default_factory=utcnow)

    @computed_field
    @property
    def total_item_count(self) -> int:
        return sum(i.quantity for i in self.items)

    @computed_field
    @property
    def subtotal(self) -> int:
        return sum(i.line_total for i in self.items)

    def to_document(self) -> dict:
        return self.model_dump(
            mode="json",
            exclude={"version", "total_item_count", "subtotal"},
        )


# =====================================================
# ORDER
# =====================================================
class ShippingAddress(BaseModel):
    full_name: str = Field(..., min_length=1)
    street: str = Field(..., min_length=1)
    apartment: str = ""
    city: str = Field(..., min_length=1)
    state: str = ""
    postal_code: str = Field(..., min_length=1)
    country: str = "IN"
    phone: str = ""


class OrderCreate(BaseModel):
    """Checkout input. Totals are whole rupees."""

    model_config = ConfigDict(extra="ignore")

    user_id: str = Field(..., min_length=1)
    items: List[CartLineItem] = Field(..., min_length=1)
    shipping_address: ShippingAddress
    payment_method: str = Field(..., min_length=1)
    total_amount: int = Field(..., ge=0)
    subtotal: int | None = Field(default=None, ge=0)
    shipping_cost: int = Field(default=0, ge=0)
    discount_amount: int = Field(default=0, ge=0)
    shipping_method: str | None = None
    customer_email: str | None = None
    is_test_order: bool = False

    @property
    def items_subtotal(self) -> int:
        return sum(i.line_total for i in self.items)

    @model_validator(mode="after")
    def check_totals(self) -> "OrderCreate":
        computed = self.items_subtotal
        if self.subtotal is not None and self.subtotal != computed:
            raise ValueError(
                f"subtotal {self.subtotal} does not match items subtotal {computed}"
            )
        expected = computed + self.shipping_cost - self.discount_amount
        if self.total_amount != expected:
            raise ValueError(
                f"total_amount {self.total_amount} does not equal "
                f"subtotal + shipping_cost - discount_amount ({expected})"
            )
        return self


class Order(BaseModel):
    id: str
    user_id: str
    items: List[CartLineItem]
    shipping_address: ShippingAddress
    payment_method: str
    shipping_method: str | None = None
    customer_email: str | None = None
    status: OrderStatus = OrderStatus.PENDING
    subtotal: int
    shipping_cost: int = 0
    discount_amount: int = 0
    total_amount: int
    is_test_order: bool = False
    created_at: Timestamp = Field(default_factory=utcnow)
    updated_at: Timestamp = Field(default_factory=utcnow)
    version: int = 0

    @classmethod
    def from_create(cls, order_id: str, data: OrderCreate, now: datetime) -> "Order":
        return cls(
            id=order_id,
            user_id=data.user_id,
            # snapshot, never shared with the cart the items came from
            items=[CartLineItem.model_validate(deepcopy(i.model_dump())) for i in data.items],
            shipping_address=data.shipping_address.model_copy(deep=True),
            payment_method=data.payment_method,
            shipping_method=data.shipping_method,
            customer_email=data.customer_email,
            status=OrderStatus.PENDING,
            subtotal=data.items_subtotal,
            shipping_cost=data.shipping_cost,
            discount_amount=data.discount_amount,
            total_amount=data.total_amount,
            is_test_order=data.is_test_order,
            created_at=now,
            updated_at=now,
        )

    def to_document(self) -> dict:
        return self.model_dump(mode="json", exclude={"id", "version"})


# =====================================================
# HTTP BODIES
# =====================================================
class ItemIn(BaseModel):
    """Add-to-cart body; name, price and image come from the product service."""

    product_id: str = Field(..., min_length=1)
    quantity: int = Field(default=1, gt=0)
    color: str | None = None
    size: str | None = None


class QuantityIn(BaseModel):
    quantity: int
    color: str | None = None
    size: str | None = None


class CheckoutIn(BaseModel):
    """
    Checkout body. When items are omitted the caller's cart is snapshotted
    and emptied once the order is stored.
    """

    items: List[CartLineItem] | None = None
    shipping_address: ShippingAddress
    payment_method: str
    total_amount: int
    subtotal: int | None = None
    shipping_cost: int = 0
    discount_amount: int = 0
    shipping_method: str | None = None
    customer_email: str | None = None


class StatusUpdateIn(BaseModel):
    status: str
    force: bool = False
