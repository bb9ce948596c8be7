# storefront/services/cart_service.py
from pydantic import ValidationError as PydanticValidationError

from storefront.domain.exceptions import CartItemNotFoundError, ConflictError, ValidationError
from storefront.domain.schemas import Cart, CartLineItem
from storefront.repos.cart_repo import CARTS, CartRepo
from storefront.repos.store import DocumentStore, store_errors
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

CART_FAILED = "Cart operation failed"


class CartService:
    """
    Use cases for the cart domain.
    Commands (add, update, remove, clear) read the cart, change its items and
    write them back conditionally on the version they read; the query (get)
    only reads. Totals are computed by the Cart model on every read.
    """

    def __init__(self, store: DocumentStore):
        self.repo = CartRepo(store)

    # =====================================================
    # QUERY
    # =====================================================
    def get_cart(self, owner_id: str) -> Cart:
        """
        Use Case: Fetch the user's cart, creating an empty one on first access.
        Never cached; the displayed price must be the charged price.
        """
        with store_errors(CART_FAILED, owner_id=owner_id):
            cart = self.repo.get_cart(owner_id)
            if cart:
                return cart

            logger.info(f"Creating cart for user {owner_id}")
            try:
                return self.repo.create_cart(owner_id)
            except ConflictError:
                # a concurrent request created it first; keep theirs
                logger.info(f"Cart of user {owner_id} created concurrently, re-reading")
                cart = self.repo.get_cart(owner_id)
                if cart is None:
                    raise
                return cart

    # =====================================================
    # COMMANDS
    # =====================================================
    def add_item(self, owner_id: str, item: CartLineItem | dict, quantity: int = 1) -> Cart:
        """
        Use Case: Add a product variant to the cart.

        A line with the same (product_id, color, size) has its quantity
        increased; anything else is appended as a new line.
        """
        if quantity < 1:
            raise ValidationError("Quantity must be at least 1")

        if isinstance(item, dict):
            try:
                item = CartLineItem.model_validate(item)
            except PydanticValidationError as e:
                raise ValidationError(
                    "Invalid cart item",
                    errors=[err["msg"] for err in e.errors()],
                ) from e

        with store_errors(CART_FAILED, owner_id=owner_id):
            cart = self.get_cart(owner_id)

            existing = next((i for i in cart.items if i.key == item.key), None)
            if existing:
                logger.info(
                    f"Product {item.product_id} already in cart of user {owner_id}, "
                    f"quantity {existing.quantity} -> {existing.quantity + quantity}"
                )
                existing.quantity += quantity
            else:
                logger.info(f"Adding product {item.product_id} to cart of user {owner_id}")
                cart.items.append(item.model_copy(update={"quantity": quantity}, deep=True))

            return self.repo.save_items(cart)

    def update_quantity(
        self,
        owner_id: str,
        product_id: str,
        quantity: int,
        color: str | None = None,
        size: str | None = None,
    ) -> Cart:
        """
        Use Case: Set the quantity of the line with exactly this
        (product_id, color, size). A quantity of zero or less removes it.
        """
        if quantity <= 0:
            return self.remove_item(owner_id, product_id, color=color, size=size)

        with store_errors(CART_FAILED, owner_id=owner_id):
            cart = self.get_cart(owner_id)

            matching = [i for i in cart.items if i.matches(product_id, color, size)]
            if not matching:
                raise CartItemNotFoundError(owner_id, product_id)

            for line in matching:
                line.quantity = quantity

            logger.info(f"Product {product_id} quantity set to {quantity} in cart of user {owner_id}")
            return self.repo.save_items(cart)

    def remove_item(
        self,
        owner_id: str,
        product_id: str,
        color: str | None = None,
        size: str | None = None,
    ) -> Cart:
        """
        Use Case: Remove the line with exactly this (product_id, color, size).
        Removing something that is not in the cart leaves it untouched.
        """
        with store_errors(CART_FAILED, owner_id=owner_id):
            cart = self.get_cart(owner_id)

            remaining = [i for i in cart.items if not i.matches(product_id, color, size)]
            if len(remaining) == len(cart.items):
                logger.info(f"Product {product_id} not in cart of user {owner_id}, nothing to remove")
                return cart

            cart.items = remaining
            logger.info(f"Removed product {product_id} from cart of user {owner_id}")
            return self.repo.save_items(cart)

    def clear_cart(self, owner_id: str, expected_version: int | None = None) -> Cart:
        """
        Use Case: Empty the cart. The cart document itself is kept.

        With expected_version (checkout), the cart is only emptied if nobody
        changed it since that version was read; otherwise ConflictError.
        """
        with store_errors(CART_FAILED, owner_id=owner_id):
            cart = self.get_cart(owner_id)
            if expected_version is not None and cart.version != expected_version:
                raise ConflictError(CARTS, owner_id, expected_version, cart.version)
            cart.items = []

            logger.info(f"Clearing cart of user {owner_id}")
            return self.repo.save_items(cart)
