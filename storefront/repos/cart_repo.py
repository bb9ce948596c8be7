# storefront/repos/cart_repo.py
from storefront.domain.schemas import Cart, utcnow
from storefront.repos.store import DocumentStore

CARTS = "carts"


class CartRepo:
    """One cart document per user, stored under the owner's id."""

    def __init__(self, store: DocumentStore):
        self.store = store

    def get_cart(self, owner_id: str) -> Cart | None:
        doc = self.store.get(CARTS, owner_id)
        return Cart.model_validate(doc) if doc else None

    def create_cart(self, owner_id: str) -> Cart:
        """Insert an empty cart. Raises ConflictError if the user already has one."""
        cart = Cart(owner_id=owner_id)
        doc = self.store.create(CARTS, owner_id, cart.to_document())
        return Cart.model_validate(doc)

    def save_items(self, cart: Cart) -> Cart:
        """Write the cart's items, failing with ConflictError if it changed since it was read."""
        cart.updated_at = utcnow()
        doc = cart.to_document()
        saved = self.store.update(
            CARTS,
            cart.owner_id,
            {"items": doc["items"], "updated_at": doc["updated_at"]},
            if_version=cart.version,
        )
        return Cart.model_validate(saved)
