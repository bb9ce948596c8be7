"""
CartService: merge-by-variant, quantity rules, totals and failure wrapping.
"""

import pytest

from storefront.domain.exceptions import ConflictError, NotFoundError, StoreError, ValidationError
from storefront.domain.schemas import CartLineItem
from storefront.repos.store import InMemoryDocumentStore
from storefront.services.cart_service import CartService


def kurta(**overrides):
    data = {"product_id": "p1", "name": "Cotton Kurta", "unit_price": 100, "image": "/kurta.jpg"}
    data.update(overrides)
    return CartLineItem(**data)


class StaleMissStore(InMemoryDocumentStore):
    """Reports the next `stale_reads` cart reads as missing, as if another request created the cart just after."""

    def __init__(self):
        super().__init__()
        self.stale_reads = 0

    def get(self, collection, doc_id):
        if collection == "carts" and self.stale_reads:
            self.stale_reads -= 1
            return None
        return super().get(collection, doc_id)


class BrokenStore(InMemoryDocumentStore):
    def __init__(self, exc):
        super().__init__()
        self.exc = exc

    def get(self, collection, doc_id):
        raise self.exc


def test_get_cart_creates_empty_cart_once(cart_service, store):
    first = cart_service.get_cart("user-1")
    second = cart_service.get_cart("user-1")

    assert first.items == []
    assert first.owner_id == "user-1"
    assert second.version == first.version == 1
    assert store.get("carts", "user-1") is not None


def test_add_new_item_appends_line(cart_service):
    cart = cart_service.add_item("user-1", kurta(), quantity=2)

    assert len(cart.items) == 1
    assert cart.items[0].quantity == 2
    assert cart.items[0].name == "Cotton Kurta"


@pytest.mark.parametrize("first, second", [(1, 1), (2, 3), (5, 10)])
def test_adding_same_variant_twice_merges_quantities(cart_service, first, second):
    cart_service.add_item("user-1", kurta(color="red", size="M"), quantity=first)
    cart = cart_service.add_item("user-1", kurta(color="red", size="M"), quantity=second)

    assert len(cart.items) == 1
    assert cart.items[0].quantity == first + second


def test_different_variants_are_separate_lines(cart_service):
    cart_service.add_item("user-1", kurta(color="red", size="M"))
    cart_service.add_item("user-1", kurta(color="blue", size="M"))
    cart = cart_service.add_item("user-1", kurta(color="red", size="L"))

    assert [(i.color, i.size) for i in cart.items] == [("red", "M"), ("blue", "M"), ("red", "L")]


def test_add_accepts_plain_dict(cart_service):
    cart = cart_service.add_item("user-1", {"product_id": "p9", "name": "Scarf", "unit_price": 40})
    assert cart.items[0].product_id == "p9"


@pytest.mark.parametrize("quantity", [0, -3])
def test_add_rejects_non_positive_quantity(cart_service, quantity):
    with pytest.raises(ValidationError):
        cart_service.add_item("user-1", kurta(), quantity=quantity)

    assert cart_service.get_cart("user-1").items == []


def test_add_rejects_invalid_item(cart_service):
    with pytest.raises(ValidationError) as exc:
        cart_service.add_item("user-1", {"product_id": "p1", "unit_price": -5})

    assert exc.value.errors


def test_added_item_is_copied_into_the_cart(cart_service):
    item = kurta()
    cart_service.add_item("user-1", item, quantity=1)
    item.quantity = 50

    assert cart_service.get_cart("user-1").items[0].quantity == 1


def test_totals_are_recomputed_from_items(cart_service):
    cart_service.add_item("user-1", kurta(), quantity=2)
    cart = cart_service.add_item("user-1", kurta(product_id="p2", unit_price=250), quantity=3)

    assert cart.total_item_count == 5
    assert cart.subtotal == 2 * 100 + 3 * 250
    assert cart.subtotal == sum(i.unit_price * i.quantity for i in cart.items)


def test_totals_are_not_stored(cart_service, store):
    cart_service.add_item("user-1", kurta(), quantity=2)
    doc = store.get("carts", "user-1")

    assert "subtotal" not in doc
    assert "total_item_count" not in doc


def test_update_quantity_sets_value(cart_service):
    cart_service.add_item("user-1", kurta(color="red"), quantity=1)
    cart = cart_service.update_quantity("user-1", "p1", 4, color="red")

    assert cart.items[0].quantity == 4
    assert cart.total_item_count == 4


def test_update_quantity_matches_the_full_variant_tuple(cart_service):
    cart_service.add_item("user-1", kurta())
    cart_service.add_item("user-1", kurta(color="red", size="M"))

    cart = cart_service.update_quantity("user-1", "p1", 5)
    assert [(i.color, i.size, i.quantity) for i in cart.items] == [(None, None, 5), ("red", "M", 1)]


def test_update_quantity_partial_variant_is_not_found(cart_service):
    cart_service.add_item("user-1", kurta(color="red", size="M"))

    with pytest.raises(NotFoundError):
        cart_service.update_quantity("user-1", "p1", 2, color="red")


def test_remove_plain_line_keeps_variants(cart_service):
    cart_service.add_item("user-1", kurta())
    cart_service.add_item("user-1", kurta(color="red", size="M"))

    cart = cart_service.remove_item("user-1", "p1")
    assert [(i.color, i.size) for i in cart.items] == [("red", "M")]


def test_update_quantity_with_variant_leaves_other_variants(cart_service):
    cart_service.add_item("user-1", kurta(color="red"))
    cart_service.add_item("user-1", kurta(color="blue"))

    cart = cart_service.update_quantity("user-1", "p1", 3, color="blue")
    assert [(i.color, i.quantity) for i in cart.items] == [("red", 1), ("blue", 3)]


@pytest.mark.parametrize("quantity", [0, -1])
def test_update_to_non_positive_quantity_removes_line(cart_service, quantity):
    cart_service.add_item("user-1", kurta())
    cart_service.add_item("user-1", kurta(product_id="p2"))

    cart = cart_service.update_quantity("user-1", "p1", quantity)
    assert [i.product_id for i in cart.items] == ["p2"]


def test_update_unknown_product_raises_not_found(cart_service):
    cart_service.add_item("user-1", kurta())

    with pytest.raises(NotFoundError):
        cart_service.update_quantity("user-1", "nope", 2)


def test_remove_item_drops_matching_line(cart_service):
    cart_service.add_item("user-1", kurta(size="M"))
    cart_service.add_item("user-1", kurta(size="L"))

    cart = cart_service.remove_item("user-1", "p1", size="M")
    assert [i.size for i in cart.items] == ["L"]


def test_remove_missing_item_is_idempotent(cart_service):
    before = cart_service.add_item("user-1", kurta(), quantity=2)
    after = cart_service.remove_item("user-1", "does-not-exist")

    assert after.items == before.items
    assert after.version == before.version


def test_clear_cart_empties_but_keeps_cart(cart_service, store):
    cart_service.add_item("user-1", kurta(), quantity=2)
    cart = cart_service.clear_cart("user-1")

    assert cart.items == []
    assert cart.subtotal == 0
    assert store.get("carts", "user-1") is not None


def test_carts_are_per_user(cart_service):
    cart_service.add_item("user-1", kurta())
    assert cart_service.get_cart("user-2").items == []


def test_stale_write_raises_conflict(cart_service):
    stale = cart_service.get_cart("user-1")
    cart_service.add_item("user-1", kurta())

    stale.items.append(kurta(product_id="p2"))
    with pytest.raises(ConflictError):
        cart_service.repo.save_items(stale)

    assert [i.product_id for i in cart_service.get_cart("user-1").items] == ["p1"]


@pytest.mark.parametrize("exc", [StoreError("connection reset"), RuntimeError("boom")])
def test_store_failures_surface_as_cart_operation_failed(exc):
    svc = CartService(BrokenStore(exc))

    with pytest.raises(StoreError) as raised:
        svc.add_item("user-1", kurta())

    assert str(raised.value) == "Cart operation failed"


def test_create_cart_never_replaces_an_existing_cart(cart_service):
    cart_service.add_item("user-1", kurta(), quantity=3)

    with pytest.raises(ConflictError):
        cart_service.repo.create_cart("user-1")

    assert [(i.product_id, i.quantity) for i in cart_service.get_cart("user-1").items] == [("p1", 3)]


def test_get_cart_after_losing_creation_race_returns_existing_cart():
    store = StaleMissStore()
    svc = CartService(store)
    svc.add_item("user-1", kurta(), quantity=3)

    store.stale_reads = 1
    cart = svc.get_cart("user-1")

    assert [(i.product_id, i.quantity) for i in cart.items] == [("p1", 3)]
    assert store.get("carts", "user-1")["items"][0]["quantity"] == 3


def test_clear_cart_at_snapshot_version(cart_service):
    snapshot = cart_service.add_item("user-1", kurta(), quantity=2)

    cart = cart_service.clear_cart("user-1", expected_version=snapshot.version)
    assert cart.items == []


def test_clear_cart_refuses_when_cart_changed_since_snapshot(cart_service):
    snapshot = cart_service.add_item("user-1", kurta(), quantity=2)
    cart_service.add_item("user-1", kurta(product_id="p2"))

    with pytest.raises(ConflictError):
        cart_service.clear_cart("user-1", expected_version=snapshot.version)

    assert [i.product_id for i in cart_service.get_cart("user-1").items] == ["p1", "p2"]
