import pytest

from foodz.models import MenuItem
from foodz.services.cart import EMPTY, HAS_ITEMS, Cart, CartRegistry


def make_item(item_id: str, name: str, price: float) -> MenuItem:
    return MenuItem(id=item_id, name=name, price=price, category="Mains", restaurant_id="r1")


@pytest.fixture
def burger():
    return make_item("m1", "Burger", 9.0)


@pytest.fixture
def fries():
    return make_item("m2", "Fries", 3.5)


def test_new_cart_is_empty():
    cart = Cart("r1")
    assert cart.is_empty
    assert cart.state == EMPTY
    assert cart.total() == 0


def test_adding_same_item_accumulates_quantity(burger):
    cart = Cart("r1")
    cart.add_item(burger)
    cart.add_item(burger)

    assert len(cart.lines) == 1
    assert cart.lines[0].quantity == 2
    assert cart.total() == 18.0
    assert cart.state == HAS_ITEMS


def test_lines_keep_insertion_order(burger, fries):
    cart = Cart("r1")
    cart.add_item(fries)
    cart.add_item(burger)
    cart.add_item(fries)

    assert [line.item_id for line in cart.lines] == ["m2", "m1"]


def test_quantity_never_drops_below_one(burger):
    cart = Cart("r1")
    cart.add_item(burger)

    line = cart.change_quantity("m1", -5)
    assert line.quantity == 1

    cart.change_quantity("m1", +3)
    assert cart.lines[0].quantity == 4


def test_change_quantity_of_unknown_item_is_noop(burger):
    cart = Cart("r1")
    cart.add_item(burger)
    assert cart.change_quantity("nope", 1) is None
    assert cart.lines[0].quantity == 1


def test_removing_last_line_returns_to_empty(burger):
    cart = Cart("r1")
    cart.add_item(burger)
    cart.remove_item("m1")
    assert cart.state == EMPTY


def test_total_uses_price_captured_at_add_time(burger):
    cart = Cart("r1")
    cart.add_item(burger)
    burger.price = 20.0
    cart.add_item(burger)

    # Second add accumulates on the existing line at its original price
    assert cart.total() == 18.0


def test_total_is_not_rounded():
    cart = Cart("r1")
    cheap = make_item("m3", "Dip", 0.1)
    cart.add_item(cheap)
    cart.add_item(cheap)
    cart.add_item(cheap)
    assert cart.total() == pytest.approx(0.3)
    assert cart.total() != 0.3


def test_clear_and_order_items(burger, fries):
    cart = Cart("r1")
    cart.add_item(burger)
    cart.add_item(fries)
    cart.change_quantity("m2", 1)

    items = cart.to_order_items()
    assert [(i.name, i.quantity, i.price) for i in items] == [("Burger", 1, 9.0), ("Fries", 2, 3.5)]

    cart.clear()
    assert cart.is_empty


def test_lines_property_is_a_copy(burger):
    cart = Cart("r1")
    cart.add_item(burger)
    cart.lines.clear()
    assert not cart.is_empty


def test_registry_keeps_one_session_per_customer_and_restaurant(burger):
    registry = CartRegistry()
    first = registry.get("c1", "r1")
    first.cart.add_item(burger)

    assert registry.get("c1", "r1") is first
    assert registry.get("c1", "r2").cart.is_empty
    assert registry.get("c2", "r1").cart.is_empty


def test_registry_discards_all_carts_of_customer(burger):
    registry = CartRegistry()
    registry.get("c1", "r1").cart.add_item(burger)
    registry.get("c1", "r2").cart.add_item(burger)
    registry.get("c2", "r1").cart.add_item(burger)

    registry.discard_customer("c1")

    assert registry.get("c1", "r1").cart.is_empty
    assert registry.get("c1", "r2").cart.is_empty
    assert not registry.get("c2", "r1").cart.is_empty


def test_session_reset_clears_notes_and_lines(burger):
    session = CartRegistry().get("c1", "r1")
    session.cart.add_item(burger)
    session.notes = "No onions"
    session.table_number = "7"

    session.reset()

    assert session.cart.is_empty
    assert session.notes == ""
    assert session.table_number is None
