"""
Shopping Cart

Client-local, transient cart for one browsing session against one
restaurant. Never persisted: a cart lives only as long as the process
keeps it in the CartRegistry.

State machine:
    empty ──add_item──▶ has-items ──remove last / clear──▶ empty

Prices are captured when an item is added. Later price changes on the
menu item do not affect lines already in the cart.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from foodz.models import MenuItem, OrderItem

logger = logging.getLogger(__name__)

EMPTY = "empty"
HAS_ITEMS = "has-items"


@dataclass
class CartLine:
    """One menu item in the cart with its add-time name and price."""
    item_id: str
    name: str
    price: float
    quantity: int = 1

    @property
    def line_total(self) -> float:
        return self.price * self.quantity

    def to_order_item(self) -> OrderItem:
        return OrderItem(name=self.name, quantity=self.quantity, price=self.price)


class Cart:
    """
    Ordered list of menu item lines.

    Example:
        >>> cart = Cart("r1")
        >>> cart.add_item(burger)
        >>> cart.add_item(burger)
        >>> cart.lines[0].quantity, cart.total()
        (2, 18.0)
    """

    def __init__(self, restaurant_id: str):
        self.restaurant_id = restaurant_id
        self._lines: list[CartLine] = []

    @property
    def lines(self) -> list[CartLine]:
        return list(self._lines)

    @property
    def is_empty(self) -> bool:
        return not self._lines

    @property
    def state(self) -> str:
        return EMPTY if self.is_empty else HAS_ITEMS

    def _find(self, item_id: str) -> Optional[CartLine]:
        for line in self._lines:
            if line.item_id == item_id:
                return line
        return None

    def add_item(self, item: MenuItem) -> CartLine:
        """Add one unit; repeated adds of the same id accumulate on one line."""
        line = self._find(item.id)
        if line is not None:
            line.quantity += 1
        else:
            line = CartLine(item_id=item.id, name=item.name, price=item.price)
            self._lines.append(line)
        return line

    def change_quantity(self, item_id: str, delta: int) -> Optional[CartLine]:
        """Adjust a line's quantity, never going below 1."""
        line = self._find(item_id)
        if line is not None:
            line.quantity = max(1, line.quantity + delta)
        return line

    def remove_item(self, item_id: str) -> None:
        self._lines = [line for line in self._lines if line.item_id != item_id]

    def total(self) -> float:
        return sum(line.line_total for line in self._lines)

    def clear(self) -> None:
        self._lines = []

    def to_order_items(self) -> list[OrderItem]:
        return [line.to_order_item() for line in self._lines]


@dataclass
class CartSession:
    """A cart together with the notes the customer is typing for the order."""
    cart: Cart
    notes: str = ""
    table_number: Optional[str] = None

    def reset(self) -> None:
        self.cart.clear()
        self.notes = ""
        self.table_number = None


class CartRegistry:
    """In-process holder of one cart session per (customer, restaurant)."""

    def __init__(self):
        self._sessions: dict[tuple[str, str], CartSession] = {}

    def get(self, customer_id: str, restaurant_id: str) -> CartSession:
        key = (customer_id, restaurant_id)
        if key not in self._sessions:
            self._sessions[key] = CartSession(cart=Cart(restaurant_id))
        return self._sessions[key]

    def discard(self, customer_id: str, restaurant_id: str) -> None:
        self._sessions.pop((customer_id, restaurant_id), None)

    def discard_customer(self, customer_id: str) -> None:
        """Drop every cart of a customer (on sign-out)."""
        for key in [k for k in self._sessions if k[0] == customer_id]:
            del self._sessions[key]
        logger.debug(f"Discarded carts of {customer_id}")
