"""
Order Pipeline

Order creation (cart → order), the live order feed, and status updates.

Every order is stored twice as independent copies carrying the same
business data:

    restaurants/{restaurantId}/orders/{orderId}      restaurant copy
    users/{customerId}/orders/{copyId}               customer copy
        + orderId      back-reference to the restaurant copy
        + restaurant   {id, name} snapshot

Both copies are written by best-effort dual write, at creation and at
every status update. There is no transaction, retry or reconciliation:

    - creation: the restaurant copy is written first; if it fails nothing
      else is written. If the customer copy fails afterwards, the order
      exists for the restaurant only and the caller sees a failure.
    - status update: the restaurant copy is authoritative and its failure
      propagates. Failures while syncing the customer copy are logged and
      swallowed; the copies may then diverge.

Live feeds deliver the complete, timestamp-descending list on every
change. A feed that errors is terminal; callers must subscribe again.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Iterable, Optional, Sequence

import pydantic

from foodz.core.errors import (
    AuthorizationError,
    FoodzError,
    StoreError,
    SubscriptionError,
    ValidationError,
)
from foodz.models import (
    ORDERS,
    RESTAURANTS,
    USERS,
    Order,
    OrderStatus,
    UserRole,
    customer_orders_path,
    restaurant_orders_path,
)
from foodz.services.cart import Cart
from foodz.services.collection import DocumentCollection
from foodz.services.store.base import SERVER_TIMESTAMP, BaseDocumentStore, FieldFilter

logger = logging.getLogger(__name__)

ORDER_BY = "timestamp"
ALL_STATUSES = "all"


def decode_orders(documents: Iterable[dict[str, Any]]) -> list[Order]:
    """Decode order documents, skipping any that cannot be read as an Order."""
    orders = []
    for doc in documents:
        try:
            orders.append(Order.from_document(doc))
        except pydantic.ValidationError as e:
            logger.warning(f"Skipping malformed order {doc.get('id')}: {e.error_count()} invalid fields")
    return orders


def filter_orders(
    orders: Iterable[Order],
    status: Optional[str] = None,
    search: Optional[str] = None,
) -> list[Order]:
    """
    Narrow a list of orders the way the order management view does.

    Args:
        status: Keep only this status; None or "all" keeps every status
        search: Case-insensitive match on the order id, customer name or
            any item name

    Raises:
        ValidationError: Unknown status
    """
    if status and status != ALL_STATUSES:
        try:
            wanted = OrderStatus(status).value
        except ValueError:
            valid = [ALL_STATUSES] + [s.value for s in OrderStatus]
            raise ValidationError(f"Invalid status. Options: {valid}")
        orders = [o for o in orders if o.status == wanted]

    query = (search or "").strip().lower()
    if query:
        orders = [
            o for o in orders
            if query in (o.id or "").lower()
            or query in (o.order_id or "").lower()
            or query in o.customer.name.lower()
            or any(query in item.name.lower() for item in o.items)
        ]
    return list(orders)


# =============================================================================
# SCOPE
# =============================================================================

@dataclass(frozen=True)
class OrderScope:
    """The identity whose orders a feed or listing is filtered to."""
    kind: UserRole
    owner_id: str

    @classmethod
    def for_restaurant(cls, restaurant_id: str) -> "OrderScope":
        return cls(UserRole.RESTAURANT, restaurant_id)

    @classmethod
    def for_customer(cls, customer_id: str) -> "OrderScope":
        return cls(UserRole.CLIENT, customer_id)

    @property
    def parent(self) -> tuple[str, str]:
        """Document owning the scope's orders subcollection."""
        if self.kind == UserRole.RESTAURANT:
            return RESTAURANTS, self.owner_id
        return USERS, self.owner_id

    @property
    def path(self) -> str:
        if self.kind == UserRole.RESTAURANT:
            return restaurant_orders_path(self.owner_id)
        return customer_orders_path(self.owner_id)


# =============================================================================
# RESULTS
# =============================================================================

@dataclass
class OrderReceipt:
    """Outcome of a successful checkout."""
    order_id: str
    customer_copy_id: str
    total: float
    item_count: int
    close_cart: bool = True


@dataclass
class StatusUpdate:
    """Outcome of a status update; the restaurant copy is always written."""
    order_id: str
    status: OrderStatus
    customer_copy_synced: bool = False
    customer_copies: list[str] = field(default_factory=list)


# =============================================================================
# ORDER SERVICE
# =============================================================================

class OrderService:
    """Creates orders and mutates their status against the document store."""

    def __init__(self, store: BaseDocumentStore):
        self.store = store

    async def submit(
        self,
        cart: Cart,
        customer_id: str,
        customer_name: Optional[str],
        restaurant_id: str,
        restaurant_name: Optional[str],
        notes: Optional[str] = None,
        table_number: Optional[str] = None,
    ) -> OrderReceipt:
        """
        Persist the cart as an order, written to both order collections.

        The total uses the prices captured in the cart at add-time.

        Raises:
            ValidationError: Empty cart or missing ids (nothing is written)
            StoreError: Either write failed (the cart is left untouched)
        """
        if cart.is_empty:
            raise ValidationError("Your cart is empty")
        if not customer_id or not restaurant_id:
            raise ValidationError("Customer and restaurant are required to place an order")

        order_data: dict[str, Any] = {
            "customer": {"id": customer_id, "name": customer_name or "Customer"},
            "items": [item.model_dump() for item in cart.to_order_items()],
            "total": round(cart.total(), 2),
            "status": OrderStatus.PENDING.value,
            "timestamp": SERVER_TIMESTAMP,
        }
        if notes:
            order_data["notes"] = notes
        if table_number:
            order_data["tableNumber"] = table_number

        logger.info(
            f"Placing order for {customer_id} at {restaurant_id}: "
            f"{len(order_data['items'])} lines, total {order_data['total']:.2f}"
        )

        try:
            order_id = await self.store.add(restaurant_orders_path(restaurant_id), order_data)
        except Exception as e:
            logger.exception(f"Error submitting order to restaurant {restaurant_id}: {e}")
            raise StoreError("Failed to place order", detail=str(e))

        try:
            copy_id = await self.store.add(
                customer_orders_path(customer_id),
                {
                    **order_data,
                    "orderId": order_id,
                    "restaurant": {"id": restaurant_id, "name": restaurant_name or "Restaurant"},
                },
            )
        except Exception as e:
            # The restaurant copy stays; no rollback
            logger.exception(
                f"Order {order_id} written for restaurant {restaurant_id} "
                f"but customer copy for {customer_id} failed: {e}"
            )
            raise StoreError("Failed to place order", detail=str(e))

        receipt = OrderReceipt(
            order_id=order_id,
            customer_copy_id=copy_id,
            total=order_data["total"],
            item_count=sum(line.quantity for line in cart.lines),
        )
        cart.clear()

        logger.info(f"Order {order_id} placed successfully")
        return receipt

    async def list_orders(
        self,
        scope: OrderScope,
        status: Optional[str] = None,
        search: Optional[str] = None,
    ) -> list[Order]:
        """One-shot read of a scope's orders, newest first, optionally filtered."""
        orders = DocumentCollection(
            self.store, ORDERS, parent=scope.parent, order_by=ORDER_BY, descending=True
        )
        await orders.refresh()
        if orders.error:
            raise orders.error
        return filter_orders(decode_orders(orders.data), status=status, search=search)

    async def update_status(
        self,
        restaurant_id: str,
        order_id: str,
        new_status: str,
        known_orders: Sequence[Order] = (),
    ) -> StatusUpdate:
        """
        Set an order's status on the restaurant copy, then best-effort on
        the customer copy.

        The customer is looked up in ``known_orders`` (the caller's loaded
        feed) and otherwise read from the restaurant copy.

        Raises:
            ValidationError: Unknown status
            NotFoundError: No such order for the restaurant
            StoreError: The restaurant copy could not be written
        """
        try:
            status = OrderStatus(new_status)
        except ValueError:
            valid = [s.value for s in OrderStatus]
            raise ValidationError(f"Invalid status. Options: {valid}")

        await self.store.update(
            restaurant_orders_path(restaurant_id), order_id, {"status": status.value}
        )
        logger.info(f"Order {order_id} status updated to {status.value}")

        result = StatusUpdate(order_id=order_id, status=status)
        try:
            result.customer_copies = await self._sync_customer_copy(
                restaurant_id, order_id, status, known_orders
            )
            result.customer_copy_synced = bool(result.customer_copies)
        except Exception as e:
            logger.warning(f"Customer order copy for {order_id} not updated: {e}")
        return result

    async def _sync_customer_copy(
        self,
        restaurant_id: str,
        order_id: str,
        status: OrderStatus,
        known_orders: Sequence[Order],
    ) -> list[str]:
        order = next((o for o in known_orders if o.id == order_id), None)
        if order is None:
            document = await self.store.get(restaurant_orders_path(restaurant_id), order_id)
            order = next(iter(decode_orders([document])), None) if document else None

        if order is None or not order.customer.id:
            logger.info(f"Customer order copy not found for {order_id}")
            return []

        path = customer_orders_path(order.customer.id)
        copies = await self.store.query(path, [FieldFilter("orderId", "==", order_id)])
        if not copies:
            logger.info(f"Customer order copy not found for {order_id}")
            return []

        for copy in copies:
            await self.store.update(path, copy["id"], {"status": status.value})
        return [copy["id"] for copy in copies]


# =============================================================================
# LIVE FEED
# =============================================================================

class OrderStream:
    """
    Async iterator over feed snapshots.

    Yields a full ``list[Order]`` per delivery. Raises SubscriptionError
    once if the underlying live query fails, then stops.
    """

    def __init__(self, feed: "OrderFeed", queue: asyncio.Queue):
        self._feed = feed
        self._queue = queue
        self._finished = False

    def __aiter__(self) -> "OrderStream":
        return self

    async def __anext__(self) -> list[Order]:
        if self._finished:
            raise StopAsyncIteration

        kind, payload = await self._queue.get()
        if kind == "error":
            self._finished = True
            error = SubscriptionError("Failed to load orders", detail=str(payload))
            self._feed._fail(error)
            raise error

        orders = decode_orders(payload)
        self._feed._deliver(orders)
        return orders


class OrderFeed:
    """
    Live, reverse-chronological view of one scope's orders.

    Usage:
        feed = OrderFeed(store, OrderScope.for_restaurant(uid))
        async with feed.subscribe() as stream:
            async for orders in stream:
                render(orders)

    The live query is released when the ``async with`` block exits, on
    every path (normal exit, exception, task cancellation).
    """

    def __init__(self, store: BaseDocumentStore, scope: OrderScope):
        self.store = store
        self.scope = scope
        self.service = OrderService(store)

        self.orders: list[Order] = []
        self.is_loading: bool = False
        self.error: Optional[SubscriptionError] = None
        self.is_open: bool = False

    def _deliver(self, orders: list[Order]) -> None:
        self.orders = orders
        self.is_loading = False
        self.error = None

    def _fail(self, error: SubscriptionError) -> None:
        logger.error(f"Error getting real-time orders for {self.scope.path}: {error.detail}")
        self.error = error
        self.is_loading = False

    @asynccontextmanager
    async def subscribe(self) -> AsyncIterator[OrderStream]:
        if not self.scope.owner_id:
            raise ValidationError("An order feed needs a restaurant or customer id")

        loop = asyncio.get_running_loop()
        queue: asyncio.Queue = asyncio.Queue()
        closed = False

        def push(kind: str, payload: Any) -> None:
            # Store callbacks may arrive on a watch thread
            if not closed:
                loop.call_soon_threadsafe(queue.put_nowait, (kind, payload))

        self.is_loading = True
        self.error = None
        unsubscribe = self.store.subscribe(
            self.scope.path,
            on_snapshot=lambda docs: push("snapshot", docs),
            on_error=lambda exc: push("error", exc),
            order_by=ORDER_BY,
            descending=True,
        )
        self.is_open = True
        logger.info(f"Order feed opened on {self.scope.path}")

        try:
            yield OrderStream(self, queue)
        finally:
            closed = True
            unsubscribe()
            self.is_open = False
            logger.info(f"Order feed closed on {self.scope.path}")

    async def update_status(self, order_id: str, new_status: str) -> StatusUpdate:
        """Restaurant-only status mutation using the feed's loaded orders."""
        if self.scope.kind != UserRole.RESTAURANT:
            raise AuthorizationError("Only the restaurant can update order status")

        try:
            return await self.service.update_status(
                self.scope.owner_id, order_id, new_status, known_orders=self.orders
            )
        except FoodzError as e:
            logger.error(f"Error updating order status: {e}")
            raise
