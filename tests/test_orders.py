import asyncio
import logging

import pytest

from foodz.core.errors import (
    AuthorizationError,
    NotFoundError,
    StoreError,
    SubscriptionError,
    ValidationError,
)
from foodz.models import Order, customer_orders_path, restaurant_orders_path
from foodz.services.cart import Cart
from foodz.services.orders import OrderFeed, OrderScope, OrderService, filter_orders
from foodz.services.store import FieldFilter
from foodz.services.store.base import SERVER_TIMESTAMP


@pytest.fixture
def service(store):
    return OrderService(store)


@pytest.fixture
async def cart(pizza, tiramisu):
    cart = Cart(pizza.restaurant_id)
    cart.add_item(pizza)
    cart.add_item(pizza)
    cart.add_item(tiramisu)
    return cart


async def place(service, cart, customer, restaurant, **kwargs):
    return await service.submit(
        cart, customer.id, customer.display_name, restaurant.id, "Luigi's Trattoria", **kwargs
    )


async def pump(condition, attempts=50):
    for _ in range(attempts):
        if condition():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition never became true")


# =============================================================================
# SUBMIT
# =============================================================================

async def test_submit_writes_restaurant_and_customer_copies(service, store, cart, customer, restaurant):
    receipt = await place(service, cart, customer, restaurant, notes="Extra basil", table_number="4")

    assert receipt.total == 29.0
    assert receipt.item_count == 3
    assert receipt.close_cart is True
    assert cart.is_empty

    order = await store.get(restaurant_orders_path(restaurant.id), receipt.order_id)
    assert order["customer"] == {"id": customer.id, "name": "Jane Doe"}
    assert order["status"] == "pending"
    assert order["total"] == 29.0
    assert order["notes"] == "Extra basil"
    assert order["tableNumber"] == "4"
    assert order["items"] == [
        {"name": "Margherita", "quantity": 2, "price": 11.5},
        {"name": "Tiramisu", "quantity": 1, "price": 6.0},
    ]
    assert "orderId" not in order

    copy = await store.get(customer_orders_path(customer.id), receipt.customer_copy_id)
    assert copy["orderId"] == receipt.order_id
    assert copy["restaurant"] == {"id": restaurant.id, "name": "Luigi's Trattoria"}
    for key in ("customer", "items", "total", "status", "notes", "tableNumber"):
        assert copy[key] == order[key]


async def test_submit_omits_empty_notes_and_rounds_total(service, store, customer, restaurant, menu):
    dip = await menu.add_item(restaurant.id, restaurant.id, "Dip", 0.1, "Sides")
    cart = Cart(restaurant.id)
    for _ in range(3):
        cart.add_item(dip)

    receipt = await place(service, cart, customer, restaurant)
    order = await store.get(restaurant_orders_path(restaurant.id), receipt.order_id)

    assert order["total"] == 0.3
    assert "notes" not in order
    assert "tableNumber" not in order


async def test_submit_uses_fallback_names(service, store, cart, customer, restaurant):
    receipt = await service.submit(cart, customer.id, None, restaurant.id, "")
    copy = await store.get(customer_orders_path(customer.id), receipt.customer_copy_id)
    assert copy["customer"]["name"] == "Customer"
    assert copy["restaurant"]["name"] == "Restaurant"


async def test_empty_cart_is_rejected_without_writes(service, store, customer, restaurant):
    with pytest.raises(ValidationError, match="Your cart is empty"):
        await place(service, Cart(restaurant.id), customer, restaurant)
    assert await store.query(restaurant_orders_path(restaurant.id)) == []


async def test_restaurant_write_failure_keeps_cart(service, store, cart, customer, restaurant, monkeypatch):
    async def failing_add(collection, data):
        raise StoreError("backend down")

    monkeypatch.setattr(store, "add", failing_add)

    with pytest.raises(StoreError, match="Failed to place order"):
        await place(service, cart, customer, restaurant)

    assert not cart.is_empty
    assert cart.total() == 29.0
    assert await store.query(customer_orders_path(customer.id)) == []


async def test_customer_write_failure_leaves_restaurant_copy(service, store, cart, customer, restaurant, monkeypatch):
    real_add = store.add

    async def add_then_fail(collection, data):
        if collection.startswith("users/"):
            raise StoreError("permission denied")
        return await real_add(collection, data)

    monkeypatch.setattr(store, "add", add_then_fail)

    with pytest.raises(StoreError, match="Failed to place order"):
        await place(service, cart, customer, restaurant)

    assert not cart.is_empty
    assert len(await store.query(restaurant_orders_path(restaurant.id))) == 1


# =============================================================================
# STATUS UPDATES
# =============================================================================

async def test_update_status_syncs_customer_copy(service, store, cart, customer, restaurant):
    receipt = await place(service, cart, customer, restaurant)

    result = await service.update_status(restaurant.id, receipt.order_id, "active")

    assert result.customer_copy_synced
    assert result.customer_copies == [receipt.customer_copy_id]
    order = await store.get(restaurant_orders_path(restaurant.id), receipt.order_id)
    copy = await store.get(customer_orders_path(customer.id), receipt.customer_copy_id)
    assert order["status"] == "active"
    assert copy["status"] == "active"


async def test_update_status_rejects_unknown_status(service, cart, customer, restaurant):
    receipt = await place(service, cart, customer, restaurant)
    with pytest.raises(ValidationError, match="Invalid status"):
        await service.update_status(restaurant.id, receipt.order_id, "shipped")


async def test_update_status_allows_any_transition(service, store, cart, customer, restaurant):
    receipt = await place(service, cart, customer, restaurant)
    await service.update_status(restaurant.id, receipt.order_id, "completed")
    await service.update_status(restaurant.id, receipt.order_id, "pending")

    order = await store.get(restaurant_orders_path(restaurant.id), receipt.order_id)
    assert order["status"] == "pending"


async def test_update_status_without_customer_copy(service, store, cart, customer, restaurant):
    receipt = await place(service, cart, customer, restaurant)
    await store.delete(customer_orders_path(customer.id), receipt.customer_copy_id)

    result = await service.update_status(restaurant.id, receipt.order_id, "completed")

    assert not result.customer_copy_synced
    order = await store.get(restaurant_orders_path(restaurant.id), receipt.order_id)
    assert order["status"] == "completed"


async def test_customer_copy_failure_is_swallowed(service, store, cart, customer, restaurant, monkeypatch, caplog):
    receipt = await place(service, cart, customer, restaurant)

    async def failing_query(*args, **kwargs):
        raise StoreError("index missing")

    monkeypatch.setattr(store, "query", failing_query)

    with caplog.at_level(logging.WARNING, logger="foodz.services.orders"):
        result = await service.update_status(restaurant.id, receipt.order_id, "cancelled")

    assert not result.customer_copy_synced
    assert "not updated" in caplog.text
    order = await store.get(restaurant_orders_path(restaurant.id), receipt.order_id)
    assert order["status"] == "cancelled"


async def test_update_status_of_missing_order_propagates(service, restaurant):
    with pytest.raises(NotFoundError):
        await service.update_status(restaurant.id, "missing", "active")


async def test_list_orders_newest_first(service, store, cart, pizza, customer, restaurant):
    first = await place(service, cart, customer, restaurant)
    cart.add_item(pizza)
    second = await place(service, cart, customer, restaurant)

    for scope in (OrderScope.for_restaurant(restaurant.id), OrderScope.for_customer(customer.id)):
        orders = await service.list_orders(scope)
        assert len(orders) == 2
        assert orders[0].timestamp > orders[1].timestamp

    restaurant_orders = await service.list_orders(OrderScope.for_restaurant(restaurant.id))
    assert [o.id for o in restaurant_orders] == [second.order_id, first.order_id]

    customer_orders = await service.list_orders(OrderScope.for_customer(customer.id))
    assert [o.order_id for o in customer_orders] == [second.order_id, first.order_id]


async def test_list_orders_reads_partial_documents(service, store, restaurant, caplog):
    path = restaurant_orders_path(restaurant.id)
    bare = await store.add(path, {"total": 5.0, "status": "pending", "timestamp": SERVER_TIMESTAMP})
    nameless = await store.add(path, {"customer": {"id": "c1"}, "timestamp": SERVER_TIMESTAMP})
    await store.add(path, {"items": [{"name": "Soup", "quantity": 0}], "timestamp": SERVER_TIMESTAMP})

    with caplog.at_level(logging.WARNING, logger="foodz.services.orders"):
        orders = await service.list_orders(OrderScope.for_restaurant(restaurant.id))

    assert [o.id for o in orders] == [nameless, bare]
    assert orders[0].customer.name == "Customer"
    assert orders[0].items == []
    assert orders[1].customer.id == ""
    assert orders[1].total == 5.0
    assert "Skipping malformed order" in caplog.text


async def test_list_orders_filters_by_status_and_search(service, store, cart, pizza, customer, restaurant):
    first = await place(service, cart, customer, restaurant)
    cart.add_item(pizza)
    await place(service, cart, customer, restaurant)
    await service.update_status(restaurant.id, first.order_id, "completed")
    scope = OrderScope.for_restaurant(restaurant.id)

    assert [o.id for o in await service.list_orders(scope, status="completed")] == [first.order_id]
    assert len(await service.list_orders(scope, status="all")) == 2
    assert len(await service.list_orders(scope, search="TIRAMISU")) == 1
    assert len(await service.list_orders(scope, search="jane")) == 2
    assert [o.id for o in await service.list_orders(scope, search=first.order_id)] == [first.order_id]
    assert await service.list_orders(scope, status="pending", search="tiramisu") == []

    with pytest.raises(ValidationError, match="Invalid status"):
        await service.list_orders(scope, status="shipped")


def test_filter_orders_matches_customer_copy_reference():
    orders = [Order(id="copy-1", order_id="rest-42"), Order(id="copy-2", order_id="rest-77")]
    assert [o.id for o in filter_orders(orders, search="rest-42")] == ["copy-1"]
    assert filter_orders(orders, search="   ") == orders


# =============================================================================
# LIVE FEED
# =============================================================================

async def test_feed_delivers_full_list_on_every_change(service, store, cart, pizza, customer, restaurant):
    feed = OrderFeed(store, OrderScope.for_restaurant(restaurant.id))

    async with feed.subscribe() as stream:
        assert feed.is_open
        assert await stream.__anext__() == []

        first = await place(service, cart, customer, restaurant)
        cart.add_item(pizza)
        second = await place(service, cart, customer, restaurant)

        assert [o.id for o in await stream.__anext__()] == [first.order_id]
        latest = await stream.__anext__()
        assert [o.id for o in latest] == [second.order_id, first.order_id]
        assert feed.orders == latest
        assert not feed.is_loading

    assert not feed.is_open
    assert store.active_subscriptions == 0


async def test_feed_sees_status_updates(service, store, cart, customer, restaurant):
    receipt = await place(service, cart, customer, restaurant)
    feed = OrderFeed(store, OrderScope.for_customer(customer.id))

    async with feed.subscribe() as stream:
        orders = await stream.__anext__()
        assert orders[0].status == "pending"

        await service.update_status(restaurant.id, receipt.order_id, "active")
        orders = await stream.__anext__()
        assert orders[0].status == "active"
        assert orders[0].restaurant.name == "Luigi's Trattoria"


async def test_feed_released_when_task_is_cancelled(store, restaurant):
    feed = OrderFeed(store, OrderScope.for_restaurant(restaurant.id))

    async def consume():
        async with feed.subscribe() as stream:
            async for _ in stream:
                pass

    task = asyncio.create_task(consume())
    await pump(lambda: store.active_subscriptions == 1)

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert store.active_subscriptions == 0
    assert not feed.is_open


async def test_feed_released_when_body_raises(store, restaurant):
    feed = OrderFeed(store, OrderScope.for_restaurant(restaurant.id))

    with pytest.raises(RuntimeError):
        async with feed.subscribe():
            raise RuntimeError("render failed")

    assert store.active_subscriptions == 0


async def test_feed_error_is_terminal(store, restaurant):
    scope = OrderScope.for_restaurant(restaurant.id)
    feed = OrderFeed(store, scope)

    async with feed.subscribe() as stream:
        assert await stream.__anext__() == []
        store.break_subscriptions(scope.path, RuntimeError("permission denied"))

        with pytest.raises(SubscriptionError, match="Failed to load orders"):
            await stream.__anext__()
        with pytest.raises(StopAsyncIteration):
            await stream.__anext__()

    assert isinstance(feed.error, SubscriptionError)
    assert feed.error.detail == "permission denied"
    assert store.active_subscriptions == 0


async def test_feed_survives_partial_documents(store, restaurant):
    scope = OrderScope.for_restaurant(restaurant.id)
    feed = OrderFeed(store, scope)

    async with feed.subscribe() as stream:
        assert await stream.__anext__() == []
        await store.add(scope.path, {"total": 5.0, "status": "pending", "timestamp": SERVER_TIMESTAMP})
        await store.add(scope.path, {"customer": "legacy", "timestamp": SERVER_TIMESTAMP})

        orders = await stream.__anext__()
        assert len(orders) == 1
        orders = await stream.__anext__()
        assert len(orders) == 1
        assert orders[0].total == 5.0
        assert orders[0].customer.name == "Customer"

    assert feed.error is None


async def test_update_status_of_order_without_customer(service, store, restaurant):
    path = restaurant_orders_path(restaurant.id)
    order_id = await store.add(path, {"total": 5.0, "timestamp": SERVER_TIMESTAMP})

    result = await service.update_status(restaurant.id, order_id, "completed")

    assert result.customer_copy_synced is False
    assert (await store.get(path, order_id))["status"] == "completed"


async def test_feed_requires_owner_id(store):
    feed = OrderFeed(store, OrderScope.for_restaurant(""))
    with pytest.raises(ValidationError):
        async with feed.subscribe():
            pass
    assert store.active_subscriptions == 0


async def test_feed_status_update_uses_loaded_orders(service, store, cart, customer, restaurant):
    receipt = await place(service, cart, customer, restaurant)
    feed = OrderFeed(store, OrderScope.for_restaurant(restaurant.id))

    async with feed.subscribe() as stream:
        await stream.__anext__()
        result = await feed.update_status(receipt.order_id, "completed")

    assert result.customer_copy_synced
    copies = await store.query(
        customer_orders_path(customer.id), [FieldFilter("orderId", "==", receipt.order_id)]
    )
    assert copies[0]["status"] == "completed"


async def test_customer_feed_cannot_update_status(store, customer):
    feed = OrderFeed(store, OrderScope.for_customer(customer.id))
    with pytest.raises(AuthorizationError):
        await feed.update_status("any", "active")
