from datetime import datetime

import pytest

from foodz.core.errors import NotFoundError, StoreError
from foodz.services.store import SERVER_TIMESTAMP, FieldFilter, MockDocumentStore


@pytest.fixture
def mock_store():
    return MockDocumentStore()


def test_field_filter_rejects_unknown_operator():
    with pytest.raises(ValueError):
        FieldFilter("name", "~=", "x")


def test_field_filter_matching():
    doc = {"price": 5, "category": "Pizza"}
    assert FieldFilter("category", "==", "Pizza").matches(doc)
    assert FieldFilter("price", ">", 4).matches(doc)
    assert FieldFilter("category", "in", ["Pizza", "Pasta"]).matches(doc)
    assert not FieldFilter("missing", "==", None).matches(doc)
    assert not FieldFilter("price", "<", "abc").matches(doc)


async def test_add_and_get_returns_id_without_storing_it(mock_store):
    doc_id = await mock_store.add("menuItems", {"name": "Soup"})
    document = await mock_store.get("menuItems", doc_id)

    assert document == {"name": "Soup", "id": doc_id}
    assert "id" not in mock_store._collections["menuItems"][doc_id]


async def test_get_missing_returns_none(mock_store):
    assert await mock_store.get("menuItems", "nope") is None


async def test_server_timestamp_is_resolved_and_increasing(mock_store):
    first = await mock_store.add("restaurants/r1/orders", {"timestamp": SERVER_TIMESTAMP})
    second = await mock_store.add("restaurants/r1/orders", {"timestamp": SERVER_TIMESTAMP})

    a = (await mock_store.get("restaurants/r1/orders", first))["timestamp"]
    b = (await mock_store.get("restaurants/r1/orders", second))["timestamp"]
    assert isinstance(a, datetime)
    assert b > a


async def test_query_filters_orders_and_limits(mock_store):
    for name, price in [("a", 3.0), ("b", 1.0), ("c", 2.0)]:
        await mock_store.add("menuItems", {"name": name, "price": price, "restaurantId": "r1"})
    await mock_store.add("menuItems", {"name": "other", "price": 9.0, "restaurantId": "r2"})

    docs = await mock_store.query(
        "menuItems",
        [FieldFilter("restaurantId", "==", "r1")],
        order_by="price",
        descending=True,
        limit=2,
    )
    assert [d["name"] for d in docs] == ["a", "c"]


async def test_query_with_order_by_drops_documents_missing_the_field(mock_store):
    await mock_store.add("restaurants", {"name": "rated", "rating": 4.0})
    await mock_store.add("restaurants", {"name": "unrated"})

    docs = await mock_store.query("restaurants", order_by="rating")
    assert [d["name"] for d in docs] == ["rated"]


async def test_subcollection_paths_are_normalized(mock_store):
    doc_id = await mock_store.add("/users/u1/orders/", {"total": 1.0})
    assert await mock_store.get("users/u1/orders", doc_id) is not None


async def test_update_missing_document_raises(mock_store):
    with pytest.raises(NotFoundError):
        await mock_store.update("menuItems", "nope", {"price": 1.0})


async def test_set_with_merge(mock_store):
    await mock_store.set("users", "u1", {"email": "a@b.c", "role": "client"})
    await mock_store.set("users", "u1", {"displayName": "A"}, merge=True)
    assert await mock_store.get("users", "u1") == {
        "email": "a@b.c", "role": "client", "displayName": "A", "id": "u1",
    }

    await mock_store.set("users", "u1", {"displayName": "B"})
    assert await mock_store.get("users", "u1") == {"displayName": "B", "id": "u1"}


async def test_stored_values_are_copies(mock_store):
    items = [{"name": "x"}]
    doc_id = await mock_store.add("orders", {"items": items})
    items.append({"name": "y"})

    fetched = await mock_store.get("orders", doc_id)
    fetched["items"].append({"name": "z"})
    assert (await mock_store.get("orders", doc_id))["items"] == [{"name": "x"}]


async def test_subscribe_delivers_initial_and_full_snapshots(mock_store):
    snapshots = []
    unsubscribe = mock_store.subscribe(
        "restaurants/r1/orders", snapshots.append, pytest.fail,
        order_by="timestamp", descending=True,
    )
    assert snapshots == [[]]

    first = await mock_store.add("restaurants/r1/orders", {"timestamp": SERVER_TIMESTAMP})
    second = await mock_store.add("restaurants/r1/orders", {"timestamp": SERVER_TIMESTAMP})
    await mock_store.add("restaurants/r2/orders", {"timestamp": SERVER_TIMESTAMP})

    assert len(snapshots) == 3
    assert [d["id"] for d in snapshots[-1]] == [second, first]

    unsubscribe()
    unsubscribe()
    await mock_store.add("restaurants/r1/orders", {"timestamp": SERVER_TIMESTAMP})
    assert len(snapshots) == 3
    assert mock_store.active_subscriptions == 0


async def test_break_subscriptions_reports_error_once(mock_store):
    errors = []
    mock_store.subscribe("restaurants/r1/orders", lambda docs: None, errors.append)
    mock_store.subscribe("restaurants/r2/orders", lambda docs: None, errors.append)

    broken = mock_store.break_subscriptions("restaurants/r1/orders", RuntimeError("denied"))

    assert broken == 1
    assert [str(e) for e in errors] == ["denied"]
    assert mock_store.active_subscriptions == 1


async def test_failing_listener_does_not_break_writes(mock_store):
    def explode(docs):
        if docs:
            raise RuntimeError("listener bug")

    mock_store.subscribe("menuItems", explode, pytest.fail)
    doc_id = await mock_store.add("menuItems", {"name": "Soup"})
    assert await mock_store.get("menuItems", doc_id) is not None


async def test_simulated_failures():
    failing = MockDocumentStore(failure_rate=1.0)
    with pytest.raises(StoreError, match="Simulated store failure during add"):
        await failing.add("menuItems", {"name": "Soup"})
    with pytest.raises(StoreError):
        await failing.query("menuItems")
