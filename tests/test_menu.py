import logging

import pytest

from foodz.core.errors import AuthorizationError, NotFoundError, StoreError, ValidationError
from foodz.models import CATEGORIES, MENU_ITEMS


async def test_add_item_stores_camel_case_document(menu, store, restaurant):
    item = await menu.add_item(
        restaurant.id, restaurant.id, "  Lasagna ", 13, " Pasta ", description="Baked", image=None
    )

    document = await store.get(MENU_ITEMS, item.id)
    assert document["name"] == "Lasagna"
    assert document["category"] == "Pasta"
    assert document["price"] == 13.0
    assert document["isAvailable"] is True
    assert document["restaurantId"] == restaurant.id
    assert "image" not in document
    assert "createdAt" in document


@pytest.mark.parametrize(
    "name, category, price, message",
    [
        ("", "Pizza", 10, "Item name is required"),
        ("   ", "Pizza", 10, "Item name is required"),
        ("Calzone", "", 10, "Category is required"),
        ("Calzone", "Pizza", 0, "Price must be greater than 0"),
        ("Calzone", "Pizza", -2.5, "Price must be greater than 0"),
    ],
)
async def test_invalid_items_are_rejected_before_writing(menu, store, restaurant, name, category, price, message):
    with pytest.raises(ValidationError, match=message):
        await menu.add_item(restaurant.id, restaurant.id, name, price, category)
    assert await store.query(MENU_ITEMS) == []


async def test_only_owner_can_add_items(menu, store, restaurant, customer):
    with pytest.raises(AuthorizationError):
        await menu.add_item(customer.id, restaurant.id, "Calzone", 10, "Pizza")
    assert await store.query(MENU_ITEMS) == []


async def test_list_menu_sorted_and_filtered(menu, restaurant, pizza, tiramisu):
    marinara = await menu.add_item(restaurant.id, restaurant.id, "Marinara", 9.0, "Pizza")
    await menu.set_availability(restaurant.id, marinara.id, False)

    assert [i.name for i in await menu.list_menu(restaurant.id)] == ["Tiramisu", "Margherita", "Marinara"]
    assert [i.name for i in await menu.list_menu(restaurant.id, category="Pizza")] == ["Margherita", "Marinara"]
    assert [i.name for i in await menu.list_menu(restaurant.id, category="All")] == [
        "Tiramisu", "Margherita", "Marinara",
    ]
    assert [i.name for i in await menu.list_menu(restaurant.id, available_only=True)] == [
        "Tiramisu", "Margherita",
    ]


async def test_list_menu_of_restaurant_without_items(menu):
    assert await menu.list_menu("no-such-restaurant") == []


async def test_list_menu_surfaces_store_failures(menu, store, monkeypatch):
    async def failing_query(*args, **kwargs):
        raise StoreError("unavailable")

    monkeypatch.setattr(store, "query", failing_query)
    with pytest.raises(StoreError):
        await menu.list_menu("r1")


async def test_update_item(menu, store, restaurant, pizza):
    updated = await menu.update_item(
        restaurant.id, pizza.id, {"price": 12.0, "description": "San Marzano", "restaurant_id": "x"}
    )

    assert updated.price == 12.0
    document = await store.get(MENU_ITEMS, pizza.id)
    assert document["price"] == 12.0
    assert document["description"] == "San Marzano"
    assert document["restaurantId"] == restaurant.id


async def test_update_item_revalidates(menu, store, restaurant, pizza):
    with pytest.raises(ValidationError, match="Price must be greater than 0"):
        await menu.update_item(restaurant.id, pizza.id, {"price": 0})
    with pytest.raises(ValidationError, match="Category is required"):
        await menu.update_item(restaurant.id, pizza.id, {"category": " "})
    assert (await store.get(MENU_ITEMS, pizza.id))["price"] == 11.5


async def test_update_item_ignores_null_values(menu, store, restaurant, pizza):
    updated = await menu.update_item(
        restaurant.id, pizza.id, {"description": None, "is_available": None, "price": 13.0}
    )

    assert updated.price == 13.0
    assert updated.is_available is True
    document = await store.get(MENU_ITEMS, pizza.id)
    assert document["isAvailable"] is True
    assert document["description"] == ""


async def test_update_item_trims_name_and_category(menu, store, restaurant, pizza):
    updated = await menu.update_item(restaurant.id, pizza.id, {"name": " Diavola ", "category": "  Pizza  "})

    assert updated.name == "Diavola"
    document = await store.get(MENU_ITEMS, pizza.id)
    assert document["name"] == "Diavola"
    assert document["category"] == "Pizza"


async def test_update_item_rejects_values_of_wrong_type(menu, restaurant, pizza):
    with pytest.raises(ValidationError, match="Invalid value for description"):
        await menu.update_item(restaurant.id, pizza.id, {"description": ["not", "text"]})


async def test_update_and_delete_by_other_restaurant_are_forbidden(menu, session, pizza):
    other = (await session.register("mario@example.com", "secret123", "Mario", "restaurant")).user

    with pytest.raises(AuthorizationError):
        await menu.update_item(other.id, pizza.id, {"price": 1.0})
    with pytest.raises(AuthorizationError):
        await menu.delete_item(other.id, pizza.id)


async def test_delete_item(menu, store, restaurant, pizza):
    assert await menu.delete_item(restaurant.id, pizza.id) == pizza.id
    assert await store.get(MENU_ITEMS, pizza.id) is None
    with pytest.raises(NotFoundError):
        await menu.get_item(pizza.id)


# =============================================================================
# CATEGORIES
# =============================================================================

async def test_add_and_list_categories(menu, restaurant):
    await menu.add_category(restaurant.id, restaurant.id, "Pizza")
    await menu.add_category(restaurant.id, restaurant.id, " antipasti ")

    assert [c.name for c in await menu.list_categories(restaurant.id)] == ["antipasti", "Pizza"]


async def test_duplicate_category_returns_existing(menu, store, restaurant):
    first = await menu.add_category(restaurant.id, restaurant.id, "Pizza")
    again = await menu.add_category(restaurant.id, restaurant.id, "  PIZZA ")

    assert again.id == first.id
    assert len(await store.query(CATEGORIES)) == 1


async def test_blank_category_is_rejected(menu, store, restaurant):
    for name in ("", "   ", None):
        with pytest.raises(ValidationError, match="Category name is required"):
            await menu.add_category(restaurant.id, restaurant.id, name)
    assert await store.query(CATEGORIES) == []


async def test_categories_are_scoped_to_restaurant(menu, session, restaurant):
    other = (await session.register("mario@example.com", "secret123", "Mario", "restaurant")).user
    await menu.add_category(restaurant.id, restaurant.id, "Pizza")
    await menu.add_category(other.id, other.id, "Sushi")

    assert [c.name for c in await menu.list_categories(other.id)] == ["Sushi"]
    with pytest.raises(AuthorizationError):
        await menu.add_category(other.id, restaurant.id, "Burgers")


async def test_delete_category_leaves_items_with_dangling_label(menu, store, restaurant, pizza, caplog):
    category = await menu.add_category(restaurant.id, restaurant.id, "Pizza")

    with caplog.at_level(logging.WARNING, logger="foodz.services.menu"):
        await menu.delete_category(restaurant.id, category.id)

    assert await store.get(CATEGORIES, category.id) is None
    assert (await store.get(MENU_ITEMS, pizza.id))["category"] == "Pizza"
    assert "1 menu items still use it" in caplog.text


async def test_delete_missing_category(menu, restaurant):
    with pytest.raises(NotFoundError, match="Category not found"):
        await menu.delete_category(restaurant.id, "missing")


async def test_categories_in_use(menu, restaurant, pizza, tiramisu):
    assert await menu.categories_in_use(restaurant.id) == ["Desserts", "Pizza"]
