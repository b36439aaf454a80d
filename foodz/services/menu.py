"""
Menu and Category Management

CRUD for a restaurant's menu items and category labels. Both live in root
collections filtered by ``restaurantId``; only the owning restaurant may
create, edit or delete them.

Validation (raised before any store call):
    - menu item: non-empty name, non-empty category, price > 0
    - category: non-empty name after trimming

Categories are plain labels. Items reference a category by name, so
deleting a category leaves matching items with a dangling label.
"""

import logging
from typing import Any, Optional

import pydantic

from foodz.core.errors import AuthorizationError, FoodzError, NotFoundError, ValidationError
from foodz.models import CATEGORIES, MENU_ITEMS, Category, MenuItem
from foodz.services.collection import DocumentCollection
from foodz.services.store.base import SERVER_TIMESTAMP, BaseDocumentStore, FieldFilter

logger = logging.getLogger(__name__)

EDITABLE_ITEM_FIELDS = ("name", "description", "price", "category", "is_available", "image")


def validate_menu_item(name: Optional[str], category: Optional[str], price: Any) -> None:
    if not name or not name.strip():
        raise ValidationError("Item name is required")
    if not category or not category.strip():
        raise ValidationError("Category is required")
    if isinstance(price, bool) or not isinstance(price, (int, float)) or price <= 0:
        raise ValidationError("Price must be greater than 0")


class MenuService:
    """Menu items and categories of one restaurant."""

    def __init__(self, store: BaseDocumentStore):
        self.store = store

    def _items(self, restaurant_id: str) -> DocumentCollection:
        return DocumentCollection(
            self.store, MENU_ITEMS, filters=[FieldFilter("restaurantId", "==", restaurant_id)]
        )

    def _categories(self, restaurant_id: str) -> DocumentCollection:
        return DocumentCollection(
            self.store, CATEGORIES, filters=[FieldFilter("restaurantId", "==", restaurant_id)]
        )

    @staticmethod
    def _check_owner(owner_id: str, restaurant_id: Optional[str]) -> None:
        if not owner_id or owner_id != restaurant_id:
            raise AuthorizationError("You can only manage your own restaurant's menu")

    # =========================================================================
    # MENU ITEMS
    # =========================================================================

    async def list_menu(
        self,
        restaurant_id: str,
        category: Optional[str] = None,
        available_only: bool = False,
    ) -> list[MenuItem]:
        """
        Menu of a restaurant. A restaurant without items yields an empty list.

        Args:
            category: Only items carrying this label ("All" or None for every item)
            available_only: Hide items switched off by the restaurant
        """
        items = self._items(restaurant_id)
        await items.refresh()
        if items.error:
            raise items.error

        menu = [MenuItem.from_document(doc) for doc in items.data]
        if category and category != "All":
            menu = [item for item in menu if item.category == category]
        if available_only:
            menu = [item for item in menu if item.is_available]
        return sorted(menu, key=lambda item: (item.category.lower(), item.name.lower()))

    async def get_item(self, item_id: str) -> MenuItem:
        document = await DocumentCollection(self.store, MENU_ITEMS).get_document(item_id)
        return MenuItem.from_document(document)

    async def add_item(
        self,
        owner_id: str,
        restaurant_id: str,
        name: str,
        price: float,
        category: str,
        description: str = "",
        is_available: bool = True,
        image: Optional[str] = None,
    ) -> MenuItem:
        self._check_owner(owner_id, restaurant_id)
        validate_menu_item(name, category, price)

        item = MenuItem(
            name=name.strip(),
            description=description or "",
            price=float(price),
            category=category.strip(),
            is_available=is_available,
            restaurant_id=restaurant_id,
            image=image,
        )
        doc_id = await self._items(restaurant_id).add_document(
            {**item.to_document(), "createdAt": SERVER_TIMESTAMP}
        )
        item.id = doc_id

        logger.info(f"Menu item {doc_id} ({item.name}) added for {restaurant_id}")
        return item

    async def update_item(self, owner_id: str, item_id: str, changes: dict[str, Any]) -> MenuItem:
        """
        Apply a partial update. Keys are snake_case attribute names; unknown
        keys and None values are ignored.
        """
        item = await self.get_item(item_id)
        self._check_owner(owner_id, item.restaurant_id)

        updates = {k: v for k, v in changes.items() if k in EDITABLE_ITEM_FIELDS and v is not None}
        for key in ("name", "category"):
            if isinstance(updates.get(key), str):
                updates[key] = updates[key].strip()
        merged = item.model_copy(update=updates)
        validate_menu_item(merged.name, merged.category, merged.price)

        if not updates:
            return item

        try:
            validated = MenuItem.model_validate(merged.model_dump())
        except pydantic.ValidationError as e:
            fields = sorted({str(err["loc"][0]) for err in e.errors() if err["loc"]})
            raise ValidationError(f"Invalid value for {', '.join(fields)}")
        stored = validated.model_dump(by_alias=True, include=set(updates))
        await self._items(item.restaurant_id).update_document(
            item_id, {**stored, "updatedAt": SERVER_TIMESTAMP}
        )

        logger.info(f"Menu item {item_id} updated: {sorted(updates)}")
        return validated

    async def set_availability(self, owner_id: str, item_id: str, is_available: bool) -> MenuItem:
        return await self.update_item(owner_id, item_id, {"is_available": is_available})

    async def delete_item(self, owner_id: str, item_id: str) -> str:
        item = await self.get_item(item_id)
        self._check_owner(owner_id, item.restaurant_id)

        await self._items(item.restaurant_id).delete_document(item_id)
        logger.info(f"Menu item {item_id} deleted")
        return item_id

    # =========================================================================
    # CATEGORIES
    # =========================================================================

    async def list_categories(self, restaurant_id: str) -> list[Category]:
        categories = self._categories(restaurant_id)
        await categories.refresh()
        if categories.error:
            raise categories.error
        return sorted(
            (Category.from_document(doc) for doc in categories.data),
            key=lambda c: c.name.lower(),
        )

    async def categories_in_use(self, restaurant_id: str) -> list[str]:
        """Distinct category labels carried by the restaurant's items, in menu order."""
        labels: list[str] = []
        for item in await self.list_menu(restaurant_id):
            if item.category not in labels:
                labels.append(item.category)
        return labels

    async def add_category(self, owner_id: str, restaurant_id: str, name: Optional[str]) -> Category:
        """
        Create a category label. Adding a name that already exists
        (case-insensitive) returns the existing category.
        """
        self._check_owner(owner_id, restaurant_id)
        label = (name or "").strip()
        if not label:
            raise ValidationError("Category name is required")

        for existing in await self.list_categories(restaurant_id):
            if existing.name.lower() == label.lower():
                logger.info(f"Category '{label}' already exists for {restaurant_id}")
                return existing

        category = Category(name=label, restaurant_id=restaurant_id)
        category.id = await self._categories(restaurant_id).add_document(category.to_document())

        logger.info(f"Category {category.id} ('{label}') added for {restaurant_id}")
        return category

    async def delete_category(self, owner_id: str, category_id: str) -> str:
        document = await self.store.get(CATEGORIES, category_id)
        if document is None:
            raise NotFoundError("Category not found")
        category = Category.from_document(document)
        self._check_owner(owner_id, category.restaurant_id)

        await self._categories(category.restaurant_id).delete_document(category_id)

        try:
            menu = await self.list_menu(category.restaurant_id)
        except FoodzError as e:
            logger.warning(f"Could not check items using category '{category.name}': {e}")
            return category_id

        orphaned = [item for item in menu if item.category == category.name]
        if orphaned:
            logger.warning(
                f"Category '{category.name}' deleted; {len(orphaned)} menu items still use it"
            )
        return category_id
