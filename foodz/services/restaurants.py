"""
Restaurant Directory and Profile Service

Browsing (cuisine filter + free-text search), owner profile editing,
profile image upload/removal, share links and the owner dashboard.

Restaurant documents use the owning user's id as their document id, so
"is this the owner" is a plain id comparison.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from foodz.core.config import Settings
from foodz.core.errors import AuthorizationError, NotFoundError, ValidationError
from foodz.models import (
    MENU_ITEMS,
    RESTAURANTS,
    Order,
    OrderStatus,
    Restaurant,
    profile_image_path,
)
from foodz.services.orders import OrderScope, OrderService
from foodz.services.storage.base import BaseBlobStore, BlobHandle
from foodz.services.store.base import SERVER_TIMESTAMP, BaseDocumentStore, FieldFilter

logger = logging.getLogger(__name__)

ALL_CUISINES = "All"
DAYS_OF_WEEK = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
EDITABLE_PROFILE_FIELDS = (
    "name", "description", "cuisine", "address", "phone", "website", "opening_hours", "is_open",
)
ALLOWED_IMAGE_TYPES = ("image/jpeg", "image/png", "image/webp", "image/gif")
MAX_IMAGE_BYTES = 5 * 1024 * 1024
DASHBOARD_PERIODS = ("today", "week", "month", "year")


@dataclass
class ShareInfo:
    share_url: str
    qr_code_url: str
    download_filename: str


@dataclass
class PopularItem:
    name: str
    quantity: int
    revenue: float


@dataclass
class DashboardStats:
    total_orders: int = 0
    pending_orders: int = 0
    active_orders: int = 0
    today_revenue: float = 0.0
    menu_items: int = 0
    period: str = "today"
    period_orders: int = 0
    period_revenue: float = 0.0
    customers: int = 0
    average_order_value: float = 0.0
    popular_items: list[PopularItem] = field(default_factory=list)
    recent_orders: list[Order] = field(default_factory=list)


def period_start(period: str, now: datetime) -> datetime:
    """Start of the calendar period (UTC) that contains ``now``."""
    if period not in DASHBOARD_PERIODS:
        raise ValidationError(f"Invalid period. Options: {list(DASHBOARD_PERIODS)}")

    start = now.astimezone(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
    if period == "week":
        return start - timedelta(days=start.weekday())
    if period == "month":
        return start.replace(day=1)
    if period == "year":
        return start.replace(month=1, day=1)
    return start


class RestaurantService:
    """Restaurant directory, profile and dashboard operations."""

    def __init__(self, store: BaseDocumentStore, blobs: BaseBlobStore, settings: Settings):
        self.store = store
        self.blobs = blobs
        self.settings = settings

    @staticmethod
    def _check_owner(owner_id: str, restaurant_id: str) -> None:
        if not owner_id or owner_id != restaurant_id:
            raise AuthorizationError("You can only manage your own restaurant")

    # =========================================================================
    # DIRECTORY
    # =========================================================================

    async def list_restaurants(
        self,
        cuisine: Optional[str] = None,
        search: Optional[str] = None,
    ) -> list[Restaurant]:
        """
        Restaurants ordered by rating (best first).

        Args:
            cuisine: Exact cuisine match; "All" or None disables the filter
            search: Case-insensitive match on name, cuisine or address
        """
        filters = []
        if cuisine and cuisine != ALL_CUISINES:
            filters.append(FieldFilter("cuisine", "==", cuisine))

        # Sorted locally: an order_by query would drop restaurants never rated
        documents = await self.store.query(RESTAURANTS, filters)
        restaurants = sorted(
            (Restaurant.from_document(doc) for doc in documents),
            key=lambda r: r.rating,
            reverse=True,
        )

        if search:
            needle = search.strip().lower()
            restaurants = [
                r for r in restaurants
                if needle in r.name.lower()
                or needle in r.cuisine.lower()
                or needle in r.address.lower()
            ]
        return restaurants

    async def list_cuisines(self) -> list[str]:
        documents = await self.store.query(RESTAURANTS)
        cuisines = sorted({doc["cuisine"] for doc in documents if doc.get("cuisine")})
        return [ALL_CUISINES, *cuisines]

    async def get_restaurant(self, restaurant_id: str) -> Restaurant:
        document = await self.store.get(RESTAURANTS, restaurant_id)
        if document is None:
            raise NotFoundError("Restaurant not found")
        return Restaurant.from_document(document)

    # =========================================================================
    # PROFILE
    # =========================================================================

    async def update_profile(
        self,
        owner_id: str,
        restaurant_id: str,
        changes: dict[str, Any],
    ) -> Restaurant:
        """
        Apply profile edits. Keys are snake_case attribute names; opening
        hours are merged per day (day → free text).
        """
        self._check_owner(owner_id, restaurant_id)
        updates = {k: v for k, v in changes.items() if k in EDITABLE_PROFILE_FIELDS and v is not None}

        if "name" in updates and not str(updates["name"]).strip():
            raise ValidationError("Restaurant name is required")

        restaurant = await self.get_restaurant(restaurant_id)

        if "opening_hours" in updates:
            hours = {str(day).lower(): str(text) for day, text in updates["opening_hours"].items()}
            unknown = sorted(set(hours) - set(DAYS_OF_WEEK))
            if unknown:
                raise ValidationError(f"Unknown days in opening hours: {unknown}")
            updates["opening_hours"] = {**restaurant.opening_hours, **hours}

        if not updates:
            return restaurant

        merged = restaurant.model_copy(update=updates)
        stored = Restaurant.model_validate(merged.model_dump()).model_dump(
            by_alias=True, include=set(updates)
        )
        await self.store.update(
            RESTAURANTS, restaurant_id, {**stored, "updatedAt": SERVER_TIMESTAMP}
        )

        logger.info(f"Restaurant {restaurant_id} profile updated: {sorted(updates)}")
        return merged

    async def upload_profile_image(
        self,
        owner_id: str,
        restaurant_id: str,
        data: bytes,
        content_type: Optional[str],
    ) -> str:
        """Store the profile image and point the restaurant's ``image`` at it."""
        self._check_owner(owner_id, restaurant_id)
        if not data:
            raise ValidationError("No image selected")
        if content_type not in ALLOWED_IMAGE_TYPES:
            raise ValidationError("Image must be a JPEG, PNG, WebP or GIF file")
        if len(data) > MAX_IMAGE_BYTES:
            raise ValidationError("Image must be smaller than 5 MB")

        handle = await self.blobs.upload(profile_image_path(restaurant_id), data, content_type)
        url = await self.blobs.get_url(handle)
        await self.store.update(RESTAURANTS, restaurant_id, {"image": url})

        logger.info(f"Profile image uploaded for {restaurant_id}")
        return url

    async def remove_profile_image(self, owner_id: str, restaurant_id: str) -> None:
        self._check_owner(owner_id, restaurant_id)
        restaurant = await self.get_restaurant(restaurant_id)
        if not restaurant.image:
            raise ValidationError("No profile image to remove")

        await self.blobs.delete(BlobHandle(path=profile_image_path(restaurant_id)))
        await self.store.update(RESTAURANTS, restaurant_id, {"image": ""})
        logger.info(f"Profile image removed for {restaurant_id}")

    # =========================================================================
    # SHARING
    # =========================================================================

    def share_link(self, restaurant_id: str) -> str:
        return f"{self.settings.app_base_url.rstrip('/')}/restaurants/{restaurant_id}"

    async def share_info(self, restaurant_id: str) -> ShareInfo:
        """Share link, QR image URL and download filename for a restaurant."""
        restaurant = await self.get_restaurant(restaurant_id)
        share_url = self.share_link(restaurant_id)
        return ShareInfo(
            share_url=share_url,
            qr_code_url=self.settings.qr_code_url(share_url),
            download_filename=f"{'-'.join(restaurant.name.split())}-qrcode.png",
        )

    # =========================================================================
    # DASHBOARD
    # =========================================================================

    async def dashboard_stats(
        self,
        owner_id: str,
        restaurant_id: str,
        period: str = "today",
        recent_limit: int = 5,
        popular_limit: int = 5,
        now: Optional[datetime] = None,
    ) -> DashboardStats:
        """
        Aggregate order and menu statistics for the owner dashboard.

        Order counts by status, popular items and recent orders cover all
        orders. Revenue, customers and average order value cover the
        selected period (today, week, month or year). Cancelled orders
        never count towards revenue or popularity.
        """
        self._check_owner(owner_id, restaurant_id)
        now = now or datetime.now(timezone.utc)
        since = period_start(period, now)

        orders = await OrderService(self.store).list_orders(OrderScope.for_restaurant(restaurant_id))
        menu = await self.store.query(MENU_ITEMS, [FieldFilter("restaurantId", "==", restaurant_id)])

        def placed_since(order: Order, start: datetime) -> bool:
            return order.timestamp is not None and order.timestamp.astimezone(timezone.utc) >= start

        billable = [o for o in orders if o.status != OrderStatus.CANCELLED]
        today_revenue = sum(o.total for o in billable if placed_since(o, period_start("today", now)))
        in_period = [o for o in billable if placed_since(o, since)]
        period_revenue = sum(o.total for o in in_period)
        customers = {o.customer.id or o.customer.name for o in in_period}

        quantities: Counter = Counter()
        revenue: Counter = Counter()
        for order in billable:
            for item in order.items:
                quantities[item.name] += item.quantity
                revenue[item.name] += item.line_total

        return DashboardStats(
            total_orders=len(orders),
            pending_orders=sum(1 for o in orders if o.status == OrderStatus.PENDING),
            active_orders=sum(1 for o in orders if o.status == OrderStatus.ACTIVE),
            today_revenue=round(today_revenue, 2),
            menu_items=len(menu),
            period=period,
            period_orders=len(in_period),
            period_revenue=round(period_revenue, 2),
            customers=len(customers),
            average_order_value=round(period_revenue / len(in_period), 2) if in_period else 0.0,
            popular_items=[
                PopularItem(name=name, quantity=qty, revenue=round(revenue[name], 2))
                for name, qty in quantities.most_common(popular_limit)
            ],
            recent_orders=orders[:recent_limit],
        )
