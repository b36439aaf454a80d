"""
Document Models

Typed views over the schema-less documents kept in the Document Store.
Field names are stored in camelCase (``displayName``, ``restaurantId``,
``isAvailable``) so the same documents can be read by the web client;
Python code uses the snake_case attribute names.

Collections:
    - users/{uid}                      User
    - users/{uid}/orders/{id}          Order (customer copy)
    - restaurants/{uid}                Restaurant (id == owning user id)
    - restaurants/{uid}/orders/{id}    Order (restaurant copy)
    - menuItems/{id}                   MenuItem
    - categories/{id}                  Category

Version: 1.0.0
"""

import enum
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class UserRole(str, enum.Enum):
    """Account type chosen at registration."""
    CLIENT = "client"
    RESTAURANT = "restaurant"


class OrderStatus(str, enum.Enum):
    """Order status workflow, driven by the owning restaurant."""
    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# =============================================================================
# COLLECTION PATHS
# =============================================================================

USERS = "users"
RESTAURANTS = "restaurants"
MENU_ITEMS = "menuItems"
CATEGORIES = "categories"
ORDERS = "orders"


def restaurant_orders_path(restaurant_id: str) -> str:
    return f"{RESTAURANTS}/{restaurant_id}/{ORDERS}"


def customer_orders_path(customer_id: str) -> str:
    return f"{USERS}/{customer_id}/{ORDERS}"


def profile_image_path(restaurant_id: str) -> str:
    return f"{RESTAURANTS}/{restaurant_id}/profile"


# =============================================================================
# DOCUMENTS
# =============================================================================

class Document(BaseModel):
    """Base class for every stored document."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        extra="ignore",
    )

    id: Optional[str] = None

    @classmethod
    def from_document(cls, data: dict[str, Any]):
        return cls.model_validate(data)

    def to_document(self) -> dict[str, Any]:
        """Dump to the stored (camelCase) form without the id."""
        return self.model_dump(by_alias=True, exclude={"id"}, exclude_none=True)


class User(Document):
    email: str = ""
    display_name: str = ""
    role: UserRole = UserRole.CLIENT
    created_at: Optional[datetime] = None


class Restaurant(Document):
    name: str
    owner_id: Optional[str] = None
    email: Optional[str] = None
    description: str = ""
    cuisine: str = ""
    address: str = ""
    phone: str = ""
    website: str = ""
    image: Optional[str] = None
    opening_hours: dict[str, str] = Field(default_factory=dict)
    rating: float = 0.0
    delivery_time: Optional[str] = None
    is_open: bool = True
    created_at: Optional[datetime] = None


class MenuItem(Document):
    name: str
    description: str = ""
    price: float = Field(..., ge=0)
    category: str
    is_available: bool = True
    restaurant_id: Optional[str] = None
    image: Optional[str] = None


class Category(Document):
    name: str
    restaurant_id: Optional[str] = None


class CustomerRef(BaseModel):
    id: str = ""
    name: str = "Customer"


class RestaurantRef(BaseModel):
    id: str = ""
    name: str = "Restaurant"


class OrderItem(BaseModel):
    """Name/price snapshot of a menu item at checkout time."""
    name: str = ""
    quantity: int = Field(1, ge=1)
    price: float = Field(0.0, ge=0)

    @property
    def line_total(self) -> float:
        return round(self.price * self.quantity, 2)


class Order(Document):
    # Orders written by other clients may lack any of these
    customer: CustomerRef = Field(default_factory=CustomerRef)
    items: list[OrderItem] = Field(default_factory=list)
    total: float = 0.0
    status: OrderStatus = OrderStatus.PENDING
    timestamp: Optional[datetime] = None
    table_number: Optional[str] = None
    notes: Optional[str] = None

    # Only present on the customer copy
    order_id: Optional[str] = None
    restaurant: Optional[RestaurantRef] = None

    def __repr__(self):
        return f"<Order #{self.id} - {self.customer.name} - {self.status}>"
