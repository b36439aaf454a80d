"""
Pydantic Schemas for Request/Response Validation

Request bodies use snake_case field names. Stored documents (Order,
MenuItem, Restaurant, ...) are returned as-is and serialize in their
camelCase stored form.

Request models are deliberately permissive about business rules (empty
names, zero prices): those are checked by the services, which report
them as 400 Validation Error with a user-facing message.

Author: Foodz Team
Version: 1.0.0
"""

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, Field

from foodz.models import Order, User, UserRole


# =============================================================================
# AUTH
# =============================================================================

class RestaurantInfo(BaseModel):
    """Restaurant profile submitted with a restaurant registration."""
    name: Optional[str] = Field(None, max_length=100, examples=["Luigi's Trattoria"])
    description: Optional[str] = Field(None, max_length=1000)
    cuisine: Optional[str] = Field(None, max_length=50, examples=["Italian"])
    address: Optional[str] = Field(None, max_length=255, examples=["12 Via Roma"])
    phone: Optional[str] = Field(None, max_length=30)
    website: Optional[str] = Field(None, max_length=255)


class RegisterRequest(BaseModel):
    email: str = Field(..., examples=["jane@example.com"])
    password: str = Field(..., examples=["secret123"])
    name: str = Field(..., examples=["Jane Doe"])
    role: UserRole = Field(default=UserRole.CLIENT, examples=["client"])
    restaurant: Optional[RestaurantInfo] = None


class LoginRequest(BaseModel):
    email: str
    password: str
    role: Optional[UserRole] = Field(
        None, description="Require the account to be of this type"
    )


class AuthResponse(BaseModel):
    success: bool = True
    token: str
    user: User


class ProfileUpdate(BaseModel):
    display_name: str = Field(..., examples=["Jane D."])


# =============================================================================
# RESTAURANTS
# =============================================================================

class RestaurantUpdate(BaseModel):
    """Partial restaurant profile update; omitted fields stay unchanged."""
    name: Optional[str] = None
    description: Optional[str] = None
    cuisine: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    opening_hours: Optional[dict[str, str]] = Field(
        None, examples=[{"monday": "9:00 - 22:00", "sunday": "Closed"}]
    )
    is_open: Optional[bool] = None


class ImageResponse(BaseModel):
    success: bool = True
    image: Optional[str] = None


class ShareResponse(BaseModel):
    share_url: str
    qr_code_url: str
    download_filename: str


class PopularItemResponse(BaseModel):
    name: str
    quantity: int
    revenue: float


class DashboardResponse(BaseModel):
    total_orders: int
    pending_orders: int
    active_orders: int
    today_revenue: float
    menu_items: int
    period: str = Field(..., examples=["week"])
    period_orders: int
    period_revenue: float
    customers: int
    average_order_value: float
    popular_items: List[PopularItemResponse]
    recent_orders: List[Order]


# =============================================================================
# MENU
# =============================================================================

class MenuItemCreate(BaseModel):
    name: str = Field("", examples=["Margherita"])
    price: float = Field(0, examples=[11.5])
    category: str = Field("", examples=["Pizza"])
    description: str = ""
    is_available: bool = True
    image: Optional[str] = None


class MenuItemUpdate(BaseModel):
    name: Optional[str] = None
    price: Optional[float] = None
    category: Optional[str] = None
    description: Optional[str] = None
    is_available: Optional[bool] = None
    image: Optional[str] = None


class CategoryCreate(BaseModel):
    name: str = Field("", examples=["Desserts"])


class DeleteResponse(BaseModel):
    success: bool = True
    id: str


# =============================================================================
# CART
# =============================================================================

class CartItemAdd(BaseModel):
    item_id: str


class CartQuantityChange(BaseModel):
    delta: int = Field(..., examples=[1, -1])


class CartNotes(BaseModel):
    notes: str = Field("", max_length=500)
    table_number: Optional[str] = Field(None, max_length=20)


class CartLineResponse(BaseModel):
    item_id: str
    name: str
    price: float
    quantity: int
    line_total: float


class CartResponse(BaseModel):
    restaurant_id: str
    state: str
    lines: List[CartLineResponse]
    total: float
    notes: str = ""
    table_number: Optional[str] = None


class CheckoutResponse(BaseModel):
    """Response after successfully placing an order."""
    success: bool = True
    message: str
    order_id: str
    total: float
    item_count: int
    close_cart: bool = True


# =============================================================================
# ORDERS
# =============================================================================

class OrderListResponse(BaseModel):
    total: int
    orders: List[Order]


class StatusUpdateRequest(BaseModel):
    status: str = Field(..., examples=["active"])


class StatusUpdateResponse(BaseModel):
    success: bool = True
    order_id: str
    status: str
    customer_copy_synced: bool


# =============================================================================
# GENERIC
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[Any] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    environment: str
    document_store: str
    auth_provider: str
    blob_store: str
    timestamp: datetime
