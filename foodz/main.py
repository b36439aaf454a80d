"""
FastAPI Application Entry Point

Foodz Restaurant Ordering - Hybrid Architecture
Supports both Mock services (development) and Firebase (staging/production).

Endpoints:
    - /api/auth/*: Registration, login, logout, profile
    - /api/restaurants/*: Directory, profile, images, share link, dashboard
    - /api/restaurants/{id}/menu, /api/menu/*: Menu item CRUD
    - /api/restaurants/{id}/categories, /api/categories/*: Category CRUD
    - /api/cart/*: Per-restaurant cart and checkout
    - /api/orders: Orders of the caller (restaurant or customer)
    - WS /ws/orders: Live order feed of the caller
    - GET /health: System health check

Author: Foodz Team
Version: 1.0.0
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import asdict
from datetime import datetime
from typing import Any, Optional

from fastapi import (
    Depends,
    FastAPI,
    File,
    Query,
    Request,
    UploadFile,
    WebSocket,
    WebSocketDisconnect,
)
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from foodz.core.config import get_settings, setup_logging
from foodz.core.errors import (
    AuthorizationError,
    FoodzError,
    NotFoundError,
    SubscriptionError,
    ValidationError,
)
from foodz.dependencies import (
    get_auth_session,
    get_cart_registry,
    get_current_client,
    get_current_restaurant,
    get_current_user,
    get_menu_service,
    get_order_service,
    get_restaurant_service,
)
from foodz.models import Category, MenuItem, Restaurant, User, UserRole
from foodz.schemas import (
    AuthResponse,
    CartItemAdd,
    CartLineResponse,
    CartNotes,
    CartQuantityChange,
    CartResponse,
    CategoryCreate,
    CheckoutResponse,
    DashboardResponse,
    DeleteResponse,
    ErrorResponse,
    HealthResponse,
    ImageResponse,
    LoginRequest,
    MenuItemCreate,
    MenuItemUpdate,
    OrderListResponse,
    ProfileUpdate,
    RegisterRequest,
    RestaurantUpdate,
    ShareResponse,
    StatusUpdateRequest,
    StatusUpdateResponse,
)
from foodz.services.auth import get_auth_gateway
from foodz.services.cart import CartRegistry, CartSession
from foodz.services.menu import MenuService
from foodz.services.orders import OrderFeed, OrderScope, OrderService
from foodz.services.restaurants import RestaurantService
from foodz.services.session import AuthSession
from foodz.services.storage import get_blob_store
from foodz.services.store import get_document_store

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    # Startup
    logger.info("=" * 60)
    logger.info(f"🚀 Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info("=" * 60)

    logger.info(f"✅ Document Store: {get_document_store().provider_name}")
    logger.info(f"✅ Auth Gateway: {get_auth_gateway().provider_name}")
    logger.info(f"✅ Blob Store: {get_blob_store().provider_name}")

    session = get_auth_session()
    session.start()

    # Validate production config
    if settings.use_real_services:
        missing = settings.validate_production_config()
        if missing:
            logger.warning(f"⚠️ Missing production config: {missing}")

    logger.info("=" * 60)
    logger.info("✅ Application ready!")
    logger.info("=" * 60)

    yield  # Application runs

    # Shutdown
    logger.info("Shutting down...")
    session.stop()
    logger.info("✅ Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Restaurant ordering backend: menus, carts, checkout and live order "
        "feeds on a managed document store. Runs against in-memory mock "
        "services in development and Firebase in staging/production."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def cart_response(restaurant_id: str, session: CartSession) -> CartResponse:
    cart = session.cart
    return CartResponse(
        restaurant_id=restaurant_id,
        state=cart.state,
        lines=[
            CartLineResponse(
                item_id=line.item_id,
                name=line.name,
                price=line.price,
                quantity=line.quantity,
                line_total=round(line.line_total, 2),
            )
            for line in cart.lines
        ],
        total=round(cart.total(), 2),
        notes=session.notes,
        table_number=session.table_number,
    )


def scope_for(user: User) -> OrderScope:
    if user.role == UserRole.RESTAURANT.value:
        return OrderScope.for_restaurant(user.id)
    return OrderScope.for_customer(user.id)


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"🍕 Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "health": "/health",
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check() -> HealthResponse:
    """Verify all backing services are reachable."""
    statuses = {}
    for name, service in (
        ("document_store", get_document_store()),
        ("auth_provider", get_auth_gateway()),
        ("blob_store", get_blob_store()),
    ):
        try:
            statuses[name] = "healthy" if await service.health_check() else "unhealthy"
        except Exception as e:
            statuses[name] = f"unhealthy: {str(e)}"
            logger.error(f"{name} health check failed: {e}")

    overall = "operational" if all(s == "healthy" for s in statuses.values()) else "degraded"

    return HealthResponse(
        status=overall,
        environment=settings.env_mode.value,
        timestamp=datetime.now(),
        **statuses,
    )


# =============================================================================
# AUTH ENDPOINTS
# =============================================================================

@app.post(
    "/api/auth/register",
    response_model=AuthResponse,
    status_code=201,
    responses=ERROR_RESPONSES,
    tags=["Auth"],
)
async def register(
    payload: RegisterRequest,
    session: AuthSession = Depends(get_auth_session),
) -> AuthResponse:
    """Create a customer or restaurant account."""
    result = await session.register(
        email=payload.email,
        password=payload.password,
        name=payload.name,
        role=payload.role,
        restaurant_info=payload.restaurant.model_dump() if payload.restaurant else None,
    )
    return AuthResponse(token=result.token, user=result.user)


@app.post("/api/auth/login", response_model=AuthResponse, responses=ERROR_RESPONSES, tags=["Auth"])
async def login(
    payload: LoginRequest,
    session: AuthSession = Depends(get_auth_session),
) -> AuthResponse:
    result = await session.login(payload.email, payload.password, role=payload.role)
    return AuthResponse(token=result.token, user=result.user)


@app.post("/api/auth/logout", tags=["Auth"])
async def logout(
    user: User = Depends(get_current_user),
    session: AuthSession = Depends(get_auth_session),
    carts: CartRegistry = Depends(get_cart_registry),
) -> dict[str, Any]:
    await session.logout(user.id)
    carts.discard_customer(user.id)
    return {"success": True, "message": "Signed out"}


@app.get("/api/auth/me", response_model=User, tags=["Auth"])
async def me(user: User = Depends(get_current_user)) -> User:
    return user


@app.patch("/api/auth/me", response_model=User, responses=ERROR_RESPONSES, tags=["Auth"])
async def update_me(
    payload: ProfileUpdate,
    user: User = Depends(get_current_user),
    session: AuthSession = Depends(get_auth_session),
) -> User:
    return await session.update_display_name(user.id, payload.display_name)


# =============================================================================
# RESTAURANT ENDPOINTS
# =============================================================================

@app.get("/api/restaurants", response_model=list[Restaurant], tags=["Restaurants"])
async def list_restaurants(
    cuisine: Optional[str] = Query(None, examples=["Italian"]),
    search: Optional[str] = Query(None, max_length=100),
    service: RestaurantService = Depends(get_restaurant_service),
) -> list[Restaurant]:
    """Browse restaurants, best rated first."""
    return await service.list_restaurants(cuisine=cuisine, search=search)


@app.get("/api/restaurants/cuisines", response_model=list[str], tags=["Restaurants"])
async def list_cuisines(
    service: RestaurantService = Depends(get_restaurant_service),
) -> list[str]:
    return await service.list_cuisines()


@app.get(
    "/api/restaurants/{restaurant_id}",
    response_model=Restaurant,
    responses=ERROR_RESPONSES,
    tags=["Restaurants"],
)
async def get_restaurant(
    restaurant_id: str,
    service: RestaurantService = Depends(get_restaurant_service),
) -> Restaurant:
    return await service.get_restaurant(restaurant_id)


@app.patch(
    "/api/restaurants/{restaurant_id}",
    response_model=Restaurant,
    responses=ERROR_RESPONSES,
    tags=["Restaurants"],
)
async def update_restaurant(
    restaurant_id: str,
    payload: RestaurantUpdate,
    user: User = Depends(get_current_restaurant),
    service: RestaurantService = Depends(get_restaurant_service),
) -> Restaurant:
    return await service.update_profile(
        user.id, restaurant_id, payload.model_dump(exclude_unset=True)
    )


@app.put(
    "/api/restaurants/{restaurant_id}/image",
    response_model=ImageResponse,
    responses=ERROR_RESPONSES,
    tags=["Restaurants"],
)
async def upload_restaurant_image(
    restaurant_id: str,
    file: UploadFile = File(...),
    user: User = Depends(get_current_restaurant),
    service: RestaurantService = Depends(get_restaurant_service),
) -> ImageResponse:
    """Upload or replace the restaurant's profile image."""
    data = await file.read()
    url = await service.upload_profile_image(user.id, restaurant_id, data, file.content_type)
    return ImageResponse(image=url)


@app.delete(
    "/api/restaurants/{restaurant_id}/image",
    response_model=ImageResponse,
    responses=ERROR_RESPONSES,
    tags=["Restaurants"],
)
async def delete_restaurant_image(
    restaurant_id: str,
    user: User = Depends(get_current_restaurant),
    service: RestaurantService = Depends(get_restaurant_service),
) -> ImageResponse:
    await service.remove_profile_image(user.id, restaurant_id)
    return ImageResponse(image=None)


@app.get(
    "/api/restaurants/{restaurant_id}/share",
    response_model=ShareResponse,
    responses=ERROR_RESPONSES,
    tags=["Restaurants"],
)
async def share_restaurant(
    restaurant_id: str,
    service: RestaurantService = Depends(get_restaurant_service),
) -> ShareResponse:
    """Shareable link and QR code image for a restaurant page."""
    info = await service.share_info(restaurant_id)
    return ShareResponse(**asdict(info))


@app.get(
    "/api/restaurants/{restaurant_id}/dashboard",
    response_model=DashboardResponse,
    responses=ERROR_RESPONSES,
    tags=["Restaurants"],
)
async def restaurant_dashboard(
    restaurant_id: str,
    period: str = Query("today", examples=["week"]),
    user: User = Depends(get_current_restaurant),
    service: RestaurantService = Depends(get_restaurant_service),
) -> DashboardResponse:
    """Get aggregated dashboard statistics."""
    stats = await service.dashboard_stats(user.id, restaurant_id, period=period)
    return DashboardResponse(
        total_orders=stats.total_orders,
        pending_orders=stats.pending_orders,
        active_orders=stats.active_orders,
        today_revenue=stats.today_revenue,
        menu_items=stats.menu_items,
        period=stats.period,
        period_orders=stats.period_orders,
        period_revenue=stats.period_revenue,
        customers=stats.customers,
        average_order_value=stats.average_order_value,
        popular_items=[asdict(item) for item in stats.popular_items],
        recent_orders=stats.recent_orders,
    )


# =============================================================================
# MENU ENDPOINTS
# =============================================================================

@app.get("/api/restaurants/{restaurant_id}/menu", response_model=list[MenuItem], tags=["Menu"])
async def list_menu(
    restaurant_id: str,
    category: Optional[str] = Query(None),
    available_only: bool = Query(False),
    service: MenuService = Depends(get_menu_service),
) -> list[MenuItem]:
    return await service.list_menu(restaurant_id, category=category, available_only=available_only)


@app.post(
    "/api/restaurants/{restaurant_id}/menu",
    response_model=MenuItem,
    status_code=201,
    responses=ERROR_RESPONSES,
    tags=["Menu"],
)
async def add_menu_item(
    restaurant_id: str,
    payload: MenuItemCreate,
    user: User = Depends(get_current_restaurant),
    service: MenuService = Depends(get_menu_service),
) -> MenuItem:
    return await service.add_item(
        user.id,
        restaurant_id,
        name=payload.name,
        price=payload.price,
        category=payload.category,
        description=payload.description,
        is_available=payload.is_available,
        image=payload.image,
    )


@app.patch("/api/menu/{item_id}", response_model=MenuItem, responses=ERROR_RESPONSES, tags=["Menu"])
async def update_menu_item(
    item_id: str,
    payload: MenuItemUpdate,
    user: User = Depends(get_current_restaurant),
    service: MenuService = Depends(get_menu_service),
) -> MenuItem:
    return await service.update_item(user.id, item_id, payload.model_dump(exclude_unset=True))


@app.delete(
    "/api/menu/{item_id}", response_model=DeleteResponse, responses=ERROR_RESPONSES, tags=["Menu"]
)
async def delete_menu_item(
    item_id: str,
    user: User = Depends(get_current_restaurant),
    service: MenuService = Depends(get_menu_service),
) -> DeleteResponse:
    return DeleteResponse(id=await service.delete_item(user.id, item_id))


@app.get(
    "/api/restaurants/{restaurant_id}/categories",
    response_model=list[Category],
    tags=["Menu"],
)
async def list_categories(
    restaurant_id: str,
    service: MenuService = Depends(get_menu_service),
) -> list[Category]:
    return await service.list_categories(restaurant_id)


@app.post(
    "/api/restaurants/{restaurant_id}/categories",
    response_model=Category,
    status_code=201,
    responses=ERROR_RESPONSES,
    tags=["Menu"],
)
async def add_category(
    restaurant_id: str,
    payload: CategoryCreate,
    user: User = Depends(get_current_restaurant),
    service: MenuService = Depends(get_menu_service),
) -> Category:
    return await service.add_category(user.id, restaurant_id, payload.name)


@app.delete(
    "/api/categories/{category_id}",
    response_model=DeleteResponse,
    responses=ERROR_RESPONSES,
    tags=["Menu"],
)
async def delete_category(
    category_id: str,
    user: User = Depends(get_current_restaurant),
    service: MenuService = Depends(get_menu_service),
) -> DeleteResponse:
    return DeleteResponse(id=await service.delete_category(user.id, category_id))


# =============================================================================
# CART ENDPOINTS
# =============================================================================

@app.get("/api/cart/{restaurant_id}", response_model=CartResponse, tags=["Cart"])
async def get_cart(
    restaurant_id: str,
    user: User = Depends(get_current_client),
    carts: CartRegistry = Depends(get_cart_registry),
) -> CartResponse:
    return cart_response(restaurant_id, carts.get(user.id, restaurant_id))


@app.delete("/api/cart/{restaurant_id}", response_model=CartResponse, tags=["Cart"])
async def clear_cart(
    restaurant_id: str,
    user: User = Depends(get_current_client),
    carts: CartRegistry = Depends(get_cart_registry),
) -> CartResponse:
    session = carts.get(user.id, restaurant_id)
    session.reset()
    return cart_response(restaurant_id, session)


@app.post(
    "/api/cart/{restaurant_id}/items",
    response_model=CartResponse,
    responses=ERROR_RESPONSES,
    tags=["Cart"],
)
async def add_cart_item(
    restaurant_id: str,
    payload: CartItemAdd,
    user: User = Depends(get_current_client),
    carts: CartRegistry = Depends(get_cart_registry),
    menu: MenuService = Depends(get_menu_service),
) -> CartResponse:
    """Add one unit of a menu item; the current price is captured."""
    item = await menu.get_item(payload.item_id)
    if item.restaurant_id != restaurant_id:
        raise ValidationError("This item is not on this restaurant's menu")
    if not item.is_available:
        raise ValidationError(f"{item.name} is currently unavailable")

    session = carts.get(user.id, restaurant_id)
    session.cart.add_item(item)
    logger.debug(f"Cart {user.id}/{restaurant_id}: added {item.id}")
    return cart_response(restaurant_id, session)


@app.patch(
    "/api/cart/{restaurant_id}/items/{item_id}",
    response_model=CartResponse,
    responses=ERROR_RESPONSES,
    tags=["Cart"],
)
async def change_cart_quantity(
    restaurant_id: str,
    item_id: str,
    payload: CartQuantityChange,
    user: User = Depends(get_current_client),
    carts: CartRegistry = Depends(get_cart_registry),
) -> CartResponse:
    session = carts.get(user.id, restaurant_id)
    if session.cart.change_quantity(item_id, payload.delta) is None:
        raise NotFoundError("Item is not in the cart")
    return cart_response(restaurant_id, session)


@app.delete(
    "/api/cart/{restaurant_id}/items/{item_id}",
    response_model=CartResponse,
    tags=["Cart"],
)
async def remove_cart_item(
    restaurant_id: str,
    item_id: str,
    user: User = Depends(get_current_client),
    carts: CartRegistry = Depends(get_cart_registry),
) -> CartResponse:
    session = carts.get(user.id, restaurant_id)
    session.cart.remove_item(item_id)
    return cart_response(restaurant_id, session)


@app.put("/api/cart/{restaurant_id}/notes", response_model=CartResponse, tags=["Cart"])
async def set_cart_notes(
    restaurant_id: str,
    payload: CartNotes,
    user: User = Depends(get_current_client),
    carts: CartRegistry = Depends(get_cart_registry),
) -> CartResponse:
    session = carts.get(user.id, restaurant_id)
    session.notes = payload.notes
    session.table_number = payload.table_number
    return cart_response(restaurant_id, session)


@app.post(
    "/api/cart/{restaurant_id}/checkout",
    response_model=CheckoutResponse,
    status_code=201,
    responses=ERROR_RESPONSES,
    tags=["Cart"],
    summary="Place Order",
)
async def checkout(
    restaurant_id: str,
    user: User = Depends(get_current_client),
    carts: CartRegistry = Depends(get_cart_registry),
    orders: OrderService = Depends(get_order_service),
    restaurants: RestaurantService = Depends(get_restaurant_service),
) -> CheckoutResponse:
    """
    Turn the cart into an order.

    On failure the cart is left as it was so the customer can retry.
    """
    session = carts.get(user.id, restaurant_id)
    restaurant = await restaurants.get_restaurant(restaurant_id)

    receipt = await orders.submit(
        session.cart,
        customer_id=user.id,
        customer_name=user.display_name,
        restaurant_id=restaurant_id,
        restaurant_name=restaurant.name,
        notes=session.notes or None,
        table_number=session.table_number,
    )
    session.reset()

    return CheckoutResponse(
        message="Order placed successfully!",
        order_id=receipt.order_id,
        total=receipt.total,
        item_count=receipt.item_count,
        close_cart=receipt.close_cart,
    )


# =============================================================================
# ORDER ENDPOINTS
# =============================================================================

@app.get("/api/orders", response_model=OrderListResponse, tags=["Orders"])
async def list_orders(
    status: Optional[str] = Query(None, examples=["pending"]),
    search: Optional[str] = Query(None, max_length=100),
    user: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
) -> OrderListResponse:
    """Orders of the caller: received (restaurant) or placed (customer), newest first."""
    orders = await service.list_orders(scope_for(user), status=status, search=search)
    return OrderListResponse(total=len(orders), orders=orders)


@app.patch(
    "/api/restaurants/{restaurant_id}/orders/{order_id}",
    response_model=StatusUpdateResponse,
    responses=ERROR_RESPONSES,
    tags=["Orders"],
)
async def update_order_status(
    restaurant_id: str,
    order_id: str,
    payload: StatusUpdateRequest,
    user: User = Depends(get_current_restaurant),
    service: OrderService = Depends(get_order_service),
) -> StatusUpdateResponse:
    if user.id != restaurant_id:
        raise AuthorizationError("Only the restaurant can update order status")

    result = await service.update_status(restaurant_id, order_id, payload.status)
    return StatusUpdateResponse(
        order_id=result.order_id,
        status=result.status.value,
        customer_copy_synced=result.customer_copy_synced,
    )


@app.websocket("/ws/orders")
async def order_feed(websocket: WebSocket, token: str = Query(...)):
    """
    Live order feed of the authenticated caller.

    Sends ``{"type": "orders", "orders": [...]}`` with the full list on
    every change. A failed feed sends ``{"type": "error", ...}`` and closes;
    the client reconnects to resubscribe.
    """
    session = get_auth_session()
    try:
        user = await session.resolve(token)
    except FoodzError as e:
        logger.info(f"Order feed rejected: {e}")
        await websocket.close(code=1008)
        return

    await websocket.accept()
    feed = OrderFeed(get_document_store(), scope_for(user))

    async with feed.subscribe() as stream:

        async def forward() -> None:
            async for orders in stream:
                await websocket.send_json({
                    "type": "orders",
                    "orders": [o.model_dump(mode="json", by_alias=True) for o in orders],
                })

        async def wait_for_disconnect() -> None:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    return

        sender = asyncio.create_task(forward())
        receiver = asyncio.create_task(wait_for_disconnect())
        done, pending = await asyncio.wait({sender, receiver}, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

        try:
            for task in done:
                task.result()
        except SubscriptionError as e:
            await websocket.send_json({"type": "error", "error": e.error, "detail": e.message})
            await websocket.close(code=1011)
        except WebSocketDisconnect:
            logger.debug(f"Order feed client for {user.id} went away")


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(FoodzError)
async def foodz_exception_handler(request: Request, exc: FoodzError) -> JSONResponse:
    """Map application errors to their HTTP status."""
    if exc.status_code >= 500:
        logger.error(f"{exc.error} on {request.url.path}: {exc.message} ({exc.detail})")
    else:
        logger.info(f"{exc.error} on {request.url.path}: {exc.message}")

    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=exc.error, detail=exc.message).model_dump(),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal Server Error",
            "detail": str(exc) if settings.debug else "An unexpected error occurred",
        },
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "foodz.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.is_development,
    )
