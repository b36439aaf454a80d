"""
FastAPI Dependencies

Service wiring for the route handlers. Collaborators come from the cached
factories (mock or real depending on ENV_MODE); request-scoped services
are thin objects built per request around them.
"""

from functools import lru_cache
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from foodz.core.config import Settings, get_settings
from foodz.core.errors import AuthenticationError, AuthorizationError
from foodz.models import User, UserRole
from foodz.services.auth import get_auth_gateway
from foodz.services.cart import CartRegistry
from foodz.services.menu import MenuService
from foodz.services.orders import OrderService
from foodz.services.restaurants import RestaurantService
from foodz.services.session import AuthSession
from foodz.services.storage import BaseBlobStore, get_blob_store
from foodz.services.store import BaseDocumentStore, get_document_store


@lru_cache()
def get_auth_session() -> AuthSession:
    """Process-wide auth session bound to the configured gateway and store."""
    return AuthSession(get_auth_gateway(), get_document_store())


@lru_cache()
def get_cart_registry() -> CartRegistry:
    return CartRegistry()


def reset_dependencies() -> None:
    """Drop the cached session and carts (tests, configuration reload)."""
    get_auth_session.cache_clear()
    get_cart_registry.cache_clear()


def get_menu_service(store: BaseDocumentStore = Depends(get_document_store)) -> MenuService:
    return MenuService(store)


def get_order_service(store: BaseDocumentStore = Depends(get_document_store)) -> OrderService:
    return OrderService(store)


def get_restaurant_service(
    store: BaseDocumentStore = Depends(get_document_store),
    blobs: BaseBlobStore = Depends(get_blob_store),
    settings: Settings = Depends(get_settings),
) -> RestaurantService:
    return RestaurantService(store, blobs, settings)


# =============================================================================
# AUTHENTICATION
# =============================================================================

bearer_scheme = HTTPBearer(auto_error=False)


def bearer_token(creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)) -> str:
    """Token of an ``Authorization: Bearer <token>`` header."""
    if not creds or not creds.credentials:
        raise AuthenticationError("Not authenticated")
    return creds.credentials


async def get_current_user(
    token: str = Depends(bearer_token),
    session: AuthSession = Depends(get_auth_session),
) -> User:
    return await session.resolve(token)


async def get_current_restaurant(user: User = Depends(get_current_user)) -> User:
    if user.role != UserRole.RESTAURANT.value:
        raise AuthorizationError("This action is only available to restaurant accounts")
    return user


async def get_current_client(user: User = Depends(get_current_user)) -> User:
    if user.role != UserRole.CLIENT.value:
        raise AuthorizationError("This action is only available to customer accounts")
    return user
