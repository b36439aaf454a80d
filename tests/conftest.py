"""
Shared fixtures.

Every test runs against fresh in-memory collaborators: the cached
factories are cleared before each test so nothing leaks between them.
"""

import os

os.environ["ENV_MODE"] = "development"
os.environ.setdefault("APP_BASE_URL", "http://localhost:8080")

import pytest

from foodz.core.config import get_settings
from foodz.dependencies import get_auth_session, get_cart_registry, reset_dependencies
from foodz.models import MenuItem
from foodz.services.auth import get_auth_gateway, reset_auth_gateway
from foodz.services.menu import MenuService
from foodz.services.storage import get_blob_store, reset_blob_store
from foodz.services.store import get_document_store, reset_document_store


@pytest.fixture(autouse=True)
def fresh_services():
    get_settings.cache_clear()
    reset_document_store()
    reset_auth_gateway()
    reset_blob_store()
    reset_dependencies()
    yield
    reset_dependencies()


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def store():
    return get_document_store()


@pytest.fixture
def gateway():
    return get_auth_gateway()


@pytest.fixture
def blobs():
    return get_blob_store()


@pytest.fixture
def session():
    auth_session = get_auth_session()
    auth_session.start()
    yield auth_session
    auth_session.stop()


@pytest.fixture
def carts():
    return get_cart_registry()


@pytest.fixture
def menu(store):
    return MenuService(store)


@pytest.fixture
async def restaurant(session):
    """A registered restaurant account; returns its User (id == restaurant id)."""
    result = await session.register(
        "luigi@example.com",
        "secret123",
        "Luigi",
        "restaurant",
        restaurant_info={"name": "Luigi's Trattoria", "cuisine": "Italian", "address": "12 Via Roma"},
    )
    return result.user


@pytest.fixture
async def customer(session):
    result = await session.register("jane@example.com", "secret123", "Jane Doe", "client")
    return result.user


@pytest.fixture
async def pizza(menu, restaurant) -> MenuItem:
    return await menu.add_item(restaurant.id, restaurant.id, "Margherita", 11.5, "Pizza")


@pytest.fixture
async def tiramisu(menu, restaurant) -> MenuItem:
    return await menu.add_item(restaurant.id, restaurant.id, "Tiramisu", 6.0, "Desserts")
