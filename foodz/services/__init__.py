"""
                        Services Module

Contains all business logic services with the hybrid architecture pattern.
Each backing collaborator has a Mock (development) and a Firebase
(staging/production) implementation behind a cached factory.

Collaborators:
    - store: Document Store (Firestore)
    - auth: Auth Gateway (Firebase Authentication)
    - storage: Blob Store (Cloud Storage for Firebase)

Domain services:
    - session: AuthSession (registration, login, role resolution)
    - cart: Cart state machine and per-customer registry
    - orders: Order creation, status updates, live order feed
    - menu: Menu item and category CRUD
    - restaurants: Directory, profile, sharing, dashboard
"""

from foodz.services.cart import Cart, CartRegistry
from foodz.services.menu import MenuService
from foodz.services.orders import OrderFeed, OrderScope, OrderService
from foodz.services.restaurants import RestaurantService
from foodz.services.session import AuthSession

__all__ = [
    "AuthSession",
    "Cart",
    "CartRegistry",
    "MenuService",
    "OrderFeed",
    "OrderScope",
    "OrderService",
    "RestaurantService",
]
