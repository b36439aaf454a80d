"""
Core module initialization.
Exports configuration, logging utilities and the error taxonomy.
"""

from foodz.core.config import get_settings, Settings, EnvironmentMode
from foodz.core.errors import (
    FoodzError,
    ValidationError,
    AuthenticationError,
    AuthorizationError,
    NotFoundError,
    StoreError,
    SubscriptionError,
)

__all__ = [
    "get_settings",
    "Settings",
    "EnvironmentMode",
    "FoodzError",
    "ValidationError",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "StoreError",
    "SubscriptionError",
]
