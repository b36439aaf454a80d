"""
Auth Gateway Factory

Returns the Mock or Firebase auth gateway based on ENV_MODE.
"""

import logging
from functools import lru_cache

from foodz.core.config import get_settings
from foodz.services.auth.base import BaseAuthGateway, Identity
from foodz.services.auth.mock import MockAuthGateway
from foodz.services.auth.firebase import FirebaseAuthGateway

logger = logging.getLogger(__name__)


@lru_cache()
def get_auth_gateway() -> BaseAuthGateway:
    """Get the configured auth gateway."""
    settings = get_settings()

    if settings.is_development:
        logger.info("Auth Gateway: Using MockAuthGateway (development mode)")
        return MockAuthGateway()
    else:
        logger.info(f"Auth Gateway: Using FirebaseAuthGateway ({settings.env_mode.value} mode)")
        return FirebaseAuthGateway()


def reset_auth_gateway() -> None:
    """Clear the cached gateway instance."""
    get_auth_gateway.cache_clear()


__all__ = [
    "get_auth_gateway",
    "reset_auth_gateway",
    "BaseAuthGateway",
    "Identity",
    "MockAuthGateway",
    "FirebaseAuthGateway",
]
