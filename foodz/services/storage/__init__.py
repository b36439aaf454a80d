"""
Blob Store Factory

Returns the Mock or Firebase Storage blob store based on ENV_MODE.
"""

import logging
from functools import lru_cache

from foodz.core.config import get_settings
from foodz.services.storage.base import BaseBlobStore, BlobHandle
from foodz.services.storage.mock import MockBlobStore
from foodz.services.storage.firebase import FirebaseBlobStore

logger = logging.getLogger(__name__)


@lru_cache()
def get_blob_store() -> BaseBlobStore:
    """Get the configured blob store."""
    settings = get_settings()

    if settings.is_development:
        logger.info("Blob Store: Using MockBlobStore (development mode)")
        return MockBlobStore()
    else:
        logger.info(f"Blob Store: Using FirebaseBlobStore ({settings.env_mode.value} mode)")
        return FirebaseBlobStore()


def reset_blob_store() -> None:
    """Clear the cached store instance."""
    get_blob_store.cache_clear()


__all__ = [
    "get_blob_store",
    "reset_blob_store",
    "BaseBlobStore",
    "BlobHandle",
    "MockBlobStore",
    "FirebaseBlobStore",
]
