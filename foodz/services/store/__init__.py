"""
Document Store Factory

Provides a single entry point for obtaining a document store instance.
The rest of the application stays agnostic about which backend is active.

Usage:
    from foodz.services.store import get_document_store

    # Returns MockDocumentStore or FirestoreDocumentStore based on ENV_MODE
    store = get_document_store()

    orders = await store.query("restaurants/r1/orders", order_by="timestamp", descending=True)

Environment Switching:
    - ENV_MODE=development → MockDocumentStore (in memory)
    - ENV_MODE=staging → FirestoreDocumentStore (staging project)
    - ENV_MODE=production → FirestoreDocumentStore (live project)
"""

import logging
from functools import lru_cache

from foodz.core.config import get_settings
from foodz.services.store.base import (
    SERVER_TIMESTAMP,
    BaseDocumentStore,
    FieldFilter,
    Snapshot,
    Unsubscribe,
)
from foodz.services.store.mock import MockDocumentStore
from foodz.services.store.firestore import FirestoreDocumentStore

logger = logging.getLogger(__name__)


@lru_cache()
def get_document_store() -> BaseDocumentStore:
    """
    Get the configured document store instance.

    The instance is cached so every request and live subscription in the
    process shares one client (and, in development, one in-memory dataset).

    Returns:
        BaseDocumentStore: Configured document store
    """
    settings = get_settings()

    if settings.is_development:
        logger.info("Document Store: Using MockDocumentStore (development mode)")
        return MockDocumentStore()

    logger.info(
        f"Document Store: Using FirestoreDocumentStore "
        f"({settings.env_mode.value} mode)"
    )
    return FirestoreDocumentStore()


def reset_document_store() -> None:
    """
    Clear the cached document store instance.

    Useful for testing or when configuration changes at runtime.
    """
    get_document_store.cache_clear()
    logger.debug("Document store cache cleared")


__all__ = [
    "get_document_store",
    "reset_document_store",
    "BaseDocumentStore",
    "FieldFilter",
    "Snapshot",
    "Unsubscribe",
    "SERVER_TIMESTAMP",
    "MockDocumentStore",
    "FirestoreDocumentStore",
]
