"""
Mock Blob Store

Keeps uploaded objects in memory and hands out fake download URLs.
"""

import logging
import uuid
from typing import Optional

from foodz.core.errors import NotFoundError
from foodz.services.storage.base import BaseBlobStore, BlobHandle

logger = logging.getLogger(__name__)


class MockBlobStore(BaseBlobStore):
    """Mock blob store for development and tests."""

    BASE_URL = "https://storage.mock.local"

    def __init__(self):
        self._objects: dict[str, tuple[bytes, Optional[str], str]] = {}
        logger.info("MockBlobStore initialized")

    @property
    def provider_name(self) -> str:
        return "mock"

    async def upload(
        self,
        path: str,
        data: bytes,
        content_type: Optional[str] = None,
    ) -> BlobHandle:
        # A fresh token per upload so replaced images get a new URL
        token = uuid.uuid4().hex[:16]
        self._objects[path] = (data, content_type, token)
        logger.info(f"Mock upload to {path} ({len(data)} bytes)")
        return BlobHandle(path=path, content_type=content_type, size=len(data))

    async def get_url(self, handle: BlobHandle) -> str:
        if handle.path not in self._objects:
            raise NotFoundError(f"No object at {handle.path}")
        token = self._objects[handle.path][2]
        return f"{self.BASE_URL}/{handle.path}?token={token}"

    async def delete(self, handle: BlobHandle) -> None:
        if self._objects.pop(handle.path, None) is None:
            raise NotFoundError(f"No object at {handle.path}")
        logger.info(f"Mock delete of {handle.path}")

    def exists(self, path: str) -> bool:
        return path in self._objects

    async def health_check(self) -> bool:
        """Mock always returns healthy."""
        return True
