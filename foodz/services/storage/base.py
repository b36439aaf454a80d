"""
Blob Store Abstract Base Class

Named binary objects (restaurant profile images) with stable retrieval URLs.
Path convention: ``restaurants/{restaurantId}/profile``.

Version: 1.0.0
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class BlobHandle:
    """
    Reference to a stored object.

    Attributes:
        path: Object path inside the bucket
        content_type: MIME type recorded at upload
        size: Size in bytes
    """
    path: str
    content_type: Optional[str] = None
    size: int = 0


class BaseBlobStore(ABC):
    """Abstract base class for blob stores."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        pass

    @abstractmethod
    async def upload(
        self,
        path: str,
        data: bytes,
        content_type: Optional[str] = None,
    ) -> BlobHandle:
        """Store ``data`` under ``path``, replacing any existing object."""
        pass

    @abstractmethod
    async def get_url(self, handle: BlobHandle) -> str:
        """Return a stable retrieval URL for the object."""
        pass

    @abstractmethod
    async def delete(self, handle: BlobHandle) -> None:
        """
        Delete the object.

        Raises:
            NotFoundError: Nothing stored under the handle's path
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        pass
