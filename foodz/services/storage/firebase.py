"""
Firebase Storage Blob Store

Production implementation on the project's default Cloud Storage bucket
through firebase-admin. Download URLs use a per-object download token,
the same scheme the Firebase client SDKs use, so URLs stay stable until
the object is replaced.

Requirements:
    - FIREBASE_STORAGE_BUCKET (e.g. my-app.appspot.com)

Version: 1.0.0
"""

import logging
import uuid
from typing import Optional
from urllib.parse import quote

from firebase_admin import storage
from google.api_core import exceptions as google_exceptions

from foodz.core.errors import NotFoundError, StoreError
from foodz.services.firebase import get_firebase_app
from foodz.services.storage.base import BaseBlobStore, BlobHandle

logger = logging.getLogger(__name__)

DOWNLOAD_URL = "https://firebasestorage.googleapis.com/v0/b/{bucket}/o/{path}?alt=media&token={token}"


class FirebaseBlobStore(BaseBlobStore):
    """Production blob store backed by Firebase Storage."""

    def __init__(self):
        self._bucket = storage.bucket(app=get_firebase_app())
        logger.info(f"FirebaseBlobStore initialized (bucket={self._bucket.name})")

    @property
    def provider_name(self) -> str:
        return "firebase"

    async def upload(
        self,
        path: str,
        data: bytes,
        content_type: Optional[str] = None,
    ) -> BlobHandle:
        blob = self._bucket.blob(path)
        blob.metadata = {"firebaseStorageDownloadTokens": uuid.uuid4().hex}
        try:
            blob.upload_from_string(data, content_type=content_type or "application/octet-stream")
        except google_exceptions.GoogleAPIError as e:
            logger.error(f"Upload to {path} failed: {e}")
            raise StoreError("Failed to upload image", detail=str(e))

        logger.info(f"Uploaded {path} ({len(data)} bytes)")
        return BlobHandle(path=path, content_type=content_type, size=len(data))

    async def get_url(self, handle: BlobHandle) -> str:
        blob = self._bucket.get_blob(handle.path)
        if blob is None:
            raise NotFoundError(f"No object at {handle.path}")

        token = (blob.metadata or {}).get("firebaseStorageDownloadTokens")
        if not token:
            token = uuid.uuid4().hex
            blob.metadata = {**(blob.metadata or {}), "firebaseStorageDownloadTokens": token}
            blob.patch()

        return DOWNLOAD_URL.format(
            bucket=self._bucket.name,
            path=quote(handle.path, safe=""),
            token=token.split(",")[0],
        )

    async def delete(self, handle: BlobHandle) -> None:
        try:
            self._bucket.blob(handle.path).delete()
        except google_exceptions.NotFound:
            raise NotFoundError(f"No object at {handle.path}")
        except google_exceptions.GoogleAPIError as e:
            logger.error(f"Delete of {handle.path} failed: {e}")
            raise StoreError("Failed to remove image", detail=str(e))

    async def health_check(self) -> bool:
        try:
            return self._bucket.exists()
        except Exception as e:
            logger.error(f"Storage health check failed: {e}")
            return False
