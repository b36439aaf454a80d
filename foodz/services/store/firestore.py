"""
Firestore Document Store Implementation

Production implementation backed by Cloud Firestore through firebase-admin.
Used when ENV_MODE=production or ENV_MODE=staging.

Requirements:
    - A Firebase project with Firestore enabled
    - Service account credentials (see foodz.services.firebase)

Point reads, queries and writes go through the asyncio client. Live
queries use the synchronous client, whose ``on_snapshot`` watch runs on a
background thread; callers bridge the callbacks back onto their loop.

The watch has no error callback: when its stream fails (permission denied,
network loss) it just closes itself. A monitor thread polls
``Watch.is_active`` and reports a watch that stopped without being
unsubscribed through ``on_error``.

Version: 1.0.0
"""

import logging
import threading
from typing import Any, Optional, Sequence

from firebase_admin import firestore, firestore_async
from google.api_core import exceptions as google_exceptions
from google.cloud.firestore_v1.base_query import FieldFilter as FirestoreFieldFilter

from foodz.core.errors import NotFoundError, StoreError
from foodz.services.firebase import get_firebase_app
from foodz.services.store.base import (
    SERVER_TIMESTAMP,
    BaseDocumentStore,
    ErrorCallback,
    FieldFilter,
    Snapshot,
    SnapshotCallback,
    Unsubscribe,
)

logger = logging.getLogger(__name__)

WATCH_POLL_INTERVAL = 2.0


class FirestoreDocumentStore(BaseDocumentStore):
    """
    Production Firestore document store.

    Example:
        >>> store = FirestoreDocumentStore()
        >>> await store.query("menuItems", [FieldFilter("restaurantId", "==", uid)])
    """

    def __init__(self):
        app = get_firebase_app()
        self._client = firestore_async.client(app)
        self._watch_client = firestore.client(app)
        self.watch_poll_interval = WATCH_POLL_INTERVAL

        logger.info("FirestoreDocumentStore initialized")

    @property
    def provider_name(self) -> str:
        return "firestore"

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _encode(self, data: dict[str, Any]) -> dict[str, Any]:
        encoded = {}
        for key, value in data.items():
            if value is SERVER_TIMESTAMP:
                encoded[key] = firestore.SERVER_TIMESTAMP
            elif isinstance(value, dict):
                encoded[key] = self._encode(value)
            else:
                encoded[key] = value
        return encoded

    @staticmethod
    def _decode(snapshot) -> dict[str, Any]:
        return {**(snapshot.to_dict() or {}), "id": snapshot.id}

    @staticmethod
    def _build_query(
        collection_ref,
        filters: Sequence[FieldFilter],
        order_by: Optional[str],
        descending: bool,
        limit: Optional[int] = None,
    ):
        query = collection_ref
        for f in filters:
            query = query.where(filter=FirestoreFieldFilter(f.field, f.op, f.value))
        if order_by:
            direction = firestore.Query.DESCENDING if descending else firestore.Query.ASCENDING
            query = query.order_by(order_by, direction=direction)
        if limit is not None:
            query = query.limit(limit)
        return query

    # =========================================================================
    # OPERATIONS
    # =========================================================================

    async def get(self, collection: str, doc_id: str) -> Optional[dict[str, Any]]:
        try:
            snapshot = await self._client.collection(collection).document(doc_id).get()
        except google_exceptions.GoogleAPIError as e:
            logger.error(f"Firestore get {collection}/{doc_id} failed: {e}")
            raise StoreError("Failed to load data", detail=str(e))
        return self._decode(snapshot) if snapshot.exists else None

    async def query(
        self,
        collection: str,
        filters: Sequence[FieldFilter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> Snapshot:
        query = self._build_query(
            self._client.collection(collection), filters, order_by, descending, limit
        )
        try:
            return [self._decode(snapshot) async for snapshot in query.stream()]
        except google_exceptions.GoogleAPIError as e:
            logger.error(f"Firestore query on {collection} failed: {e}")
            raise StoreError("Failed to load data", detail=str(e))

    async def add(self, collection: str, data: dict[str, Any]) -> str:
        try:
            _, ref = await self._client.collection(collection).add(self._encode(data))
        except google_exceptions.GoogleAPIError as e:
            logger.error(f"Firestore add to {collection} failed: {e}")
            raise StoreError("Failed to save data", detail=str(e))
        logger.debug(f"Firestore: added {collection}/{ref.id}")
        return ref.id

    async def set(
        self,
        collection: str,
        doc_id: str,
        data: dict[str, Any],
        merge: bool = False,
    ) -> None:
        try:
            await self._client.collection(collection).document(doc_id).set(
                self._encode(data), merge=merge
            )
        except google_exceptions.GoogleAPIError as e:
            logger.error(f"Firestore set {collection}/{doc_id} failed: {e}")
            raise StoreError("Failed to save data", detail=str(e))

    async def update(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        try:
            await self._client.collection(collection).document(doc_id).update(self._encode(data))
        except google_exceptions.NotFound:
            raise NotFoundError(f"No document to update: {collection}/{doc_id}")
        except google_exceptions.GoogleAPIError as e:
            logger.error(f"Firestore update {collection}/{doc_id} failed: {e}")
            raise StoreError("Failed to save data", detail=str(e))

    async def delete(self, collection: str, doc_id: str) -> None:
        try:
            await self._client.collection(collection).document(doc_id).delete()
        except google_exceptions.GoogleAPIError as e:
            logger.error(f"Firestore delete {collection}/{doc_id} failed: {e}")
            raise StoreError("Failed to delete data", detail=str(e))

    def subscribe(
        self,
        collection: str,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
        filters: Sequence[FieldFilter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> Unsubscribe:
        query = self._build_query(
            self._watch_client.collection(collection), filters, order_by, descending
        )
        lock = threading.Lock()
        stopped = threading.Event()
        state = {"failed": False}

        def fail(error: Exception) -> None:
            # on_error fires at most once and never after unsubscribe()
            with lock:
                if state["failed"] or stopped.is_set():
                    return
                state["failed"] = True
            logger.error(f"Firestore watch on {collection} failed: {error}")
            on_error(StoreError("Live updates unavailable", detail=str(error)))

        def handle(docs, changes, read_time) -> None:
            if state["failed"]:
                return
            try:
                snapshot = [self._decode(doc) for doc in docs]
            except Exception as e:
                fail(e)
                return
            on_snapshot(snapshot)

        try:
            watch = query.on_snapshot(handle)
        except google_exceptions.GoogleAPIError as e:
            logger.error(f"Firestore subscribe to {collection} failed: {e}")
            raise StoreError("Live updates unavailable", detail=str(e))

        def monitor() -> None:
            while not stopped.wait(self.watch_poll_interval):
                if not watch.is_active:
                    fail(RuntimeError("watch stream closed by the server"))
                    return

        threading.Thread(
            target=monitor, name=f"firestore-watch-{collection}", daemon=True
        ).start()

        def unsubscribe() -> None:
            if not stopped.is_set():
                stopped.set()
                watch.unsubscribe()

        return unsubscribe

    async def health_check(self) -> bool:
        """Check Firestore connectivity with a tiny read."""
        try:
            await self._client.collection("users").limit(1).get()
            return True
        except Exception as e:
            logger.error(f"Firestore health check failed: {e}")
            return False
