"""
Mock Document Store Implementation

In-memory stand-in for Firestore, used in development mode
(ENV_MODE=development) and by the test suite to:
    - Run the full order pipeline without a Firebase project
    - Exercise live subscriptions deterministically
    - Simulate backend failures for error-path testing

Behavior:
    - Documents live in process memory and vanish on restart
    - Generates Firestore-like 20 character document ids
    - Server timestamps are strictly increasing UTC datetimes
    - Every write re-delivers the full result set to matching subscriptions
    - Optional random failure rate for testing error handling

Version: 1.0.0
"""

import copy
import random
import uuid
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Sequence

from foodz.core.errors import NotFoundError, StoreError
from foodz.services.store.base import (
    SERVER_TIMESTAMP,
    BaseDocumentStore,
    ErrorCallback,
    FieldFilter,
    Snapshot,
    SnapshotCallback,
    Unsubscribe,
    split_path,
)

logger = logging.getLogger(__name__)


@dataclass
class _Subscription:
    collection: str
    on_snapshot: SnapshotCallback
    on_error: ErrorCallback
    filters: Sequence[FieldFilter] = ()
    order_by: Optional[str] = None
    descending: bool = False
    active: bool = True
    sub_id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])


class MockDocumentStore(BaseDocumentStore):
    """
    Mock implementation of the document store.

    Attributes:
        failure_rate: Probability that a read or write raises StoreError

    Example:
        >>> store = MockDocumentStore()
        >>> order_id = await store.add("restaurants/r1/orders", {"total": 9.0})
        >>> (await store.get("restaurants/r1/orders", order_id))["total"]
        9.0
    """

    def __init__(self, failure_rate: float = 0.0):
        self.failure_rate = failure_rate
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._subscriptions: list[_Subscription] = []
        self._last_timestamp: Optional[datetime] = None

        logger.info(f"MockDocumentStore initialized (failure_rate={failure_rate:.0%})")

    @property
    def provider_name(self) -> str:
        return "mock"

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _should_fail(self) -> bool:
        return random.random() < self.failure_rate

    def _check_failure(self, operation: str, collection: str) -> None:
        if self._should_fail():
            logger.warning(f"Mock store {operation} failed (simulated) on {collection}")
            raise StoreError(f"Simulated store failure during {operation}")

    def _generate_id(self) -> str:
        return uuid.uuid4().hex[:20]

    def _now(self) -> datetime:
        now = datetime.now(timezone.utc)
        if self._last_timestamp is not None and now <= self._last_timestamp:
            now = self._last_timestamp + timedelta(microseconds=1)
        self._last_timestamp = now
        return now

    def _resolve_sentinels(self, data: dict[str, Any]) -> dict[str, Any]:
        resolved = {}
        for key, value in data.items():
            if value is SERVER_TIMESTAMP:
                resolved[key] = self._now()
            elif isinstance(value, dict):
                resolved[key] = self._resolve_sentinels(value)
            else:
                resolved[key] = copy.deepcopy(value)
        return resolved

    def _bucket(self, collection: str) -> dict[str, dict[str, Any]]:
        key = "/".join(split_path(collection))
        return self._collections.setdefault(key, {})

    @staticmethod
    def _with_id(doc_id: str, body: dict[str, Any]) -> dict[str, Any]:
        return {**copy.deepcopy(body), "id": doc_id}

    def _run_query(
        self,
        collection: str,
        filters: Sequence[FieldFilter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> Snapshot:
        docs = [
            self._with_id(doc_id, body)
            for doc_id, body in self._bucket(collection).items()
            if all(f.matches(body) for f in filters)
        ]
        if order_by:
            # Firestore drops documents missing the ordering field
            docs = [d for d in docs if d.get(order_by) is not None]
            docs.sort(key=lambda d: d[order_by], reverse=descending)
        if limit is not None:
            docs = docs[:limit]
        return docs

    def _notify(self, collection: str) -> None:
        key = "/".join(split_path(collection))
        for sub in list(self._subscriptions):
            if not sub.active or sub.collection != key:
                continue
            snapshot = self._run_query(
                sub.collection, sub.filters, sub.order_by, sub.descending
            )
            try:
                sub.on_snapshot(snapshot)
            except Exception as e:
                logger.exception(f"Snapshot listener {sub.sub_id} raised: {e}")

    # =========================================================================
    # OPERATIONS
    # =========================================================================

    async def get(self, collection: str, doc_id: str) -> Optional[dict[str, Any]]:
        self._check_failure("get", collection)
        body = self._bucket(collection).get(doc_id)
        return self._with_id(doc_id, body) if body is not None else None

    async def query(
        self,
        collection: str,
        filters: Sequence[FieldFilter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> Snapshot:
        self._check_failure("query", collection)
        return self._run_query(collection, filters, order_by, descending, limit)

    async def add(self, collection: str, data: dict[str, Any]) -> str:
        self._check_failure("add", collection)
        doc_id = self._generate_id()
        self._bucket(collection)[doc_id] = self._resolve_sentinels(data)
        logger.debug(f"Mock store: added {collection}/{doc_id}")
        self._notify(collection)
        return doc_id

    async def set(
        self,
        collection: str,
        doc_id: str,
        data: dict[str, Any],
        merge: bool = False,
    ) -> None:
        self._check_failure("set", collection)
        bucket = self._bucket(collection)
        body = self._resolve_sentinels(data)
        if merge and doc_id in bucket:
            bucket[doc_id].update(body)
        else:
            bucket[doc_id] = body
        self._notify(collection)

    async def update(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        self._check_failure("update", collection)
        bucket = self._bucket(collection)
        if doc_id not in bucket:
            raise NotFoundError(f"No document to update: {collection}/{doc_id}")
        bucket[doc_id].update(self._resolve_sentinels(data))
        self._notify(collection)

    async def delete(self, collection: str, doc_id: str) -> None:
        self._check_failure("delete", collection)
        if self._bucket(collection).pop(doc_id, None) is not None:
            self._notify(collection)

    def subscribe(
        self,
        collection: str,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
        filters: Sequence[FieldFilter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> Unsubscribe:
        sub = _Subscription(
            collection="/".join(split_path(collection)),
            on_snapshot=on_snapshot,
            on_error=on_error,
            filters=tuple(filters),
            order_by=order_by,
            descending=descending,
        )
        self._subscriptions.append(sub)
        logger.debug(f"Mock store: subscription {sub.sub_id} opened on {sub.collection}")

        on_snapshot(self._run_query(sub.collection, sub.filters, sub.order_by, sub.descending))

        def unsubscribe() -> None:
            if sub.active:
                sub.active = False
                self._subscriptions.remove(sub)
                logger.debug(f"Mock store: subscription {sub.sub_id} closed")

        return unsubscribe

    # =========================================================================
    # TEST HELPERS
    # =========================================================================

    @property
    def active_subscriptions(self) -> int:
        """Number of live queries currently open."""
        return len(self._subscriptions)

    def break_subscriptions(self, collection: str, error: Exception) -> int:
        """
        Simulate the backend dropping every live query on a collection
        (e.g. permission revoked, network loss).

        Returns:
            Number of subscriptions that received the error
        """
        key = "/".join(split_path(collection))
        broken = [s for s in self._subscriptions if s.active and s.collection == key]
        for sub in broken:
            sub.active = False
            self._subscriptions.remove(sub)
            sub.on_error(error)
        return len(broken)

    async def health_check(self) -> bool:
        """Mock always returns healthy."""
        return True
