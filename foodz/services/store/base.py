"""
Document Store Abstract Base Class

Defines the interface contract for the managed, schema-less document
database the application is built on. Both MockDocumentStore and
FirestoreDocumentStore implement these methods, so the order pipeline,
menu CRUD and auth session behave identically against either.

Documents are plain dicts. Every returned document carries its id under
the ``id`` key; the id is never written into the stored body.

Collection paths are slash-separated and may address subcollections:
    "restaurants"                     root collection
    "restaurants/{id}/orders"         orders of one restaurant

Version: 1.0.0
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence

Snapshot = list[dict[str, Any]]
SnapshotCallback = Callable[[Snapshot], None]
ErrorCallback = Callable[[Exception], None]
Unsubscribe = Callable[[], None]


class _ServerTimestamp:
    """Sentinel replaced by a store-generated timestamp on write."""

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


@dataclass(frozen=True)
class FieldFilter:
    """
    A single field comparison applied by query and subscribe.

    Attributes:
        field: Top-level document field name
        op: One of ==, !=, <, <=, >, >=, in
        value: Right-hand operand (a list for ``in``)
    """
    field: str
    op: str
    value: Any

    OPERATORS = ("==", "!=", "<", "<=", ">", ">=", "in")

    def __post_init__(self):
        if self.op not in self.OPERATORS:
            raise ValueError(f"Unsupported filter operator: {self.op!r}")

    def matches(self, document: dict[str, Any]) -> bool:
        """Evaluate the filter against an in-memory document."""
        if self.field not in document:
            return False
        current = document[self.field]
        try:
            if self.op == "==":
                return current == self.value
            if self.op == "!=":
                return current != self.value
            if self.op == "<":
                return current < self.value
            if self.op == "<=":
                return current <= self.value
            if self.op == ">":
                return current > self.value
            if self.op == ">=":
                return current >= self.value
            return current in self.value
        except TypeError:
            return False


def split_path(path: str) -> list[str]:
    """Split and validate a collection path (odd number of segments)."""
    segments = [s for s in path.strip("/").split("/") if s]
    if not segments or len(segments) % 2 == 0:
        raise ValueError(f"Invalid collection path: {path!r}")
    return segments


class BaseDocumentStore(ABC):
    """
    Abstract base class for document stores.

    Implementations must:
        1. Never expose partially-written documents in a snapshot
        2. Deliver the complete current result set on every change
        3. Raise NotFoundError from ``update`` when the document is missing
        4. Wrap provider I/O failures in StoreError
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name (e.g. "mock", "firestore")."""
        pass

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> Optional[dict[str, Any]]:
        """
        Point read.

        Returns:
            The document with its ``id``, or None if it does not exist
        """
        pass

    @abstractmethod
    async def query(
        self,
        collection: str,
        filters: Sequence[FieldFilter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> Snapshot:
        """Run a filtered, optionally ordered query."""
        pass

    @abstractmethod
    async def add(self, collection: str, data: dict[str, Any]) -> str:
        """Create a document with a store-generated id and return the id."""
        pass

    @abstractmethod
    async def set(
        self,
        collection: str,
        doc_id: str,
        data: dict[str, Any],
        merge: bool = False,
    ) -> None:
        """Create or overwrite a document under a known id."""
        pass

    @abstractmethod
    async def update(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        """Merge ``data`` into an existing document."""
        pass

    @abstractmethod
    async def delete(self, collection: str, doc_id: str) -> None:
        """Delete a document. Deleting a missing document is not an error."""
        pass

    @abstractmethod
    def subscribe(
        self,
        collection: str,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
        filters: Sequence[FieldFilter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> Unsubscribe:
        """
        Open a standing live query.

        ``on_snapshot`` receives the full result set once immediately and
        again after every change. ``on_error`` is called at most once and
        ends the subscription. Callbacks may run on a foreign thread.

        Returns:
            A callable that closes the subscription; safe to call twice
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Verify connectivity to the store."""
        pass
