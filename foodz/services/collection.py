"""
Data-Access Collection

Thin wrapper translating caller intent into Document Store operations on a
single collection (optionally a subcollection of a parent document), with
loading/error state for the caller to render.

Error policy:
    - refresh() converts I/O failures into the ``error`` field and keeps the
      previously loaded data, so callers always have a consistent view
    - point reads and mutations log and re-raise; the caller decides
      whether to retry
"""

import logging
from typing import Any, Optional, Sequence

from foodz.core.errors import FoodzError, NotFoundError
from foodz.services.store.base import BaseDocumentStore, FieldFilter

logger = logging.getLogger(__name__)


class DocumentCollection:
    """
    Loaded view over one collection.

    Example:
        >>> categories = DocumentCollection(store, "categories",
        ...     filters=[FieldFilter("restaurantId", "==", uid)])
        >>> await categories.refresh()
        >>> categories.data
        [{'id': '...', 'name': 'Burgers', 'restaurantId': '...'}]
    """

    def __init__(
        self,
        store: BaseDocumentStore,
        collection_name: str,
        filters: Sequence[FieldFilter] = (),
        parent: Optional[tuple[str, str]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
    ):
        self.store = store
        self.collection_name = collection_name
        self.filters = tuple(filters)
        self.parent = parent
        self.order_by = order_by
        self.descending = descending

        self.data: list[dict[str, Any]] = []
        self.is_loading: bool = False
        self.error: Optional[Exception] = None

    @property
    def path(self) -> str:
        """Full collection path, nested under the parent document if any."""
        if self.parent:
            parent_collection, parent_id = self.parent
            return f"{parent_collection}/{parent_id}/{self.collection_name}"
        return self.collection_name

    async def refresh(self) -> list[dict[str, Any]]:
        """Reload the collection; failures land in ``error``."""
        self.is_loading = True
        try:
            self.data = await self.store.query(
                self.path, self.filters, order_by=self.order_by, descending=self.descending
            )
            self.error = None
        except FoodzError as e:
            logger.error(f"Error fetching collection data from {self.path}: {e}")
            self.error = e
        finally:
            self.is_loading = False
        return self.data

    async def get_document(self, doc_id: str) -> dict[str, Any]:
        try:
            document = await self.store.get(self.path, doc_id)
        except FoodzError as e:
            logger.error(f"Error fetching document {self.path}/{doc_id}: {e}")
            raise
        if document is None:
            raise NotFoundError("Document not found")
        return document

    async def add_document(self, data: dict[str, Any]) -> str:
        try:
            doc_id = await self.store.add(self.path, data)
        except FoodzError as e:
            logger.error(f"Error adding document to {self.path}: {e}")
            raise
        self.data.append({**data, "id": doc_id})
        return doc_id

    async def update_document(self, doc_id: str, data: dict[str, Any]) -> None:
        try:
            await self.store.update(self.path, doc_id, data)
        except FoodzError as e:
            logger.error(f"Error updating document {self.path}/{doc_id}: {e}")
            raise
        self.data = [
            {**doc, **data} if doc.get("id") == doc_id else doc
            for doc in self.data
        ]

    async def delete_document(self, doc_id: str) -> None:
        try:
            await self.store.delete(self.path, doc_id)
        except FoodzError as e:
            logger.error(f"Error deleting document {self.path}/{doc_id}: {e}")
            raise
        self.data = [doc for doc in self.data if doc.get("id") != doc_id]
