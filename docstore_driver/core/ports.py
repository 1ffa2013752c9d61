"""Protocol definitions for infrastructure adapters."""

# pylint: disable=unnecessary-ellipsis

from __future__ import annotations

from typing import Any, Mapping, Protocol

from docstore_driver.core.models import Document, StoredDocument


class CollectionStorePort(Protocol):
    """Port exposing the document operations of one collection's store."""

    async def count(self, condition: Any) -> int:
        """Return the number of documents matching ``condition``."""
        ...

    async def find(self, condition: Any) -> list[StoredDocument]:
        """Return the documents matching ``condition`` in store order."""
        ...

    async def insert(self, document: Mapping[str, Any]) -> int:
        """Persist ``document`` and return its store identifier."""
        ...

    async def replace(self, doc_id: int, document: Mapping[str, Any]) -> bool:
        """Replace the full field set of ``doc_id``; False if it is gone."""
        ...

    async def merge(self, doc_id: int, fields: Mapping[str, Any]) -> bool:
        """Overwrite top-level ``fields`` on ``doc_id``; False if it is gone."""
        ...

    async def remove(self, condition: Any) -> int:
        """Delete every document matching ``condition`` and return the count."""
        ...

    async def close(self) -> None:
        """Release the underlying file handle."""
        ...


class CollectionStoreFactory(Protocol):
    """Callable opening (or creating) the store backing one collection."""

    async def __call__(self, collection_id: str, path: Any) -> CollectionStorePort:
        """Return an open store for ``collection_id`` persisted at ``path``."""
        ...


class DocumentDriverPort(Protocol):
    """Uniform CRUD contract consumed by the database server."""

    async def count(self, collection_id: str, query: Mapping[str, Any] | None = None) -> int:
        """Return the number of documents in ``collection_id`` matching ``query``."""
        ...

    async def get(  # pylint: disable=too-many-arguments
        self,
        collection_id: str,
        query: Mapping[str, Any] | None = None,
        fields: list[str] | None = None,
        order: list[str] | None = None,
        limit: int | None = None,
        skip: int | None = None,
    ) -> list[Document]:
        """Return matching documents with sort, pagination and projection applied."""
        ...

    async def post(self, collection_id: str, document: Mapping[str, Any]) -> Document:
        """Insert ``document`` under a fresh ``id`` and return it."""
        ...

    async def put(
        self, collection_id: str, document: Mapping[str, Any], query: Mapping[str, Any] | None
    ) -> Mapping[str, int]:
        """Replace every match with ``document``, keeping each match's ``id``."""
        ...

    async def patch(
        self, collection_id: str, document: Mapping[str, Any], query: Mapping[str, Any] | None
    ) -> Mapping[str, int]:
        """Merge ``document`` onto every match."""
        ...

    async def delete(
        self, collection_id: str, query: Mapping[str, Any] | None = None
    ) -> Mapping[str, int]:
        """Remove every match."""
        ...

    def open(self) -> None:
        """Allow operations again after ``close``."""
        ...

    async def close(self) -> None:
        """Reject further operations and release every cached handle."""
        ...


__all__ = ["CollectionStorePort", "CollectionStoreFactory", "DocumentDriverPort"]
