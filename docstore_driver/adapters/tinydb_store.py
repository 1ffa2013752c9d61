"""TinyDB-backed adapter for a single collection's document store.

Each collection lives in its own TinyDB JSON file. TinyDB itself is
synchronous and not thread-safe, so every call is funnelled through a
per-store thread lock and executed on the event loop's default executor.
"""

from __future__ import annotations

import asyncio
import contextvars
import json
from functools import partial
from pathlib import Path
from threading import Lock
from typing import TYPE_CHECKING, Any, Callable, Mapping, Optional, TypeVar, cast

from tinydb import TinyDB
from tinydb.table import Table

from docstore_driver.core.exceptions import InvalidDocumentError, StorageFailureError
from docstore_driver.core.logging import get_logger
from docstore_driver.core.models import StoredDocument
from docstore_driver.core.ports import CollectionStorePort

# Provide a QueryLike alias for static checkers; at runtime use Any.
if TYPE_CHECKING:  # pragma: no cover - typing only
    from tinydb.queries import QueryLike  # type: ignore
else:
    QueryLike = Any  # type: ignore[misc,assignment]

logger = get_logger(__name__)

DOCUMENTS_TABLE = "documents"

T = TypeVar("T")


def _in_executor(func: Callable[[], T]) -> "asyncio.Future[T]":
    # run in a copy of the caller's context so log records keep the bound ids
    loop = asyncio.get_running_loop()
    return loop.run_in_executor(None, partial(contextvars.copy_context().run, func))


def ensure_serializable(collection_id: str, document: Mapping[str, Any]) -> None:
    """Raise ``InvalidDocumentError`` unless ``document`` can be written as JSON."""
    try:
        json.dumps(dict(document))
    except (TypeError, ValueError) as exc:
        raise InvalidDocumentError(
            f"docstore-driver: document for collection {collection_id!r} is not JSON: {exc}"
        ) from exc


class TinyDBCollectionStore(CollectionStorePort):
    """Asynchronous facade over one TinyDB file."""

    def __init__(self, collection_id: str, path: Path) -> None:
        self.collection_id = collection_id
        self.path = path
        self._lock = Lock()
        self._db: Optional[TinyDB] = None

    @classmethod
    async def open(cls, collection_id: str, path: Path) -> "TinyDBCollectionStore":
        """Create the store file if needed and return an open store."""
        store = cls(collection_id, Path(path))
        await _in_executor(store._open_sync)
        return store

    @property
    def is_open(self) -> bool:
        """Return True until ``close`` has released the file."""
        return self._db is not None

    def _open_sync(self) -> None:
        with self._lock:
            if self._db is not None:
                return
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                self._db = TinyDB(str(self.path))
            except OSError as exc:
                raise StorageFailureError(
                    f"could not open store for collection {self.collection_id!r} at {self.path}"
                ) from exc
        logger.info("Opened store for collection %s at %s", self.collection_id, self.path)

    def _table(self) -> Table:
        if self._db is None:
            raise StorageFailureError(f"store for collection {self.collection_id!r} is closed")
        # Results are handed straight to callers, so never share cached lists.
        return self._db.table(DOCUMENTS_TABLE, cache_size=0)

    def _locked(self, func: Callable[[Table], T]) -> T:
        with self._lock:
            table = self._table()
            try:
                return func(table)
            except (OSError, ValueError) as exc:
                raise StorageFailureError(
                    f"store operation failed for collection {self.collection_id!r}: {exc}"
                ) from exc

    async def _run(self, func: Callable[[Table], T]) -> T:
        return await _in_executor(partial(self._locked, func))

    async def count(self, condition: Any) -> int:
        return await self._run(lambda table: table.count(cast(QueryLike, condition)))

    async def find(self, condition: Any) -> list[StoredDocument]:
        def _search(table: Table) -> list[StoredDocument]:
            return [
                StoredDocument(doc_id=doc.doc_id, fields=dict(doc))
                for doc in table.search(cast(QueryLike, condition))
            ]

        return await self._run(_search)

    async def insert(self, document: Mapping[str, Any]) -> int:
        ensure_serializable(self.collection_id, document)
        return await self._run(lambda table: table.insert(dict(document)))

    async def replace(self, doc_id: int, document: Mapping[str, Any]) -> bool:
        ensure_serializable(self.collection_id, document)
        replacement = dict(document)

        def _swap(existing: dict) -> None:
            existing.clear()
            existing.update(replacement)

        def _replace(table: Table) -> bool:
            if not table.contains(doc_id=doc_id):
                return False
            table.update(_swap, doc_ids=[doc_id])
            return True

        return await self._run(_replace)

    async def merge(self, doc_id: int, fields: Mapping[str, Any]) -> bool:
        ensure_serializable(self.collection_id, fields)
        updates = dict(fields)

        def _merge(table: Table) -> bool:
            if not table.contains(doc_id=doc_id):
                return False
            table.update(updates, doc_ids=[doc_id])
            return True

        return await self._run(_merge)

    async def remove(self, condition: Any) -> int:
        return await self._run(lambda table: len(table.remove(cast(QueryLike, condition))))

    def _close_sync(self) -> None:
        with self._lock:
            if self._db is None:
                return
            db, self._db = self._db, None
            db.close()
        logger.info("Closed store for collection %s", self.collection_id)

    async def close(self) -> None:
        await _in_executor(self._close_sync)


async def open_tinydb_store(collection_id: str, path: Path) -> TinyDBCollectionStore:
    """Default store factory used by the connection registry."""
    return await TinyDBCollectionStore.open(collection_id, path)


__all__ = [
    "TinyDBCollectionStore",
    "open_tinydb_store",
    "ensure_serializable",
    "DOCUMENTS_TABLE",
]
