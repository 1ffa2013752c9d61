"""Per-collection store handles, created on demand and cached.

The registry holds at most one open store per collection id. First access
to an id opens (or creates) ``<data_directory>/<collection_id>.db``; racing
first accesses share a per-collection asyncio lock so only one handle is
ever opened. ``close_all`` flips the registry into its closing state,
forgets every handle and closes them.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

from docstore_driver.adapters.tinydb_store import open_tinydb_store
from docstore_driver.core.exceptions import (
    DriverClosedError,
    InvalidCollectionIdError,
    StorageFailureError,
)
from docstore_driver.core.logging import get_logger
from docstore_driver.core.ports import CollectionStoreFactory, CollectionStorePort

logger = get_logger(__name__)

STORE_SUFFIX = ".db"


def validate_collection_id(collection_id: object) -> str:
    """Return ``collection_id`` if it can name a file inside the data directory."""
    if not isinstance(collection_id, str) or not collection_id:
        raise InvalidCollectionIdError(collection_id)
    if collection_id in (".", "..") or "/" in collection_id or "\\" in collection_id:
        raise InvalidCollectionIdError(collection_id)
    if "\x00" in collection_id:
        raise InvalidCollectionIdError(collection_id)
    return collection_id


class ConnectionRegistry:
    """Cache of open collection stores for one driver instance."""

    def __init__(
        self,
        data_directory: Path,
        store_factory: Optional[CollectionStoreFactory] = None,
    ) -> None:
        self.data_directory = Path(data_directory)
        self._store_factory: CollectionStoreFactory = store_factory or open_tinydb_store
        self._connections: dict[str, CollectionStorePort] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._epoch = 0
        self.closing = False

    def path_for(self, collection_id: str) -> Path:
        """Return the store file backing ``collection_id``."""
        return self.data_directory / f"{validate_collection_id(collection_id)}{STORE_SUFFIX}"

    def ensure_data_directory(self) -> None:
        """Create the data directory (and parents) if it does not exist yet."""
        try:
            self.data_directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.error("could not make data directory %s", self.data_directory)
            raise StorageFailureError(
                f"could not make data directory {self.data_directory}"
            ) from exc

    async def resolve(self, collection_id: str) -> CollectionStorePort:
        """Return the cached store for ``collection_id``, opening it on first use."""
        if self.closing:
            raise DriverClosedError("resolve")

        cached = self._connections.get(collection_id)
        if cached is not None:
            return cached

        path = self.path_for(collection_id)
        lock = self._locks.setdefault(collection_id, asyncio.Lock())
        async with lock:
            if self.closing:
                raise DriverClosedError("resolve")
            cached = self._connections.get(collection_id)
            if cached is not None:
                return cached

            epoch = self._epoch
            self.ensure_data_directory()
            store = await self._store_factory(collection_id, path)
            if self.closing or epoch != self._epoch:
                # close() ran while the file was being opened
                await store.close()
                raise DriverClosedError("resolve")

            self._connections[collection_id] = store
            logger.info("Registered store for collection %s", collection_id)
            return store

    def reopen(self) -> None:
        """Leave the closing state so handles can be resolved again."""
        self.closing = False

    async def close_all(self) -> int:
        """Enter the closing state, forget every handle and close them.

        Returns:
            The number of handles that were closed.
        """
        self.closing = True
        self._epoch += 1
        stores = list(self._connections.values())
        self._connections = {}
        self._locks = {}

        results = await asyncio.gather(
            *(store.close() for store in stores), return_exceptions=True
        )
        failures = [result for result in results if isinstance(result, BaseException)]
        for failure in failures:
            logger.error("Failed to close collection store: %s", failure)
        if failures:
            raise StorageFailureError(
                f"{len(failures)} collection store(s) failed to close"
            ) from failures[0]
        return len(stores)

    def stats(self) -> dict[str, int]:
        """Return registry statistics for monitoring."""
        return {
            "open_connections": len(self._connections),
            "closing": int(self.closing),
        }


__all__ = ["ConnectionRegistry", "validate_collection_id", "STORE_SUFFIX"]
