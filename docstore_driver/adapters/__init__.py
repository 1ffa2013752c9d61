"""Infrastructure adapter exports."""

from docstore_driver.core.exceptions import StorageFailureError  # noqa: F401

from .tinydb_store import TinyDBCollectionStore, open_tinydb_store

__all__ = [
    "TinyDBCollectionStore",
    "open_tinydb_store",
    "StorageFailureError",
]
