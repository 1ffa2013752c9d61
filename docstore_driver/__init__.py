"""Storage driver exposing CRUD over file-backed document collections."""

from docstore_driver.core.exceptions import (
    DriverClosedError,
    DriverError,
    InvalidCollectionIdError,
    InvalidDocumentError,
    InvalidQueryError,
    InvalidSortDirectionError,
    StorageFailureError,
)
from docstore_driver.services.driver import DocumentDriver, create_driver

__version__ = "0.1.0"

__all__ = [
    "DocumentDriver",
    "create_driver",
    "DriverError",
    "DriverClosedError",
    "InvalidSortDirectionError",
    "InvalidQueryError",
    "InvalidCollectionIdError",
    "InvalidDocumentError",
    "StorageFailureError",
    "__version__",
]
