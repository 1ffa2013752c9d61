"""Core exception types shared across layers."""


class DriverError(Exception):
    """Base class for every error raised by the driver."""


class DriverClosedError(DriverError):
    """Raised when an operation is attempted while the driver is closing."""

    def __init__(self, operation: str = "operation") -> None:
        super().__init__(f"docstore-driver: {operation} failed as client is closing")
        self.operation = operation


class InvalidSortDirectionError(DriverError, ValueError):
    """Raised when a sort token uses a direction other than asc or desc."""

    def __init__(self, direction: str) -> None:
        super().__init__(f'docstore-driver: sort must be "asc" or "desc" but was "{direction}"')
        self.direction = direction


class InvalidQueryError(DriverError, ValueError):
    """Raised when a query, operator, limit or skip value cannot be used."""


class InvalidCollectionIdError(DriverError, ValueError):
    """Raised when a collection id cannot be mapped to a store file."""

    def __init__(self, collection_id: object) -> None:
        super().__init__(f"docstore-driver: invalid collection id {collection_id!r}")
        self.collection_id = collection_id


class InvalidDocumentError(DriverError, ValueError):
    """Raised when a document holds values the store cannot serialise."""


class StorageFailureError(DriverError):
    """Raised when the underlying collection store fails."""


__all__ = [
    "DriverError",
    "DriverClosedError",
    "InvalidSortDirectionError",
    "InvalidQueryError",
    "InvalidCollectionIdError",
    "InvalidDocumentError",
    "StorageFailureError",
]
