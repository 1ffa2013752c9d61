"""Document driver exposing the uniform CRUD contract over collection stores."""

from __future__ import annotations

import asyncio
import uuid
from typing import Any, Mapping, Optional, Sequence, Union

from docstore_driver.adapters.tinydb_store import ensure_serializable
from docstore_driver.core.config import DriverOptions, settings
from docstore_driver.core.exceptions import DriverClosedError
from docstore_driver.core.logging import collection_id_context, get_logger
from docstore_driver.core.models import ChangeResult, Document
from docstore_driver.core.ports import CollectionStoreFactory, DocumentDriverPort
from docstore_driver.services.connection_registry import ConnectionRegistry
from docstore_driver.services.query_translator import (
    ID_FIELD,
    apply_projection,
    apply_window,
    build_projection,
    build_sort_spec,
    sort_documents,
    translate_query,
    validate_window,
)

logger = get_logger(__name__)

OptionsLike = Union[DriverOptions, Mapping[str, Any]]


def generate_document_id() -> str:
    """Return a fresh public document identity."""
    return str(uuid.uuid4())


class DocumentDriver(DocumentDriverPort):
    """CRUD driver over one data directory of file-backed collections.

    A driver starts out open. ``close`` rejects further operations and
    releases every cached collection handle; ``open`` re-enables it.
    """

    def __init__(
        self,
        options: OptionsLike,
        *,
        store_factory: Optional[CollectionStoreFactory] = None,
    ) -> None:
        self.options = (
            options if isinstance(options, DriverOptions) else DriverOptions.model_validate(options)
        )
        self._registry = ConnectionRegistry(self.options.data_directory, store_factory)
        self._registry.ensure_data_directory()

    @property
    def closing(self) -> bool:
        """True between ``close`` and the next ``open``."""
        return self._registry.closing

    @property
    def registry(self) -> ConnectionRegistry:
        return self._registry

    def _ensure_open(self, operation: str) -> None:
        if self._registry.closing:
            raise DriverClosedError(operation)

    async def count(self, collection_id: str, query: Mapping[str, Any] | None = None) -> int:
        self._ensure_open("count")
        with collection_id_context(collection_id):
            condition = translate_query(query)
            store = await self._registry.resolve(collection_id)
            total = await store.count(condition)
            logger.debug("count matched %d documents", total)
            return total

    async def get(  # pylint: disable=too-many-arguments
        self,
        collection_id: str,
        query: Mapping[str, Any] | None = None,
        fields: Optional[Sequence[str]] = None,
        order: Optional[Sequence[str]] = None,
        limit: Optional[int] = None,
        skip: Optional[int] = None,
    ) -> list[Document]:
        self._ensure_open("get")
        with collection_id_context(collection_id):
            condition = translate_query(query)
            projection = build_projection(fields)
            sort_spec = build_sort_spec(order)
            limit_value, skip_value = validate_window(limit, skip)

            store = await self._registry.resolve(collection_id)
            matches = await store.find(condition)

            documents = sort_documents((match.fields for match in matches), sort_spec)
            documents = apply_window(documents, limit_value, skip_value)
            result = [apply_projection(document, projection) for document in documents]
            logger.debug("get returned %d of %d matching documents", len(result), len(matches))
            return result

    async def post(self, collection_id: str, document: Mapping[str, Any]) -> Document:
        self._ensure_open("post")
        with collection_id_context(collection_id):
            ensure_serializable(collection_id, document)
            store = await self._registry.resolve(collection_id)
            record: Document = {**document, ID_FIELD: generate_document_id()}
            await store.insert(record)
            logger.debug("post inserted document %s", record[ID_FIELD])
            return record

    async def put(
        self,
        collection_id: str,
        document: Mapping[str, Any],
        query: Mapping[str, Any] | None = None,
    ) -> dict[str, int]:
        self._ensure_open("put")
        with collection_id_context(collection_id):
            ensure_serializable(collection_id, document)
            condition = translate_query(query)
            store = await self._registry.resolve(collection_id)
            matches = await store.find(condition)

            def _replacement(original_id: Any) -> Document:
                fields: Document = {
                    key: value for key, value in document.items() if key != ID_FIELD
                }
                if original_id is not None:
                    fields[ID_FIELD] = original_id
                return fields

            await asyncio.gather(
                *(store.replace(match.doc_id, _replacement(match.public_id)) for match in matches)
            )
            logger.debug("put replaced %d documents", len(matches))
            return ChangeResult(changes=len(matches)).model_dump()

    async def patch(
        self,
        collection_id: str,
        document: Mapping[str, Any],
        query: Mapping[str, Any] | None = None,
    ) -> dict[str, int]:
        self._ensure_open("patch")
        with collection_id_context(collection_id):
            ensure_serializable(collection_id, document)
            condition = translate_query(query)
            store = await self._registry.resolve(collection_id)
            matches = await store.find(condition)

            updates: Document = {key: value for key, value in document.items() if key != ID_FIELD}
            await asyncio.gather(*(store.merge(match.doc_id, updates) for match in matches))
            logger.debug("patch merged into %d documents", len(matches))
            return ChangeResult(changes=len(matches)).model_dump()

    async def delete(
        self, collection_id: str, query: Mapping[str, Any] | None = None
    ) -> dict[str, int]:
        self._ensure_open("del")
        with collection_id_context(collection_id):
            condition = translate_query(query)
            store = await self._registry.resolve(collection_id)
            removed = await store.remove(condition)
            logger.debug("del removed %d documents", removed)
            return ChangeResult(changes=removed).model_dump()

    # ``del`` is a keyword; dispatch tables keyed on the wire verb use this name.
    del_ = delete

    def open(self) -> None:
        self._registry.reopen()
        logger.info("Driver opened for %s", self.options.data_directory)

    async def close(self) -> None:
        closed = await self._registry.close_all()
        logger.info("Driver closed; released %d collection handles", closed)


def create_driver(options: Optional[OptionsLike] = None, **kwargs: Any) -> DocumentDriver:
    """Build a driver, defaulting the data directory from settings."""
    if options is None:
        options = DriverOptions(data_directory=settings.DOCSTORE_DATA_DIR)
    return DocumentDriver(options, **kwargs)


__all__ = ["DocumentDriver", "create_driver", "generate_document_id"]
