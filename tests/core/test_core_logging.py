"""Tests for the logging helpers with correlation and collection ids."""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, cast

from pythonjsonlogger import jsonlogger

from docstore_driver.core.logging import (
    LOG_FILE_PATH,
    ROOT_LOGGER_NAME,
    LogContextFilter,
    bind_collection_id,
    bind_correlation_id,
    collection_id_context,
    correlation_id_context,
    get_collection_id,
    get_correlation_id,
    get_logger,
    reset_collection_id,
    reset_correlation_id,
)


def test_context_filter_attaches_context():
    """Filter should attach the current correlation and collection ids."""
    cid_token = bind_correlation_id("abc123")
    collection_token = bind_collection_id("users")
    try:
        record = logging.LogRecord(
            name="test",
            level=logging.INFO,
            pathname=__file__,
            lineno=10,
            msg="hello",
            args=None,
            exc_info=None,
        )
        filt = LogContextFilter()
        assert filt.filter(record) is True
        record_any = cast(Any, record)
        assert record_any.__dict__["correlation_id"] == "abc123"
        assert record_any.__dict__["collection_id"] == "users"
    finally:
        reset_collection_id(collection_token)
        reset_correlation_id(cid_token)


def test_context_filter_defaults_to_dash():
    """Unbound context renders as a placeholder rather than None."""
    record = logging.LogRecord("test", logging.INFO, __file__, 1, "msg", None, None)
    LogContextFilter().filter(record)
    record_any = cast(Any, record)
    assert record_any.correlation_id == "-"
    assert record_any.collection_id == "-"


def test_context_managers_restore_state():
    """Nested contexts restore the original ids."""
    with (
        correlation_id_context("ctx"),
        correlation_id_context("nested"),
        collection_id_context("orders"),
    ):
        assert get_correlation_id() == "nested"
        assert get_collection_id() == "orders"
    assert get_correlation_id() is None
    assert get_collection_id() is None


def test_get_logger_has_context_filter():
    """Shared handlers on the package logger include the context filter."""
    logger = get_logger("docstore_driver.tests.logging")
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    handlers = [
        handler
        for handler in root_logger.handlers
        if (
            isinstance(handler, RotatingFileHandler)
            and Path(getattr(handler, "baseFilename", "")) == LOG_FILE_PATH
        )
        or (
            isinstance(handler, logging.StreamHandler)
            and getattr(handler, "stream", None) is sys.stdout
        )
    ]
    assert handlers, "expected shared stream/file handlers to be installed"
    assert not logger.handlers, "module logger should rely on shared handlers"
    assert all(
        any(isinstance(flt, LogContextFilter) for flt in handler.filters) for handler in handlers
    )
    assert all(isinstance(handler.formatter, jsonlogger.JsonFormatter) for handler in handlers)


def test_get_logger_uses_shared_rotating_handler():
    """Calling get_logger repeatedly should not duplicate file handlers."""
    first = get_logger("docstore_driver.tests.logging.first")
    second = get_logger("docstore_driver.tests.logging.second")

    assert not first.handlers
    assert not second.handlers

    root_handlers = logging.getLogger(ROOT_LOGGER_NAME).handlers
    rotating_handlers = [
        handler for handler in root_handlers if isinstance(handler, RotatingFileHandler)
    ]
    assert len(rotating_handlers) == 1, "expected exactly one shared RotatingFileHandler"
