"""Bootstrap helpers for assembling a driver from process settings."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from docstore_driver.adapters.tinydb_store import open_tinydb_store
from docstore_driver.core.config import DriverOptions, settings
from docstore_driver.services.driver import DocumentDriver


def build_default_driver(data_directory: Optional[Path] = None) -> DocumentDriver:
    """Return a driver wired to the TinyDB store adapter."""

    options = DriverOptions(data_directory=data_directory or settings.DOCSTORE_DATA_DIR)
    return DocumentDriver(options, store_factory=open_tinydb_store)


__all__ = ["build_default_driver"]
