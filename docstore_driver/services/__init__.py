"""Driver service layer: connection registry, query translation and CRUD."""

from __future__ import annotations

from .connection_registry import ConnectionRegistry
from .driver import DocumentDriver, create_driver

__all__ = ["ConnectionRegistry", "DocumentDriver", "create_driver"]
