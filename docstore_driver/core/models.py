"""Core data transfer objects shared across layers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict

from pydantic import BaseModel, Field

Document = Dict[str, Any]


@dataclass(slots=True)
class StoredDocument:
    """A document paired with the identifier the store assigned to it."""

    doc_id: int
    fields: Document = field(default_factory=dict)

    @property
    def public_id(self) -> Any:
        """Return the caller-visible ``id`` field, if present."""
        return self.fields.get("id")


class ChangeResult(BaseModel):
    """Outcome of a put, patch or delete."""

    changes: int = Field(..., ge=0, description="Number of documents affected")


__all__ = ["Document", "StoredDocument", "ChangeResult"]
