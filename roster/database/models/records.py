"""
Record Models
--------------

Canonical community member records.

Models:
    - CommunityRecord: Committed record with a free-form field map
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
from typing import Dict, Optional

# --- Third party ---
from sqlalchemy import JSON, String
from sqlalchemy.ext.mutable import MutableDict
from sqlalchemy.orm import Mapped, mapped_column

# --- Local imports ---
from .base import Base, TimestampMixin


class CommunityRecord(Base, TimestampMixin):
    """
    A committed community member record.

    The shape of ``fields`` is whatever keys are currently present; it is
    validated at write time against the column dictionary active then.
    Values are normalized strings, and keys keep insertion order.

    Attributes:
        id: Primary key
        fields: Ordered mapping of field name to normalized string value
        natural_key: Canonical national id mirrored from ``fields`` for
            indexed lookup and uniqueness; None when the record has none
    """

    __tablename__ = "community_records"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    fields: Mapped[Dict[str, str]] = mapped_column(
        MutableDict.as_mutable(JSON), nullable=False, default=dict
    )
    natural_key: Mapped[Optional[str]] = mapped_column(
        String(64), unique=True, nullable=True, index=True
    )

    def value(self, name: str) -> Optional[str]:
        """Get a field value, or None if the record does not carry it."""
        return (self.fields or {}).get(name)

    def __repr__(self) -> str:
        return f"<CommunityRecord(id={self.id}, natural_key={self.natural_key!r})>"
