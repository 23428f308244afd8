"""
Staging Models
---------------

Preview rows produced by an import attempt.

Models:
    - StagedRow: One classified candidate record of a staging session

Staged rows are ephemeral: they are created in bulk by the staging engine,
edited in place while the operator corrects errors, and deleted en masse
when the session is committed or cancelled.
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
from datetime import datetime
from typing import Dict, List, Optional

# --- Third party ---
from sqlalchemy import JSON, DateTime, Enum as SQLEnum, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

# --- Local imports ---
from .base import Base, utcnow
from .enums import StagedRowState


class StagedRow(Base):
    """
    A staged import row awaiting review and commit.

    Attributes:
        id: Primary key
        session_id: Opaque identifier grouping the rows of one import attempt
        row_number: 1-based position in the source file
        fields: Normalized values, kept even when the row is invalid
        prior_fields: Snapshot of the matched record (update rows only)
        matched_record_id: Id of the matched CommunityRecord, if any
        state: Classification (new, update, error, unchanged)
        errors: Human-readable messages, one per failed field
        created_at: When the row was staged

    Notes:
        matched_record_id is deliberately not a foreign key: the record
        may be deleted while the session is under review, and commit
        re-resolves it anyway.
    """

    __tablename__ = "staged_rows"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    session_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    row_number: Mapped[int] = mapped_column(Integer, nullable=False)
    fields: Mapped[Dict[str, str]] = mapped_column(JSON, nullable=False, default=dict)
    prior_fields: Mapped[Optional[Dict[str, str]]] = mapped_column(JSON, nullable=True)
    matched_record_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    state: Mapped[StagedRowState] = mapped_column(
        SQLEnum(StagedRowState, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        index=True,
    )
    errors: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    @property
    def is_committable(self) -> bool:
        """True for rows the commit engine applies."""
        return self.state in (StagedRowState.NEW, StagedRowState.UPDATE)

    def __repr__(self) -> str:
        return (
            f"<StagedRow(session={self.session_id!r}, row={self.row_number}, "
            f"state={self.state.value})>"
        )
