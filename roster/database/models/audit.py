"""
Audit Models
-------------

Append-only audit trail for uploads, record modifications and downloads.

Models:
    - UploadEvent: One import attempt (staged commit or bulk job)
    - ModificationEvent: A create/update/delete of one record, or a bulk summary
    - DownloadEvent: One export of the record store

Every event carries ``expires_at`` (timestamp + retention window); the
cleanup job deletes events past it.
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
from typing import Any, Dict, List, Optional

# --- Third party ---
from sqlalchemy import JSON, Enum as SQLEnum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

# --- Local imports ---
from .base import AuditEventMixin, Base
from .enums import DownloadFormat, OperationKind, UploadStatus


class UploadEvent(Base, AuditEventMixin):
    """
    Audit entry for an import attempt.

    Opened as ``in_progress`` when a commit or bulk job starts and
    finalized exactly once as ``completed`` or ``failed``.

    Attributes:
        id: Primary key
        file_name: Name of the uploaded file, if known
        row_count: Number of rows in the import
        status: in_progress, completed or failed
        error_text: Failure description for failed uploads
        job_id: Bulk job identifier (bulk path only)
        session_id: Staging session identifier (staged path only)
    """

    __tablename__ = "upload_events"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    file_name: Mapped[Optional[str]] = mapped_column(String(500))
    row_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[UploadStatus] = mapped_column(
        SQLEnum(UploadStatus, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=UploadStatus.IN_PROGRESS,
    )
    error_text: Mapped[Optional[str]] = mapped_column(Text)
    job_id: Mapped[Optional[str]] = mapped_column(String(64), index=True)
    session_id: Mapped[Optional[str]] = mapped_column(String(64), index=True)

    modifications: Mapped[List["ModificationEvent"]] = relationship(
        back_populates="upload"
    )

    def __repr__(self) -> str:
        return f"<UploadEvent(id={self.id}, status={self.status.value}, rows={self.row_count})>"


class ModificationEvent(Base, AuditEventMixin):
    """
    Audit entry for a change to the record store.

    Attributes:
        id: Primary key
        operation: create, update, delete or bulk
        summary: Human-readable one-line description
        context: Identity summary of the affected record (national id, names)
        record_id: Affected record, if a single record was touched
        changes: Per-field ``{"field", "old", "new"}`` tuples (single-record edits)
        statistics: Aggregate counters (bulk operations)
        upload_event_id: Originating upload, if any

    Notes:
        record_id is not a foreign key so that events survive the record's
        deletion.
    """

    __tablename__ = "modification_events"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    operation: Mapped[OperationKind] = mapped_column(
        SQLEnum(OperationKind, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        index=True,
    )
    summary: Mapped[str] = mapped_column(Text, nullable=False, default="")
    context: Mapped[Optional[str]] = mapped_column(Text)
    record_id: Mapped[Optional[int]] = mapped_column(Integer, index=True)
    changes: Mapped[Optional[List[Dict[str, Any]]]] = mapped_column(JSON)
    statistics: Mapped[Optional[Dict[str, int]]] = mapped_column(JSON)
    upload_event_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("upload_events.id", ondelete="SET NULL"), index=True
    )

    upload: Mapped[Optional[UploadEvent]] = relationship(back_populates="modifications")

    def __repr__(self) -> str:
        return f"<ModificationEvent(id={self.id}, operation={self.operation.value})>"


class DownloadEvent(Base, AuditEventMixin):
    """
    Audit entry for an export of the record store.

    Attributes:
        id: Primary key
        format: csv or json
        row_count: Number of exported records
        filters: Search filters applied to the export
        file_name: Output file name
    """

    __tablename__ = "download_events"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    format: Mapped[DownloadFormat] = mapped_column(
        SQLEnum(DownloadFormat, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
    )
    row_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    filters: Mapped[Optional[Dict[str, str]]] = mapped_column(JSON)
    file_name: Mapped[Optional[str]] = mapped_column(String(500))

    def __repr__(self) -> str:
        return f"<DownloadEvent(id={self.id}, format={self.format.value}, rows={self.row_count})>"
