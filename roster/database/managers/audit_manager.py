#!/usr/bin/env python3
"""
audit_manager.py
--------------------
Append-only audit log: upload, modification and download events.

Every event is written with ``expires_at = timestamp + retention window``.
Expired events are removed by ``cleanup_expired``, never by the writers.

Key Features:
    - Upload lifecycle (open -> completed/failed)
    - Per-record create/update/delete events with an identity context
    - Bulk summary events with aggregate statistics
    - Download events for exports
    - Retention statistics and cleanup

Usage:
    with db.session_scope():
        upload = db.audit.open_upload("admin", "members.csv", 120)
        db.audit.record_create("admin", record.id, record.fields, upload.id)
        db.audit.finalize_upload(upload.id, UploadStatus.COMPLETED)
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Type, Union

from sqlalchemy import delete, func, select

from roster.configs.ingestion_configs import AUDIT_CONTEXT, AUDIT_RETENTION_DAYS
from roster.core.exceptions import DatabaseError
from roster.database.decorators import handle_db_errors, log_database_operation
from roster.database.models import (
    DownloadEvent,
    DownloadFormat,
    ModificationEvent,
    OperationKind,
    SemanticKind,
    UploadEvent,
    UploadStatus,
)
from roster.database.models.base import utcnow

from .base_manager import BaseManager
from .field_manager import FieldManager

AuditEvent = Union[UploadEvent, ModificationEvent, DownloadEvent]

EVENT_KINDS: Dict[str, Type] = {
    "upload": UploadEvent,
    "modification": ModificationEvent,
    "download": DownloadEvent,
}


def _naive(moment: datetime) -> datetime:
    """Drop tzinfo after converting to UTC (SQLite stores naive UTC)."""
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(timezone.utc).replace(tzinfo=None)


class AuditManager(BaseManager):
    """Writes and maintains audit events."""

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _stamp(self, event: AuditEvent) -> AuditEvent:
        now = utcnow()
        event.timestamp = now
        event.expires_at = now + timedelta(days=AUDIT_RETENTION_DAYS)
        self.session.add(event)
        self.session.flush()
        return event

    def operation_context(self, fields: Optional[Dict[str, str]]) -> str:
        """
        One-line identity summary of a record for audit display.

        National id, first name and last name when present; otherwise the
        first two non-empty fields.

        Examples:
            >>> db.audit.operation_context({"rut": "12.345.678-5", "nombre": "Ana"})
            'National ID: 12.345.678-5, First name: Ana'
        """
        if not fields:
            return ""
        dictionary = FieldManager(self.session, self.logger)
        parts = []
        for kind, label in AUDIT_CONTEXT.labels:
            field = dictionary.field_of_kind(SemanticKind(kind))
            if field is not None and fields.get(field.name):
                parts.append(f"{label}: {fields[field.name]}")
        if not parts:
            parts = [
                f"{key}: {value}"
                for key, value in list(fields.items())[: AUDIT_CONTEXT.fallback_count]
                if value
            ]
        return ", ".join(parts)

    # -------------------------------------------------------------------------
    # Uploads
    # -------------------------------------------------------------------------

    @handle_db_errors
    @log_database_operation("open_upload_event")
    def open_upload(
        self,
        actor_id: str,
        file_name: Optional[str],
        row_count: int,
        job_id: Optional[str] = None,
        session_id: Optional[str] = None,
    ) -> UploadEvent:
        """Write an ``in_progress`` upload event."""
        event = UploadEvent(
            actor_id=actor_id,
            file_name=file_name,
            row_count=row_count,
            status=UploadStatus.IN_PROGRESS,
            job_id=job_id,
            session_id=session_id,
        )
        return self._stamp(event)

    @handle_db_errors
    @log_database_operation("finalize_upload_event")
    def finalize_upload(
        self,
        event_id: int,
        status: UploadStatus,
        error_text: Optional[str] = None,
    ) -> UploadEvent:
        """
        Move an upload event to its terminal status.

        Raises:
            RecordNotFoundError: If the event does not exist
            DatabaseError: If the event was already finalized or the status
                is not terminal
        """
        event = self._get_or_raise(UploadEvent, event_id, "Upload event")
        if status == UploadStatus.IN_PROGRESS:
            raise DatabaseError("Upload events can only be finalized as completed or failed")
        if event.status != UploadStatus.IN_PROGRESS:
            raise DatabaseError(
                f"Upload event {event_id} was already finalized ({event.status.value})"
            )
        event.status = status
        event.error_text = error_text
        self.session.flush()
        return event

    # -------------------------------------------------------------------------
    # Modifications
    # -------------------------------------------------------------------------

    @handle_db_errors
    def record_create(
        self,
        actor_id: str,
        record_id: int,
        fields: Dict[str, str],
        upload_event_id: Optional[int] = None,
    ) -> ModificationEvent:
        """Audit the creation of one record."""
        context = self.operation_context(fields)
        return self._stamp(
            ModificationEvent(
                actor_id=actor_id,
                operation=OperationKind.CREATE,
                summary=f"Created record {record_id}" + (f" ({context})" if context else ""),
                context=context,
                record_id=record_id,
                changes=[
                    {"field": name, "old": "", "new": value} for name, value in fields.items()
                ],
                upload_event_id=upload_event_id,
            )
        )

    @handle_db_errors
    def record_update(
        self,
        actor_id: str,
        record_id: int,
        fields: Dict[str, str],
        changes: Iterable[Any],
        upload_event_id: Optional[int] = None,
    ) -> ModificationEvent:
        """
        Audit an update of one record.

        Args:
            changes: FieldChange objects or {"field", "old", "new"} dicts
        """
        change_list = [c.to_dict() if hasattr(c, "to_dict") else dict(c) for c in changes]
        context = self.operation_context(fields)
        changed = ", ".join(c["field"] for c in change_list)
        return self._stamp(
            ModificationEvent(
                actor_id=actor_id,
                operation=OperationKind.UPDATE,
                summary=f"Updated record {record_id}: {changed}" if changed else f"Updated record {record_id}",
                context=context,
                record_id=record_id,
                changes=change_list,
                upload_event_id=upload_event_id,
            )
        )

    @handle_db_errors
    def record_delete(
        self,
        actor_id: str,
        record_id: int,
        fields: Dict[str, str],
    ) -> ModificationEvent:
        """Audit the deletion of one record (its last fields become 'old' values)."""
        context = self.operation_context(fields)
        return self._stamp(
            ModificationEvent(
                actor_id=actor_id,
                operation=OperationKind.DELETE,
                summary=f"Deleted record {record_id}" + (f" ({context})" if context else ""),
                context=context,
                record_id=record_id,
                changes=[
                    {"field": name, "old": value, "new": ""} for name, value in fields.items()
                ],
            )
        )

    @handle_db_errors
    def record_bulk(
        self,
        actor_id: str,
        statistics: Dict[str, int],
        summary: str,
        upload_event_id: Optional[int] = None,
    ) -> ModificationEvent:
        """
        Audit a bulk operation with aggregate statistics.

        Args:
            statistics: created, updated, deleted, total and error_count
        """
        stats = {
            key: int(statistics.get(key, 0))
            for key in ("created", "updated", "deleted", "total", "error_count")
        }
        return self._stamp(
            ModificationEvent(
                actor_id=actor_id,
                operation=OperationKind.BULK,
                summary=summary,
                statistics=stats,
                upload_event_id=upload_event_id,
            )
        )

    # -------------------------------------------------------------------------
    # Downloads
    # -------------------------------------------------------------------------

    @handle_db_errors
    def record_download(
        self,
        actor_id: str,
        fmt: DownloadFormat,
        row_count: int,
        filters: Optional[Dict[str, str]] = None,
        file_name: Optional[str] = None,
    ) -> DownloadEvent:
        """Audit an export of the record store."""
        return self._stamp(
            DownloadEvent(
                actor_id=actor_id,
                format=fmt,
                row_count=row_count,
                filters=dict(filters) if filters else None,
                file_name=file_name,
            )
        )

    # -------------------------------------------------------------------------
    # Reading and retention
    # -------------------------------------------------------------------------

    @handle_db_errors
    def list_events(
        self, kind: Optional[str] = None, limit: Optional[int] = None
    ) -> List[AuditEvent]:
        """
        Events, newest first.

        Args:
            kind: "upload", "modification" or "download"; all kinds when None
            limit: Maximum number of events

        Raises:
            ValueError: If kind is unknown
        """
        if kind is not None and kind not in EVENT_KINDS:
            raise ValueError(f"Unknown event kind: {kind}")
        models = [EVENT_KINDS[kind]] if kind else list(EVENT_KINDS.values())

        events: List[AuditEvent] = []
        for model in models:
            query = select(model).order_by(model.timestamp.desc(), model.id.desc())
            if limit:
                query = query.limit(limit)
            events.extend(self.session.scalars(query))

        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit] if limit else events

    @handle_db_errors
    def stats(self, now: Optional[datetime] = None) -> Dict[str, Dict[str, int]]:
        """
        Event counts by kind and age.

        Returns:
            {kind: {"total", "last_week", "older_than_week",
            "older_than_month", "expired"}} plus a "summary" entry with
            "total", "last_week" and "to_cleanup"
        """
        now = _naive(now or utcnow())
        week_ago = now - timedelta(days=7)
        month_ago = now - timedelta(days=30)

        def count(model, *conditions) -> int:
            query = select(func.count()).select_from(model)
            for condition in conditions:
                query = query.where(condition)
            return self.session.scalar(query) or 0

        result: Dict[str, Dict[str, int]] = {}
        for kind, model in EVENT_KINDS.items():
            result[kind] = {
                "total": count(model),
                "last_week": count(model, model.timestamp >= week_ago),
                "older_than_week": count(model, model.timestamp < week_ago),
                "older_than_month": count(model, model.timestamp < month_ago),
                "expired": count(model, model.expires_at <= now),
            }

        result["summary"] = {
            "total": sum(result[k]["total"] for k in EVENT_KINDS),
            "last_week": sum(result[k]["last_week"] for k in EVENT_KINDS),
            "to_cleanup": sum(result[k]["expired"] for k in EVENT_KINDS),
        }
        return result

    @handle_db_errors
    @log_database_operation("cleanup_audit_events")
    def cleanup_expired(
        self, now: Optional[datetime] = None, older_than_days: Optional[int] = None
    ) -> Dict[str, int]:
        """
        Delete events past their retention.

        Args:
            now: Reference time (default: current UTC time)
            older_than_days: When given, delete events whose timestamp is older
                than this many days instead of using ``expires_at``

        Returns:
            Deleted counts per kind plus "total"
        """
        now = _naive(now or utcnow())
        result: Dict[str, int] = {}
        for kind, model in EVENT_KINDS.items():
            if older_than_days is not None:
                condition = model.timestamp < now - timedelta(days=older_than_days)
            else:
                condition = model.expires_at <= now
            outcome = self.session.execute(
                delete(model).where(condition).execution_options(synchronize_session=False)
            )
            result[kind] = outcome.rowcount or 0

        result["total"] = sum(result.values())
        return result
