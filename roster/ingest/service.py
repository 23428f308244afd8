#!/usr/bin/env python3
"""
service.py
--------------------
ImportService: the single entry point for callers of the ingestion system.

Groups three kinds of operations over one RosterDB:

    Preview path     stage_batch, get_session, revise_staged_row,
                     delete_staged_row, cancel_session, commit_session
    Bulk path        start_bulk_job, get_job_status, wait_for_job
    Direct edits     create_record, update_record, delete_record,
                     search_records, prune_obsolete_fields, export_records

Direct edits validate the whole record (unknown columns are dropped, not
reported), re-check natural-key uniqueness inside their transaction and
write one audit event each.

Usage:
    service = ImportService(db, logger=logger)
    summary = service.stage_batch(rows)
    view = service.get_session(summary.session_id)
    result = service.commit_session(summary.session_id, actor_id="admin")
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from roster.core.exceptions import (
    RecordNotFoundError,
    SessionNotFoundError,
    ValidationError,
)
from roster.core.logging_manager import RosterLogger, safe_logger
from roster.configs.ingestion_configs import BULK_BATCH_SIZE, BULK_MAX_WORKERS
from roster.database.decorators import DatabaseOperation
from roster.database.export_manager import ExportManager
from roster.database.manager import RosterDB
from roster.database.models import CommunityRecord, DownloadFormat, StagedRow

from .commit import CommitEngine
from .diff import DiffEngine
from .jobs import BatchJobTracker, JobStore
from .models import BulkJob, CommitResult, FieldChange, SessionView, StageSummary
from .staging import StagingEngine, prepare_row
from .validation import ValidationEngine


class ImportService:
    """
    Facade over staging, commit, bulk jobs and direct record edits.

    Attributes:
        db: Database manager
        staging: Preview-path engine
        committer: Commit engine
        jobs: Bulk job tracker
        exporter: Record export writer
        logger: Optional logger
    """

    def __init__(
        self,
        db: RosterDB,
        logger: Optional[RosterLogger] = None,
        job_store: Optional[JobStore] = None,
        batch_size: int = BULK_BATCH_SIZE,
        max_workers: int = BULK_MAX_WORKERS,
    ) -> None:
        self.db = db
        self.logger = logger
        self.staging = StagingEngine(db, logger)
        self.committer = CommitEngine(db, logger)
        self.jobs = BatchJobTracker(
            db,
            store=job_store,
            batch_size=batch_size,
            max_workers=max_workers,
            logger=logger,
        )
        self.exporter = ExportManager(logger)

    def close(self) -> None:
        """Wait for running bulk jobs and release the worker pool."""
        self.jobs.shutdown(wait=True)

    # -------------------------------------------------------------------------
    # Preview path
    # -------------------------------------------------------------------------

    def stage_batch(
        self, rows: List[Dict[str, Any]], session_id: Optional[str] = None
    ) -> StageSummary:
        return self.staging.stage_batch(rows, session_id=session_id)

    def get_session(self, session_id: str) -> SessionView:
        """
        Staged rows of a session, errors first, with per-state counts.

        Raises:
            SessionNotFoundError: If the session has no staged rows
        """
        with self.db.session_scope():
            if not self.db.staging.session_exists(session_id):
                raise SessionNotFoundError(f"Staging session '{session_id}' not found")
            return SessionView(
                session_id=session_id,
                rows=self.db.staging.rows(session_id),
                counts=self.db.staging.counts(session_id),
            )

    def revise_staged_row(self, row_id: int, fields: Dict[str, Any]) -> StagedRow:
        return self.staging.restage_row(row_id, fields)

    def delete_staged_row(self, row_id: int) -> StagedRow:
        """
        Drop one row from its session.

        Raises:
            RecordNotFoundError: If the row does not exist
        """
        with self.db.session_scope():
            return self.db.staging.delete_row(row_id)

    def cancel_session(self, session_id: str) -> int:
        """
        Discard a staging session without writing anything.

        Returns:
            Number of staged rows removed

        Raises:
            SessionNotFoundError: If the session has no staged rows
        """
        with self.db.session_scope():
            if not self.db.staging.session_exists(session_id):
                raise SessionNotFoundError(f"Staging session '{session_id}' not found")
            removed = self.db.staging.delete_session(session_id)
        safe_logger(self.logger).log_operation(
            "session_cancelled", {"session_id": session_id, "rows": removed}
        )
        return removed

    def commit_session(
        self, session_id: str, actor_id: str, file_name: Optional[str] = None
    ) -> CommitResult:
        return self.committer.commit(session_id, actor_id, file_name=file_name)

    # -------------------------------------------------------------------------
    # Bulk path
    # -------------------------------------------------------------------------

    def start_bulk_job(
        self,
        rows: List[Dict[str, Any]],
        actor_id: str,
        file_name: Optional[str] = None,
    ) -> Tuple[str, int]:
        return self.jobs.start(rows, actor_id, file_name=file_name)

    def get_job_status(self, job_id: str) -> Optional[BulkJob]:
        return self.jobs.status(job_id)

    def wait_for_job(self, job_id: str, timeout: Optional[float] = None) -> BulkJob:
        return self.jobs.wait(job_id, timeout=timeout)

    # -------------------------------------------------------------------------
    # Direct edits
    # -------------------------------------------------------------------------

    def _validate(self, data: Dict[str, Any]) -> Dict[str, str]:
        """
        Whole-record validation for direct edits.

        Raises:
            ValidationError: Carrying every field message
        """
        validator = ValidationEngine(self.db.fields.list_fields(), self.logger)
        result = validator.validate_record(prepare_row(data), report_unknown=False)
        if not result.valid:
            raise ValidationError(
                f"Validation failed: {'; '.join(result.errors)}", result.errors
            )
        return result.values

    def create_record(self, data: Dict[str, Any], actor_id: str) -> CommunityRecord:
        """
        Validate and insert one record.

        Raises:
            ValidationError: If the data fails validation
            ConflictError: If the national id is already taken
        """
        with DatabaseOperation(self.logger, "create_record"):
            with self.db.session_scope():
                values = self._validate(data)
                record = self.db.records.insert(values)
                self.db.audit.record_create(actor_id, record.id, values)
                return record

    def update_record(
        self, record_id: int, data: Dict[str, Any], actor_id: str
    ) -> CommunityRecord:
        """
        Merge ``data`` into a record and validate the result.

        Keys absent from ``data`` keep their current value. When nothing
        changes, no write and no audit event happen.

        Raises:
            RecordNotFoundError: If the record does not exist
            ValidationError: If the merged record fails validation
            ConflictError: If the new national id belongs to another record
        """
        with DatabaseOperation(self.logger, "update_record", details={"record_id": record_id}):
            with self.db.session_scope():
                record = self.db.records.get(record_id)
                if record is None:
                    raise RecordNotFoundError(f"Record with id={record_id} not found")
                current = dict(record.fields or {})
                values = self._validate({**current, **prepare_row(data)})

                changes = DiffEngine.diff(values, current)
                if not changes:
                    return record
                record = self.db.records.upsert(record_id, values)
                self.db.audit.record_update(actor_id, record_id, values, changes)
                return record

    def delete_record(self, record_id: int, actor_id: str) -> CommunityRecord:
        """
        Delete one record and audit its last field values.

        Raises:
            RecordNotFoundError: If the record does not exist
        """
        with DatabaseOperation(self.logger, "delete_record", details={"record_id": record_id}):
            with self.db.session_scope():
                record = self.db.records.delete(record_id)
                self.db.audit.record_delete(actor_id, record_id, dict(record.fields or {}))
                return record

    def search_records(self, filters: Optional[Dict[str, str]] = None) -> List[CommunityRecord]:
        with self.db.session_scope():
            return self.db.records.search(filters)

    def prune_obsolete_fields(self, actor_id: str) -> int:
        """
        Remove keys no longer in the column dictionary from every record.

        Each touched record gets an update event listing the dropped keys.

        Returns:
            Number of records touched
        """
        with DatabaseOperation(self.logger, "prune_obsolete_fields", log_start=True):
            with self.db.session_scope():
                known = {f.name for f in self.db.fields.list_fields()}
                touched = self.db.records.prune_obsolete_fields(known)
                for record, removed in touched:
                    changes = [FieldChange(name, str(old), "") for name, old in removed.items()]
                    self.db.audit.record_update(
                        actor_id, record.id, dict(record.fields or {}), changes
                    )
        return len(touched)

    def export_records(
        self,
        fmt: Union[DownloadFormat, str],
        output_file: Union[str, Path],
        actor_id: str,
        filters: Optional[Dict[str, str]] = None,
    ) -> Path:
        """
        Export (optionally filtered) records and audit the download.

        Raises:
            ExportError: On an unknown format or a write failure
        """
        with self.db.session_scope():
            records = self.db.records.search(filters)
            names = [f.name for f in self.db.fields.list_fields()]
            path = self.exporter.export_records(records, names, fmt, output_file)
            self.db.audit.record_download(
                actor_id,
                DownloadFormat(fmt),
                len(records),
                filters={k: v for k, v in (filters or {}).items() if v},
                file_name=path.name,
            )
        return path
