#!/usr/bin/env python3
"""
jobs.py
--------------------
Asynchronous bulk import with progress tracking.

A bulk job skips the staging preview: rows are validated and written
directly, each in its own transaction, on a background thread. Callers get
a job id back immediately and poll ``status(job_id)`` for progress.

Lifecycle:
    pending -> processing -> completed | failed

Row failures never fail the job; they are counted and listed in
``errors``. Only an unexpected fault outside the per-row handling moves the
job to ``failed``.

Job state lives in a JobStore. The default InMemoryJobStore is process
local: a job started before a restart reads back as unknown afterwards.
A finished job is discarded once its terminal snapshot has been returned
by status() or wait().

Usage:
    tracker = BatchJobTracker(db, logger=logger)
    job_id, total = tracker.start(rows, actor_id="admin", file_name="members.csv")
    job = tracker.wait(job_id, timeout=60)
    print(job.status, job.progress_percent)
"""
from __future__ import annotations

import threading
import uuid
from abc import ABC, abstractmethod
from concurrent.futures import Future, ThreadPoolExecutor, wait as wait_futures
from typing import Any, Callable, Dict, List, Optional, Tuple

from roster.configs.ingestion_configs import BULK_BATCH_SIZE, BULK_MAX_WORKERS
from roster.core.exceptions import JobNotFoundError, ValidationError
from roster.core.logging_manager import RosterLogger, safe_logger
from roster.database.manager import RosterDB
from roster.database.models import UploadStatus

from .diff import DiffEngine
from .models import BulkJob, JobStatus
from .staging import prepare_row
from .validation import ValidationEngine


# -----------------------------------------------------------------------------
# Job stores
# -----------------------------------------------------------------------------


class JobStore(ABC):
    """Storage for bulk job state."""

    @abstractmethod
    def put(self, job: BulkJob) -> None:
        """Store a new job."""

    @abstractmethod
    def get(self, job_id: str) -> Optional[BulkJob]:
        """Snapshot of a job, or None when unknown."""

    @abstractmethod
    def update(self, job_id: str, mutator: Callable[[BulkJob], None]) -> BulkJob:
        """
        Apply ``mutator`` to a job atomically.

        Raises:
            JobNotFoundError: If the job is unknown
        """

    @abstractmethod
    def discard(self, job_id: str) -> None:
        """Forget a job; unknown ids are ignored."""



class InMemoryJobStore(JobStore):
    """Thread-safe, process-local job store; readers get snapshots."""

    def __init__(self) -> None:
        self._jobs: Dict[str, BulkJob] = {}
        self._lock = threading.Lock()

    def put(self, job: BulkJob) -> None:
        with self._lock:
            self._jobs[job.id] = job.snapshot()

    def get(self, job_id: str) -> Optional[BulkJob]:
        with self._lock:
            job = self._jobs.get(job_id)
            return job.snapshot() if job is not None else None

    def update(self, job_id: str, mutator: Callable[[BulkJob], None]) -> BulkJob:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise JobNotFoundError(f"Bulk job '{job_id}' not found")
            mutator(job)
            return job.snapshot()

    def discard(self, job_id: str) -> None:
        with self._lock:
            self._jobs.pop(job_id, None)


# -----------------------------------------------------------------------------
# Tracker
# -----------------------------------------------------------------------------


class BatchJobTracker:
    """
    Runs bulk imports on a thread pool.

    Attributes:
        db: Database manager
        store: Job state storage
        batch_size: Rows per batch (registry reloaded per batch)
        logger: Optional logger
    """

    def __init__(
        self,
        db: RosterDB,
        store: Optional[JobStore] = None,
        batch_size: int = BULK_BATCH_SIZE,
        max_workers: int = BULK_MAX_WORKERS,
        logger: Optional[RosterLogger] = None,
    ) -> None:
        self.db = db
        self.store = store or InMemoryJobStore()
        self.batch_size = max(1, batch_size)
        self.logger = logger
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="roster-bulk"
        )
        self._futures: Dict[str, Future] = {}

    def start(
        self,
        rows: List[Dict[str, Any]],
        actor_id: str,
        file_name: Optional[str] = None,
    ) -> Tuple[str, int]:
        """
        Register a job and schedule it.

        Args:
            rows: Raw row maps in file order
            actor_id: Who started the import
            file_name: Source file name for the upload event

        Returns:
            (job_id, total_rows); processing continues in the background
        """
        rows = list(rows)
        job_id = str(uuid.uuid4())

        upload_id = self.db.run_in_transaction(
            lambda: self.db.audit.open_upload(
                actor_id, file_name, len(rows), job_id=job_id
            ).id
        )

        self.store.put(
            BulkJob(id=job_id, total_rows=len(rows), audit_upload_event_id=upload_id)
        )
        future = self._executor.submit(self._run, job_id, rows, actor_id, upload_id)
        self._futures[job_id] = future
        future.add_done_callback(lambda _: self._futures.pop(job_id, None))
        safe_logger(self.logger).log_operation(
            "bulk_job_started",
            {"job_id": job_id, "total_rows": len(rows), "file_name": file_name},
        )
        return job_id, len(rows)

    def status(self, job_id: str) -> Optional[BulkJob]:
        """
        Snapshot of a job, or None when unknown.

        A terminal snapshot is handed out once: the job is discarded as
        soon as its completion has been observed.
        """
        return self._observe(self.store.get(job_id))

    def wait(self, job_id: str, timeout: Optional[float] = None) -> BulkJob:
        """
        Block until a job finishes or ``timeout`` seconds pass.

        Returns:
            Latest snapshot (not necessarily terminal after a timeout).
            A terminal snapshot discards the job, like status().

        Raises:
            JobNotFoundError: If the job is unknown
        """
        future = self._futures.get(job_id)
        if future is not None:
            wait_futures([future], timeout=timeout)
        job = self.store.get(job_id)
        if job is None:
            raise JobNotFoundError(f"Bulk job '{job_id}' not found")
        return self._observe(job)

    def _observe(self, job: Optional[BulkJob]) -> Optional[BulkJob]:
        if job is not None and job.status.is_terminal:
            self.store.discard(job.id)
        return job

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting jobs; optionally wait for running ones."""
        self._executor.shutdown(wait=wait)

    # -------------------------------------------------------------------------
    # Background processing
    # -------------------------------------------------------------------------

    def _run(
        self, job_id: str, rows: List[Dict[str, Any]], actor_id: str, upload_id: int
    ) -> None:
        logger = safe_logger(self.logger)

        def begin(job: BulkJob) -> None:
            job.status = JobStatus.PROCESSING

        self.store.update(job_id, begin)

        try:
            for start in range(0, len(rows), self.batch_size):
                batch = rows[start : start + self.batch_size]
                with self.db.session_scope():
                    validator = ValidationEngine(self.db.fields.list_fields(), self.logger)

                for offset, raw in enumerate(batch):
                    row_number = start + offset + 1
                    try:
                        outcome = self._process_row(
                            validator, raw, actor_id, upload_id
                        )
                    except Exception as e:
                        logger.log_error(
                            e, {"operation": "bulk_row", "job_id": job_id, "row": row_number}
                        )
                        self.store.update(job_id, _row_failed(row_number, e))
                        continue
                    self.store.update(job_id, _row_done(outcome))

        except Exception as e:
            logger.log_error(e, {"operation": "bulk_job", "job_id": job_id})
            self._finish(job_id, actor_id, upload_id, fault=e)
            return

        self._finish(job_id, actor_id, upload_id)

    def _process_row(
        self,
        validator: ValidationEngine,
        raw: Dict[str, Any],
        actor_id: str,
        upload_id: int,
    ) -> Optional[str]:
        """
        Validate and write one row in its own transaction, re-run as a
        whole when the database is locked.

        Returns:
            "created", "updated", or None when the record already matched

        Raises:
            ValidationError: If the row fails validation
        """
        result = validator.validate_record(prepare_row(raw), report_unknown=False)
        if not result.valid:
            raise ValidationError("; ".join(result.errors), result.errors)
        values = result.values

        def write() -> Optional[str]:
            records = self.db.records
            audit = self.db.audit

            existing = records.resolve(values)
            if existing is None:
                record = records.insert(values)
                audit.record_create(actor_id, record.id, values, upload_event_id=upload_id)
                return "created"

            changes = DiffEngine.diff(values, dict(existing.fields or {}))
            if not changes:
                return None
            records.upsert(existing.id, values)
            audit.record_update(
                actor_id, existing.id, values, changes, upload_event_id=upload_id
            )
            return "updated"

        return self.db.run_in_transaction(write)

    def _finish(
        self,
        job_id: str,
        actor_id: str,
        upload_id: int,
        fault: Optional[Exception] = None,
    ) -> None:
        """Finalize the upload event, append the bulk summary, set the status."""
        job = self.store.get(job_id)
        status = JobStatus.FAILED if fault is not None else JobStatus.COMPLETED

        def close_upload() -> None:
            self.db.audit.finalize_upload(
                upload_id,
                UploadStatus.FAILED if fault is not None else UploadStatus.COMPLETED,
                error_text=str(fault) if fault is not None else None,
            )
            self.db.audit.record_bulk(
                actor_id,
                {
                    "created": job.created,
                    "updated": job.updated,
                    "total": job.total_rows,
                    "error_count": job.error_count,
                },
                summary=(
                    f"Bulk import {job_id}: {job.created} created, "
                    f"{job.updated} updated, {job.error_count} errors"
                ),
                upload_event_id=upload_id,
            )

        try:
            self.db.run_in_transaction(close_upload)
        except Exception as e:
            safe_logger(self.logger).log_error(
                e, {"operation": "bulk_job_finish", "job_id": job_id}
            )
            status = JobStatus.FAILED
            fault = fault or e

        def finish(current: BulkJob) -> None:
            current.status = status
            if fault is not None:
                current.errors.append(f"job failed: {fault}")

        final = self.store.update(job_id, finish)
        safe_logger(self.logger).log_operation("bulk_job_finished", final.to_dict())


def _row_done(outcome: Optional[str]) -> Callable[[BulkJob], None]:
    def mutate(job: BulkJob) -> None:
        job.processed_rows += 1
        if outcome == "created":
            job.created += 1
        elif outcome == "updated":
            job.updated += 1

    return mutate


def _row_failed(row_number: int, error: Exception) -> Callable[[BulkJob], None]:
    def mutate(job: BulkJob) -> None:
        job.processed_rows += 1
        job.error_count += 1
        job.errors.append(f"row {row_number}: {error}")

    return mutate
