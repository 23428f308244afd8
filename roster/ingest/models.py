#!/usr/bin/env python3
"""
models.py
--------------------
Value objects exchanged between the ingestion engines and their callers.

None of these are persisted; staged rows and audit events live in the
database models (roster.database.models).
"""
from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from roster.database.models.enums import StagedRowState


@dataclass
class ValidationResult:
    """
    Outcome of validating one whole record against the column dictionary.

    Attributes:
        values: Normalized values, one per registry field present in the
            input (plus defaults for absent optional fields that have one)
        errors: Human-readable messages, one per failed field
    """

    values: Dict[str, str] = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors


@dataclass(frozen=True)
class FieldChange:
    """One field-level difference between an incoming row and a record."""

    field: str
    old: str
    new: str

    def to_dict(self) -> Dict[str, str]:
        return {"field": self.field, "old": self.old, "new": self.new}


@dataclass
class Classification:
    """
    Result of classifying a validated row against the record store.

    Attributes:
        state: new, update, error or unchanged
        matched_record_id: Id of the matched record, if any
        prior_fields: Snapshot of the matched record (update rows only)
        changes: Field differences (update rows only)
    """

    state: StagedRowState
    matched_record_id: Optional[int] = None
    prior_fields: Optional[Dict[str, str]] = None
    changes: List[FieldChange] = field(default_factory=list)


def empty_counts() -> Dict[str, int]:
    """Per-state counters with every state present."""
    return {state.value: 0 for state in StagedRowState}


@dataclass
class StageSummary:
    """Returned by a staging pass: session id, row total, per-state counts."""

    session_id: str
    total: int
    counts: Dict[str, int] = field(default_factory=empty_counts)


@dataclass
class SessionView:
    """Rows of a staging session in presentation order, with counts."""

    session_id: str
    rows: List[Any] = field(default_factory=list)
    counts: Dict[str, int] = field(default_factory=empty_counts)


@dataclass
class CommitResult:
    """Returned by a commit: how many records were created and updated."""

    created: int = 0
    updated: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return len(self.errors)


class JobStatus(str, Enum):
    """Lifecycle of a bulk job."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """True once the job will not change anymore."""
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


@dataclass
class BulkJob:
    """
    Progress of an asynchronous bulk import.

    Attributes:
        id: Job identifier
        status: pending, processing, completed or failed
        total_rows: Rows submitted
        processed_rows: Rows handled so far (successfully or not)
        errors: One message per failed row, plus the fault of a failed job
        audit_upload_event_id: Upload event opened when the job started
        created: Records inserted
        updated: Records updated
        error_count: Rows that failed
    """

    id: str
    status: JobStatus = JobStatus.PENDING
    total_rows: int = 0
    processed_rows: int = 0
    errors: List[str] = field(default_factory=list)
    audit_upload_event_id: Optional[int] = None
    created: int = 0
    updated: int = 0
    error_count: int = 0

    @property
    def progress_percent(self) -> int:
        """Rounded completion percentage (100 for an empty job)."""
        if self.total_rows <= 0:
            return 100
        return round(self.processed_rows * 100 / self.total_rows)

    def snapshot(self) -> "BulkJob":
        """Independent copy, safe to hand to a poller."""
        return deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "status": self.status.value,
            "total_rows": self.total_rows,
            "processed_rows": self.processed_rows,
            "progress_percent": self.progress_percent,
            "errors": list(self.errors),
            "audit_upload_event_id": self.audit_upload_event_id,
            "created": self.created,
            "updated": self.updated,
            "error_count": self.error_count,
        }
