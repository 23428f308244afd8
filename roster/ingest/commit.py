#!/usr/bin/env python3
"""
commit.py
--------------------
Transactional application of a staging session to the record store.

Preconditions (checked before any write):
    - the session exists                      else SessionNotFoundError
    - no staged row is in the ``error`` state  else CommitRefusedError

Inside one transaction, every ``new``/``update`` row is re-resolved against
the current store in file order and applied inside its own SAVEPOINT. A
row that hits a conflict or a vanished record rolls back only its own
savepoint and is reported as ``row N: message``; the rest of the session
still commits. Any other exception rolls back the whole commit.

Audit trail per commit:
    - one upload event (completed, or failed when a row failed)
    - one create/update event per applied row
    - one bulk summary event (created, updated, total, error_count)
"""
from __future__ import annotations

from typing import Optional

from roster.core.exceptions import (
    CommitRefusedError,
    ConflictError,
    RecordNotFoundError,
    SessionNotFoundError,
    ValidationError,
)
from roster.core.logging_manager import RosterLogger, safe_logger
from roster.database.decorators import DatabaseOperation
from roster.database.manager import RosterDB
from roster.database.models import StagedRow, StagedRowState, UploadStatus

from .diff import DiffEngine
from .models import CommitResult

# Failures that skip a row instead of aborting the commit
ROW_ERRORS = (ConflictError, RecordNotFoundError, ValidationError)


class CommitEngine:
    """
    Applies staged sessions.

    Attributes:
        db: Database manager
        logger: Optional logger
    """

    def __init__(self, db: RosterDB, logger: Optional[RosterLogger] = None) -> None:
        self.db = db
        self.logger = logger

    def commit(
        self, session_id: str, actor_id: str, file_name: Optional[str] = None
    ) -> CommitResult:
        """
        Commit every new/update row of a session.

        Args:
            session_id: Staging session to apply
            actor_id: Who performs the commit (recorded in the audit log)
            file_name: Source file name for the upload event

        Returns:
            CommitResult with created/updated counts and per-row errors

        Raises:
            SessionNotFoundError: If the session has no staged rows
            CommitRefusedError: If any staged row is in the error state
        """
        with DatabaseOperation(
            self.logger, "commit_session", log_start=True, details={"session_id": session_id}
        ):
            with self.db.session_scope() as session:
                staging = self.db.staging
                audit = self.db.audit

                if not staging.session_exists(session_id):
                    raise SessionNotFoundError(f"Staging session '{session_id}' not found")
                if staging.has_errors(session_id):
                    error_rows = staging.counts(session_id)[StagedRowState.ERROR.value]
                    raise CommitRefusedError(
                        f"Cannot commit while errors exist ({error_rows} rows)"
                    )

                rows = staging.eligible_rows(session_id)
                upload = audit.open_upload(
                    actor_id, file_name, len(rows), session_id=session_id
                )

                result = CommitResult()
                for row in rows:
                    try:
                        with session.begin_nested():
                            created = self._apply_row(row, actor_id, upload.id)
                    except ROW_ERRORS as e:
                        result.errors.append(f"row {row.row_number}: {e}")
                        safe_logger(self.logger).log_warning(
                            "Row skipped during commit",
                            {"session_id": session_id, "row": row.row_number, "error": str(e)},
                        )
                        continue
                    if created:
                        result.created += 1
                    else:
                        result.updated += 1

                audit.record_bulk(
                    actor_id,
                    {
                        "created": result.created,
                        "updated": result.updated,
                        "total": len(rows),
                        "error_count": result.error_count,
                    },
                    summary=(
                        f"Committed session {session_id}: {result.created} created, "
                        f"{result.updated} updated, {result.error_count} errors"
                    ),
                    upload_event_id=upload.id,
                )
                audit.finalize_upload(
                    upload.id,
                    UploadStatus.FAILED if result.errors else UploadStatus.COMPLETED,
                    error_text="; ".join(result.errors) or None,
                )
                staging.delete_session(session_id)

        safe_logger(self.logger).log_operation(
            "session_committed",
            {
                "session_id": session_id,
                "created": result.created,
                "updated": result.updated,
                "errors": result.error_count,
            },
        )
        return result

    def _apply_row(self, row: StagedRow, actor_id: str, upload_id: int) -> bool:
        """
        Write one staged row; True when a record was created.

        Every row is re-resolved against the current store first. New rows
        are inserted; one that now matches an existing record (by natural
        key or by first and last name) is a conflict. Update rows overwrite
        their matched record; a record deleted since staging is inserted
        again as new, under the same conflict check.
        """
        records = self.db.records
        audit = self.db.audit
        fields = dict(row.fields)

        target = None
        if row.state == StagedRowState.UPDATE and row.matched_record_id is not None:
            target = records.get(row.matched_record_id)

        current = records.resolve(fields)

        if target is None:
            if current is not None:
                raise ConflictError(
                    f"Row now matches existing record id={current.id}; stage it again to update"
                )
            record = records.insert(fields)
            audit.record_create(actor_id, record.id, fields, upload_event_id=upload_id)
            return True

        if current is not None and current.id != target.id:
            raise ConflictError(
                f"Row now matches record id={current.id}, not the staged match id={target.id}"
            )

        changes = DiffEngine.diff(fields, dict(target.fields or {}))
        record = records.upsert(target.id, fields)
        audit.record_update(actor_id, record.id, fields, changes, upload_event_id=upload_id)
        return False
