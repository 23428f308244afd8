#!/usr/bin/env python3
"""
staging_manager.py
--------------------
Manages StagedRow persistence, partitioned by staging session.

A session is nothing more than the set of rows sharing a ``session_id``;
it exists while at least one row does.

Usage:
    with db.session_scope():
        db.staging.replace_session(session_id)
        db.staging.add(session_id, 1, {"rut": "12.345.678-5"}, StagedRowState.NEW)
        rows = db.staging.rows(session_id)   # error rows first
"""
from __future__ import annotations

from typing import Dict, List, Optional

from sqlalchemy import case, delete, func, select

from roster.database.decorators import handle_db_errors, log_database_operation
from roster.database.models import StagedRow, StagedRowState

from .base_manager import BaseManager


class StagingManager(BaseManager):
    """Manages staged rows and per-session counters."""

    @handle_db_errors
    @log_database_operation("replace_staging_session")
    def replace_session(self, session_id: str) -> int:
        """
        Discard every row of a session before it is staged again.

        Returns:
            Number of rows removed
        """
        return self.delete_session(session_id)

    @handle_db_errors
    def add(
        self,
        session_id: str,
        row_number: int,
        fields: Dict[str, str],
        state: StagedRowState,
        errors: Optional[List[str]] = None,
        prior_fields: Optional[Dict[str, str]] = None,
        matched_record_id: Optional[int] = None,
    ) -> StagedRow:
        """Persist one staged row."""
        row = StagedRow(
            session_id=session_id,
            row_number=row_number,
            fields=dict(fields),
            state=state,
            errors=list(errors or []),
            prior_fields=dict(prior_fields) if prior_fields is not None else None,
            matched_record_id=matched_record_id,
        )
        self.session.add(row)
        self.session.flush()
        return row

    @handle_db_errors
    def update(
        self,
        row: StagedRow,
        fields: Dict[str, str],
        state: StagedRowState,
        errors: Optional[List[str]] = None,
        prior_fields: Optional[Dict[str, str]] = None,
        matched_record_id: Optional[int] = None,
    ) -> StagedRow:
        """Overwrite a row with the outcome of a new validation pass."""
        row.fields = dict(fields)
        row.state = state
        row.errors = list(errors or [])
        row.prior_fields = dict(prior_fields) if prior_fields is not None else None
        row.matched_record_id = matched_record_id
        self.session.flush()
        return row

    @handle_db_errors
    def get(self, row_id: int) -> Optional[StagedRow]:
        """Retrieve a staged row by id."""
        return self.session.get(StagedRow, row_id)

    @handle_db_errors
    def rows(self, session_id: str) -> List[StagedRow]:
        """Rows of a session in presentation order: errors first, then file order."""
        error_first = case((StagedRow.state == StagedRowState.ERROR, 0), else_=1)
        return list(
            self.session.scalars(
                select(StagedRow)
                .where(StagedRow.session_id == session_id)
                .order_by(error_first, StagedRow.row_number, StagedRow.id)
            )
        )

    @handle_db_errors
    def eligible_rows(self, session_id: str) -> List[StagedRow]:
        """New and update rows of a session, in file order."""
        return list(
            self.session.scalars(
                select(StagedRow)
                .where(StagedRow.session_id == session_id)
                .where(StagedRow.state.in_([StagedRowState.NEW, StagedRowState.UPDATE]))
                .order_by(StagedRow.row_number, StagedRow.id)
            )
        )

    @handle_db_errors
    def counts(self, session_id: str) -> Dict[str, int]:
        """Rows per state (every state present, zero when absent)."""
        counts = {state.value: 0 for state in StagedRowState}
        rows = self.session.execute(
            select(StagedRow.state, func.count())
            .where(StagedRow.session_id == session_id)
            .group_by(StagedRow.state)
        ).all()
        for state, count in rows:
            counts[StagedRowState(state).value] = count
        return counts

    @handle_db_errors
    def has_errors(self, session_id: str) -> bool:
        """True while any row of the session is in the error state."""
        return (
            self.session.scalar(
                select(StagedRow.id)
                .where(StagedRow.session_id == session_id)
                .where(StagedRow.state == StagedRowState.ERROR)
                .limit(1)
            )
            is not None
        )

    @handle_db_errors
    def session_exists(self, session_id: str) -> bool:
        return (
            self.session.scalar(
                select(func.count()).select_from(StagedRow).where(StagedRow.session_id == session_id)
            )
            or 0
        ) > 0

    @handle_db_errors
    @log_database_operation("delete_staged_row")
    def delete_row(self, row_id: int) -> StagedRow:
        """
        Delete one staged row.

        Raises:
            RecordNotFoundError: If no staged row has that id
        """
        row = self._get_or_raise(StagedRow, row_id, "Staged row")
        self.session.delete(row)
        self.session.flush()
        return row

    @handle_db_errors
    def delete_session(self, session_id: str) -> int:
        """Delete every row of a session; returns how many were removed."""
        result = self.session.execute(
            delete(StagedRow).where(StagedRow.session_id == session_id)
        )
        return result.rowcount or 0
