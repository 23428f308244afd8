#!/usr/bin/env python3
"""
staging.py
--------------------
Preview path: raw rows -> validated, classified staged rows.

Each staging pass runs synchronously inside one transaction:

    1. discard earlier rows of the same session (re-runs replace, never add)
    2. validate every row against the column dictionary, reporting
       unknown columns as errors
    3. classify each row (new, update, unchanged, error)
    4. persist the rows with their errors and match snapshot

A row that fails unexpectedly is staged as ``error`` with the failure
text; it never aborts the batch.

Usage:
    engine = StagingEngine(db, logger)
    summary = engine.stage_batch([{"RUT": "12345678-5", "Nombre": "Ana"}])
    row = engine.restage_row(row_id, {"rut": "12345678-5", "nombre": "Ana"})
"""
from __future__ import annotations

import uuid
from typing import Any, Dict, Iterable, List, Optional, Tuple

from roster.core.exceptions import RecordNotFoundError
from roster.core.logging_manager import RosterLogger, safe_logger
from roster.core.validators import DataValidator
from roster.database.decorators import DatabaseOperation
from roster.database.manager import RosterDB
from roster.database.models import StagedRow, StagedRowState

from .diff import DiffEngine
from .models import Classification, StageSummary
from .validation import ValidationEngine, normalize_key


def prepare_row(raw: Dict[str, Any]) -> Dict[str, str]:
    """
    Normalize a raw row map.

    Keys are lower-cased and trimmed, None values are skipped and every
    other value becomes a trimmed string.
    """
    prepared: Dict[str, str] = {}
    for key, value in raw.items():
        if value is None:
            continue
        prepared[normalize_key(key)] = DataValidator.normalize_string(value) or ""
    return prepared


class StagingEngine:
    """
    Stages import rows for review.

    Attributes:
        db: Database manager
        logger: Optional logger
    """

    def __init__(self, db: RosterDB, logger: Optional[RosterLogger] = None) -> None:
        self.db = db
        self.logger = logger

    def _evaluate(
        self,
        validator: ValidationEngine,
        differ: DiffEngine,
        fields: Dict[str, str],
        row_number: int,
    ) -> Tuple[Dict[str, str], List[str], Classification]:
        """Validate and classify one prepared row."""
        try:
            result = validator.validate_record(fields, report_unknown=True)
            classification = differ.classify(result.values, result.errors)
            return result.values, result.errors, classification
        except Exception as e:
            safe_logger(self.logger).log_error(e, {"operation": "stage_row", "row": row_number})
            return (
                fields,
                [f"unexpected error: {e}"],
                Classification(state=StagedRowState.ERROR),
            )

    def stage_batch(
        self, rows: Iterable[Dict[str, Any]], session_id: Optional[str] = None
    ) -> StageSummary:
        """
        Stage a batch of raw rows under one session.

        Args:
            rows: Raw row maps in file order
            session_id: Session to (re)stage; a new UUID when omitted

        Returns:
            StageSummary with the session id, row total and per-state counts
        """
        session_id = session_id or str(uuid.uuid4())
        total = 0

        with DatabaseOperation(
            self.logger, "stage_batch", log_start=True, details={"session_id": session_id}
        ):
            with self.db.session_scope():
                validator = ValidationEngine(self.db.fields.list_fields(), self.logger)
                differ = DiffEngine(self.db.records, self.logger)

                replaced = self.db.staging.replace_session(session_id)
                if replaced:
                    safe_logger(self.logger).log_info(
                        "Replaced staged rows", {"session_id": session_id, "rows": replaced}
                    )

                for row_number, raw in enumerate(rows, start=1):
                    total = row_number
                    fields, errors, classification = self._evaluate(
                        validator, differ, prepare_row(raw), row_number
                    )
                    self.db.staging.add(
                        session_id,
                        row_number,
                        fields,
                        classification.state,
                        errors=errors,
                        prior_fields=classification.prior_fields,
                        matched_record_id=classification.matched_record_id,
                    )

                counts = self.db.staging.counts(session_id)

        return StageSummary(session_id=session_id, total=total, counts=counts)

    def restage_row(self, row_id: int, fields: Dict[str, Any]) -> StagedRow:
        """
        Replace the fields of a staged row and classify it again.

        Args:
            row_id: Staged row id
            fields: Complete corrected field map

        Returns:
            The updated StagedRow

        Raises:
            RecordNotFoundError: If the row does not exist
        """
        with DatabaseOperation(self.logger, "restage_row", details={"row_id": row_id}):
            with self.db.session_scope():
                row = self.db.staging.get(row_id)
                if row is None:
                    raise RecordNotFoundError(f"Staged row with id={row_id} not found")

                validator = ValidationEngine(self.db.fields.list_fields(), self.logger)
                differ = DiffEngine(self.db.records, self.logger)
                values, errors, classification = self._evaluate(
                    validator, differ, prepare_row(fields), row.row_number
                )
                return self.db.staging.update(
                    row,
                    values,
                    classification.state,
                    errors=errors,
                    prior_fields=classification.prior_fields,
                    matched_record_id=classification.matched_record_id,
                )
