#!/usr/bin/env python3
"""
diff.py
--------------------
Matching and change detection for incoming rows.

A row matches a record by natural key (national id) or, only when both
halves are present, by first + last name. A matched row is an update when
any field differs after trimming, including a non-empty field of the
record that the row no longer carries.

The state of a row is a pure function of its validation errors and this
comparison; it is recomputed on every validation pass.
"""
from __future__ import annotations

from typing import Dict, List, Optional

from roster.core.logging_manager import RosterLogger
from roster.database.managers import RecordManager
from roster.database.models import CommunityRecord, StagedRowState

from .models import Classification, FieldChange


def _text(value) -> str:
    return "" if value is None else str(value).strip()


class DiffEngine:
    """
    Classifies validated rows against the record store.

    Attributes:
        records: RecordManager bound to the current session
        logger: Optional logger
    """

    def __init__(self, records: RecordManager, logger: Optional[RosterLogger] = None) -> None:
        self.records = records
        self.logger = logger

    def match(self, fields: Dict[str, str]) -> Optional[CommunityRecord]:
        """Existing record for a row, or None."""
        return self.records.resolve(fields)

    @staticmethod
    def diff(incoming: Dict[str, str], existing: Dict[str, str]) -> List[FieldChange]:
        """
        Field-by-field differences between a row and a record.

        Args:
            incoming: Normalized values of the row
            existing: Current fields of the record

        Returns:
            Changed fields in row order, then fields the row drops
            (reported with ``new=""``)

        Examples:
            >>> DiffEngine.diff({"name": "Ana María"}, {"name": "Ana"})
            [FieldChange(field='name', old='Ana', new='Ana María')]
        """
        existing = existing or {}
        changes = [
            FieldChange(name, _text(existing.get(name)), _text(value))
            for name, value in incoming.items()
            if _text(value) != _text(existing.get(name))
        ]
        changes.extend(
            FieldChange(name, _text(value), "")
            for name, value in existing.items()
            if name not in incoming and _text(value)
        )
        return changes

    def classify(self, fields: Dict[str, str], errors: List[str]) -> Classification:
        """
        Derive the state of a row.

        Any error makes the row ``error`` regardless of matches. Otherwise
        an unmatched row is ``new``, a matched row with differences is
        ``update`` and a matched row without differences is ``unchanged``;
        both carry the record's fields as prior snapshot.
        """
        if errors:
            return Classification(state=StagedRowState.ERROR)

        record = self.match(fields)
        if record is None:
            return Classification(state=StagedRowState.NEW)

        prior = dict(record.fields or {})
        changes = self.diff(fields, prior)
        if not changes:
            return Classification(
                state=StagedRowState.UNCHANGED,
                matched_record_id=record.id,
                prior_fields=prior,
            )

        return Classification(
            state=StagedRowState.UPDATE,
            matched_record_id=record.id,
            prior_fields=prior,
            changes=changes,
        )
