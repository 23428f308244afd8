#!/usr/bin/env python3
"""
record_manager.py
--------------------
Manages committed CommunityRecord rows (the record store).

Records are free-form field maps. The value of the national-id field is
mirrored into the indexed, unique ``natural_key`` column on every write,
which makes natural-key lookups cheap and lets the database refuse
duplicates. The first/last name pair is looked up inside the JSON map.

Key Features:
    - Natural-key and secondary-key lookups
    - Insert / upsert / delete
    - Case-insensitive substring search per field
    - Pruning of keys no longer defined in the column dictionary

Usage:
    with db.session_scope():
        record = db.records.resolve({"rut": "12.345.678-5"})
        if record is None:
            record = db.records.insert({"rut": "12.345.678-5", "nombre": "Ana"})
"""
from __future__ import annotations

from typing import Dict, List, Optional, Set, Tuple

from sqlalchemy import func, select

from roster.core.exceptions import ConflictError
from roster.database.decorators import handle_db_errors, log_database_operation
from roster.database.models import CommunityRecord
from roster.ingest import national_id

from .base_manager import BaseManager
from .field_manager import FieldManager


def natural_key_value(value: Optional[str]) -> Optional[str]:
    """Indexed form of a national-id value (canonical when it looks like one)."""
    if value is None or not str(value).strip():
        return None
    text = str(value).strip()
    return national_id.canonical(text) if national_id.looks_like(text) else text


class RecordManager(BaseManager):
    """
    Manages the canonical record store.

    Every write re-derives ``natural_key`` from the current national-id
    field, so callers only ever pass field maps.
    """

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    @handle_db_errors
    def get(self, record_id: int) -> Optional[CommunityRecord]:
        """Retrieve a record by id."""
        return self.session.get(CommunityRecord, record_id)

    @handle_db_errors
    def find_by_natural_key(self, value: Optional[str]) -> Optional[CommunityRecord]:
        """
        Find the record whose national id equals ``value``.

        Punctuated and compact spellings of the same id are equivalent.
        """
        key = natural_key_value(value)
        if key is None:
            return None
        return self.session.scalars(
            select(CommunityRecord).where(CommunityRecord.natural_key == key)
        ).first()

    @handle_db_errors
    def find_by_secondary_key(
        self, first: Optional[str], last: Optional[str]
    ) -> Optional[CommunityRecord]:
        """
        Find a record by first and last name (trimmed, case-insensitive).

        Returns None unless both values are given and the column dictionary
        defines both name fields. When several records match, the oldest wins.
        """
        if not first or not last or not first.strip() or not last.strip():
            return None
        pair = self._dictionary.secondary_key_fields()
        if pair is None:
            return None
        first_field, last_field = (field.name for field in pair)

        first_expr = func.lower(func.trim(CommunityRecord.fields[first_field].as_string()))
        last_expr = func.lower(func.trim(CommunityRecord.fields[last_field].as_string()))
        return self.session.scalars(
            select(CommunityRecord)
            .where(first_expr == first.strip().lower())
            .where(last_expr == last.strip().lower())
            .order_by(CommunityRecord.id)
        ).first()

    def resolve(self, fields: Dict[str, str]) -> Optional[CommunityRecord]:
        """
        Match a field map against the store.

        The natural key decides when the row carries one; otherwise the
        first/last name pair is tried, only when both halves are present.
        """
        dictionary = self._dictionary

        key_field = dictionary.natural_key_field()
        if key_field is not None and fields.get(key_field.name):
            return self.find_by_natural_key(fields[key_field.name])

        pair = dictionary.secondary_key_fields()
        if pair is not None:
            first, last = pair
            return self.find_by_secondary_key(fields.get(first.name), fields.get(last.name))
        return None

    @handle_db_errors
    def all(self) -> List[CommunityRecord]:
        """All records, oldest first."""
        return list(self.session.scalars(select(CommunityRecord).order_by(CommunityRecord.id)))

    @handle_db_errors
    def count(self) -> int:
        return self.session.scalar(select(func.count()).select_from(CommunityRecord)) or 0

    @handle_db_errors
    @log_database_operation("search_records")
    def search(self, filters: Optional[Dict[str, str]] = None) -> List[CommunityRecord]:
        """
        Records whose fields contain every filter value.

        Args:
            filters: Field name -> substring (case-insensitive). Blank values
                are ignored.

        Returns:
            Matching records, oldest first
        """
        query = select(CommunityRecord).order_by(CommunityRecord.id)
        for name, needle in (filters or {}).items():
            if needle is None or not str(needle).strip():
                continue
            key = str(name).strip().lower()
            query = query.where(
                func.lower(CommunityRecord.fields[key].as_string()).contains(
                    str(needle).strip().lower(), autoescape=True
                )
            )
        return list(self.session.scalars(query))

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    @handle_db_errors
    @log_database_operation("insert_record")
    def insert(self, fields: Dict[str, str]) -> CommunityRecord:
        """
        Insert a new record.

        Raises:
            ConflictError: If another record already holds the natural key
        """
        key = self._natural_key_of(fields)
        self._ensure_key_free(key)
        record = CommunityRecord(fields=dict(fields), natural_key=key)
        self.session.add(record)
        self.session.flush()
        return record

    @handle_db_errors
    @log_database_operation("upsert_record")
    def upsert(self, record_id: int, fields: Dict[str, str]) -> CommunityRecord:
        """
        Replace the fields of record ``record_id``, creating it if missing.

        Raises:
            ConflictError: If another record already holds the natural key
        """
        key = self._natural_key_of(fields)
        self._ensure_key_free(key, exclude_id=record_id)

        record = self.session.get(CommunityRecord, record_id)
        if record is None:
            record = CommunityRecord(id=record_id)
            self.session.add(record)
        record.fields = dict(fields)
        record.natural_key = key
        self.session.flush()
        return record

    @handle_db_errors
    @log_database_operation("delete_record")
    def delete(self, record_id: int) -> CommunityRecord:
        """
        Delete a record.

        Returns:
            The deleted record (detached field values stay readable)

        Raises:
            RecordNotFoundError: If no record has that id
        """
        record = self._get_or_raise(CommunityRecord, record_id, "Record")
        self.session.delete(record)
        self.session.flush()
        return record

    @handle_db_errors
    @log_database_operation("prune_obsolete_fields")
    def prune_obsolete_fields(
        self, known_fields: Set[str]
    ) -> List[Tuple[CommunityRecord, Dict[str, str]]]:
        """
        Remove keys that are no longer defined in the column dictionary.

        Args:
            known_fields: Names currently defined in the dictionary

        Returns:
            (record, removed) for every touched record, where removed maps
            each dropped key to its former value
        """
        touched = []
        for record in self.all():
            fields = record.fields or {}
            removed = {k: v for k, v in fields.items() if k not in known_fields}
            if not removed:
                continue
            record.fields = {k: v for k, v in fields.items() if k in known_fields}
            record.natural_key = self._natural_key_of(record.fields)
            touched.append((record, removed))
        self.session.flush()
        return touched

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @property
    def _dictionary(self) -> FieldManager:
        """Column dictionary on the same session."""
        return FieldManager(self.session, self.logger)

    def _natural_key_of(self, fields: Dict[str, str]) -> Optional[str]:
        key_field = self._dictionary.natural_key_field()
        if key_field is None:
            return None
        return natural_key_value(fields.get(key_field.name))

    def _ensure_key_free(self, key: Optional[str], exclude_id: Optional[int] = None) -> None:
        """
        Re-check natural-key uniqueness inside the writing transaction.

        Raises:
            ConflictError: If another record holds ``key``
        """
        if key is None:
            return
        holder = self.find_by_natural_key(key)
        if holder is not None and holder.id != exclude_id:
            raise ConflictError(
                f"A record with national id '{key}' already exists (id={holder.id})"
            )
