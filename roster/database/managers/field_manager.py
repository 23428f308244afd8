#!/usr/bin/env python3
"""
field_manager.py
--------------------
Manages the column dictionary (FieldDefinition rows).

Field names are unique case-insensitively and stored lower-cased and
trimmed. Records reference fields by name, so renaming a field rewrites
the key in every stored record inside the same transaction.

Key Features:
    - CRUD operations for field definitions
    - Semantic-kind inference at definition time
    - Rename migration over committed records
    - Bulk upsert of definitions loaded from YAML

Usage:
    with db.session_scope():
        db.fields.create({"name": "RUT", "type": "text", "required": True})
        db.fields.update("rut", {"name": "national id"})
        key_field = db.fields.natural_key_field()
"""
from __future__ import annotations

import re
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func, select

from roster.configs.ingestion_configs import SEMANTIC_HINTS
from roster.core.exceptions import SchemaError
from roster.core.logging_manager import safe_logger
from roster.core.validators import DataValidator
from roster.database.decorators import handle_db_errors, log_database_operation
from roster.database.models import (
    CommunityRecord,
    FieldDefinition,
    FieldType,
    RuleKind,
    SemanticKind,
)

from .base_manager import BaseManager

_INT_ATTRS = ("min_length", "max_length")
_FLOAT_ATTRS = ("min_value", "max_value")
_TEXT_ATTRS = ("description", "rule_spec", "placeholder")


def normalize_field_name(name: Any) -> Optional[str]:
    """Lower-cased, trimmed field name (None when blank)."""
    text = DataValidator.normalize_string(name)
    return text.lower() if text else None


def infer_semantic_kind(
    name: str,
    description: Optional[str] = None,
    rule_kind: Optional[RuleKind] = None,
    rule_spec: Optional[str] = None,
) -> Optional[SemanticKind]:
    """
    Guess the identity role of a field from its definition.

    A field is a national id when its name or description mentions one,
    or when its regex rule either looks like a national-id pattern or
    accepts the sample national ids. First and last names are recognized
    by name only.

    Args:
        name: Normalized field name
        description: Optional free-text description
        rule_kind: Secondary rule kind, if any
        rule_spec: Secondary rule payload, if any

    Returns:
        The inferred SemanticKind, or None
    """
    hints = SEMANTIC_HINTS
    text = " ".join(part for part in (name, description) if part)
    if any(pattern.search(text) for pattern in hints.national_id_names):
        return SemanticKind.NATIONAL_ID

    if rule_kind == RuleKind.REGEX and rule_spec:
        if any(pattern.search(rule_spec) for pattern in hints.national_id_names):
            return SemanticKind.NATIONAL_ID
        try:
            compiled = re.compile(rule_spec)
        except re.error:
            compiled = None
        if compiled and any(compiled.fullmatch(s) for s in hints.national_id_samples):
            return SemanticKind.NATIONAL_ID

    if name in hints.first_name_names:
        return SemanticKind.FIRST_NAME
    if name in hints.last_name_names:
        return SemanticKind.LAST_NAME
    return None


def _parse_enum(enum_class, value: Any, label: str):
    try:
        if enum_class is FieldType:
            return FieldType.parse(value)
        return enum_class(str(value).strip().lower())
    except ValueError:
        raise SchemaError(
            f"Unknown {label}: '{value}' (expected one of {', '.join(enum_class.choices())})"
        )


class FieldManager(BaseManager):
    """
    Manages FieldDefinition operations and the rename migration.

    The registry read interface used by every other component is
    ``list_fields()``.
    """

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    @handle_db_errors
    def list_fields(self) -> List[FieldDefinition]:
        """All field definitions in dictionary order."""
        return list(
            self.session.scalars(
                select(FieldDefinition).order_by(FieldDefinition.position, FieldDefinition.id)
            )
        )

    @handle_db_errors
    def get(self, name: str) -> Optional[FieldDefinition]:
        """
        Retrieve a field definition by name (case-insensitive).

        Returns:
            FieldDefinition if found, None otherwise
        """
        normalized = normalize_field_name(name)
        if not normalized:
            return None
        return self.session.scalars(
            select(FieldDefinition).where(FieldDefinition.name == normalized)
        ).first()

    def exists(self, name: str) -> bool:
        """Check if a field is defined without raising exceptions."""
        return self.get(name) is not None

    def natural_key_field(self) -> Optional[FieldDefinition]:
        """The field carrying the national id, if the dictionary has one."""
        return self.field_of_kind(SemanticKind.NATIONAL_ID)

    def secondary_key_fields(self) -> Optional[Tuple[FieldDefinition, FieldDefinition]]:
        """The (first name, last name) pair, or None unless both exist."""
        first = self.field_of_kind(SemanticKind.FIRST_NAME)
        last = self.field_of_kind(SemanticKind.LAST_NAME)
        if first is None or last is None:
            return None
        return first, last

    def field_of_kind(self, kind: SemanticKind) -> Optional[FieldDefinition]:
        """First defined field tagged with ``kind``."""
        return self.session.scalars(
            select(FieldDefinition)
            .where(FieldDefinition.semantic_kind == kind)
            .order_by(FieldDefinition.position, FieldDefinition.id)
        ).first()

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    @handle_db_errors
    @log_database_operation("create_field")
    def create(self, metadata: Dict[str, Any]) -> FieldDefinition:
        """
        Create a new field definition.

        Args:
            metadata: Dictionary with required key ``name`` and optional keys
                ``type`` (default text), ``required``, ``default``,
                ``description``, ``rule_kind``, ``rule_spec``, ``min_length``,
                ``max_length``, ``min_value``, ``max_value``, ``placeholder``
                and ``semantic_kind``

        Returns:
            Created FieldDefinition

        Raises:
            SchemaError: If the name is blank or taken, or a type/rule/kind
                is unknown

        Notes:
            Without an explicit ``semantic_kind`` the kind is inferred here,
            once. Kinds already carried by another field are not inferred
            a second time.
        """
        name = normalize_field_name(metadata.get("name"))
        if not name:
            raise SchemaError("Field name cannot be empty")
        if self.exists(name):
            raise SchemaError(f"A field named '{name}' already exists")

        position = self.session.scalar(select(func.max(FieldDefinition.position)))
        field = FieldDefinition(name=name, position=(position or 0) + 1)
        self._apply(field, {**metadata, "name": name})

        if "semantic_kind" not in metadata or metadata.get("semantic_kind") is None:
            inferred = infer_semantic_kind(
                field.name, field.description, field.rule_kind, field.rule_spec
            )
            if inferred is not None and self.field_of_kind(inferred) is None:
                field.semantic_kind = inferred

        self.session.add(field)
        self.session.flush()

        if self.logger:
            self.logger.log_debug(
                f"Created field: {name}",
                {
                    "field_id": field.id,
                    "type": field.declared_type.value,
                    "semantic_kind": field.semantic_kind.value if field.semantic_kind else None,
                },
            )
        return field

    @handle_db_errors
    @log_database_operation("update_field")
    def update(self, name: str, metadata: Dict[str, Any]) -> FieldDefinition:
        """
        Update a field definition, migrating records on rename.

        Args:
            name: Current field name
            metadata: Keys to change (same keys as create)

        Returns:
            Updated FieldDefinition

        Raises:
            SchemaError: If the field does not exist, the new name is taken,
                or a type/rule/kind is unknown
        """
        field = self._require(name)
        old_name = field.name

        new_name = old_name
        if "name" in metadata:
            new_name = normalize_field_name(metadata["name"])
            if not new_name:
                raise SchemaError("Field name cannot be empty")
            if new_name != old_name and self.exists(new_name):
                raise SchemaError(f"A field named '{new_name}' already exists")

        self._apply(field, {**metadata, "name": new_name})

        if new_name != old_name:
            migrated = self._rename_in_records(old_name, new_name)
            safe_logger(self.logger).log_info(
                "Renamed field",
                {"from": old_name, "to": new_name, "records_migrated": migrated},
            )

        self.session.flush()
        return field

    @handle_db_errors
    @log_database_operation("delete_field")
    def delete(self, name: str) -> None:
        """
        Delete a field definition.

        Stored records keep their values for the field; use
        RecordManager.prune_obsolete_fields to remove them.

        Raises:
            SchemaError: If the field does not exist
        """
        field = self._require(name)
        self.session.delete(field)
        self.session.flush()

    @log_database_operation("load_field_definitions")
    def load_definitions(self, definitions: Iterable[Dict[str, Any]]) -> Dict[str, int]:
        """
        Create or update many definitions (e.g. from a YAML file).

        Args:
            definitions: Dictionaries accepted by create()

        Returns:
            {"created": n, "updated": m}
        """
        counts = {"created": 0, "updated": 0}
        for metadata in definitions:
            if not isinstance(metadata, dict):
                raise SchemaError(f"Field definition must be a mapping, got {type(metadata).__name__}")
            name = normalize_field_name(metadata.get("name"))
            if name and self.exists(name):
                self.update(name, {k: v for k, v in metadata.items() if k != "name"})
                counts["updated"] += 1
            else:
                self.create(metadata)
                counts["created"] += 1
        return counts

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _require(self, name: str) -> FieldDefinition:
        field = self.get(name)
        if field is None:
            raise SchemaError(f"Field '{name}' is not defined")
        return field

    def _apply(self, field: FieldDefinition, metadata: Dict[str, Any]) -> None:
        """Copy recognized metadata keys onto a definition."""
        field.name = metadata["name"]

        type_value = metadata.get("type", metadata.get("declared_type"))
        if type_value is not None:
            field.declared_type = _parse_enum(FieldType, type_value, "field type")
        elif field.declared_type is None:
            field.declared_type = FieldType.TEXT

        if "required" in metadata:
            field.required = bool(metadata["required"])
        elif field.required is None:
            field.required = False

        for key in ("default", "default_value"):
            if key in metadata:
                field.default_value = DataValidator.normalize_string(metadata[key])

        for attr in _TEXT_ATTRS:
            if attr in metadata:
                setattr(field, attr, DataValidator.normalize_string(metadata[attr]))

        if "rule_kind" in metadata:
            value = metadata["rule_kind"]
            field.rule_kind = _parse_enum(RuleKind, value, "rule kind") if value else None

        for attr in _INT_ATTRS:
            if attr in metadata:
                number = DataValidator.to_float(metadata[attr])
                setattr(field, attr, int(number) if number is not None else None)

        for attr in _FLOAT_ATTRS:
            if attr in metadata:
                setattr(field, attr, DataValidator.to_float(metadata[attr]))

        if metadata.get("semantic_kind") is not None:
            kind = _parse_enum(SemanticKind, metadata["semantic_kind"], "semantic kind")
            holder = self.field_of_kind(kind)
            if holder is not None and holder is not field:
                raise SchemaError(
                    f"Field '{holder.name}' already carries semantic kind '{kind.value}'"
                )
            field.semantic_kind = kind

    def _rename_in_records(self, old_name: str, new_name: str) -> int:
        """Rename a key in every record, preserving value and key order."""
        migrated = 0
        for record in self.session.scalars(select(CommunityRecord)):
            fields = record.fields or {}
            if old_name not in fields:
                continue
            record.fields = {
                (new_name if key == old_name else key): value
                for key, value in fields.items()
            }
            migrated += 1
        return migrated
