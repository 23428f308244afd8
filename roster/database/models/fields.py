"""
Column Dictionary Models
-------------------------

Models for the administrator-defined field registry.

Models:
    - FieldDefinition: One entry of the column dictionary

Records are free-form maps keyed by field name, so a FieldDefinition is
referenced by name rather than by id. Renaming a field migrates the key in
every stored record (see FieldManager.update).
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
from typing import Any, Dict, Optional

# --- Third party ---
from sqlalchemy import Boolean, Enum as SQLEnum, Float, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

# --- Local imports ---
from .base import Base, TimestampMixin
from .enums import FieldType, RuleKind, SemanticKind


class FieldDefinition(Base, TimestampMixin):
    """
    Field definition in the column dictionary.

    Attributes:
        id: Primary key
        name: Unique field name, stored lower-cased and trimmed
        declared_type: Value type enforced by the validation engine
        required: Whether every record must carry a non-empty value
        default_value: Value emitted when an optional field is absent
        description: Free-text description shown to administrators
        rule_kind: Optional secondary rule kind (list, regex, range)
        rule_spec: Rule payload (option list, pattern or JSON range)
        min_length: Minimum length for text values
        max_length: Maximum length for text values
        min_value: Minimum for numeric values
        max_value: Maximum for numeric values
        placeholder: Input hint shown to data-entry users
        semantic_kind: Identity role (national_id, first_name, last_name)
        position: Display order within the dictionary

    Notes:
        ``semantic_kind`` is decided once, when the field is defined.
        The validation engine never sniffs names or descriptions at
        validation time.
    """

    __tablename__ = "field_definitions"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    declared_type: Mapped[FieldType] = mapped_column(
        SQLEnum(FieldType, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=FieldType.TEXT,
    )
    required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    default_value: Mapped[Optional[str]] = mapped_column(Text)
    description: Mapped[Optional[str]] = mapped_column(Text)

    rule_kind: Mapped[Optional[RuleKind]] = mapped_column(
        SQLEnum(RuleKind, values_callable=lambda x: [e.value for e in x]),
        nullable=True,
    )
    rule_spec: Mapped[Optional[str]] = mapped_column(Text)

    min_length: Mapped[Optional[int]] = mapped_column(Integer)
    max_length: Mapped[Optional[int]] = mapped_column(Integer)
    min_value: Mapped[Optional[float]] = mapped_column(Float)
    max_value: Mapped[Optional[float]] = mapped_column(Float)
    placeholder: Mapped[Optional[str]] = mapped_column(String(255))

    semantic_kind: Mapped[Optional[SemanticKind]] = mapped_column(
        SQLEnum(SemanticKind, values_callable=lambda x: [e.value for e in x]),
        nullable=True,
        index=True,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    @property
    def is_national_id(self) -> bool:
        """True if this field carries the natural key."""
        return self.semantic_kind == SemanticKind.NATIONAL_ID

    @property
    def has_rule(self) -> bool:
        """True if a secondary rule is configured."""
        return self.rule_kind is not None and bool(self.rule_spec)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the definition (YAML/JSON friendly)."""
        return {
            "name": self.name,
            "type": self.declared_type.value,
            "required": self.required,
            "default": self.default_value,
            "description": self.description,
            "rule_kind": self.rule_kind.value if self.rule_kind else None,
            "rule_spec": self.rule_spec,
            "min_length": self.min_length,
            "max_length": self.max_length,
            "min_value": self.min_value,
            "max_value": self.max_value,
            "placeholder": self.placeholder,
            "semantic_kind": self.semantic_kind.value if self.semantic_kind else None,
        }

    def __repr__(self) -> str:
        return f"<FieldDefinition(name='{self.name}', type={self.declared_type.value})>"
