"""
Enumeration Types
------------------

Enum classes for the Roster database models.

Enums:
    - FieldType: Declared type of a column-dictionary field
    - RuleKind: Kind of secondary validation rule (list, regex, range)
    - SemanticKind: Meaning of a field for record matching
    - StagedRowState: Classification of a staged import row
    - UploadStatus: Lifecycle of an upload audit event
    - OperationKind: Kind of modification recorded in the audit log
    - DownloadFormat: Export formats recorded in download events
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
from enum import Enum
from typing import List


class FieldType(str, Enum):
    """
    Declared type of a field in the column dictionary.

    - TEXT: Short free text
    - NUMBER: Integer or decimal
    - BOOLEAN: True/false
    - DATE: Calendar date, stored as ISO-8601
    - EMAIL: E-mail address
    - URL: Absolute URL
    - PHONE: Phone number
    - SELECT: One of a predefined option list
    - LONG_TEXT: Multi-line free text
    """

    TEXT = "text"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    EMAIL = "email"
    URL = "url"
    PHONE = "phone"
    SELECT = "select"
    LONG_TEXT = "long_text"

    @classmethod
    def choices(cls) -> List[str]:
        """Get all available field type choices."""
        return [field_type.value for field_type in cls]

    @classmethod
    def parse(cls, value: str) -> "FieldType":
        """
        Resolve a type name, accepting a few common aliases.

        Raises:
            ValueError: If the name is not a known type
        """
        aliases = {
            "string": cls.TEXT,
            "textarea": cls.LONG_TEXT,
            "long-text": cls.LONG_TEXT,
            "enumerated-select": cls.SELECT,
        }
        key = str(value).strip().lower()
        if key in aliases:
            return aliases[key]
        return cls(key)

    @property
    def is_textual(self) -> bool:
        """True for types whose length limits apply."""
        return self in (FieldType.TEXT, FieldType.LONG_TEXT)


class RuleKind(str, Enum):
    """
    Kind of secondary validation rule attached to a field.

    - LIST: Value must be one of a comma-separated or JSON-array option set
    - REGEX: Value must fully match a regular expression
    - RANGE: Numeric value must lie within a JSON {"min", "max"} range
    """

    LIST = "list"
    REGEX = "regex"
    RANGE = "range"

    @classmethod
    def choices(cls) -> List[str]:
        """Get all available rule kind choices."""
        return [kind.value for kind in cls]


class SemanticKind(str, Enum):
    """
    Meaning of a field for record identity.

    - NATIONAL_ID: Natural key; values are canonicalized to punctuated form
    - FIRST_NAME: First half of the secondary matching key
    - LAST_NAME: Second half of the secondary matching key
    """

    NATIONAL_ID = "national_id"
    FIRST_NAME = "first_name"
    LAST_NAME = "last_name"

    @classmethod
    def choices(cls) -> List[str]:
        """Get all available semantic kind choices."""
        return [kind.value for kind in cls]


class StagedRowState(str, Enum):
    """
    Classification of a staged row, recomputed on every validation pass.

    - NEW: Valid, no matching record
    - UPDATE: Valid, matches a record and differs from it
    - ERROR: At least one validation error
    - UNCHANGED: Valid, matches a record and is identical to it
    """

    NEW = "new"
    UPDATE = "update"
    ERROR = "error"
    UNCHANGED = "unchanged"

    @classmethod
    def choices(cls) -> List[str]:
        """Get all available state choices."""
        return [state.value for state in cls]


class UploadStatus(str, Enum):
    """Lifecycle of an upload audit event."""

    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class OperationKind(str, Enum):
    """Kind of change recorded by a modification audit event."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    BULK = "bulk"

    @property
    def display_name(self) -> str:
        """Get human-readable display name."""
        display_map = {
            self.CREATE: "Created",
            self.UPDATE: "Updated",
            self.DELETE: "Deleted",
            self.BULK: "Bulk operation",
        }
        return display_map.get(self, self.value.title())


class DownloadFormat(str, Enum):
    """Export formats recorded by download audit events."""

    CSV = "csv"
    JSON = "json"

    @classmethod
    def choices(cls) -> List[str]:
        """Get all available download format choices."""
        return [fmt.value for fmt in cls]
