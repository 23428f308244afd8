"""
Database Models Package
------------------------

SQLAlchemy ORM models for the Roster database.

This package provides a modular organization of database models:
- base: Base class and mixins
- enums: Enumeration types
- fields: FieldDefinition (column dictionary)
- records: CommunityRecord
- staging: StagedRow
- audit: UploadEvent, ModificationEvent, DownloadEvent

Usage:
    from roster.database.models import CommunityRecord, FieldDefinition
"""
# Base classes
from .base import AuditEventMixin, Base, TimestampMixin

# Enumerations
from .enums import (
    DownloadFormat,
    FieldType,
    OperationKind,
    RuleKind,
    SemanticKind,
    StagedRowState,
    UploadStatus,
)

# Column dictionary
from .fields import FieldDefinition

# Records
from .records import CommunityRecord

# Staging
from .staging import StagedRow

# Audit trail
from .audit import DownloadEvent, ModificationEvent, UploadEvent

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "AuditEventMixin",
    # Enums
    "DownloadFormat",
    "FieldType",
    "OperationKind",
    "RuleKind",
    "SemanticKind",
    "StagedRowState",
    "UploadStatus",
    # Models
    "FieldDefinition",
    "CommunityRecord",
    "StagedRow",
    "UploadEvent",
    "ModificationEvent",
    "DownloadEvent",
]
