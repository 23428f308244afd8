#!/usr/bin/env python3
"""
managers package
--------------------
Table-family managers for the Roster database.

Each manager wraps one SQLAlchemy session and handles one concern,
inheriting from BaseManager.

Available Managers:
    BaseManager: Abstract base class with common utilities
    FieldManager: Column dictionary (FieldDefinition)
    RecordManager: Canonical record store (CommunityRecord)
    StagingManager: Staged import rows (StagedRow)
    AuditManager: Upload, modification and download events

Usage:
    from roster.database.managers import RecordManager

    records = RecordManager(session, logger)
"""
from .base_manager import BaseManager
from .field_manager import FieldManager
from .record_manager import RecordManager
from .staging_manager import StagingManager
from .audit_manager import AuditManager

__all__ = [
    "BaseManager",
    "FieldManager",
    "RecordManager",
    "StagingManager",
    "AuditManager",
]
