#!/usr/bin/env python3
"""
exceptions.py
--------------------
Custom exception classes for the Roster project.

This module defines a hierarchy of exceptions used throughout the project
to handle specific error conditions in different subsystems.

Exception Hierarchy:
    Exception (built-in)
    └── RosterError - Base for every project error
        ├── DatabaseError - Base for all database-related errors
        │   ├── RecordNotFoundError - Referenced record/row does not exist
        │   ├── ConflictError - Natural-key uniqueness violation
        │   └── ExportError - Data export operation failures
        ├── ValidationError - Data validation failures
        │   └── SchemaError - Invalid field definitions
        ├── SessionStateError - Staging session cannot be acted upon
        │   ├── SessionNotFoundError - Unknown staging session
        │   └── CommitRefusedError - Commit attempted with error rows
        └── JobNotFoundError - Unknown bulk job

Usage:
    from roster.core.exceptions import DatabaseError, ValidationError

    try:
        service.create_record({"rut": "12345678-9"}, actor_id="admin")
    except ValidationError as e:
        logger.error(f"Invalid data: {e}")
    except DatabaseError as e:
        logger.error(f"Database operation failed: {e}")
"""


class RosterError(Exception):
    """Base exception for every error raised by the Roster package."""

    pass


class DatabaseError(RosterError):
    """
    Base exception for database-related errors.

    Raised when database operations fail due to connection issues,
    query errors, integrity violations, or other database problems.

    Examples:
        >>> raise DatabaseError("Connection to database failed")
        >>> raise DatabaseError("Data integrity violation: duplicate record")
    """

    pass


class RecordNotFoundError(DatabaseError):
    """
    Exception for lookups of records that do not exist.

    Examples:
        >>> raise RecordNotFoundError("Record with id=42 not found")
        >>> raise RecordNotFoundError("Staged row with id=7 not found")
    """

    pass


class ConflictError(DatabaseError):
    """
    Exception for natural-key uniqueness violations.

    Raised when a write would leave two canonical records sharing the same
    national id, or when a staged new row matches a record created since
    staging. Commit and direct-edit paths re-check uniqueness inside the
    writing transaction and raise this instead of merging silently.

    Examples:
        >>> raise ConflictError("A record with national id '12.345.678-5' already exists")
    """

    pass


class ExportError(DatabaseError):
    """
    Exception for data export operation failures.

    Examples:
        >>> raise ExportError("Unsupported export format: 'xml'")
        >>> raise ExportError("Failed to write export file: permission denied")
    """

    pass


class ValidationError(RosterError):
    """
    Exception for data validation failures.

    Raised by whole-record paths (direct create/update) when input data
    fails validation against the column dictionary. The staging pipeline
    never raises it: field errors are collected on the staged row instead.

    Attributes:
        errors: Individual validation messages, one per failed field

    Examples:
        >>> raise ValidationError("field 'rut' is required")
        >>> raise ValidationError("Validation failed", ["age: 'abc' is not a valid number"])
    """

    def __init__(self, message: str, errors=None):
        super().__init__(message)
        self.errors = list(errors or [])


class SchemaError(ValidationError):
    """
    Exception for invalid field definitions.

    Examples:
        >>> raise SchemaError("A field named 'rut' already exists")
        >>> raise SchemaError("Unknown field type: 'money'")
    """

    pass


class SessionStateError(RosterError):
    """Base exception for staging sessions that cannot be acted upon."""

    pass


class SessionNotFoundError(SessionStateError):
    """
    Exception for operations on a staging session with no staged rows.

    Examples:
        >>> raise SessionNotFoundError("Staging session 'abc' not found")
    """

    pass


class CommitRefusedError(SessionStateError):
    """
    Exception for commits attempted while error rows remain.

    Raised before any write happens, so a refused commit leaves both the
    record store and the audit log untouched.

    Examples:
        >>> raise CommitRefusedError("Cannot commit while errors exist (3 rows)")
    """

    pass


class JobNotFoundError(RosterError):
    """
    Exception for bulk job lookups that fail.

    A job that vanished after a process restart is indistinguishable from
    one that never existed.
    """

    pass
