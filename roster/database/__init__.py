"""
Roster Database Package
-----------------------
Persistence layer for the Roster ingestion system.

- RosterDB: engine, session scopes and table managers
- managers: column dictionary, record store, staging store, audit log
- models: SQLAlchemy ORM models
- ExportManager: CSV/JSON export of the record store
- decorators: logging and error-conversion helpers
"""

from .manager import RosterDB
from .export_manager import ExportManager
from roster.core.exceptions import (
    ConflictError,
    DatabaseError,
    ExportError,
    RecordNotFoundError,
    ValidationError,
)
from .decorators import (
    DatabaseOperation,
    handle_db_errors,
    log_database_operation,
)

__all__ = [
    "RosterDB",
    "ExportManager",
    "ConflictError",
    "DatabaseError",
    "ExportError",
    "RecordNotFoundError",
    "ValidationError",
    "DatabaseOperation",
    "handle_db_errors",
    "log_database_operation",
]
