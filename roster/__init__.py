"""
Roster
======

Dynamic-schema bulk ingestion for community member records.

Administrators define the columns of the roster at runtime (the column
dictionary); tabular uploads are validated against it, previewed as a
staging session, reconciled against existing records and committed with a
full audit trail. Large uploads can instead run as asynchronous bulk jobs.

Main Components:
    - core: Logging, exceptions, paths, value normalization
    - configs: Ingestion tunables
    - database: SQLAlchemy models, table managers, RosterDB, export, CLI
    - ingest: Validation, diff, staging, commit, bulk jobs, ImportService

Primary Interfaces:
    - roster.database.manager.RosterDB: Database access
    - roster.ingest.service.ImportService: Ingestion operations
    - roster.database.cli: ``roster`` command line

Example Usage:
    >>> from roster.database import RosterDB
    >>> from roster.ingest.service import ImportService
    >>> from roster.core.paths import DB_PATH, ALEMBIC_DIR, LOG_DIR
    >>> db = RosterDB(db_path=DB_PATH, alembic_dir=ALEMBIC_DIR, log_dir=LOG_DIR)
    >>> service = ImportService(db, logger=db.logger)
    >>> summary = service.stage_batch([{"rut": "12.345.678-5", "nombre": "Ana"}])
"""

__version__ = "0.1.0"
