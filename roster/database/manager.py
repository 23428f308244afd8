#!/usr/bin/env python3
"""
manager.py
--------------------
Database manager for the Roster ingestion system.

Provides the RosterDB class for interacting with the SQLite database.
Handles:
    - Initialization of the database engine and sessionmaker
    - Transactional session scopes with automatic rollback
    - Per-session table managers (fields, records, staging, audit)
    - Schema creation and versioning via Alembic

Key Features:
    - SAVEPOINT support on SQLite, so callers can isolate a unit of work
      with ``session.begin_nested()`` inside a larger transaction
    - Managers are bound per thread, so background bulk jobs and the
      calling thread each see their own session
    - Component logging with rotation

Notes
==============
- A fresh database is created from the ORM models and stamped ``head``;
  an existing one is upgraded with Alembic
- All datetime fields are UTC
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
import threading
import time
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Iterator, Optional, TypeVar, Union

# --- Third party ---
from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from sqlalchemy import Engine, create_engine, event, inspect
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker

# --- Local imports ---
from roster.core.exceptions import DatabaseError
from roster.core.logging_manager import RosterLogger, safe_logger
from roster.core.paths import ALEMBIC_INI

from .decorators import handle_db_errors, log_database_operation
from .managers import AuditManager, FieldManager, RecordManager, StagingManager
from .models import Base

T = TypeVar("T")


def is_lock_contention(error: BaseException) -> bool:
    """True when ``error`` (or the error it wraps) is SQLite lock contention."""
    cause = error if isinstance(error, OperationalError) else error.__cause__
    if not isinstance(cause, OperationalError):
        return False
    message = str(cause).lower()
    return "locked" in message or "busy" in message


def _enable_sqlite_savepoints(engine: Engine) -> None:
    """
    Let SQLAlchemy, not pysqlite, emit BEGIN.

    pysqlite's own transaction handling breaks SAVEPOINT; with autocommit
    at the driver level and an explicit BEGIN per transaction,
    ``begin_nested()`` behaves as documented.

    Transactions start with BEGIN IMMEDIATE so the write lock is taken up
    front. A concurrent writer then waits on the busy timeout instead of
    failing when a deferred read lock would need upgrading.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        del connection_record
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(connection):
        connection.exec_driver_sql("BEGIN IMMEDIATE")


# ----- Main Database Manager -----
class RosterDB:
    """
    Main database manager for the Roster database.

    Attributes:
        - db_path (Path): Filesystem path to the SQLite database file.
        - alembic_dir (Path): Filesystem path to the Alembic scripts.
        - engine (Engine): SQLAlchemy engine instance.
        - SessionLocal (sessionmaker): SQLAlchemy session factory.

    Usage:
        db = RosterDB("data/db/roster.db", "roster/migrations")
        with db.session_scope() as session:
            fields = db.fields.list_fields()
    """

    # ---- Initialization ----
    def __init__(
        self,
        db_path: Union[str, Path],
        alembic_dir: Union[str, Path],
        log_dir: Optional[Union[str, Path]] = None,
    ) -> None:
        """
        Initialize database engine and session factory.

        Args:
            db_path (str | Path): Path to the SQLite file.
            alembic_dir (str | Path): Path to the Alembic directory.
            log_dir (str | Path): Directory for log files (optional)
        """
        self.db_path = Path(db_path).expanduser().resolve()
        self.alembic_dir = Path(alembic_dir).expanduser().resolve()

        # --- Logging ---
        if log_dir:
            self.log_dir = Path(log_dir).expanduser().resolve() / "system"
            self.logger: Optional[RosterLogger] = RosterLogger(
                self.log_dir, component_name="database"
            )
        else:
            self.logger = None

        # Managers are bound per thread inside session_scope
        self._local = threading.local()

        self._setup_engine()

    def _setup_engine(self) -> None:
        """Initialize database engine and session factory."""
        try:
            safe_logger(self.logger).log_operation(
                "database_init_start",
                {"db_path": str(self.db_path), "alembic_dir": str(self.alembic_dir)},
            )

            is_new = not self.db_path.exists()
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

            self.engine: Engine = create_engine(
                f"sqlite:///{self.db_path}",
                echo=False,
                pool_pre_ping=True,
                connect_args={"check_same_thread": False, "timeout": 30},
            )
            _enable_sqlite_savepoints(self.engine)

            self.SessionLocal: sessionmaker = sessionmaker(
                bind=self.engine,
                autoflush=True,
                expire_on_commit=False,
            )

            self.alembic_cfg: Config = self._setup_alembic()

            if is_new:
                self.initialize_schema()

            safe_logger(self.logger).log_operation("database_init_complete", {"success": True})

        except DatabaseError:
            raise
        except Exception as e:
            safe_logger(self.logger).log_error(e, {"operation": "database_init"})
            raise DatabaseError(f"Database initialization failed: {e}")

    # ---- Session Management ----
    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """
        Provide a transactional scope around operations with logging.

        Also binds the table managers for the current thread, available via
        properties (db.fields, db.records, db.staging, db.audit).

        Usage:
            with db.session_scope() as session:
                db.fields.create({"name": "rut"})
                record = db.records.find_by_natural_key("12.345.678-5")
        """
        session = self.SessionLocal()
        session_id = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        previous: Optional[Dict[str, object]] = getattr(self._local, "managers", None)

        self._local.managers = {
            "fields": FieldManager(session, self.logger),
            "records": RecordManager(session, self.logger),
            "staging": StagingManager(session, self.logger),
            "audit": AuditManager(session, self.logger),
        }

        safe_logger(self.logger).log_debug("session_start", {"session_id": session_id})

        try:
            yield session
            session.commit()
            safe_logger(self.logger).log_debug("session_commit", {"session_id": session_id})

        except Exception as e:
            session.rollback()
            safe_logger(self.logger).log_error(
                e, {"operation": "session_rollback", "session_id": session_id}
            )
            raise
        finally:
            self._local.managers = previous
            session.close()
            safe_logger(self.logger).log_debug("session_close", {"session_id": session_id})

    def get_session(self) -> Session:
        """Create and return a new SQLAlchemy session."""
        return self.SessionLocal()

    def run_in_transaction(
        self,
        work: Callable[[], T],
        max_retries: int = 3,
        retry_delay: float = 0.1,
    ) -> T:
        """
        Run ``work`` inside its own session_scope, retrying on lock contention.

        A failed attempt is rolled back as a whole and ``work`` runs again
        in a fresh session, so it must read everything it needs itself.

        Args:
            work: Callable using the thread's managers (db.records, ...)
            max_retries: Maximum number of attempts
            retry_delay: Base delay between attempts (exponential backoff)

        Returns:
            Result of ``work``

        Raises:
            DatabaseError: If every attempt hit a locked database
        """
        for attempt in range(max_retries):
            try:
                with self.session_scope():
                    return work()
            except (OperationalError, DatabaseError) as e:
                if is_lock_contention(e) and attempt < max_retries - 1:
                    wait_time = retry_delay * (2**attempt)
                    safe_logger(self.logger).log_debug(
                        f"Database locked, retrying transaction in {wait_time}s",
                        {"attempt": attempt + 1, "max_retries": max_retries},
                    )
                    time.sleep(wait_time)
                    continue
                raise

        raise DatabaseError("Retry loop completed without success")

    def _manager(self, key: str, label: str):
        managers = getattr(self._local, "managers", None)
        if not managers:
            raise DatabaseError(
                f"{label} requires active session. "
                "Use within session_scope: "
                f"with db.session_scope() as session: db.{key}..."
            )
        return managers[key]

    # -------------------------------------------------------------------------
    # Manager Properties
    # -------------------------------------------------------------------------

    @property
    def fields(self) -> FieldManager:
        """
        Access FieldManager for column dictionary operations.

        Raises:
            DatabaseError: If accessed outside of session_scope context
        """
        return self._manager("fields", "FieldManager")

    @property
    def records(self) -> RecordManager:
        """
        Access RecordManager for record store operations.

        Raises:
            DatabaseError: If accessed outside of session_scope context
        """
        return self._manager("records", "RecordManager")

    @property
    def staging(self) -> StagingManager:
        """
        Access StagingManager for staged row operations.

        Raises:
            DatabaseError: If accessed outside of session_scope context
        """
        return self._manager("staging", "StagingManager")

    @property
    def audit(self) -> AuditManager:
        """
        Access AuditManager for audit log operations.

        Raises:
            DatabaseError: If accessed outside of session_scope context
        """
        return self._manager("audit", "AuditManager")

    # -------------------------------------------------------------------------
    # Schema and migrations
    # -------------------------------------------------------------------------

    def _setup_alembic(self) -> Config:
        """Setup Alembic configuration."""
        try:
            alembic_cfg: Config = Config(str(ALEMBIC_INI)) if ALEMBIC_INI.exists() else Config()
            alembic_cfg.set_main_option("script_location", str(self.alembic_dir))
            alembic_cfg.set_main_option("sqlalchemy.url", f"sqlite:///{self.db_path}")
            alembic_cfg.set_main_option(
                "file_template",
                "%%(year)d%%(month).2d%%(day).2d_%%(hour).2d%%(minute).2d_%%(slug)s",
            )
            return alembic_cfg
        except Exception as e:
            safe_logger(self.logger).log_error(e, {"operation": "setup_alembic"})
            raise DatabaseError(f"Alembic configuration failed: {e}")

    @handle_db_errors
    @log_database_operation("initialize_schema")
    def initialize_schema(self) -> None:
        """
        Initialize database - create tables if needed and run migrations.

        Actions:
            Checks if the database is fresh (no tables)
            If fresh,
                creates all tables from the ORM models
                stamps the Alembic revision to head
            If not,
                runs pending migrations to update schema
        """
        table_names = inspect(self.engine).get_table_names()

        if not table_names:
            Base.metadata.create_all(bind=self.engine)
            try:
                command.stamp(self.alembic_cfg, "head")
            except Exception as e:
                # Tables exist; only the version marker is missing
                safe_logger(self.logger).log_error(e, {"operation": "stamp_database"})
            safe_logger(self.logger).log_operation(
                "fresh_database_created",
                {"tables_created": len(Base.metadata.tables)},
            )
        else:
            self.upgrade_database()
            safe_logger(self.logger).log_operation(
                "existing_database_migrated", {"table_count": len(table_names)}
            )

    @handle_db_errors
    @log_database_operation("upgrade_database")
    def upgrade_database(self, revision: str = "head") -> None:
        """
        Upgrade the database schema to the specified Alembic revision.

        Args:
            revision (str, optional): Target revision (default 'head').
        """
        try:
            command.upgrade(self.alembic_cfg, revision)
        except Exception as e:
            raise DatabaseError(f"Database upgrade failed: {e}")

    def get_migration_history(self) -> Dict[str, Optional[str]]:
        """
        Get the current migration status of the database.

        Returns:
            Dictionary with 'current_revision' and 'status'
            ('up_to_date' or 'needs_migration'), or 'error'.
        """
        try:
            with self.engine.connect() as conn:
                context = MigrationContext.configure(conn)
                current_rev = context.get_current_revision()
            return {
                "current_revision": current_rev,
                "status": "up_to_date" if current_rev else "needs_migration",
            }
        except Exception as e:
            safe_logger(self.logger).log_error(e, {"operation": "get_migration_history"})
            return {"error": str(e)}

    def close(self) -> None:
        """Dispose of the engine and release log files."""
        self.engine.dispose()
        if self.logger:
            self.logger.close()

    # ----- Context Manager Support -----
    def __enter__(self) -> "RosterDB":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        del exc_type, exc_val, exc_tb
        self.close()
