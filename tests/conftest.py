"""
conftest.py
-----------
Shared pytest fixtures for Roster tests.

Provides fixtures for:
- Database setup and teardown
- Table managers bound to a test session
- Column dictionary factories
- Ingestion engines and the ImportService facade
"""
import pytest
from pathlib import Path
from tempfile import TemporaryDirectory
from unittest.mock import MagicMock

from roster.core.logging_manager import RosterLogger


# ----- Path Fixtures -----

@pytest.fixture
def tmp_dir():
    """Create a temporary directory for test file operations."""
    with TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def test_db_path(tmp_dir):
    """Create temporary test database path."""
    return tmp_dir / "test.db"


@pytest.fixture
def test_alembic_dir():
    """Path to Alembic directory."""
    return Path(__file__).parent.parent / "roster" / "migrations"


# ----- Database Fixtures -----

@pytest.fixture
def test_db(test_db_path, test_alembic_dir):
    """
    Create test database instance with schema.

    Returns a RosterDB instance with an initialized schema.
    Database is torn down after the test.
    """
    from roster.database.manager import RosterDB
    from roster.database.models import Base
    from sqlalchemy import create_engine

    # Create engine and initialize schema
    engine = create_engine(f"sqlite:///{test_db_path}")
    Base.metadata.create_all(engine)

    db = RosterDB(db_path=test_db_path, alembic_dir=test_alembic_dir)

    yield db

    # Cleanup
    db.close()
    engine.dispose()


@pytest.fixture
def db_session(test_db):
    """
    Create a database session for tests.

    Provides a session with automatic rollback after test.
    """
    with test_db.session_scope() as session:
        yield session
        session.rollback()


@pytest.fixture
def mock_logger():
    """Logger double recording every call."""
    return MagicMock(spec=RosterLogger)


# ----- Manager Fixtures -----

@pytest.fixture
def field_manager(db_session):
    """Create FieldManager instance for testing."""
    from roster.database.managers.field_manager import FieldManager
    return FieldManager(db_session)


@pytest.fixture
def record_manager(db_session):
    """Create RecordManager instance for testing."""
    from roster.database.managers.record_manager import RecordManager
    return RecordManager(db_session)


@pytest.fixture
def staging_manager(db_session):
    """Create StagingManager instance for testing."""
    from roster.database.managers.staging_manager import StagingManager
    return StagingManager(db_session)


@pytest.fixture
def audit_manager(db_session):
    """Create AuditManager instance for testing."""
    from roster.database.managers.audit_manager import AuditManager
    return AuditManager(db_session)


# ----- Column Dictionary Factories -----

@pytest.fixture
def define_fields(test_db):
    """
    Factory committing field definitions to the test database.

    Usage:
        define_fields({"name": "rut", "required": True}, {"name": "nombre"})
    """
    def _define(*definitions):
        with test_db.session_scope():
            for metadata in definitions:
                test_db.fields.create(dict(metadata))

    return _define


@pytest.fixture
def member_schema(define_fields):
    """National id, first/last name, age and a status list."""
    define_fields(
        {"name": "rut", "required": True},
        {"name": "nombre", "required": True},
        {"name": "apellido"},
        {"name": "edad", "type": "number", "min_value": 0},
        {"name": "estado", "type": "select", "rule_kind": "list", "rule_spec": "activo, inactivo"},
    )


@pytest.fixture
def id_code_schema(define_fields):
    """The id_code/name/age dictionary used by the reference scenarios."""
    define_fields(
        {"name": "id_code", "required": True, "rule_kind": "regex",
         "rule_spec": r"^\d{7,8}-[0-9kK]$"},
        {"name": "name"},
        {"name": "age", "type": "number", "min_value": 0},
    )


@pytest.fixture
def add_record(test_db):
    """Factory committing a record straight into the store; returns its id."""
    def _add(fields):
        with test_db.session_scope():
            return test_db.records.insert(dict(fields)).id

    return _add


# ----- Service Fixtures -----

@pytest.fixture
def service(test_db):
    """ImportService over the test database (worker pool closed on teardown)."""
    from roster.ingest.service import ImportService

    svc = ImportService(test_db, batch_size=2, max_workers=1)
    yield svc
    svc.close()
