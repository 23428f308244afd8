"""Tests for database decorators and context managers."""
import pytest
from unittest.mock import MagicMock

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from roster.database.decorators import (
    DatabaseOperation,
    handle_db_errors,
    log_database_operation,
)
from roster.core.exceptions import ConflictError, DatabaseError, SchemaError
from roster.core.logging_manager import RosterLogger


def unique_violation(column):
    """IntegrityError shaped like SQLite's UNIQUE constraint failure."""
    return IntegrityError(
        "INSERT", {}, Exception(f"UNIQUE constraint failed: community_records.{column}")
    )


class TestDatabaseOperation:
    """Tests for DatabaseOperation context manager."""

    def test_successful_operation(self):
        """DatabaseOperation should log completion on success."""
        mock_logger = MagicMock(spec=RosterLogger)

        with DatabaseOperation(mock_logger, "test_operation", details={"rows": 3}):
            result = 1 + 1

        assert result == 2
        mock_logger.log_operation.assert_called_once()
        call_args = mock_logger.log_operation.call_args
        assert call_args[0][0] == "test_operation_completed"
        assert call_args[0][1]["success"] is True
        assert call_args[0][1]["rows"] == 3

    def test_successful_operation_with_none_logger(self):
        """DatabaseOperation should work with None logger (uses NullLogger)."""
        with DatabaseOperation(None, "test_operation"):
            result = 1 + 1

        assert result == 2

    def test_natural_key_violation_raises_conflict(self):
        """A duplicate natural key surfaces as ConflictError."""
        mock_logger = MagicMock(spec=RosterLogger)

        with pytest.raises(ConflictError):
            with DatabaseOperation(mock_logger, "test_operation"):
                raise unique_violation("natural_key")

        mock_logger.log_error.assert_called_once()

    def test_integrity_error_raises_database_error(self):
        """Other IntegrityErrors become a plain DatabaseError."""
        mock_logger = MagicMock(spec=RosterLogger)

        with pytest.raises(DatabaseError) as exc_info:
            with DatabaseOperation(mock_logger, "test_operation"):
                raise IntegrityError("statement", {}, Exception("NOT NULL constraint failed"))

        assert not isinstance(exc_info.value, ConflictError)
        assert "Data integrity violation" in str(exc_info.value)

    def test_sqlalchemy_error_raises_database_error(self):
        """DatabaseOperation should convert SQLAlchemyError to DatabaseError."""
        mock_logger = MagicMock(spec=RosterLogger)

        with pytest.raises(DatabaseError) as exc_info:
            with DatabaseOperation(mock_logger, "test_operation"):
                raise SQLAlchemyError("connection failed")

        assert "Database operation failed" in str(exc_info.value)
        mock_logger.log_error.assert_called_once()

    def test_other_exceptions_propagate(self):
        """DatabaseOperation should propagate non-SQLAlchemy exceptions."""
        mock_logger = MagicMock(spec=RosterLogger)

        with pytest.raises(ValueError):
            with DatabaseOperation(mock_logger, "test_operation"):
                raise ValueError("invalid value")

        mock_logger.log_error.assert_called_once()

    def test_log_start_option(self):
        """DatabaseOperation should log start when log_start=True."""
        mock_logger = MagicMock(spec=RosterLogger)

        with DatabaseOperation(mock_logger, "test_operation", log_start=True):
            pass

        mock_logger.log_debug.assert_called_once()
        assert "Starting test_operation" in mock_logger.log_debug.call_args[0][0]

    def test_no_log_start_by_default(self):
        """DatabaseOperation should not log start by default."""
        mock_logger = MagicMock(spec=RosterLogger)

        with DatabaseOperation(mock_logger, "test_operation"):
            pass

        mock_logger.log_debug.assert_not_called()


class TestHandleDbErrors:
    """Tests for the handle_db_errors decorator."""

    def test_passes_results_through(self):
        @handle_db_errors
        def ok():
            return 42

        assert ok() == 42

    def test_natural_key_conflict(self):
        @handle_db_errors
        def insert():
            raise unique_violation("natural_key")

        with pytest.raises(ConflictError, match="Natural key already in use"):
            insert()

    def test_sqlalchemy_error(self):
        @handle_db_errors
        def query():
            raise SQLAlchemyError("disk I/O error")

        with pytest.raises(DatabaseError, match="Database operation failed"):
            query()

    def test_project_exceptions_untouched(self):
        @handle_db_errors
        def define():
            raise SchemaError("Field name cannot be empty")

        with pytest.raises(SchemaError):
            define()


class TestLogDatabaseOperation:
    """Tests for the log_database_operation decorator."""

    class Worker:
        def __init__(self, logger):
            self.logger = logger

        @log_database_operation("do_work")
        def work(self, value, fail=False):
            if fail:
                raise RuntimeError("boom")
            return value * 2

    def test_logs_completion(self):
        mock_logger = MagicMock(spec=RosterLogger)

        assert self.Worker(mock_logger).work(2) == 4

        mock_logger.log_debug.assert_called_once()
        operation, details = mock_logger.log_operation.call_args[0]
        assert operation == "do_work_completed"
        assert details["operation_id"].startswith("do_work_")

    def test_logs_failure_and_reraises(self):
        mock_logger = MagicMock(spec=RosterLogger)

        with pytest.raises(RuntimeError):
            self.Worker(mock_logger).work(2, fail=True)

        mock_logger.log_operation.assert_not_called()
        assert mock_logger.log_error.call_args[0][1]["operation"] == "do_work"

    def test_without_logger(self):
        assert self.Worker(None).work(3) == 6
