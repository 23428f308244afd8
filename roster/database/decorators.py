#!/usr/bin/env python3
"""
decorators.py
--------------------
Shared decorators and context managers for database operations.

- log_database_operation: timing + start/completion/failure logging
- handle_db_errors: SQLAlchemy exceptions -> project exceptions
- DatabaseOperation: the same two concerns as a ``with`` block
"""
from __future__ import annotations

from datetime import datetime
from functools import wraps
from typing import Any, Callable, Dict, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from roster.core.exceptions import ConflictError, DatabaseError
from roster.core.logging_manager import RosterLogger, safe_logger


def _integrity_error(error: IntegrityError) -> DatabaseError:
    """Map an IntegrityError to the matching project exception."""
    if "natural_key" in str(error.orig if error.orig is not None else error):
        return ConflictError(f"Natural key already in use: {error.orig}")
    return DatabaseError(f"Data integrity violation: {error}")


def log_database_operation(operation_name: str):
    """
    Decorator to log database operations with timing and context.

    Args:
        operation_name: Name of the operation being logged

    Returns:
        Decorator function
    """

    def decorator(function: Callable) -> Callable:
        @wraps(function)
        def wrapper(self, *args, **kwargs):
            start_time = datetime.now()
            operation_id = f"{operation_name}_{start_time.strftime('%Y%m%d_%H%M%S_%f')}"
            logger = safe_logger(getattr(self, "logger", None))

            logger.log_debug(
                f"Starting {operation_name}",
                {
                    "operation_id": operation_id,
                    "args_count": len(args),
                    "kwargs_keys": list(kwargs.keys()),
                },
            )

            try:
                result = function(self, *args, **kwargs)
            except Exception as e:
                duration = (datetime.now() - start_time).total_seconds()
                logger.log_error(
                    e,
                    {
                        "operation": operation_name,
                        "operation_id": operation_id,
                        "duration_seconds": duration,
                    },
                )
                raise

            duration = (datetime.now() - start_time).total_seconds()
            logger.log_operation(
                f"{operation_name}_completed",
                {
                    "operation_id": operation_id,
                    "duration_seconds": duration,
                    "success": True,
                },
            )
            return result

        return wrapper

    return decorator


def handle_db_errors(function: Callable) -> Callable:
    """
    Decorator to handle common database errors.

    IntegrityError on the natural-key column becomes ConflictError, any
    other IntegrityError or SQLAlchemyError becomes DatabaseError. Project
    exceptions pass through untouched.

    Args:
        function: Function to wrap

    Returns:
        Wrapped function with error handling
    """

    @wraps(function)
    def wrapper(*args, **kwargs):
        try:
            return function(*args, **kwargs)
        except IntegrityError as e:
            raise _integrity_error(e) from e
        except SQLAlchemyError as e:
            raise DatabaseError(f"Database operation failed: {e}") from e

    return wrapper


class DatabaseOperation:
    """
    Context manager combining operation logging and error conversion.

    Usage:
        with DatabaseOperation(self.logger, "commit_session", log_start=True):
            ...

    On success logs ``<name>_completed`` with the duration. On failure
    logs the error, converts SQLAlchemy exceptions like handle_db_errors
    does and re-raises everything else unchanged.
    """

    def __init__(
        self,
        logger: Optional[RosterLogger],
        operation_name: str,
        log_start: bool = False,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.logger = safe_logger(logger)
        self.operation_name = operation_name
        self.log_start = log_start
        self.details = dict(details or {})
        self.start_time: Optional[datetime] = None

    def _duration(self) -> float:
        if self.start_time is None:
            return 0.0
        return (datetime.now() - self.start_time).total_seconds()

    def __enter__(self) -> "DatabaseOperation":
        self.start_time = datetime.now()
        if self.log_start:
            self.logger.log_debug(f"Starting {self.operation_name}", self.details or None)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        del exc_tb
        if exc_type is None:
            self.logger.log_operation(
                f"{self.operation_name}_completed",
                {**self.details, "duration_seconds": self._duration(), "success": True},
            )
            return False

        self.logger.log_error(
            exc_val,
            {
                **self.details,
                "operation": self.operation_name,
                "duration_seconds": self._duration(),
            },
        )
        if isinstance(exc_val, IntegrityError):
            raise _integrity_error(exc_val) from exc_val
        if isinstance(exc_val, SQLAlchemyError):
            raise DatabaseError(f"Database operation failed: {exc_val}") from exc_val
        return False
