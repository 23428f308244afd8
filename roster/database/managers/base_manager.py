#!/usr/bin/env python3
"""
base_manager.py
--------------------
Base manager providing common utilities for every Roster manager.

Key Features:
    - Session and logger wiring
    - Lookup helpers that raise RecordNotFoundError

Usage:
    Subclass BaseManager for each table family:

    class StagingManager(BaseManager):
        def get(self, row_id: int) -> Optional[StagedRow]:
            return self.session.get(StagedRow, row_id)
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
from abc import ABC
from typing import Optional, Type, TypeVar

# --- Third party imports ---
from sqlalchemy.orm import Session

# --- Local imports ---
from roster.core.exceptions import RecordNotFoundError
from roster.core.logging_manager import RosterLogger

T = TypeVar("T")


class BaseManager(ABC):
    """
    Abstract base manager providing common utilities.

    Attributes:
        session: SQLAlchemy session for database operations
        logger: Optional logger for operation tracking
    """

    def __init__(self, session: Session, logger: Optional[RosterLogger] = None):
        """
        Initialize the base manager.

        Args:
            session: SQLAlchemy session
            logger: Optional logger for operation tracking
        """
        self.session = session
        self.logger = logger

    # -------------------------------------------------------------------------
    # Core Helper Methods
    # -------------------------------------------------------------------------

    def _get_or_raise(self, model_class: Type[T], item_id: int, label: str) -> T:
        """
        Fetch a row by primary key.

        Raises:
            RecordNotFoundError: If no row has that id
        """
        obj = self.session.get(model_class, item_id)
        if obj is None:
            raise RecordNotFoundError(f"{label} with id={item_id} not found")
        return obj
