"""
Base Classes and Mixins
------------------------

Foundational ORM classes for the Roster database.

Classes:
    - Base: Declarative base for all SQLAlchemy models
    - TimestampMixin: created_at/updated_at columns
    - AuditEventMixin: actor, timestamp and retention expiry shared by audit events

This module provides the core infrastructure that other model modules build upon.
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
from datetime import datetime, timedelta, timezone

# --- Third party ---
from sqlalchemy import DateTime, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# --- Local imports ---
from roster.configs.ingestion_configs import AUDIT_RETENTION_DAYS


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def default_expiry() -> datetime:
    """Expiry timestamp for an audit event written now."""
    return utcnow() + timedelta(days=AUDIT_RETENTION_DAYS)


# --- Base ORM class ---
class Base(DeclarativeBase):
    """
    Base class for all ORM models.

    Serves as the declarative base for SQLAlchemy models and provides
    access to the metadata object for table creation and migrations.
    """

    pass


# --- Timestamps ---
class TimestampMixin:
    """
    Mixin adding creation and last-modification timestamps.

    Attributes:
        created_at: When the row was inserted
        updated_at: When the row was last modified
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )


# --- Audit events ---
class AuditEventMixin:
    """
    Columns carried by every audit event kind.

    Events are append-only. ``expires_at`` is fixed when the event is
    written (timestamp + retention window) and read by the cleanup job.

    Attributes:
        actor_id: Who triggered the event
        timestamp: When the event was written
        expires_at: When the event becomes eligible for cleanup
    """

    actor_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False, index=True
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=default_expiry, nullable=False, index=True
    )
