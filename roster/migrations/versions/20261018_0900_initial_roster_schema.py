"""initial roster schema

Revision ID: 3f1a9c2e7b10
Revises:
Create Date: 2026-10-18 09:00:12.418204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3f1a9c2e7b10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

FIELD_TYPES = (
    "text", "number", "boolean", "date", "email", "url", "phone", "select", "long_text",
)


def _audit_columns():
    return [
        sa.Column("actor_id", sa.String(length=255), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
    ]


def _audit_indexes(table: str) -> None:
    for column in ("actor_id", "timestamp", "expires_at"):
        op.create_index(f"ix_{table}_{column}", table, [column])


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "field_definitions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("declared_type", sa.Enum(*FIELD_TYPES, name="fieldtype"), nullable=False),
        sa.Column("required", sa.Boolean(), nullable=False),
        sa.Column("default_value", sa.Text(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("rule_kind", sa.Enum("list", "regex", "range", name="rulekind"), nullable=True),
        sa.Column("rule_spec", sa.Text(), nullable=True),
        sa.Column("min_length", sa.Integer(), nullable=True),
        sa.Column("max_length", sa.Integer(), nullable=True),
        sa.Column("min_value", sa.Float(), nullable=True),
        sa.Column("max_value", sa.Float(), nullable=True),
        sa.Column("placeholder", sa.String(length=255), nullable=True),
        sa.Column(
            "semantic_kind",
            sa.Enum("national_id", "first_name", "last_name", name="semantickind"),
            nullable=True,
        ),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_field_definitions_name", "field_definitions", ["name"], unique=True)
    op.create_index("ix_field_definitions_semantic_kind", "field_definitions", ["semantic_kind"])

    op.create_table(
        "community_records",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("fields", sa.JSON(), nullable=False),
        sa.Column("natural_key", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_community_records_natural_key", "community_records", ["natural_key"], unique=True
    )

    op.create_table(
        "staged_rows",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("session_id", sa.String(length=64), nullable=False),
        sa.Column("row_number", sa.Integer(), nullable=False),
        sa.Column("fields", sa.JSON(), nullable=False),
        sa.Column("prior_fields", sa.JSON(), nullable=True),
        sa.Column("matched_record_id", sa.Integer(), nullable=True),
        sa.Column(
            "state",
            sa.Enum("new", "update", "error", "unchanged", name="stagedrowstate"),
            nullable=False,
        ),
        sa.Column("errors", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_staged_rows_session_id", "staged_rows", ["session_id"])
    op.create_index("ix_staged_rows_state", "staged_rows", ["state"])

    op.create_table(
        "upload_events",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        *_audit_columns(),
        sa.Column("file_name", sa.String(length=500), nullable=True),
        sa.Column("row_count", sa.Integer(), nullable=False),
        sa.Column(
            "status",
            sa.Enum("in_progress", "completed", "failed", name="uploadstatus"),
            nullable=False,
        ),
        sa.Column("error_text", sa.Text(), nullable=True),
        sa.Column("job_id", sa.String(length=64), nullable=True),
        sa.Column("session_id", sa.String(length=64), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    _audit_indexes("upload_events")
    op.create_index("ix_upload_events_job_id", "upload_events", ["job_id"])
    op.create_index("ix_upload_events_session_id", "upload_events", ["session_id"])

    op.create_table(
        "modification_events",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        *_audit_columns(),
        sa.Column(
            "operation",
            sa.Enum("create", "update", "delete", "bulk", name="operationkind"),
            nullable=False,
        ),
        sa.Column("summary", sa.Text(), nullable=False),
        sa.Column("context", sa.Text(), nullable=True),
        sa.Column("record_id", sa.Integer(), nullable=True),
        sa.Column("changes", sa.JSON(), nullable=True),
        sa.Column("statistics", sa.JSON(), nullable=True),
        sa.Column("upload_event_id", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(["upload_event_id"], ["upload_events.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    _audit_indexes("modification_events")
    op.create_index("ix_modification_events_operation", "modification_events", ["operation"])
    op.create_index("ix_modification_events_record_id", "modification_events", ["record_id"])
    op.create_index(
        "ix_modification_events_upload_event_id", "modification_events", ["upload_event_id"]
    )

    op.create_table(
        "download_events",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        *_audit_columns(),
        sa.Column("format", sa.Enum("csv", "json", name="downloadformat"), nullable=False),
        sa.Column("row_count", sa.Integer(), nullable=False),
        sa.Column("filters", sa.JSON(), nullable=True),
        sa.Column("file_name", sa.String(length=500), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    _audit_indexes("download_events")


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table("download_events")
    op.drop_table("modification_events")
    op.drop_table("upload_events")
    op.drop_table("staged_rows")
    op.drop_table("community_records")
    op.drop_table("field_definitions")
