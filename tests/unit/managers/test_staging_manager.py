#!/usr/bin/env python3
"""
test_staging_manager.py
-----------------------
Tests for StagingManager: per-session rows, ordering and counters.

Usage:
    python -m pytest tests/unit/managers/test_staging_manager.py -v
"""
# --- Third-party imports ---
import pytest

# --- Local imports ---
from roster.core.exceptions import RecordNotFoundError
from roster.database.models import StagedRowState


@pytest.fixture
def staged(staging_manager):
    """Session 's1' with one row per state plus a row in another session."""
    staging_manager.add("s1", 1, {"rut": "1"}, StagedRowState.NEW)
    staging_manager.add(
        "s1", 2, {"rut": "2"}, StagedRowState.UPDATE,
        prior_fields={"rut": "2", "nombre": "Old"}, matched_record_id=7,
    )
    staging_manager.add("s1", 3, {"rut": ""}, StagedRowState.ERROR, errors=["rut is required"])
    staging_manager.add("s1", 4, {"rut": "4"}, StagedRowState.UNCHANGED, matched_record_id=8)
    staging_manager.add("s2", 1, {"rut": "9"}, StagedRowState.NEW)
    return staging_manager


class TestStagingManager:
    """Tests for StagingManager."""

    def test_counts_every_state(self, staged):
        assert staged.counts("s1") == {"new": 1, "update": 1, "error": 1, "unchanged": 1}

    def test_counts_of_unknown_session(self, staging_manager):
        assert staging_manager.counts("missing") == {
            "new": 0, "update": 0, "error": 0, "unchanged": 0,
        }

    def test_rows_put_errors_first(self, staged):
        assert [r.row_number for r in staged.rows("s1")] == [3, 1, 2, 4]

    def test_eligible_rows(self, staged):
        rows = staged.eligible_rows("s1")
        assert [r.state for r in rows] == [StagedRowState.NEW, StagedRowState.UPDATE]
        assert rows[1].prior_fields == {"rut": "2", "nombre": "Old"}
        assert rows[1].matched_record_id == 7

    def test_has_errors_and_exists(self, staged):
        assert staged.has_errors("s1")
        assert not staged.has_errors("s2")
        assert staged.session_exists("s2")
        assert not staged.session_exists("s3")

    def test_update_reclassifies(self, staged):
        row = staged.rows("s1")[0]

        staged.update(row, {"rut": "3"}, StagedRowState.NEW)

        assert row.errors == []
        assert row.fields == {"rut": "3"}
        assert not staged.has_errors("s1")

    def test_delete_row(self, staged):
        row = staged.rows("s2")[0]
        staged.delete_row(row.id)
        assert not staged.session_exists("s2")

    def test_delete_missing_row(self, staging_manager):
        with pytest.raises(RecordNotFoundError):
            staging_manager.delete_row(12345)

    def test_replace_session_leaves_others(self, staged):
        assert staged.replace_session("s1") == 4
        assert not staged.session_exists("s1")
        assert staged.session_exists("s2")
