"""Tests for RosterDB: engine setup, session scopes and manager binding."""
import sqlite3
import threading
from unittest.mock import MagicMock

import pytest
from sqlalchemy import inspect
from sqlalchemy.exc import OperationalError

from roster.core.exceptions import DatabaseError
from roster.database.manager import RosterDB, is_lock_contention


class TestRosterDBSetup:
    """Tests for database creation."""

    def test_fresh_file_gets_every_table(self, tmp_dir, test_alembic_dir):
        db_path = tmp_dir / "nested" / "fresh.db"

        with RosterDB(db_path=db_path, alembic_dir=test_alembic_dir) as db:
            tables = set(inspect(db.engine).get_table_names())

        assert db_path.exists()
        assert {
            "field_definitions",
            "community_records",
            "staged_rows",
            "upload_events",
            "modification_events",
            "download_events",
        } <= tables

    def test_log_dir_enables_logger(self, tmp_dir, test_alembic_dir):
        with RosterDB(tmp_dir / "a.db", test_alembic_dir, log_dir=tmp_dir / "logs") as db:
            assert db.logger is not None
        assert (tmp_dir / "logs" / "system").is_dir()


class TestSessionScope:
    """Tests for session_scope and the manager properties."""

    @pytest.mark.parametrize("name", ["fields", "records", "staging", "audit"])
    def test_managers_require_scope(self, test_db, name):
        with pytest.raises(DatabaseError, match="requires active session"):
            getattr(test_db, name)

    def test_commit_on_success(self, test_db):
        with test_db.session_scope():
            test_db.fields.create({"name": "rut"})

        with test_db.session_scope():
            assert test_db.fields.exists("rut")

    def test_rollback_on_error(self, test_db):
        with pytest.raises(RuntimeError):
            with test_db.session_scope():
                test_db.fields.create({"name": "rut"})
                raise RuntimeError("abort")

        with test_db.session_scope():
            assert not test_db.fields.exists("rut")

    def test_managers_unbound_after_scope(self, test_db):
        with test_db.session_scope():
            test_db.records.count()
        with pytest.raises(DatabaseError):
            test_db.records.count()

    def test_managers_are_per_thread(self, test_db):
        seen = []

        def touch():
            try:
                test_db.fields
            except DatabaseError:
                seen.append("unbound")

        with test_db.session_scope():
            worker = threading.Thread(target=touch)
            worker.start()
            worker.join()

        assert seen == ["unbound"]

    def test_savepoint_rolls_back_only_inner_work(self, test_db):
        with test_db.session_scope() as session:
            test_db.fields.create({"name": "kept"})
            try:
                with session.begin_nested():
                    test_db.fields.create({"name": "dropped"})
                    raise RuntimeError("inner failure")
            except RuntimeError:
                pass

        with test_db.session_scope():
            names = [f.name for f in test_db.fields.list_fields()]
        assert names == ["kept"]

    def test_second_writer_waits_for_the_first(self, test_db):
        started = threading.Event()
        release = threading.Event()

        def hold_write_lock():
            with test_db.session_scope():
                test_db.fields.create({"name": "first"})
                started.set()
                release.wait(5)

        holder = threading.Thread(target=hold_write_lock)
        holder.start()
        assert started.wait(5)
        threading.Timer(0.2, release.set).start()

        with test_db.session_scope():
            test_db.fields.create({"name": "second"})
        holder.join()

        with test_db.session_scope():
            names = [f.name for f in test_db.fields.list_fields()]
        assert names == ["first", "second"]


def locked_error():
    return OperationalError("INSERT", {}, sqlite3.OperationalError("database is locked"))


class TestRunInTransaction:
    """Tests for whole-transaction retries on lock contention."""

    def test_returns_result_and_commits(self, test_db):
        field_id = test_db.run_in_transaction(lambda: test_db.fields.create({"name": "rut"}).id)

        with test_db.session_scope():
            assert test_db.fields.get("rut").id == field_id

    def test_locked_attempt_is_rerun_in_fresh_session(self, test_db):
        wrapped = DatabaseError("Database operation failed")
        wrapped.__cause__ = locked_error()
        work = MagicMock(side_effect=[locked_error(), wrapped, "done"])

        assert test_db.run_in_transaction(work, retry_delay=0) == "done"
        assert work.call_count == 3

    def test_gives_up_after_max_retries(self, test_db):
        work = MagicMock(side_effect=locked_error())

        with pytest.raises(OperationalError):
            test_db.run_in_transaction(work, max_retries=2, retry_delay=0)
        assert work.call_count == 2

    def test_other_errors_are_not_retried(self, test_db):
        work = MagicMock(side_effect=DatabaseError("constraint"))

        with pytest.raises(DatabaseError):
            test_db.run_in_transaction(work, retry_delay=0)
        assert work.call_count == 1

    def test_lock_contention_detection(self):
        wrapped = DatabaseError("Database operation failed")
        wrapped.__cause__ = locked_error()

        assert is_lock_contention(locked_error())
        assert is_lock_contention(wrapped)
        assert not is_lock_contention(DatabaseError("Database operation failed"))
        assert not is_lock_contention(RuntimeError("database is locked"))


class TestMigrations:
    """Tests for migration status reporting."""

    def test_unstamped_database_needs_migration(self, test_db):
        history = test_db.get_migration_history()
        assert history == {"current_revision": None, "status": "needs_migration"}
