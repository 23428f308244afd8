#!/usr/bin/env python3
"""
Integration tests for the roster CLI.

Drives the column dictionary, staged imports, bulk jobs, record commands
and audit commands against a temporary database.
"""
import csv
import json
import re

import pytest
from click.testing import CliRunner

from roster.core.paths import ALEMBIC_DIR
from roster.database.cli import cli

pytestmark = pytest.mark.integration

SCHEMA_YAML = """\
fields:
  - name: rut
    required: true
  - name: nombre
    required: true
  - name: edad
    type: number
    min_value: 0
"""


class TestRosterCLI:
    """Test roster CLI commands with a temporary database."""

    @pytest.fixture
    def runner(self):
        """Create Click test runner."""
        return CliRunner()

    @pytest.fixture
    def test_dirs(self, tmp_path):
        """Paths for the database, logs and input files."""
        return {
            "root": tmp_path,
            "db_path": tmp_path / "roster.db",
            "log_dir": tmp_path / "logs",
        }

    def invoke_cli(self, runner, test_dirs, args, **kwargs):
        """Helper to invoke CLI with test configuration."""
        base_args = [
            "--db-path", str(test_dirs["db_path"]),
            "--alembic-dir", str(ALEMBIC_DIR),
            "--log-dir", str(test_dirs["log_dir"]),
            "--actor", "tester",
        ]
        return runner.invoke(cli, base_args + args, **kwargs)

    @pytest.fixture
    def with_schema(self, runner, test_dirs):
        """Database initialized with rut/nombre/edad."""
        schema_file = test_dirs["root"] / "schema.yaml"
        schema_file.write_text(SCHEMA_YAML, encoding="utf-8")
        result = self.invoke_cli(runner, test_dirs, ["schema", "load", str(schema_file)])
        assert result.exit_code == 0, result.output
        return test_dirs

    def write_csv(self, test_dirs, name, rows):
        path = test_dirs["root"] / name
        with open(path, "w", newline="", encoding="utf-8") as handle:
            writer = csv.DictWriter(handle, fieldnames=["rut", "nombre", "edad"])
            writer.writeheader()
            writer.writerows(rows)
        return path

    def stage(self, runner, test_dirs, csv_path):
        result = self.invoke_cli(runner, test_dirs, ["imports", "stage", str(csv_path)])
        assert result.exit_code == 0, result.output
        return re.search(r"Session: (\S+)", result.output).group(1), result

    # ----- Setup -----

    def test_cli_help(self, runner):
        """Test that CLI help message works."""
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        for group in ("schema", "records", "imports", "audit"):
            assert group in result.output

    def test_init_command(self, runner, test_dirs):
        """Test 'init' command creates the database."""
        result = self.invoke_cli(runner, test_dirs, ["init"])

        assert result.exit_code == 0, result.output
        assert "Database ready" in result.output
        assert test_dirs["db_path"].exists()
        assert (test_dirs["log_dir"] / "operations" / "cli.log").exists()

    # ----- Schema -----

    def test_schema_load_and_list(self, runner, with_schema):
        result = self.invoke_cli(runner, with_schema, ["schema", "list"])

        assert result.exit_code == 0, result.output
        assert "rut [text] (required, national_id)" in result.output
        assert "edad [number]" in result.output

    def test_schema_add_duplicate_fails(self, runner, with_schema):
        result = self.invoke_cli(runner, with_schema, ["schema", "add", "RUT"])

        assert result.exit_code == 1
        assert "SchemaError" in result.output

    def test_schema_dump_round_trips_names(self, runner, with_schema):
        result = self.invoke_cli(runner, with_schema, ["schema", "dump"])

        assert result.exit_code == 0, result.output
        assert "- name: rut" in result.output
        assert "semantic_kind: national_id" in result.output

    def test_schema_rename(self, runner, with_schema):
        result = self.invoke_cli(runner, with_schema, ["schema", "rename", "edad", "Age"])

        assert result.exit_code == 0, result.output
        assert "Renamed 'edad' to 'age'" in result.output

    # ----- Imports -----

    def test_stage_show_and_commit(self, runner, with_schema):
        csv_path = self.write_csv(with_schema, "members.csv", [
            {"rut": "12345678-5", "nombre": "Ana", "edad": "30"},
            {"rut": "9.876.543-K", "nombre": "Luis", "edad": ""},
        ])

        session_id, staged = self.stage(runner, with_schema, csv_path)
        assert "Staged 2 rows" in staged.output
        assert "2 new" in staged.output

        shown = self.invoke_cli(runner, with_schema, ["imports", "show", session_id])
        assert shown.exit_code == 0, shown.output
        assert "row 1" in shown.output and "row 2" in shown.output

        committed = self.invoke_cli(
            runner, with_schema, ["imports", "commit", session_id, "--file-name", "members.csv"]
        )
        assert committed.exit_code == 0, committed.output
        assert "2 created, 0 updated" in committed.output

        listed = self.invoke_cli(runner, with_schema, ["records", "list", "--filter", "nombre=an"])
        assert "Records (1)" in listed.output
        assert "rut=12.345.678-5" in listed.output

    def test_commit_refused_with_errors(self, runner, with_schema):
        csv_path = self.write_csv(with_schema, "bad.csv", [
            {"rut": "12345678-5", "nombre": "Ana", "edad": "treinta"},
        ])
        session_id, staged = self.stage(runner, with_schema, csv_path)
        assert "1 error" in staged.output

        result = self.invoke_cli(runner, with_schema, ["imports", "commit", session_id])

        assert result.exit_code == 1
        assert "CommitRefusedError" in result.output

        errors = self.invoke_cli(runner, with_schema, ["imports", "show", session_id, "--errors-only"])
        assert "edad" in errors.output

    def test_cancel_session(self, runner, with_schema):
        csv_path = self.write_csv(with_schema, "m.csv", [{"rut": "1234567-4", "nombre": "Eva", "edad": "1"}])
        session_id, _ = self.stage(runner, with_schema, csv_path)

        result = self.invoke_cli(runner, with_schema, ["imports", "cancel", session_id])
        assert result.exit_code == 0, result.output
        assert "1 rows discarded" in result.output

        again = self.invoke_cli(runner, with_schema, ["imports", "show", session_id])
        assert again.exit_code == 1
        assert "SessionNotFoundError" in again.output

    def test_bulk_job(self, runner, with_schema):
        csv_path = self.write_csv(with_schema, "bulk.csv", [
            {"rut": "12345678-5", "nombre": "Ana", "edad": "30"},
            {"rut": "", "nombre": "Sin rut", "edad": ""},
        ])

        result = self.invoke_cli(runner, with_schema, ["imports", "bulk", str(csv_path), "--poll", "0.05"])

        assert result.exit_code == 0, result.output
        assert "Job completed: 1 created, 0 updated, 1 errors" in result.output
        assert "row 2:" in result.output

    # ----- Records -----

    def test_create_update_show_delete(self, runner, with_schema):
        created = self.invoke_cli(runner, with_schema, ["records", "create", "rut=12.345.678-5", "nombre=Ana"])
        assert created.exit_code == 0, created.output
        record_id = re.search(r"#(\d+)", created.output).group(1)

        updated = self.invoke_cli(runner, with_schema, ["records", "update", record_id, "edad=31"])
        assert updated.exit_code == 0, updated.output

        shown = self.invoke_cli(runner, with_schema, ["records", "show", record_id])
        assert "edad: 31" in shown.output
        assert "12.345.678-5" in shown.output

        deleted = self.invoke_cli(runner, with_schema, ["records", "delete", record_id, "--yes"])
        assert deleted.exit_code == 0, deleted.output

        missing = self.invoke_cli(runner, with_schema, ["records", "show", record_id])
        assert missing.exit_code == 1

    def test_create_invalid_record(self, runner, with_schema):
        result = self.invoke_cli(runner, with_schema, ["records", "create", "nombre=Ana", "edad=-1"])

        assert result.exit_code == 1
        assert "ValidationError" in result.output

    def test_bad_assignment(self, runner, with_schema):
        result = self.invoke_cli(runner, with_schema, ["records", "create", "nombre"])
        assert result.exit_code == 1

    def test_export_json(self, runner, with_schema):
        self.invoke_cli(runner, with_schema, ["records", "create", "rut=12.345.678-5", "nombre=Ana"])
        output = with_schema["root"] / "out" / "records.json"

        result = self.invoke_cli(runner, with_schema, ["records", "export", str(output), "--format", "json"])

        assert result.exit_code == 0, result.output
        payload = json.loads(output.read_text(encoding="utf-8"))
        assert payload[0]["fields"]["nombre"] == "Ana"

    def test_prune_obsolete(self, runner, with_schema):
        self.invoke_cli(runner, with_schema, ["records", "create", "rut=12.345.678-5", "nombre=Ana", "edad=3"])
        self.invoke_cli(runner, with_schema, ["schema", "remove", "edad", "--yes"])

        result = self.invoke_cli(runner, with_schema, ["records", "prune-obsolete"])

        assert result.exit_code == 0, result.output
        assert "from 1 records" in result.output

    # ----- Audit -----

    def test_audit_list_and_stats(self, runner, with_schema):
        self.invoke_cli(runner, with_schema, ["records", "create", "rut=12.345.678-5", "nombre=Ana"])

        listed = self.invoke_cli(runner, with_schema, ["audit", "list", "--kind", "modification"])
        assert listed.exit_code == 0, listed.output
        assert "[tester]" in listed.output
        assert "Created record" in listed.output

        stats = self.invoke_cli(runner, with_schema, ["audit", "stats"])
        assert stats.exit_code == 0, stats.output
        assert "Total: 1 events, 0 ready for cleanup" in stats.output

    def test_audit_cleanup(self, runner, with_schema):
        self.invoke_cli(runner, with_schema, ["records", "create", "rut=12.345.678-5", "nombre=Ana"])

        result = self.invoke_cli(runner, with_schema, ["audit", "cleanup"])

        assert result.exit_code == 0, result.output
        assert "Deleted 0 audit events" in result.output
