#!/usr/bin/env python3
"""
test_export_manager.py
----------------------
Unit tests for ExportManager.

Key areas tested:
    - Column ordering (dictionary first, extra keys after)
    - CSV and JSON output
    - Error conditions
"""
# --- Standard library imports ---
import csv
import json

# --- Third party imports ---
import pytest

# --- Local imports ---
from roster.core.exceptions import ExportError
from roster.database.export_manager import ExportManager
from roster.database.models import CommunityRecord, DownloadFormat


@pytest.fixture
def records():
    """Two detached records, the second carrying an undeclared key."""
    return [
        CommunityRecord(id=1, fields={"rut": "12.345.678-5", "nombre": "Ana"}),
        CommunityRecord(id=2, fields={"nombre": "José", "apodo": "Pepe"}),
    ]


@pytest.fixture
def exporter(mock_logger):
    return ExportManager(logger=mock_logger)


class TestColumnOrder:
    """Tests for ExportManager.column_order."""

    def test_dictionary_then_extras(self, records):
        assert ExportManager.column_order(records, ["nombre", "rut"]) == ["nombre", "rut", "apodo"]

    def test_empty_store(self):
        assert ExportManager.column_order([], ["rut"]) == ["rut"]


class TestExportRecords:
    """Tests for ExportManager.export_records."""

    def test_csv(self, exporter, records, tmp_dir):
        path = exporter.export_records(records, ["rut", "nombre"], DownloadFormat.CSV, tmp_dir / "out" / "r.csv")

        with open(path, newline="", encoding="utf-8") as handle:
            rows = list(csv.DictReader(handle))

        assert list(rows[0]) == ["id", "rut", "nombre", "apodo"]
        assert rows[0] == {"id": "1", "rut": "12.345.678-5", "nombre": "Ana", "apodo": ""}
        assert rows[1]["nombre"] == "José"

    def test_json(self, exporter, records, tmp_dir):
        path = exporter.export_records(records, ["rut", "nombre"], "json", tmp_dir / "r.json")

        payload = json.loads(path.read_text(encoding="utf-8"))

        assert payload == [
            {"id": 1, "fields": {"rut": "12.345.678-5", "nombre": "Ana"}},
            {"id": 2, "fields": {"nombre": "José", "apodo": "Pepe"}},
        ]

    def test_no_temp_files_left(self, exporter, records, tmp_dir):
        exporter.export_records(records, [], "csv", tmp_dir / "r.csv")
        assert [p.name for p in tmp_dir.iterdir()] == ["r.csv"]

    def test_overwrites_existing_file(self, exporter, records, tmp_dir):
        target = tmp_dir / "r.json"
        target.write_text("stale", encoding="utf-8")

        exporter.export_records(records[:1], [], "json", target)

        assert json.loads(target.read_text(encoding="utf-8"))[0]["id"] == 1

    def test_unknown_format(self, exporter, records, tmp_dir):
        with pytest.raises(ExportError, match="Unsupported export format"):
            exporter.export_records(records, [], "xml", tmp_dir / "r.xml")

    def test_logs_completion(self, exporter, mock_logger, records, tmp_dir):
        exporter.export_records(records, [], "csv", tmp_dir / "r.csv")
        assert mock_logger.log_operation.call_args[0][0] == "export_records_completed"
