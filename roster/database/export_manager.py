#!/usr/bin/env python3
"""
export_manager.py
-----------------
Export of the record store to CSV and JSON files.

Export Formats:
    1. **CSV**: One row per record, one column per field
       - Columns follow the column dictionary order, then any extra keys
       - A leading ``id`` column carries the record id
    2. **JSON**: A list of ``{"id": ..., "fields": {...}}`` objects

Files are written to a temporary sibling first and moved into place, so an
interrupted export never leaves a half-written file at the target path.

Usage:
    exporter = ExportManager(logger=db.logger)
    with db.session_scope():
        records = db.records.search({"nombre": "ana"})
        names = [f.name for f in db.fields.list_fields()]
        path = exporter.export_records(records, names, DownloadFormat.CSV, "out.csv")
"""
from __future__ import annotations

import csv
import json
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from roster.core.exceptions import ExportError
from roster.core.logging_manager import RosterLogger, safe_logger

from .decorators import log_database_operation
from .models import CommunityRecord, DownloadFormat


class ExportManager:
    """Writes record snapshots to disk."""

    def __init__(self, logger: Optional[RosterLogger] = None) -> None:
        self.logger = logger

    @staticmethod
    def column_order(
        records: Iterable[CommunityRecord], field_names: Iterable[str]
    ) -> List[str]:
        """Dictionary fields first, then keys only some records carry."""
        columns = list(field_names)
        seen = set(columns)
        for record in records:
            for key in record.fields or {}:
                if key not in seen:
                    seen.add(key)
                    columns.append(key)
        return columns

    @log_database_operation("export_records")
    def export_records(
        self,
        records: List[CommunityRecord],
        field_names: Iterable[str],
        fmt: Union[DownloadFormat, str],
        output_file: Union[str, Path],
    ) -> Path:
        """
        Export records to ``output_file``.

        Args:
            records: Records to write
            field_names: Column dictionary names, in order
            fmt: "csv" or "json"
            output_file: Destination path (parent directories are created)

        Returns:
            Path to the exported file

        Raises:
            ExportError: On an unknown format or a write failure
        """
        try:
            fmt = DownloadFormat(fmt)
        except ValueError as e:
            raise ExportError(f"Unsupported export format: '{fmt}'") from e

        output_file = Path(output_file)
        columns = self.column_order(records, field_names)

        try:
            output_file.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_name = tempfile.mkstemp(
                prefix=".roster_export_", suffix=f".{fmt.value}", dir=output_file.parent
            )
            try:
                with os.fdopen(fd, "w", newline="", encoding="utf-8") as handle:
                    if fmt == DownloadFormat.CSV:
                        self._write_csv(handle, records, columns)
                    else:
                        self._write_json(handle, records, columns)
                shutil.move(temp_name, str(output_file))
            finally:
                if os.path.exists(temp_name):
                    os.remove(temp_name)
        except OSError as e:
            safe_logger(self.logger).log_error(
                e, {"operation": "export_records", "output_file": str(output_file)}
            )
            raise ExportError(f"Failed to write export file: {e}") from e

        return output_file

    @staticmethod
    def _write_csv(handle, records: List[CommunityRecord], columns: List[str]) -> None:
        writer = csv.DictWriter(handle, fieldnames=["id"] + columns)
        writer.writeheader()
        for record in records:
            row: Dict[str, Any] = {"id": record.id}
            fields = record.fields or {}
            row.update({name: fields.get(name, "") for name in columns})
            writer.writerow(row)

    @staticmethod
    def _write_json(handle, records: List[CommunityRecord], columns: List[str]) -> None:
        payload = [
            {
                "id": record.id,
                "fields": {
                    name: (record.fields or {})[name]
                    for name in columns
                    if name in (record.fields or {})
                },
            }
            for record in records
        ]
        json.dump(payload, handle, indent=2, ensure_ascii=False)
