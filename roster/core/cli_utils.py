#!/usr/bin/env python3
"""
cli_utils.py
-------------------
Shared CLI utilities for Roster commands.

Functions:
    setup_logger: Initialize RosterLogger for CLI operations
    parse_assignments: Turn ``key=value`` arguments into a field map

Usage:
    from roster.core.cli_utils import setup_logger

    logger = setup_logger(log_dir, "imports")
"""
from pathlib import Path
from typing import Dict, Iterable

from roster.core.logging_manager import RosterLogger


def setup_logger(log_dir: Path, component_name: str) -> RosterLogger:
    """
    Setup logging for CLI operations.

    Creates the operations log directory if it doesn't exist and initializes
    a RosterLogger instance for the specified component.

    Args:
        log_dir: Base log directory (typically from paths.LOG_DIR)
        component_name: Component identifier for logging (e.g., 'imports', 'schema')

    Returns:
        Configured RosterLogger instance
    """
    operations_log_dir = Path(log_dir) / "operations"
    operations_log_dir.mkdir(parents=True, exist_ok=True)
    return RosterLogger(operations_log_dir, component_name=component_name)


def parse_assignments(pairs: Iterable[str]) -> Dict[str, str]:
    """
    Parse ``field=value`` pairs.

    Raises:
        ValueError: If a pair has no '='

    Examples:
        >>> parse_assignments(["nombre=Ana", "edad=30"])
        {'nombre': 'Ana', 'edad': '30'}
    """
    result: Dict[str, str] = {}
    for pair in pairs:
        if "=" not in pair:
            raise ValueError(f"Expected field=value, got '{pair}'")
        key, value = pair.split("=", 1)
        result[key.strip()] = value.strip()
    return result
