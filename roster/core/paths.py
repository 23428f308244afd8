#!/usr/bin/env python3
"""
paths.py
-------------------
Path constants for the Roster project.

All paths are Path objects relative to the project root:

    ROOT/
    ├── roster/        # Package code (migrations live in roster/migrations)
    ├── data/          # Database and exports (private)
    └── logs/          # Application logs
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
from pathlib import Path


def _get_project_root() -> Path:
    """
    Determine project root directory.

    Assumes this file is at ROOT/roster/core/paths.py.

    Returns:
        Path object for project root

    Raises:
        RuntimeError: If the package directory cannot be found under ROOT
    """
    current_file = Path(__file__).resolve()
    root = current_file.parent.parent.parent

    if not (root / "roster").is_dir():
        raise RuntimeError(
            f"Cannot determine valid project root. "
            f"Expected {root / 'roster'} to exist. "
            f"Current file: {current_file}"
        )

    return root


# ----- Project directory -----
ROOT: Path = _get_project_root()
DATA_DIR = ROOT / "data"

# --- Database ---
PACKAGE_DIR = ROOT / "roster"
ALEMBIC_DIR = PACKAGE_DIR / "migrations"
ALEMBIC_INI = ROOT / "alembic.ini"
DB_DIR = DATA_DIR / "db"
DB_PATH = DB_DIR / "roster.db"

# --- Outputs ---
EXPORT_DIR = DATA_DIR / "exports"
LOG_DIR = ROOT / "logs"
