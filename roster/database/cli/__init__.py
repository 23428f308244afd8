#!/usr/bin/env python3
"""
Roster Management CLI
---------------------

Modular command-line interface for the roster database and its imports.

This module provides the main CLI group and shared context setup
for all commands.

Command Structure:
    - Setup & Initialization (init)
    - Column dictionary (schema)
    - Record store (records)
    - Staged and bulk imports (imports)
    - Audit log (audit)

Usage:
    # Get general help
    roster --help

    # Get help for a specific command group
    roster imports --help

    # Get help for a specific command
    roster imports stage --help
"""
import logging
from pathlib import Path

import click

from roster.core.cli_utils import setup_logger
from roster.core.paths import ALEMBIC_DIR, DB_PATH, LOG_DIR
from roster.database import RosterDB
from roster.ingest.service import ImportService


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    default=str(DB_PATH),
    help="Path to database file",
)
@click.option(
    "--alembic-dir",
    type=click.Path(),
    default=str(ALEMBIC_DIR),
    help="Path to Alembic directory",
)
@click.option(
    "--log-dir",
    type=click.Path(),
    default=str(LOG_DIR),
    help="Path to log directory",
)
@click.option(
    "--actor",
    envvar="ROSTER_ACTOR",
    default="cli",
    show_default=True,
    help="Actor id recorded in the audit log",
)
@click.option(
    "--verbose",
    is_flag=True,
    help="Show detailed errors and tracebacks",
)
@click.pass_context
def cli(ctx, db_path, alembic_dir, log_dir, actor, verbose):
    """Roster ingestion and database management CLI"""

    # Suppress Alembic INFO logging by default
    logging.getLogger("alembic").setLevel(logging.WARNING)

    ctx.ensure_object(dict)
    ctx.obj["db_path"] = Path(db_path)
    ctx.obj["alembic_dir"] = Path(alembic_dir)
    ctx.obj["log_dir"] = Path(log_dir)
    ctx.obj["actor"] = actor
    ctx.obj["verbose"] = verbose
    ctx.obj["logger"] = setup_logger(Path(log_dir), "cli")


def get_db(ctx) -> RosterDB:
    """Get or create database instance from context."""
    if "db" not in ctx.obj:
        ctx.obj["db"] = RosterDB(
            db_path=ctx.obj["db_path"],
            alembic_dir=ctx.obj["alembic_dir"],
            log_dir=ctx.obj["log_dir"],
        )
        ctx.call_on_close(ctx.obj["db"].close)
    return ctx.obj["db"]


def get_service(ctx) -> ImportService:
    """Get or create the import service; its worker pool closes with the context."""
    if "service" not in ctx.obj:
        db = get_db(ctx)
        service = ImportService(db, logger=db.logger)
        ctx.obj["service"] = service
        ctx.call_on_close(service.close)
    return ctx.obj["service"]


# Import and register command modules
# These imports must come after CLI group definition
from .setup import init, status  # noqa: E402
from .schema import schema  # noqa: E402
from .records import records  # noqa: E402
from .imports import imports  # noqa: E402
from .audit import audit  # noqa: E402

# Register top-level commands
cli.add_command(init)
cli.add_command(status)

# Register command groups
cli.add_command(schema)
cli.add_command(records)
cli.add_command(imports)
cli.add_command(audit)


if __name__ == "__main__":
    cli(obj={})
