"""
Setup & Initialization Commands
--------------------------------

Database initialization and migration status.

Commands:
    - init: Create a fresh database or upgrade an existing one
    - status: Show the current Alembic revision
"""
import click

from roster.core.exceptions import DatabaseError
from roster.core.logging_manager import handle_cli_error
from . import get_db


@click.command()
@click.pass_context
def init(ctx):
    """Initialize the database (create tables or run pending migrations)."""
    try:
        click.echo("🚀 Initializing roster database...")
        db = get_db(ctx)
        db.initialize_schema()
        click.echo(f"✅ Database ready: {db.db_path}")

    except DatabaseError as e:
        handle_cli_error(ctx, e, "init")


@click.command()
@click.pass_context
def status(ctx):
    """Show the migration status of the database."""
    try:
        db = get_db(ctx)
        history = db.get_migration_history()
        if "error" in history:
            click.echo(f"❌ {history['error']}", err=True)
            ctx.exit(1)

        click.echo(f"🗄️  Database: {db.db_path}")
        click.echo(f"📌 Revision: {history['current_revision'] or 'none'}")
        click.echo(f"📊 Status: {history['status']}")

    except DatabaseError as e:
        handle_cli_error(ctx, e, "status")
