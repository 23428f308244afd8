"""
Audit Log Commands
------------------

Inspect and clean up upload, modification and download events.

Commands:
    - list: Most recent events, optionally of one kind
    - stats: Event counts by kind and age
    - cleanup: Delete events past their retention
"""
import click

from roster.core.exceptions import DatabaseError
from roster.core.logging_manager import handle_cli_error
from roster.database.managers.audit_manager import EVENT_KINDS
from roster.database.models import DownloadEvent, ModificationEvent, UploadEvent
from . import get_db


def _describe(event) -> str:
    """One display line per event."""
    stamp = event.timestamp.strftime("%Y-%m-%d %H:%M:%S")
    if isinstance(event, UploadEvent):
        detail = f"upload {event.file_name or '-'} ({event.row_count} rows) {event.status.value}"
    elif isinstance(event, ModificationEvent):
        detail = f"{event.operation.display_name.lower()}: {event.summary}"
    elif isinstance(event, DownloadEvent):
        detail = f"download {event.format.value} ({event.row_count} rows)"
    else:
        detail = type(event).__name__
    return f"{stamp} [{event.actor_id}] {detail}"


@click.group()
@click.pass_context
def audit(ctx: click.Context) -> None:
    """Inspect the audit log."""
    pass


@audit.command("list")
@click.option("--kind", type=click.Choice(sorted(EVENT_KINDS)), help="Only one kind of event")
@click.option("--limit", default=20, show_default=True, help="Maximum events to show")
@click.pass_context
def list_events(ctx, kind, limit):
    """Show the most recent events."""
    try:
        db = get_db(ctx)
        with db.session_scope():
            events = db.audit.list_events(kind=kind, limit=limit)

            if not events:
                click.echo("📭 No audit events")
                return

            click.echo(f"\n📜 Audit events ({len(events)}):\n")
            for event in events:
                click.echo(f"  • {_describe(event)}")

    except DatabaseError as e:
        handle_cli_error(ctx, e, "audit_list")


@audit.command("stats")
@click.pass_context
def stats(ctx):
    """Show event counts by kind and age."""
    try:
        db = get_db(ctx)
        with db.session_scope():
            result = db.audit.stats()

        click.echo("\n📊 Audit Log Statistics:\n")
        for kind in EVENT_KINDS:
            counts = result[kind]
            click.echo(
                f"  {kind.title():<13} {counts['total']:>6} total, "
                f"{counts['last_week']} last week, {counts['expired']} expired"
            )
        summary = result["summary"]
        click.echo(
            f"\n  Total: {summary['total']} events, "
            f"{summary['to_cleanup']} ready for cleanup"
        )

    except DatabaseError as e:
        handle_cli_error(ctx, e, "audit_stats")


@audit.command("cleanup")
@click.option(
    "--days", type=int, default=None,
    help="Delete events older than this many days instead of expired ones",
)
@click.pass_context
def cleanup(ctx, days):
    """Delete events past their retention window."""
    try:
        db = get_db(ctx)
        with db.session_scope():
            deleted = db.audit.cleanup_expired(older_than_days=days)

        click.echo(f"🧹 Deleted {deleted['total']} audit events")
        for kind in EVENT_KINDS:
            if deleted[kind]:
                click.echo(f"  • {kind}: {deleted[kind]}")

    except DatabaseError as e:
        handle_cli_error(ctx, e, "audit_cleanup")
