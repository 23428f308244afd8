"""
Record Store Commands
---------------------

Browse and edit committed records.

Commands:
    - list: Records matching optional field filters
    - show: One record with all its fields
    - create: Validate and insert one record
    - update: Merge field values into one record
    - delete: Remove one record
    - prune-obsolete: Drop values of fields no longer defined
    - export: Write records to CSV or JSON
"""
from pathlib import Path

import click

from roster.core.cli_utils import parse_assignments
from roster.core.exceptions import DatabaseError, ValidationError
from roster.core.logging_manager import handle_cli_error
from roster.core.paths import EXPORT_DIR
from roster.database.models import DownloadFormat
from . import get_db, get_service


def _echo_errors(error: ValidationError) -> None:
    for message in error.errors:
        click.echo(f"  • {message}", err=True)


@click.group()
@click.pass_context
def records(ctx: click.Context) -> None:
    """Browse and edit committed records."""
    pass


@records.command("list")
@click.option(
    "--filter", "filters", multiple=True, metavar="FIELD=TEXT",
    help="Case-insensitive substring filter (repeatable)",
)
@click.pass_context
def list_records(ctx, filters):
    """List records matching every filter."""
    try:
        found = get_service(ctx).search_records(parse_assignments(filters))

        if not found:
            click.echo("📭 No records found")
            return

        click.echo(f"\n👥 Records ({len(found)}):\n")
        for record in found:
            preview = ", ".join(f"{k}={v}" for k, v in list(record.fields.items())[:3])
            click.echo(f"  • #{record.id}: {preview}")

    except (ValueError, DatabaseError) as e:
        handle_cli_error(ctx, e, "records_list")


@records.command("show")
@click.argument("record_id", type=int)
@click.pass_context
def show(ctx, record_id):
    """Display one record."""
    try:
        db = get_db(ctx)
        with db.session_scope():
            record = db.records.get(record_id)
            if record is None:
                click.echo(f"❌ No record with id {record_id}", err=True)
                ctx.exit(1)

            click.echo(f"\n🪪 Record #{record.id}")
            if record.natural_key:
                click.echo(f"🔑 {record.natural_key}")
            for name, value in record.fields.items():
                click.echo(f"  {name}: {value}")

    except DatabaseError as e:
        handle_cli_error(ctx, e, "records_show", additional_context={"record_id": record_id})


@records.command("create")
@click.argument("assignments", nargs=-1, required=True, metavar="FIELD=VALUE...")
@click.pass_context
def create(ctx, assignments):
    """Validate and insert one record."""
    try:
        record = get_service(ctx).create_record(
            parse_assignments(assignments), actor_id=ctx.obj["actor"]
        )
        click.echo(f"✅ Created record #{record.id}")

    except ValidationError as e:
        _echo_errors(e)
        handle_cli_error(ctx, e, "records_create")
    except (ValueError, DatabaseError) as e:
        handle_cli_error(ctx, e, "records_create")


@records.command("update")
@click.argument("record_id", type=int)
@click.argument("assignments", nargs=-1, required=True, metavar="FIELD=VALUE...")
@click.pass_context
def update(ctx, record_id, assignments):
    """Merge field values into one record."""
    try:
        record = get_service(ctx).update_record(
            record_id, parse_assignments(assignments), actor_id=ctx.obj["actor"]
        )
        click.echo(f"✅ Record #{record.id} saved")

    except ValidationError as e:
        _echo_errors(e)
        handle_cli_error(ctx, e, "records_update", additional_context={"record_id": record_id})
    except (ValueError, DatabaseError) as e:
        handle_cli_error(ctx, e, "records_update", additional_context={"record_id": record_id})


@records.command("delete")
@click.argument("record_id", type=int)
@click.confirmation_option(prompt="Delete this record?")
@click.pass_context
def delete(ctx, record_id):
    """Remove one record."""
    try:
        get_service(ctx).delete_record(record_id, actor_id=ctx.obj["actor"])
        click.echo(f"🗑️  Deleted record #{record_id}")

    except DatabaseError as e:
        handle_cli_error(ctx, e, "records_delete", additional_context={"record_id": record_id})


@records.command("prune-obsolete")
@click.pass_context
def prune_obsolete(ctx):
    """Drop stored values of fields that are no longer defined."""
    try:
        touched = get_service(ctx).prune_obsolete_fields(actor_id=ctx.obj["actor"])
        if touched:
            click.echo(f"🧹 Pruned obsolete fields from {touched} records")
        else:
            click.echo("✅ No obsolete fields found")

    except DatabaseError as e:
        handle_cli_error(ctx, e, "records_prune_obsolete")


@records.command("export")
@click.argument(
    "output_file", type=click.Path(dir_okay=False, path_type=Path), required=False
)
@click.option(
    "--format", "fmt", type=click.Choice(DownloadFormat.choices()),
    default=DownloadFormat.CSV.value, show_default=True,
)
@click.option("--filter", "filters", multiple=True, metavar="FIELD=TEXT")
@click.pass_context
def export(ctx, output_file, fmt, filters):
    """Export records to CSV or JSON (default: data/exports/records.<format>)."""
    if output_file is None:
        output_file = EXPORT_DIR / f"records.{fmt}"

    try:
        click.echo(f"📤 Exporting to {fmt.upper()}: {output_file}")
        path = get_service(ctx).export_records(
            fmt, output_file, actor_id=ctx.obj["actor"], filters=parse_assignments(filters)
        )
        click.echo(f"✅ Export complete: {path}")

    except (ValueError, DatabaseError) as e:
        handle_cli_error(ctx, e, "records_export", additional_context={"output_file": str(output_file)})
