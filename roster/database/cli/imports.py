"""
Import Commands
---------------

Stage, review, correct and commit tabular uploads, or run them as bulk jobs.

Commands:
    - stage: Validate a CSV file into a staging session
    - show: Review the rows of a session (errors first)
    - revise: Correct fields of one staged row and re-validate it
    - drop-row: Remove one staged row
    - cancel: Discard a session
    - commit: Apply a session to the record store
    - bulk: Import a CSV file directly as a background job and follow it

Workflow:
    roster imports stage members.csv
    roster imports show <session>
    roster imports revise <row_id> rut=12.345.678-5
    roster imports commit <session>
"""
import csv
from pathlib import Path
from typing import Any, Dict, List

import click

from roster.core.cli_utils import parse_assignments
from roster.core.exceptions import (
    DatabaseError,
    JobNotFoundError,
    RecordNotFoundError,
    SessionStateError,
)
from roster.core.logging_manager import handle_cli_error
from roster.database.models import StagedRowState
from roster.ingest.models import JobStatus
from . import get_db, get_service

STATE_ICONS = {
    StagedRowState.NEW: "🆕",
    StagedRowState.UPDATE: "✏️ ",
    StagedRowState.UNCHANGED: "➖",
    StagedRowState.ERROR: "❌",
}


def read_csv_rows(path: Path) -> List[Dict[str, Any]]:
    """Rows of a CSV file keyed by header (BOM tolerated)."""
    with open(path, "r", newline="", encoding="utf-8-sig") as handle:
        return [dict(row) for row in csv.DictReader(handle)]


def _echo_counts(counts: Dict[str, int]) -> None:
    click.echo(
        "📊 "
        + ", ".join(f"{counts[state.value]} {state.value}" for state in StagedRowState)
    )


@click.group()
@click.pass_context
def imports(ctx: click.Context) -> None:
    """Stage, review and commit uploads."""
    pass


@imports.command("stage")
@click.argument("csv_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--session", "session_id", help="Re-stage into an existing session id")
@click.pass_context
def stage(ctx, csv_file, session_id):
    """Validate a CSV file into a staging session."""
    try:
        rows = read_csv_rows(csv_file)
        summary = get_service(ctx).stage_batch(rows, session_id=session_id)

        click.echo(f"📥 Staged {summary.total} rows from {csv_file.name}")
        click.echo(f"🗂️  Session: {summary.session_id}")
        _echo_counts(summary.counts)
        if summary.counts[StagedRowState.ERROR.value]:
            click.echo("💡 Fix error rows with 'roster imports revise' before committing")

    except (DatabaseError, OSError, csv.Error) as e:
        handle_cli_error(ctx, e, "imports_stage", additional_context={"file": str(csv_file)})


@imports.command("show")
@click.argument("session_id")
@click.option("--errors-only", is_flag=True, help="Only show rows with errors")
@click.pass_context
def show(ctx, session_id, errors_only):
    """Review the rows of a staging session."""
    try:
        view = get_service(ctx).get_session(session_id)

        click.echo(f"\n🗂️  Session {view.session_id}")
        _echo_counts(view.counts)
        click.echo()

        for row in view.rows:
            if errors_only and row.state != StagedRowState.ERROR:
                continue
            icon = STATE_ICONS.get(row.state, "•")
            target = f" -> record #{row.matched_record_id}" if row.matched_record_id else ""
            click.echo(f"{icon} row {row.row_number} (id {row.id}) {row.state.value}{target}")
            for message in row.errors or []:
                click.echo(f"     • {message}")

    except (SessionStateError, DatabaseError) as e:
        handle_cli_error(ctx, e, "imports_show", additional_context={"session_id": session_id})


@imports.command("revise")
@click.argument("row_id", type=int)
@click.argument("assignments", nargs=-1, required=True, metavar="FIELD=VALUE...")
@click.pass_context
def revise(ctx, row_id, assignments):
    """Correct fields of one staged row and re-validate it."""
    try:
        changes = parse_assignments(assignments)
        db = get_db(ctx)
        with db.session_scope():
            current = db.staging.get(row_id)
            if current is None:
                raise RecordNotFoundError(f"Staged row with id={row_id} not found")
            fields = {**current.fields, **changes}

        row = get_service(ctx).revise_staged_row(row_id, fields)
        icon = STATE_ICONS.get(row.state, "•")
        click.echo(f"{icon} row {row.row_number} is now {row.state.value}")
        for message in row.errors or []:
            click.echo(f"     • {message}")

    except (ValueError, DatabaseError) as e:
        handle_cli_error(ctx, e, "imports_revise", additional_context={"row_id": row_id})


@imports.command("drop-row")
@click.argument("row_id", type=int)
@click.pass_context
def drop_row(ctx, row_id):
    """Remove one staged row from its session."""
    try:
        row = get_service(ctx).delete_staged_row(row_id)
        click.echo(f"🗑️  Dropped row {row.row_number} from session {row.session_id}")

    except DatabaseError as e:
        handle_cli_error(ctx, e, "imports_drop_row", additional_context={"row_id": row_id})


@imports.command("cancel")
@click.argument("session_id")
@click.pass_context
def cancel(ctx, session_id):
    """Discard a staging session without writing records."""
    try:
        removed = get_service(ctx).cancel_session(session_id)
        click.echo(f"🗑️  Cancelled session {session_id} ({removed} rows discarded)")

    except (SessionStateError, DatabaseError) as e:
        handle_cli_error(ctx, e, "imports_cancel", additional_context={"session_id": session_id})


@imports.command("commit")
@click.argument("session_id")
@click.option("--file-name", help="Source file name recorded in the audit log")
@click.pass_context
def commit(ctx, session_id, file_name):
    """Apply the new and update rows of a session."""
    try:
        result = get_service(ctx).commit_session(
            session_id, actor_id=ctx.obj["actor"], file_name=file_name
        )

        click.echo(f"✅ Committed: {result.created} created, {result.updated} updated")
        if result.errors:
            click.echo(f"⚠️  {result.error_count} rows were skipped:")
            for message in result.errors:
                click.echo(f"  • {message}")

    except (SessionStateError, DatabaseError) as e:
        handle_cli_error(ctx, e, "imports_commit", additional_context={"session_id": session_id})


@imports.command("bulk")
@click.argument("csv_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--poll", default=0.5, show_default=True, help="Seconds between progress checks")
@click.pass_context
def bulk(ctx, csv_file, poll):
    """Import a CSV file as a background job and follow its progress."""
    try:
        service = get_service(ctx)
        rows = read_csv_rows(csv_file)
        job_id, total = service.start_bulk_job(
            rows, actor_id=ctx.obj["actor"], file_name=csv_file.name
        )
        click.echo(f"🚀 Bulk job {job_id} started ({total} rows)")

        job = service.get_job_status(job_id)
        while job is not None and not job.status.is_terminal:
            job = service.wait_for_job(job_id, timeout=poll)
            click.echo(f"  ⏳ {job.progress_percent}% ({job.processed_rows}/{job.total_rows})")

        if job is None:
            raise JobNotFoundError(f"Bulk job '{job_id}' not found")

        icon = "✅" if job.status == JobStatus.COMPLETED else "❌"
        click.echo(
            f"{icon} Job {job.status.value}: {job.created} created, "
            f"{job.updated} updated, {job.error_count} errors"
        )
        for message in job.errors:
            click.echo(f"  • {message}")

    except (JobNotFoundError, DatabaseError, OSError, csv.Error) as e:
        handle_cli_error(ctx, e, "imports_bulk", additional_context={"file": str(csv_file)})
