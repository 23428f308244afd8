"""
Column Dictionary Commands
--------------------------

Define, load, rename and remove the fields records are validated against.

Commands:
    - list: Show every field in dictionary order
    - add: Define one field
    - load: Create or update fields from a YAML file
    - dump: Write the dictionary as YAML
    - rename: Rename a field (stored records are migrated)
    - remove: Delete a field definition

YAML format (a list, or a mapping with a ``fields`` list):

    fields:
      - name: rut
        type: text
        required: true
        rule_kind: regex
        rule_spec: '^\\d{7,8}-[\\dkK]$'
      - name: edad
        type: number
        min_value: 0
"""
from pathlib import Path
from typing import Any, Dict, List

import click
import yaml

from roster.core.exceptions import DatabaseError, ValidationError
from roster.core.logging_manager import handle_cli_error
from roster.database.models import FieldType, RuleKind, SemanticKind
from . import get_db


def _read_definitions(path: Path) -> List[Dict[str, Any]]:
    """
    Read field definitions from YAML.

    Raises:
        ValidationError: If the document is not a list of mappings
    """
    with open(path, "r", encoding="utf-8") as handle:
        document = yaml.safe_load(handle) or []
    if isinstance(document, dict):
        document = document.get("fields", [])
    if not isinstance(document, list):
        raise ValidationError(f"{path}: expected a list of field definitions")
    return document


@click.group()
@click.pass_context
def schema(ctx: click.Context) -> None:
    """Manage the column dictionary."""
    pass


@schema.command("list")
@click.pass_context
def list_fields(ctx):
    """Show every field in dictionary order."""
    try:
        db = get_db(ctx)
        with db.session_scope():
            fields = db.fields.list_fields()

            if not fields:
                click.echo("📭 No fields defined")
                return

            click.echo(f"\n📋 Fields ({len(fields)}):\n")
            for field in fields:
                flags = []
                if field.required:
                    flags.append("required")
                if field.semantic_kind:
                    flags.append(field.semantic_kind.value)
                if field.has_rule:
                    flags.append(f"{field.rule_kind.value}: {field.rule_spec}")
                suffix = f" ({', '.join(flags)})" if flags else ""
                click.echo(f"  • {field.name} [{field.declared_type.value}]{suffix}")

    except DatabaseError as e:
        handle_cli_error(ctx, e, "schema_list")


@schema.command("add")
@click.argument("name")
@click.option(
    "--type", "field_type", default=FieldType.TEXT.value, show_default=True,
    help=f"One of: {', '.join(FieldType.choices())}",
)
@click.option("--required", is_flag=True, help="Reject rows without a value")
@click.option("--default", "default_value", help="Value used when the field is absent")
@click.option("--description", help="Free text shown to operators")
@click.option("--rule-kind", type=click.Choice(RuleKind.choices()), help="Secondary rule")
@click.option("--rule-spec", help="Options, pattern or JSON range for the rule")
@click.option("--min-length", type=int)
@click.option("--max-length", type=int)
@click.option("--min-value", type=float)
@click.option("--max-value", type=float)
@click.option(
    "--semantic-kind", type=click.Choice(SemanticKind.choices()),
    help="Skip inference and tag the field explicitly",
)
@click.pass_context
def add(ctx, name, field_type, required, default_value, description, rule_kind,
        rule_spec, min_length, max_length, min_value, max_value, semantic_kind):
    """Define one field."""
    metadata = {
        "name": name,
        "type": field_type,
        "required": required,
        "default": default_value,
        "description": description,
        "rule_kind": rule_kind,
        "rule_spec": rule_spec,
        "min_length": min_length,
        "max_length": max_length,
        "min_value": min_value,
        "max_value": max_value,
    }
    if semantic_kind:
        metadata["semantic_kind"] = semantic_kind

    try:
        db = get_db(ctx)
        with db.session_scope():
            field = db.fields.create(metadata)
            kind = f" as {field.semantic_kind.value}" if field.semantic_kind else ""
            click.echo(f"✅ Added field '{field.name}' [{field.declared_type.value}]{kind}")

    except (ValidationError, DatabaseError) as e:
        handle_cli_error(ctx, e, "schema_add", additional_context={"name": name})


@schema.command("load")
@click.argument("yaml_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def load(ctx, yaml_file):
    """Create or update fields from a YAML file."""
    try:
        definitions = _read_definitions(yaml_file)
        db = get_db(ctx)
        with db.session_scope():
            counts = db.fields.load_definitions(definitions)

        click.echo(
            f"✅ Loaded {yaml_file.name}: "
            f"{counts['created']} created, {counts['updated']} updated"
        )

    except (ValidationError, DatabaseError, yaml.YAMLError) as e:
        handle_cli_error(ctx, e, "schema_load", additional_context={"file": str(yaml_file)})


@schema.command("dump")
@click.argument("output_file", type=click.Path(dir_okay=False, path_type=Path), required=False)
@click.pass_context
def dump(ctx, output_file):
    """Write the dictionary as YAML (stdout when no file is given)."""
    try:
        db = get_db(ctx)
        with db.session_scope():
            definitions = [
                {k: v for k, v in field.to_dict().items() if v is not None}
                for field in db.fields.list_fields()
            ]

        text = yaml.safe_dump(
            {"fields": definitions}, sort_keys=False, allow_unicode=True
        )
        if output_file is None:
            click.echo(text, nl=False)
        else:
            output_file.write_text(text, encoding="utf-8")
            click.echo(f"✅ Wrote {len(definitions)} fields to {output_file}")

    except (DatabaseError, OSError) as e:
        handle_cli_error(ctx, e, "schema_dump")


@schema.command("rename")
@click.argument("old_name")
@click.argument("new_name")
@click.pass_context
def rename(ctx, old_name, new_name):
    """Rename a field; stored records move their values to the new name."""
    try:
        db = get_db(ctx)
        with db.session_scope():
            field = db.fields.update(old_name, {"name": new_name})
            click.echo(f"✅ Renamed '{old_name}' to '{field.name}'")

    except (ValidationError, DatabaseError) as e:
        handle_cli_error(
            ctx, e, "schema_rename", additional_context={"from": old_name, "to": new_name}
        )


@schema.command("remove")
@click.argument("name")
@click.confirmation_option(prompt="Remove this field definition?")
@click.pass_context
def remove(ctx, name):
    """Delete a field definition (stored values stay until pruned)."""
    try:
        db = get_db(ctx)
        with db.session_scope():
            db.fields.delete(name)
        click.echo(f"🗑️  Removed field '{name}'")
        click.echo("💡 Tip: run 'roster records prune-obsolete' to drop stored values")

    except (ValidationError, DatabaseError) as e:
        handle_cli_error(ctx, e, "schema_remove", additional_context={"name": name})
