"""CLI — Schema registry inspection commands."""

from __future__ import annotations

import json

import typer
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from sheetpilot.protocol.schema import SchemaRegistry

app = typer.Typer(help="Inspect the action schema registry.")
console = Console()


@app.command("list")
def list_schemas(
    family: str | None = typer.Option(None, "--family", "-f", help="Only show one action family."),
) -> None:
    """List every registered action kind."""
    registry = SchemaRegistry.default()
    if family is not None and family not in registry.families():
        console.print(f"[red]Unknown family: {family}[/red]")
        raise typer.Exit(1)

    table = Table(title="Action kinds")
    table.add_column("Kind", style="cyan")
    table.add_column("Family")
    table.add_column("Role")
    table.add_column("Target")
    table.add_column("Min API", justify="right")

    schemas = registry.by_family(family) if family else [registry.get(k) for k in registry.kinds()]
    for schema in schemas:
        table.add_row(
            schema.kind,
            schema.family_id,
            schema.entity_role.value,
            schema.target_kind.value,
            schema.min_api_level,
        )
    console.print(table)
    console.print(f"{len(schemas)} kinds")


@app.command("show")
def show_schema(
    kind: str = typer.Argument(help="Action kind, e.g. createTable."),
    output: str | None = typer.Option(None, "--output", "-o", help="Output file path."),
) -> None:
    """Dump the schema of one action kind as JSON."""
    schema = SchemaRegistry.default().lookup(kind)
    if schema is None:
        console.print(f"[red]Unknown action kind: {kind}[/red]")
        raise typer.Exit(1)

    json_str = json.dumps(schema.to_json_schema(), indent=2, default=str)
    if output:
        import pathlib

        pathlib.Path(output).write_text(json_str)
        console.print(f"[green]Schema written to {output}[/green]")
    else:
        console.print(Syntax(json_str, "json"))
