"""SheetPilot CLI — Entry point.

Usage:
    sheetpilot run batch.json [--workbook in.xlsx] [--output out.xlsx]
    sheetpilot schema list [--family tables]
    sheetpilot schema show createTable
"""

from __future__ import annotations

import typer

from sheetpilot.cli.commands import run, schema

app = typer.Typer(
    name="sheetpilot",
    help="SheetPilot — apply structured assistant actions to spreadsheet documents.",
    no_args_is_help=True,
    pretty_exceptions_enable=False,
)

app.command("run")(run.run_batch)
app.add_typer(schema.app, name="schema")


@app.callback()
def main_callback() -> None:
    pass


if __name__ == "__main__":
    app()
