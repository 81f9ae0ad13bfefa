"""CLI — Batch execution command."""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from sheetpilot.config import Settings
from sheetpilot.document.memory import InMemoryWorkbook
from sheetpilot.document.xlsx import load_workbook, save_workbook
from sheetpilot.logging import configure_logging
from sheetpilot.orchestration.diagnostics import DiagnosticsLog
from sheetpilot.orchestration.session import ExecutionSession
from sheetpilot.protocol.models import CompletionPolicy, ExecutionReport, OutcomeStatus

console = Console()

_STATUS_STYLE = {
    OutcomeStatus.APPLIED: "green",
    OutcomeStatus.SKIPPED: "yellow",
    OutcomeStatus.FAILED: "red",
    OutcomeStatus.REJECTED: "magenta",
}


def _read_batch(batch_file: Path) -> list[Any]:
    if str(batch_file) == "-":
        raw = sys.stdin.read()
    else:
        if not batch_file.exists():
            console.print(f"[red]File not found: {batch_file}[/red]")
            raise typer.Exit(1)
        raw = batch_file.read_text()
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        console.print(f"[red]Invalid JSON: {exc}[/red]")
        raise typer.Exit(1)
    if isinstance(data, dict):
        data = data.get("actions")
    if not isinstance(data, list):
        console.print("[red]A batch must be a JSON array or an object with an 'actions' array.[/red]")
        raise typer.Exit(1)
    return data


def _print_report(report: ExecutionReport) -> None:
    table = Table(title=f"Batch {report.batch_id}")
    table.add_column("#", justify="right")
    table.add_column("Kind", style="cyan")
    table.add_column("Target")
    table.add_column("Status")
    table.add_column("Detail")
    for outcome in report:
        style = _STATUS_STYLE[outcome.status]
        if outcome.status == OutcomeStatus.APPLIED:
            detail = outcome.entity or ""
        else:
            detail = f"{outcome.error_kind}: {outcome.message}"
        for warning in outcome.warnings:
            detail = f"{detail}\n[yellow]! {warning}[/yellow]".strip()
        table.add_row(
            str(outcome.index),
            outcome.kind,
            outcome.target or "",
            f"[{style}]{outcome.status.value}[/{style}]",
            detail,
        )
    console.print(table)
    counts = ", ".join(f"{n} {status}" for status, n in report.counts().items() if n)
    console.print(counts or "empty batch")


def run_batch(
    batch_file: Path = typer.Argument(help="JSON batch of actions. Use - for stdin."),
    workbook: Path | None = typer.Option(None, "--workbook", "-w", help="xlsx file to apply the batch to."),
    output: Path | None = typer.Option(None, "--output", "-o", help="Where to write the resulting xlsx."),
    policy: CompletionPolicy | None = typer.Option(None, "--policy", help="Completion policy."),
    api_level: str | None = typer.Option(None, "--api-level", help="API level the document reports."),
    as_json: bool = typer.Option(False, "--json", help="Print the report as JSON."),
    config: Path | None = typer.Option(None, "--config", "-c", help="YAML config file."),
) -> None:
    """Apply a batch of actions to a workbook and print the report."""
    settings = Settings.load(config)
    log_file = settings.logging.file
    configure_logging(settings.logging.level, settings.logging.format, str(log_file) if log_file else None)

    actions = _read_batch(batch_file)
    level = api_level or settings.document.api_level
    if workbook is not None:
        if not workbook.exists():
            console.print(f"[red]File not found: {workbook}[/red]")
            raise typer.Exit(1)
        document = load_workbook(workbook, api_level=level)
    else:
        document = InMemoryWorkbook(sheets=[settings.document.default_sheet], api_level=level)

    engine = settings.engine
    if policy is not None:
        engine = engine.model_copy(update={"completion_policy": policy})
    diagnostics = DiagnosticsLog(settings.diagnostics.max_entries, settings.diagnostics.debug)
    session = ExecutionSession(document, config=engine, diagnostics=diagnostics)
    report = asyncio.run(session.run(actions))

    skipped: list[str] = []
    if output is not None:
        skipped = save_workbook(document, output)

    if as_json:
        payload = report.to_dict()
        if output is not None:
            payload["output"] = {"path": str(output), "not_persisted": skipped}
        typer.echo(json.dumps(payload, indent=2, default=str))
    else:
        _print_report(report)
        if output is not None:
            console.print(f"[green]Workbook written to {output}[/green]")
            if skipped:
                console.print(f"[yellow]Not persisted to xlsx: {', '.join(skipped)}[/yellow]")

    if report.has_failures:
        raise typer.Exit(1)
