"""``shipwright status RUN_ID`` and ``shipwright runs`` — read the ledger."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from shipwright.cli.commands._common import load_settings
from shipwright.core.prerequisite_graph import PrerequisiteGraph
from shipwright.core.run_ledger import LedgerIntegrityError, RunLedger
from shipwright.core.stage_machine import StageMachine
from shipwright.models.stages import DEFAULT_STAGE_DEFINITIONS
from shipwright.monitor.renderer import RunRenderer

console = Console()


def _open_ledger(ledger_db: Optional[Path]) -> RunLedger:
    if ledger_db is None:
        settings, _, _ = load_settings(console)
        ledger_db = settings.ledger_path
    if not ledger_db.exists():
        console.print(f"[bold red]Ledger not found:[/bold red] {ledger_db}")
        raise typer.Exit(code=1)
    return RunLedger(ledger_db)


def status_cmd(
    run_id: str = typer.Argument(..., help="The run ID to show."),
    ledger_db: Optional[Path] = typer.Option(
        None, "--ledger", "-l", help="Path to the ledger SQLite database."
    ),
) -> None:
    """Show stage states and recorded details for a run."""
    ledger = _open_ledger(ledger_db)
    entries = ledger.get_run_entries(run_id)
    if not entries:
        console.print(f"[bold red]No ledger entries for run {run_id}[/bold red]")
        raise typer.Exit(code=1)

    machine = StageMachine(ledger, PrerequisiteGraph(DEFAULT_STAGE_DEFINITIONS))
    try:
        chain_valid = ledger.verify_chain(run_id)
    except LedgerIntegrityError as exc:
        console.print(f"[bold red]{escape(str(exc))}[/bold red]")
        chain_valid = False

    RunRenderer(console=console).print_run(
        run_id, machine.states_from_ledger(run_id), entries, chain_valid=chain_valid
    )
    if not chain_valid:
        raise typer.Exit(code=1)


def runs_cmd(
    ledger_db: Optional[Path] = typer.Option(
        None, "--ledger", "-l", help="Path to the ledger SQLite database."
    ),
) -> None:
    """List recorded runs, most recent first."""
    ledger = _open_ledger(ledger_db)
    run_ids = ledger.get_all_run_ids()
    if not run_ids:
        console.print("[dim]No runs recorded.[/dim]")
        return

    table = Table(title="Runs")
    table.add_column("Run ID", style="cyan")
    table.add_column("Entries", justify="right")
    table.add_column("Last transition")
    for run_id in run_ids:
        entries = ledger.get_run_entries(run_id)
        last = entries[-1]
        table.add_row(run_id, str(len(entries)), f"{last.stage_id}: {last.state_transition}")
    console.print(table)
