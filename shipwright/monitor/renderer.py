"""Rich terminal renderer for run status.

Color scheme
------------
- green     : PASSED
- red       : FAILED
- yellow    : RUNNING
- dim       : NOT_STARTED
- bold red  : BLOCKED
"""

from __future__ import annotations

from rich.console import Console, Group
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from shipwright.errors import StageFailure
from shipwright.models.ledger import LedgerEntry
from shipwright.models.stages import DEFAULT_STAGE_DEFINITIONS, StageState

_STATE_ICONS: dict[StageState, str] = {
    StageState.PASSED: "[green]PASSED[/green]",
    StageState.FAILED: "[bold red]FAILED[/bold red]",
    StageState.RUNNING: "[yellow]RUNNING[/yellow]",
    StageState.NOT_STARTED: "[dim]NOT STARTED[/dim]",
    StageState.BLOCKED: "[bold red]BLOCKED[/bold red]",
}

# Ledger detail keys shown in the Details column, per stage.
_DETAIL_KEYS: dict[str, tuple[str, ...]] = {
    "build": ("artifact_file", "commit"),
    "provision": ("public_ip", "public_dns"),
    "deploy": ("connected_address", "app_url"),
}


class RunRenderer:
    """Renders stage states and ledger details as Rich output.

    Parameters
    ----------
    console:
        Rich Console instance.  A new one is created if not provided.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def render_run(
        self,
        run_id: str,
        states: dict[str, StageState],
        entries: list[LedgerEntry],
        *,
        chain_valid: bool = True,
    ) -> Panel:
        """Build a panel with one row per stage."""
        latest: dict[str, LedgerEntry] = {}
        for entry in entries:
            latest[entry.stage_id] = entry

        table = Table(show_header=True, header_style="bold cyan", expand=True)
        table.add_column("#", style="dim", width=3, justify="right")
        table.add_column("Stage", min_width=12)
        table.add_column("State", min_width=12, justify="center")
        table.add_column("Details", min_width=30)

        for definition in DEFAULT_STAGE_DEFINITIONS:
            sid = definition.stage_id
            state = states.get(sid, StageState.NOT_STARTED)
            entry = latest.get(sid)
            table.add_row(
                str(definition.ordinal),
                definition.display_name,
                _STATE_ICONS.get(state, state.value),
                self._details(sid, entry),
            )

        chain = "[green]valid[/green]" if chain_valid else "[bold red]BROKEN[/bold red]"
        footer = Text.from_markup(f"[bold]Run:[/bold] {run_id}  |  [bold]Chain:[/bold] {chain}")
        return Panel(
            Group(table, Text(""), footer),
            title="[bold]Shipwright[/bold]",
            border_style="blue",
            padding=(1, 2),
        )

    @staticmethod
    def _details(stage_id: str, entry: LedgerEntry | None) -> str:
        if entry is None:
            return "[dim]-[/dim]"
        if "error" in entry.detail:
            return f"[red]{escape(entry.detail['error'])}: {escape(entry.detail.get('message', ''))}[/red]"
        if "upstream" in entry.detail:
            return f"[red]blocked by {entry.detail['upstream']}[/red]"
        parts = [
            f"{key}={escape(entry.detail[key])}"
            for key in _DETAIL_KEYS.get(stage_id, ())
            if entry.detail.get(key)
        ]
        return " ".join(parts) if parts else "[dim]-[/dim]"

    def print_run(
        self,
        run_id: str,
        states: dict[str, StageState],
        entries: list[LedgerEntry],
        *,
        chain_valid: bool = True,
    ) -> None:
        self.console.print(self.render_run(run_id, states, entries, chain_valid=chain_valid))

    def print_failure(self, exc: Exception) -> None:
        """Print a failure headline, then the external tool's output verbatim."""
        self.console.print(f"[bold red]{type(exc).__name__}:[/bold red] {escape(str(exc))}", highlight=False)
        output = exc.output if isinstance(exc, StageFailure) else ""
        if output:
            self.console.rule("[dim]tool output[/dim]")
            self.console.print(output, markup=False, highlight=False)
            self.console.rule()
