"""``shipwright run`` / ``build`` / ``provision`` — execute the pipeline.

``run`` executes build, provision and deploy.  ``build`` and ``provision``
stop after that stage, for debugging a pipeline prefix.  A failing stage
prints the tool's output verbatim and exits with code 1.
"""

from __future__ import annotations

from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel

from shipwright.cli.commands._common import load_settings
from shipwright.core.orchestrator import Orchestrator
from shipwright.errors import ShipwrightError
from shipwright.monitor.renderer import RunRenderer
from shipwright.triggers import resolve_trigger

console = Console()


def _execute(repo_url: str | None, ref: str | None, until: str | None) -> None:
    _, config, credentials = load_settings(console)
    orchestrator = Orchestrator(config=config, credentials=credentials)
    renderer = RunRenderer(console=console)

    console.print(f"[bold cyan]Run {orchestrator.run_id}[/bold cyan]")
    try:
        summary = orchestrator.run(repo_url, ref, until=until)
    except ShipwrightError as exc:
        console.print()
        renderer.print_failure(exc)
        console.print()
        renderer.print_run(
            orchestrator.run_id, orchestrator.get_states(), orchestrator.get_run_entries()
        )
        raise typer.Exit(code=1) from exc

    console.print()
    renderer.print_run(summary.run_id, summary.states, orchestrator.get_run_entries())

    lines = [f"[bold]Run ID:[/bold]   {summary.run_id}"]
    if summary.artifact:
        lines.append(
            f"[bold]Artifact:[/bold] {summary.artifact.file_name} "
            f"({summary.artifact.size_bytes} bytes)"
        )
    if summary.host:
        lines.append(f"[bold]Host:[/bold]     {summary.host.public_ip}")
    if summary.app_url:
        lines.append(f"[bold]App:[/bold]      {summary.app_url}")
    console.print(
        Panel("\n".join(lines), title="[bold green]Complete[/bold green]", border_style="green")
    )


def run_cmd(
    repo_url: Optional[str] = typer.Option(
        None, "--repo-url", "-r", help="Source repository to build (overrides settings)."
    ),
    ref: Optional[str] = typer.Option(
        None, "--ref", help="Branch or tag to clone; repository default if omitted."
    ),
    event: Optional[str] = typer.Option(
        None,
        "--event",
        envvar="GITHUB_EVENT_NAME",
        help="CI event name; runs only for a dispatch or a mainline push.",
    ),
    git_ref: str = typer.Option(
        "", "--git-ref", envvar="GITHUB_REF", help="Ref that triggered the CI event."
    ),
    mainline: str = typer.Option("main", "--mainline", help="Mainline branch name."),
) -> None:
    """Build, provision and deploy."""
    if event:
        settings, _, _ = load_settings(console)
        request = resolve_trigger(
            event,
            git_ref,
            {"repo_url": repo_url or ""},
            mainline=mainline,
            default_repo_url=settings.repo_url,
        )
        if request is None:
            console.print(f"[dim]Event {event} ({git_ref or 'no ref'}) does not trigger a run.[/dim]")
            raise typer.Exit(code=0)
        repo_url = request.repo_url

    _execute(repo_url, ref, until=None)


def build_cmd(
    repo_url: Optional[str] = typer.Option(
        None, "--repo-url", "-r", help="Source repository to build (overrides settings)."
    ),
    ref: Optional[str] = typer.Option(None, "--ref", help="Branch or tag to clone."),
) -> None:
    """Run only the build stage."""
    _execute(repo_url, ref, until="build")


def provision_cmd(
    repo_url: Optional[str] = typer.Option(
        None, "--repo-url", "-r", help="Source repository to build (overrides settings)."
    ),
    ref: Optional[str] = typer.Option(None, "--ref", help="Branch or tag to clone."),
) -> None:
    """Run build then provision, without deploying."""
    _execute(repo_url, ref, until="provision")
