"""``shipwright teardown`` — destroy the provisioned infrastructure.

Teardown is never part of a pipeline run; an operator runs it explicitly
against the same infra directory the provision stage applied.
"""

from __future__ import annotations

import typer
from rich.console import Console

from shipwright.cli.commands._common import load_settings
from shipwright.core.runner import (
    CommandNotFoundError,
    CommandRunner,
    CommandTimeoutError,
    WorkingDirectoryError,
)
from shipwright.stages.provision import TFVARS_FILE

console = Console()


def teardown_cmd(
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
) -> None:
    """Run ``terraform destroy`` against the provisioned infrastructure."""
    _, config, credentials = load_settings(console)
    infra_dir = config.infra_dir
    if not (infra_dir / TFVARS_FILE).exists():
        console.print(f"[bold red]Nothing provisioned in {infra_dir}[/bold red]")
        raise typer.Exit(code=1)

    missing = credentials.missing_cloud_credentials()
    if missing:
        console.print(f"[bold red]Missing cloud credentials:[/bold red] {', '.join(missing)}")
        raise typer.Exit(code=1)

    if not yes:
        typer.confirm(f"Destroy all resources managed in {infra_dir}?", abort=True)

    runner = CommandRunner(timeout_seconds=config.command_timeout_seconds)
    try:
        result = runner.run(
            [config.terraform_bin, "destroy", "-input=false", "-auto-approve", "-no-color"],
            cwd=infra_dir,
            env={**credentials.cloud_env(), "TF_IN_AUTOMATION": "1"},
        )
    except (CommandNotFoundError, CommandTimeoutError, WorkingDirectoryError) as exc:
        console.print(f"[bold red]{exc}[/bold red]")
        raise typer.Exit(code=1) from exc

    if not result.ok:
        console.print(f"[bold red]terraform destroy exited with code {result.returncode}[/bold red]")
        console.print(result.output, markup=False, highlight=False)
        raise typer.Exit(code=1)
    console.print("[bold green]Infrastructure destroyed.[/bold green]")
