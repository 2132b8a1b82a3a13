"""``shipwright doctor`` — check the external tools are installed."""

from __future__ import annotations

import shutil

import typer
from rich.console import Console
from rich.table import Table

from shipwright.cli.commands._common import load_settings

console = Console()


def doctor_cmd() -> None:
    """Check that git, the build tool, Terraform and Ansible are on PATH."""
    _, config, credentials = load_settings(console)
    tools = {
        "source": config.git_bin,
        "build": config.build_command[0] if config.build_command else "",
        "provision": config.terraform_bin,
        "deploy": config.ansible_playbook_bin,
    }

    table = Table(title="Tooling")
    table.add_column("Stage", style="cyan")
    table.add_column("Executable")
    table.add_column("Resolved path")

    missing = 0
    for stage, executable in tools.items():
        path = shutil.which(executable) if executable else None
        if path is None:
            missing += 1
        table.add_row(stage, executable or "-", path or "[red]not found[/red]")
    console.print(table)

    absent = credentials.missing_cloud_credentials()
    if credentials.host_public_key is None:
        absent.append("host_public_key")
    if credentials.host_private_key is None:
        absent.append("host_private_key")
    if absent:
        console.print(f"[yellow]Unset credentials:[/yellow] {', '.join(absent)}")

    if missing:
        raise typer.Exit(code=1)
