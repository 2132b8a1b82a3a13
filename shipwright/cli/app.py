"""Main Typer application — imports and registers all CLI commands.

Entry point: ``shipwright`` (configured via pyproject.toml scripts).
"""

from __future__ import annotations

from typing import Optional

import typer

from shipwright.cli.commands.doctor import doctor_cmd
from shipwright.cli.commands.run import build_cmd, provision_cmd, run_cmd
from shipwright.cli.commands.status import runs_cmd, status_cmd
from shipwright.cli.commands.teardown import teardown_cmd
from shipwright.logging_setup import configure_logging

app = typer.Typer(
    name="shipwright",
    help="Shipwright: build a Java service, provision a host, deploy it.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


@app.callback()
def main_callback(
    log_level: Optional[str] = typer.Option(
        None, "--log-level", envvar="SHIPWRIGHT_LOG_LEVEL", help="Logging level."
    ),
) -> None:
    """Configure logging before any subcommand runs."""
    configure_logging(log_level or "INFO")


# Register subcommands
app.command(name="run", help="Build, provision and deploy.")(run_cmd)
app.command(name="build", help="Run only the build stage.")(build_cmd)
app.command(name="provision", help="Run build then provision.")(provision_cmd)
app.command(name="status", help="Show the recorded state of a run.")(status_cmd)
app.command(name="runs", help="List recorded runs.")(runs_cmd)
app.command(name="doctor", help="Check external tools and credentials.")(doctor_cmd)
app.command(name="teardown", help="Destroy the provisioned infrastructure.")(teardown_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
