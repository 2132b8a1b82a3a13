"""Helpers shared by the CLI commands."""

from __future__ import annotations

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape

from shipwright.config import Settings
from shipwright.models.config import Credentials, PipelineConfig


def load_settings(console: Console) -> tuple[Settings, PipelineConfig, Credentials]:
    """Read settings from the environment, exiting with code 2 if invalid."""
    try:
        settings = Settings()
        return settings, settings.pipeline_config(), settings.credentials()
    except ValidationError as exc:
        console.print(f"[bold red]Invalid configuration:[/bold red]\n{escape(str(exc))}", highlight=False)
        raise typer.Exit(code=2) from exc
