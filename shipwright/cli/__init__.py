"""Shipwright CLI — Typer-based command-line interface.

Provides the ``shipwright`` command with subcommands for running the
pipeline, inspecting past runs, checking local tooling and tearing down the
provisioned infrastructure.

All output uses Rich for formatted terminal display.
"""
