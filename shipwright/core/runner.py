"""Blocking subprocess wrapper for the external tools.

Every stage reaches git, the build tool, Terraform and Ansible through a
``CommandRunner``.  Tests substitute a scripted runner; nothing else in the
package calls ``subprocess`` directly.
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess  # nosec B404
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from shipwright.errors import ShipwrightError

logger = logging.getLogger(__name__)


class CommandNotFoundError(ShipwrightError):
    """The executable is not installed or not on PATH."""


class CommandTimeoutError(ShipwrightError):
    """The command exceeded the configured timeout."""


class WorkingDirectoryError(ShipwrightError):
    """The requested working directory does not exist."""


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one external command.

    Attributes:
        args: The argument vector that was executed
        returncode: Process exit status
        stdout: Captured standard output
        stderr: Captured standard error
    """

    args: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        """stdout followed by stderr, as the tool printed them."""
        return "\n".join(part for part in (self.stdout, self.stderr) if part)


class CommandRunner:
    """Runs external commands and captures their output.

    Parameters
    ----------
    timeout_seconds:
        Optional per-command timeout.  ``None`` defers to the outer runner.
    """

    def __init__(self, timeout_seconds: float | None = None) -> None:
        self.timeout_seconds = timeout_seconds

    def run(
        self,
        args: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> CommandResult:
        """Run *args* to completion.

        *env* is layered over the current process environment; its values are
        never logged.
        """
        argv = [str(a) for a in args]
        logger.info("$ %s", shlex.join(argv))
        if env:
            logger.debug("extra environment keys: %s", sorted(env))

        if cwd is not None and not Path(cwd).is_dir():
            raise WorkingDirectoryError(f"{argv[0]}: working directory {cwd} does not exist")

        full_env = {**os.environ, **env} if env else None
        try:
            completed = subprocess.run(  # noqa: S603  # nosec B603
                argv,
                cwd=str(cwd) if cwd else None,
                env=full_env,
                capture_output=True,
                text=True,
                timeout=self.timeout_seconds,
                check=False,
            )
        except FileNotFoundError as exc:
            raise CommandNotFoundError(f"{argv[0]}: command not found") from exc
        except subprocess.TimeoutExpired as exc:
            raise CommandTimeoutError(
                f"{argv[0]} timed out after {self.timeout_seconds}s"
            ) from exc

        result = CommandResult(
            args=tuple(argv),
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )
        if not result.ok:
            logger.warning("%s exited with code %d", argv[0], result.returncode)
        return result
