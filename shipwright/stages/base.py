"""Abstract base stage with an enforced lifecycle.

Every concrete stage inherits from BaseStage and implements ``execute()``
and ``describe_inputs()``.  The ``run_stage()`` wrapper is **not
overridable** — it enforces the canonical ordering:

    compute_input_hash -> execute -> compute_output_hash -> record

Failures propagate unchanged.  A stage never retries and never swallows an
error from its external tool.
"""

from __future__ import annotations

import abc
import logging
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any, final

from shipwright.core.context import PipelineContext
from shipwright.core.hasher import compute_input_hash, compute_output_hash
from shipwright.core.runner import (
    CommandNotFoundError,
    CommandResult,
    CommandRunner,
    CommandTimeoutError,
    WorkingDirectoryError,
)
from shipwright.errors import StageFailure

logger = logging.getLogger(__name__)


class BaseStage(abc.ABC):
    """Abstract base for the pipeline stages.

    Subclasses **must** implement:
        * ``stage_id``   — unique identifier (``"build"``, ``"provision"``, ...).
        * ``display_name`` — human-readable name for the status view.
        * ``describe_inputs(context)`` — non-secret inputs that identify the work.
        * ``execute(context)`` — the stage's core logic.

    Parameters
    ----------
    runner:
        Executes external commands.  Defaults to a plain ``CommandRunner``.
    """

    def __init__(self, runner: CommandRunner | None = None) -> None:
        self.runner = runner or CommandRunner()

    @property
    @abc.abstractmethod
    def stage_id(self) -> str:
        """Unique stage identifier."""
        ...

    @property
    @abc.abstractmethod
    def display_name(self) -> str:
        """Human-readable display name."""
        ...

    @abc.abstractmethod
    def describe_inputs(self, context: PipelineContext) -> dict[str, Any]:
        """Return the JSON-serializable inputs hashed into the ledger.

        Must not include secret values.
        """
        ...

    @abc.abstractmethod
    def execute(self, context: PipelineContext) -> dict[str, Any]:
        """Execute the stage and return a JSON-serializable result dict.

        Keys starting with ``_`` are internal and excluded from the output
        hash; ``_artifact_refs`` lists content addresses for the ledger.
        """
        ...

    # ------------------------------------------------------------------
    # Lifecycle (not overridable)
    # ------------------------------------------------------------------

    @final
    def run_stage(self, context: PipelineContext) -> dict[str, Any]:
        """Execute the full stage lifecycle.  **Do not override.**

        Returns the dict produced by ``execute()`` augmented with
        ``_input_hash`` and ``_output_hash``.
        """
        input_hash = compute_input_hash(self.stage_id, self.describe_inputs(context))
        logger.info("%s [%s] input_hash=%s", self.display_name, self.stage_id, input_hash[:12])

        try:
            result = self.execute(context)
        except Exception as exc:
            logger.error(
                "%s [%s] failed: %s: %s",
                self.display_name,
                self.stage_id,
                type(exc).__name__,
                exc,
            )
            raise

        output_hash = compute_output_hash(self.stage_id, result)
        result["_input_hash"] = input_hash
        result["_output_hash"] = output_hash
        context.stage_results[self.stage_id] = result

        logger.info(
            "%s [%s] passed — input=%s output=%s",
            self.display_name,
            self.stage_id,
            input_hash[:12],
            output_hash[:12],
        )
        return result

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @final
    def invoke(
        self,
        args: Sequence[str],
        failure: type[StageFailure],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> CommandResult:
        """Run an external command, mapping a runner error to *failure*.

        A non-zero exit is returned, not raised; the caller decides which
        failure type the output indicates.
        """
        try:
            return self.runner.run(args, cwd=cwd, env=env)
        except (CommandNotFoundError, CommandTimeoutError, WorkingDirectoryError) as exc:
            raise failure(str(exc)) from exc

    def __repr__(self) -> str:
        return f"<{type(self).__name__} stage_id={self.stage_id!r}>"
