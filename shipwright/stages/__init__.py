"""Pipeline stages — registry mapping stage_id to stage class.

Usage::

    from shipwright.stages import STAGE_ORDER, build_stages

    stages = build_stages(runner)
    for stage_id in STAGE_ORDER:
        stages[stage_id].run_stage(context)
"""

from __future__ import annotations

from shipwright.core.runner import CommandRunner
from shipwright.stages.base import BaseStage
from shipwright.stages.build import BuildStage
from shipwright.stages.deploy import DeployStage
from shipwright.stages.provision import ProvisionStage

STAGE_REGISTRY: dict[str, type[BaseStage]] = {
    "build": BuildStage,
    "provision": ProvisionStage,
    "deploy": DeployStage,
}

# Strict execution order; each stage is gated on all before it.
STAGE_ORDER: list[str] = ["build", "provision", "deploy"]


def build_stages(runner: CommandRunner | None = None) -> dict[str, BaseStage]:
    """Instantiate every registered stage sharing one command runner."""
    return {sid: STAGE_REGISTRY[sid](runner) for sid in STAGE_ORDER}


__all__ = [
    "BaseStage",
    "BuildStage",
    "ProvisionStage",
    "DeployStage",
    "STAGE_REGISTRY",
    "STAGE_ORDER",
    "build_stages",
]
