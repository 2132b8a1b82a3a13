"""Deploy stage — place the artifact on the provisioned host with Ansible.

The published artifact is consumed once and written to the fixed path
``<workdir>/deploy/app.jar``.  A one-host inventory and the private key are
written to a private temporary directory that is removed as soon as the
playbook returns, whether it passed or not.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from shipwright.bundled import materialize_playbook
from shipwright.core.context import PipelineContext
from shipwright.core.runner import CommandResult
from shipwright.errors import (
    AuthFailure,
    ConnectFailure,
    DeployStageFailure,
    PlaybookTaskFailure,
)
from shipwright.models.hosts import InventoryEntry
from shipwright.stages.base import BaseStage

logger = logging.getLogger(__name__)

DEPLOYED_ARTIFACT_PATH = Path("deploy") / "app.jar"

# ansible-playbook exit code for unreachable hosts; parser errors share it.
_ANSIBLE_RC_UNREACHABLE = 4

AUTH_MARKERS: tuple[str, ...] = (
    "permission denied",
    "authentication failed",
    "too many authentication failures",
    "no such identity",
    "host key verification failed",
)


def classify_playbook_failure(result: CommandResult) -> DeployStageFailure:
    """Map a failed ``ansible-playbook`` run onto the deploy failure taxonomy."""
    text = result.output
    lowered = text.lower()
    message = f"ansible-playbook exited with code {result.returncode}"
    parser_error = any(line.startswith("ERROR!") for line in text.splitlines())
    unreachable = "UNREACHABLE!" in text or (
        result.returncode == _ANSIBLE_RC_UNREACHABLE and not parser_error
    )
    if unreachable:
        if any(marker in lowered for marker in AUTH_MARKERS):
            return AuthFailure(f"{message}: host rejected the login", output=text)
        return ConnectFailure(f"{message}: host unreachable", output=text)
    return PlaybookTaskFailure(message, output=text)


class DeployStage(BaseStage):
    """Runs the deploy playbook against the single provisioned host."""

    @property
    def stage_id(self) -> str:
        return "deploy"

    @property
    def display_name(self) -> str:
        return "Deploy"

    def describe_inputs(self, context: PipelineContext) -> dict[str, Any]:
        artifact = context.artifact
        host = context.host
        return {
            "content_address": artifact.content_address if artifact else "",
            "address": host.public_ip if host else "",
            "app_port": context.config.app_port,
            "service_name": context.config.service_name,
        }

    def execute(self, context: PipelineContext) -> dict[str, Any]:
        config = context.config
        handle = context.require_artifact()
        host = context.require_host()

        private_key = (
            context.credentials.host_private_key.get_secret_value()
            if context.credentials.host_private_key is not None
            else ""
        )
        if not private_key.strip():
            raise AuthFailure("Missing host private key")

        payload = context.slots.consume(handle)
        artifact_path = context.workdir / DEPLOYED_ARTIFACT_PATH
        artifact_path.parent.mkdir(parents=True, exist_ok=True)
        artifact_path.write_bytes(payload)

        playbook = materialize_playbook(context.workdir / "playbook")
        extra_vars = {
            "artifact_src": str(artifact_path.resolve()),
            "app_port": config.app_port,
            "service_name": config.service_name,
            "service_user": config.service_user,
            "install_dir": config.install_dir,
        }

        with tempfile.TemporaryDirectory(prefix="shipwright-deploy-") as tmp:
            tmp_dir = Path(tmp)
            key_path = tmp_dir / "host_key"
            key_path.write_text(private_key.rstrip("\n") + "\n", "utf-8")
            os.chmod(key_path, 0o600)

            entry = InventoryEntry.for_host(
                host,
                private_key_path=str(key_path),
                python_interpreter=config.python_interpreter,
            )
            inventory_path = tmp_dir / "inventory.ini"
            inventory_path.write_text(entry.render(), "utf-8")

            vars_path = tmp_dir / "vars.json"
            vars_path.write_text(json.dumps(extra_vars), "utf-8")

            logger.info("deploying %s to %s", handle.file_name, entry.address)
            result = self.invoke(
                [
                    config.ansible_playbook_bin,
                    "-i",
                    str(inventory_path),
                    str(playbook),
                    "-e",
                    f"@{vars_path}",
                ],
                PlaybookTaskFailure,
                env={"ANSIBLE_HOST_KEY_CHECKING": "False", "ANSIBLE_NOCOLOR": "1"},
            )

        if not result.ok:
            raise classify_playbook_failure(result)

        return {
            "connected_address": entry.address,
            "login_user": entry.login_user,
            "artifact_name": handle.name,
            "content_address": handle.content_address,
            "service_name": config.service_name,
            "app_url": f"http://{_url_host(entry.address)}:{config.app_port}/",
            "_artifact_refs": [handle.content_address],
        }


def _url_host(address: str) -> str:
    return f"[{address}]" if ":" in address else address
