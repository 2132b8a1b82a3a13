"""Provision stage — apply the infrastructure description with Terraform.

The bundled ``.tf`` files are written into the persistent infra directory
alongside a JSON var-file, then ``terraform init``, ``apply`` and
``output -json`` run in sequence.  Terraform owns convergence: re-running
against the same directory updates the existing instance instead of
creating another one.

Cloud credentials reach Terraform through its process environment only.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import ValidationError

from shipwright.bundled import materialize_terraform
from shipwright.core.access_guard import enforce_access_policy
from shipwright.core.context import PipelineContext
from shipwright.core.runner import CommandResult
from shipwright.errors import (
    ApplyFailure,
    CredentialFailure,
    ProvisionStageFailure,
    QuotaFailure,
)
from shipwright.models.hosts import ProvisionedHost
from shipwright.models.infra import InfraVariables
from shipwright.stages.base import BaseStage

logger = logging.getLogger(__name__)

TFVARS_FILE = "shipwright.auto.tfvars.json"

CREDENTIAL_MARKERS: tuple[str, ...] = (
    "invalidclienttokenid",
    "invalidaccesskeyid",
    "signaturedoesnotmatch",
    "unrecognizedclientexception",
    "expiredtoken",
    "authfailure",
    "unauthorizedoperation",
    "no valid credential sources",
    "nocredentialproviders",
)

QUOTA_MARKERS: tuple[str, ...] = (
    "instancelimitexceeded",
    "vcpulimitexceeded",
    "addresslimitexceeded",
    "limitexceeded",
    "quota",
)


def classify_apply_failure(phase: str, result: CommandResult) -> ProvisionStageFailure:
    """Map a failed Terraform command onto the provision failure taxonomy."""
    text = result.output.lower()
    message = f"terraform {phase} exited with code {result.returncode}"
    if any(marker in text for marker in CREDENTIAL_MARKERS):
        return CredentialFailure(f"{message}: cloud credentials rejected", output=result.output)
    if any(marker in text for marker in QUOTA_MARKERS):
        return QuotaFailure(f"{message}: provider quota exceeded", output=result.output)
    return ApplyFailure(message, output=result.output)


def parse_outputs(stdout: str) -> dict[str, Any]:
    """Flatten ``terraform output -json`` into ``{name: value}``."""
    try:
        raw = json.loads(stdout or "{}")
    except json.JSONDecodeError as exc:
        raise ApplyFailure(f"terraform output is not valid JSON: {exc}", output=stdout) from exc
    if not isinstance(raw, dict):
        raise ApplyFailure("terraform output is not a JSON object", output=stdout)
    return {
        name: entry.get("value") if isinstance(entry, dict) else entry
        for name, entry in raw.items()
    }


class ProvisionStage(BaseStage):
    """Creates the compute instance and publishes its public address."""

    @property
    def stage_id(self) -> str:
        return "provision"

    @property
    def display_name(self) -> str:
        return "Provision"

    def describe_inputs(self, context: PipelineContext) -> dict[str, Any]:
        config = context.config
        return {
            "region": context.credentials.aws_region,
            "instance_type": config.instance_type,
            "admin_port": config.admin_port,
            "app_port": config.app_port,
            "ingress_cidrs": list(config.network_policy.ingress_cidrs),
        }

    def execute(self, context: PipelineContext) -> dict[str, Any]:
        config = context.config
        credentials = context.credentials

        enforce_access_policy(config.network_policy, [config.admin_port, config.app_port])

        missing = credentials.missing_cloud_credentials()
        if missing:
            raise CredentialFailure(f"Missing cloud credentials: {', '.join(missing)}")
        public_key = (
            credentials.host_public_key.get_secret_value().strip()
            if credentials.host_public_key is not None
            else ""
        )
        if not public_key:
            raise CredentialFailure("Missing host public key")

        try:
            variables = InfraVariables(
                project_name=config.project_name,
                region=credentials.aws_region,
                instance_type=config.instance_type,
                key_name=config.key_name,
                public_key=public_key,
                admin_port=config.admin_port,
                app_port=config.app_port,
                ingress_cidrs=list(config.network_policy.ingress_cidrs),
            )
        except ValidationError as exc:
            raise ApplyFailure(f"Invalid infrastructure variables: {exc}") from exc

        infra_dir = config.infra_dir
        materialize_terraform(infra_dir)
        (infra_dir / TFVARS_FILE).write_text(
            json.dumps(variables.to_tfvars(), indent=2, sort_keys=True), "utf-8"
        )

        env = {**credentials.cloud_env(), "TF_IN_AUTOMATION": "1", "TF_INPUT": "0"}
        tf = config.terraform_bin

        init = self.invoke([tf, "init", "-input=false", "-no-color"], ApplyFailure, cwd=infra_dir, env=env)
        if not init.ok:
            raise classify_apply_failure("init", init)

        apply = self.invoke(
            [tf, "apply", "-input=false", "-auto-approve", "-no-color"],
            ApplyFailure,
            cwd=infra_dir,
            env=env,
        )
        if not apply.ok:
            raise classify_apply_failure("apply", apply)

        out = self.invoke([tf, "output", "-json", "-no-color"], ApplyFailure, cwd=infra_dir, env=env)
        if not out.ok:
            raise ApplyFailure(
                f"terraform output exited with code {out.returncode}", output=out.output
            )
        outputs = parse_outputs(out.stdout)

        public_ip = outputs.get("public_ip")
        public_dns = outputs.get("public_dns") or ""
        try:
            host = ProvisionedHost(
                public_ip=str(public_ip or ""),
                public_dns=str(public_dns),
                login_user=config.login_user,
            )
        except ValidationError as exc:
            raise ApplyFailure(
                f"Provisioner returned an invalid public address: {public_ip!r}",
                output=out.stdout,
            ) from exc

        context.host = host
        logger.info("instance reachable at %s (%s)", host.public_ip, host.public_dns or "-")

        return {
            "public_ip": host.public_ip,
            "public_dns": host.public_dns,
            "login_user": host.login_user,
            "region": variables.region,
            "instance_type": variables.instance_type,
        }
