"""Tests for the provision stage — Terraform driving and failure classification."""

from __future__ import annotations

import json

import pytest
from pydantic import SecretStr

from shipwright.core.context import PipelineContext
from shipwright.core.runner import CommandResult
from shipwright.errors import (
    ApplyFailure,
    CredentialFailure,
    OpenIngressNotAcknowledgedError,
    QuotaFailure,
)
from shipwright.models.infra import NetworkAccessPolicy
from shipwright.stages.provision import (
    TFVARS_FILE,
    ProvisionStage,
    classify_apply_failure,
    parse_outputs,
)


class TestClassifyApplyFailure:
    def _result(self, stderr: str) -> CommandResult:
        return CommandResult(args=("terraform", "apply"), returncode=1, stderr=stderr)

    def test_credentials(self):
        exc = classify_apply_failure(
            "apply", self._result("Error: InvalidClientTokenId: The security token is invalid")
        )
        assert isinstance(exc, CredentialFailure)

    def test_quota(self):
        exc = classify_apply_failure(
            "apply", self._result("Error: VcpuLimitExceeded: You have requested more vCPU capacity")
        )
        assert isinstance(exc, QuotaFailure)

    def test_generic(self):
        exc = classify_apply_failure("apply", self._result("Error: Invalid AMI ID"))
        assert type(exc) is ApplyFailure
        assert "Invalid AMI ID" in exc.output


class TestParseOutputs:
    def test_flattens_values(self, terraform_outputs):
        assert parse_outputs(terraform_outputs("198.51.100.4", "")) == {
            "public_ip": "198.51.100.4",
            "public_dns": "",
        }

    def test_invalid_json(self):
        with pytest.raises(ApplyFailure):
            parse_outputs("not json")

    def test_non_object(self):
        with pytest.raises(ApplyFailure):
            parse_outputs("[1, 2]")


class TestProvisionStage:
    def test_publishes_host(self, fake_runner, context: PipelineContext):
        result = ProvisionStage(fake_runner).run_stage(context)

        assert context.host is not None
        assert context.host.public_ip == "203.0.113.10"
        assert context.host.public_dns.startswith("ec2-203-0-113-10")
        assert context.host.login_user == "ubuntu"
        assert result["public_ip"] == "203.0.113.10"
        assert result["region"] == "eu-west-1"

    def test_terraform_sequence(self, fake_runner, context: PipelineContext):
        ProvisionStage(fake_runner).run_stage(context)
        subcommands = [c.args[1] for c in fake_runner.calls if c.args[0] == "terraform"]
        assert subcommands == ["init", "apply", "output"]
        assert all(c.cwd == context.config.infra_dir for c in fake_runner.calls)
        [apply] = fake_runner.calls_to("terraform", "apply")
        assert "-auto-approve" in apply.args

    def test_writes_description_and_vars(self, fake_runner, context: PipelineContext):
        ProvisionStage(fake_runner).run_stage(context)
        infra_dir = context.config.infra_dir
        for name in ("main.tf", "variables.tf", "outputs.tf"):
            assert (infra_dir / name).is_file()
        tfvars = json.loads((infra_dir / TFVARS_FILE).read_text())
        assert tfvars["ingress_cidrs"] == ["0.0.0.0/0"]
        assert tfvars["public_key"].startswith("ssh-ed25519")
        assert tfvars["app_port"] == 8080

    def test_credentials_only_in_env(self, fake_runner, context: PipelineContext):
        ProvisionStage(fake_runner).run_stage(context)
        [apply] = fake_runner.calls_to("terraform", "apply")
        assert apply.env["AWS_SECRET_ACCESS_KEY"] == "test-secret"
        assert apply.env["AWS_REGION"] == "eu-west-1"
        assert not any("test-secret" in arg for c in fake_runner.calls for arg in c.args)
        tfvars = (context.config.infra_dir / TFVARS_FILE).read_text()
        assert "test-secret" not in tfvars
        assert "AKIATESTKEY" not in tfvars

    def test_open_ingress_requires_acknowledgment(self, fake_runner, context: PipelineContext):
        context.config = context.config.model_copy(
            update={"network_policy": NetworkAccessPolicy()}
        )
        with pytest.raises(OpenIngressNotAcknowledgedError):
            ProvisionStage(fake_runner).run_stage(context)
        assert fake_runner.calls == []
        assert context.host is None

    def test_restricted_ingress_needs_no_acknowledgment(self, fake_runner, context: PipelineContext):
        context.config = context.config.model_copy(
            update={"network_policy": NetworkAccessPolicy(ingress_cidrs=["198.51.100.0/24"])}
        )
        ProvisionStage(fake_runner).run_stage(context)
        assert context.host is not None

    def test_missing_cloud_credentials(self, fake_runner, context: PipelineContext):
        context.credentials = context.credentials.model_copy(update={"aws_secret_access_key": None})
        with pytest.raises(CredentialFailure, match="aws_secret_access_key"):
            ProvisionStage(fake_runner).run_stage(context)
        assert fake_runner.calls == []

    def test_missing_public_key(self, fake_runner, context: PipelineContext):
        context.credentials = context.credentials.model_copy(
            update={"host_public_key": SecretStr("   ")}
        )
        with pytest.raises(CredentialFailure, match="public key"):
            ProvisionStage(fake_runner).run_stage(context)

    def test_rejected_credentials(self, fake_runner, context: PipelineContext):
        fake_runner.on(
            "terraform", "apply", returncode=1,
            stderr="Error: error configuring Terraform AWS Provider: AuthFailure",
        )
        with pytest.raises(CredentialFailure) as excinfo:
            ProvisionStage(fake_runner).run_stage(context)
        assert "AuthFailure" in excinfo.value.output
        assert not fake_runner.ran("terraform", "output")

    def test_quota_exceeded(self, fake_runner, context: PipelineContext):
        fake_runner.on(
            "terraform", "apply", returncode=1,
            stderr="Error: InstanceLimitExceeded: You have requested more instances",
        )
        with pytest.raises(QuotaFailure):
            ProvisionStage(fake_runner).run_stage(context)

    def test_init_failure(self, fake_runner, context: PipelineContext):
        fake_runner.on("terraform", "init", returncode=1, stderr="Error: Failed to query provider")
        with pytest.raises(ApplyFailure):
            ProvisionStage(fake_runner).run_stage(context)
        assert not fake_runner.ran("terraform", "apply")

    def test_invalid_address_in_outputs(self, fake_runner, terraform_outputs, context: PipelineContext):
        fake_runner.on("terraform", "output", stdout=terraform_outputs("", ""))
        with pytest.raises(ApplyFailure, match="invalid public address"):
            ProvisionStage(fake_runner).run_stage(context)
        assert context.host is None

    def test_same_infra_dir_across_runs(self, fake_runner, context: PipelineContext):
        ProvisionStage(fake_runner).run_stage(context)
        ProvisionStage(fake_runner).run_stage(context)
        dirs = {c.cwd for c in fake_runner.calls_to("terraform", "apply")}
        assert dirs == {context.config.infra_dir}

    def test_out_of_range_port_is_apply_failure(self, fake_runner, context: PipelineContext):
        context.config = context.config.model_copy(update={"app_port": 70000})
        with pytest.raises(ApplyFailure, match="Invalid infrastructure variables"):
            ProvisionStage(fake_runner).run_stage(context)
        assert not fake_runner.ran("terraform")
        assert context.host is None
