"""Pipeline, run and credential configuration models."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, SecretStr

from shipwright.models.infra import NetworkAccessPolicy

DEFAULT_REPO_URL = "https://github.com/jenkins-docs/simple-java-maven-app.git"
DEFAULT_ARTIFACT_NAME = "app-jar"


class PipelineConfig(BaseModel):
    """Project-level configuration for a pipeline run.

    Usually built from ``shipwright.config.Settings``; tests construct it
    directly with temp paths.
    """

    model_config = ConfigDict(frozen=True)

    project_name: str = "shipwright"

    # Build
    repo_url: str = DEFAULT_REPO_URL
    repo_ref: str | None = None
    build_command: list[str] = ["mvn", "-B", "-DskipTests", "package"]
    artifact_glob: str = "target/*.jar"
    artifact_selector: str | None = None
    artifact_name: str = DEFAULT_ARTIFACT_NAME

    # Provision
    instance_type: str = "t2.micro"
    key_name: str = "shipwright-deployer"
    admin_port: int = Field(default=22, ge=1, le=65535)
    app_port: int = Field(default=8080, ge=1, le=65535)
    network_policy: NetworkAccessPolicy = NetworkAccessPolicy()

    # Deploy
    login_user: str = "ubuntu"
    python_interpreter: str = "/usr/bin/python3"
    service_name: str = "shipwright-app"
    service_user: str = "appsvc"
    install_dir: str = "/opt/shipwright-app"

    # Tools
    git_bin: str = "git"
    terraform_bin: str = "terraform"
    ansible_playbook_bin: str = "ansible-playbook"
    command_timeout_seconds: float | None = None

    # Storage
    work_dir: Path = Path(".shipwright/work")
    infra_dir: Path = Path(".shipwright/infra")
    artifact_store_path: Path = Path(".shipwright/artifacts")
    ledger_db_path: Path = Path(".shipwright/ledger.db")


class Credentials(BaseModel):
    """The five opaque values supplied by the invoking environment.

    None of them is generated or persisted by shipwright.
    """

    model_config = ConfigDict(frozen=True)

    aws_access_key_id: SecretStr | None = None
    aws_secret_access_key: SecretStr | None = None
    aws_region: str = ""
    host_public_key: SecretStr | None = None
    host_private_key: SecretStr | None = None

    def missing_cloud_credentials(self) -> list[str]:
        """Names of the cloud credential values that are unset or blank."""
        missing = []
        if not _present(self.aws_access_key_id):
            missing.append("aws_access_key_id")
        if not _present(self.aws_secret_access_key):
            missing.append("aws_secret_access_key")
        if not self.aws_region.strip():
            missing.append("aws_region")
        return missing

    def cloud_env(self) -> dict[str, str]:
        """Environment variables the AWS provider reads its credentials from."""
        env = {"AWS_DEFAULT_REGION": self.aws_region, "AWS_REGION": self.aws_region}
        if self.aws_access_key_id is not None:
            env["AWS_ACCESS_KEY_ID"] = self.aws_access_key_id.get_secret_value()
        if self.aws_secret_access_key is not None:
            env["AWS_SECRET_ACCESS_KEY"] = self.aws_secret_access_key.get_secret_value()
        return env


def _present(value: SecretStr | None) -> bool:
    return value is not None and bool(value.get_secret_value().strip())


class RunConfig(BaseModel):
    """Per-run configuration, created when a run starts."""

    model_config = ConfigDict(frozen=True)

    run_id: str = Field(default_factory=lambda: f"sw-{uuid.uuid4().hex[:12]}")
    repo_url: str = DEFAULT_REPO_URL
    repo_ref: str | None = None
    pipeline_config: PipelineConfig = PipelineConfig()
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
