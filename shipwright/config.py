"""Environment-driven configuration.

Centralized settings using pydantic-settings.  Reads from a .env file and
SHIPWRIGHT_* environment variables.  The cloud credentials also accept the
standard AWS_* names so the tool drops into an existing CI environment.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from shipwright.models.config import (
    DEFAULT_REPO_URL,
    Credentials,
    PipelineConfig,
)
from shipwright.models.infra import NetworkAccessPolicy


class Settings(BaseSettings):
    """Runtime settings with environment variable overrides.

    Examples
    --------
    Override via environment::

        export SHIPWRIGHT_REPO_URL=https://github.com/acme/service.git
        export SHIPWRIGHT_APP_PORT=9000
        export SHIPWRIGHT_INGRESS_CIDRS='["203.0.113.0/24"]'

    Secrets are read from the environment only and never written to disk::

        export AWS_ACCESS_KEY_ID=...
        export AWS_SECRET_ACCESS_KEY=...
        export SHIPWRIGHT_HOST_PUBLIC_KEY="ssh-ed25519 AAAA..."
        export SHIPWRIGHT_HOST_PRIVATE_KEY="$(cat ~/.ssh/deployer)"
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="SHIPWRIGHT_",
        env_file_encoding="utf-8",
        populate_by_name=True,
        extra="ignore",
    )

    # Build
    repo_url: str = DEFAULT_REPO_URL
    repo_ref: str | None = None
    build_command: list[str] = ["mvn", "-B", "-DskipTests", "package"]
    artifact_glob: str = "target/*.jar"
    artifact_selector: str | None = None

    # Provision
    instance_type: str = "t2.micro"
    key_name: str = "shipwright-deployer"
    admin_port: int = Field(default=22, ge=1, le=65535)
    app_port: int = Field(default=8080, ge=1, le=65535)
    ingress_cidrs: list[str] = ["0.0.0.0/0"]
    acknowledge_open_ingress: bool = False

    # Deploy
    login_user: str = "ubuntu"
    python_interpreter: str = "/usr/bin/python3"
    service_name: str = "shipwright-app"

    # Tools
    git_bin: str = "git"
    terraform_bin: str = "terraform"
    ansible_playbook_bin: str = "ansible-playbook"
    command_timeout_seconds: float | None = None

    # Storage paths
    work_dir: Path = Path(".shipwright/work")
    infra_dir: Path = Path(".shipwright/infra")
    artifact_store_path: Path = Path(".shipwright/artifacts")
    ledger_path: Path = Path(".shipwright/ledger.db")

    # Secrets boundary
    aws_access_key_id: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("SHIPWRIGHT_AWS_ACCESS_KEY_ID", "AWS_ACCESS_KEY_ID"),
    )
    aws_secret_access_key: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "SHIPWRIGHT_AWS_SECRET_ACCESS_KEY", "AWS_SECRET_ACCESS_KEY"
        ),
    )
    aws_region: str = Field(
        default="us-east-1",
        validation_alias=AliasChoices(
            "SHIPWRIGHT_AWS_REGION", "AWS_DEFAULT_REGION", "AWS_REGION"
        ),
    )
    host_public_key: SecretStr | None = None
    host_private_key: SecretStr | None = None

    def pipeline_config(self) -> PipelineConfig:
        """Project the non-secret settings onto a PipelineConfig."""
        return PipelineConfig(
            repo_url=self.repo_url,
            repo_ref=self.repo_ref,
            build_command=self.build_command,
            artifact_glob=self.artifact_glob,
            artifact_selector=self.artifact_selector,
            instance_type=self.instance_type,
            key_name=self.key_name,
            admin_port=self.admin_port,
            app_port=self.app_port,
            network_policy=NetworkAccessPolicy(
                ingress_cidrs=self.ingress_cidrs,
                acknowledge_open_ingress=self.acknowledge_open_ingress,
            ),
            login_user=self.login_user,
            python_interpreter=self.python_interpreter,
            service_name=self.service_name,
            git_bin=self.git_bin,
            terraform_bin=self.terraform_bin,
            ansible_playbook_bin=self.ansible_playbook_bin,
            command_timeout_seconds=self.command_timeout_seconds,
            work_dir=self.work_dir,
            infra_dir=self.infra_dir,
            artifact_store_path=self.artifact_store_path,
            ledger_db_path=self.ledger_path,
        )

    def credentials(self) -> Credentials:
        """Bundle the secrets boundary into a Credentials object."""
        return Credentials(
            aws_access_key_id=self.aws_access_key_id,
            aws_secret_access_key=self.aws_secret_access_key,
            aws_region=self.aws_region,
            host_public_key=self.host_public_key,
            host_private_key=self.host_private_key,
        )

