"""Tests for environment-driven Settings."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from shipwright.config import Settings

_ENV_NAMES = (
    "AWS_ACCESS_KEY_ID",
    "AWS_SECRET_ACCESS_KEY",
    "AWS_DEFAULT_REGION",
    "AWS_REGION",
    "SHIPWRIGHT_AWS_ACCESS_KEY_ID",
    "SHIPWRIGHT_AWS_SECRET_ACCESS_KEY",
    "SHIPWRIGHT_AWS_REGION",
    "SHIPWRIGHT_HOST_PUBLIC_KEY",
    "SHIPWRIGHT_HOST_PRIVATE_KEY",
    "SHIPWRIGHT_REPO_URL",
    "SHIPWRIGHT_APP_PORT",
    "SHIPWRIGHT_INGRESS_CIDRS",
    "SHIPWRIGHT_ACKNOWLEDGE_OPEN_INGRESS",
    "SHIPWRIGHT_ARTIFACT_SELECTOR",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    """Isolate Settings from the host environment and any .env file."""
    for name in _ENV_NAMES:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


class TestSettings:
    def test_defaults(self):
        settings = Settings()
        assert settings.aws_region == "us-east-1"
        assert settings.aws_access_key_id is None
        assert settings.acknowledge_open_ingress is False

    def test_prefixed_override(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("SHIPWRIGHT_APP_PORT", "9000")
        monkeypatch.setenv("SHIPWRIGHT_ARTIFACT_SELECTOR", "my-app-*.jar")
        config = Settings().pipeline_config()
        assert config.app_port == 9000
        assert config.artifact_selector == "my-app-*.jar"

    def test_ingress_policy(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("SHIPWRIGHT_INGRESS_CIDRS", '["203.0.113.0/24"]')
        monkeypatch.setenv("SHIPWRIGHT_ACKNOWLEDGE_OPEN_INGRESS", "true")
        policy = Settings().pipeline_config().network_policy
        assert policy.ingress_cidrs == ["203.0.113.0/24"]
        assert policy.acknowledge_open_ingress is True

    def test_standard_aws_names_accepted(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("AWS_ACCESS_KEY_ID", "AKIAPLAIN")
        monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "plain-secret")
        monkeypatch.setenv("AWS_DEFAULT_REGION", "ap-southeast-2")
        creds = Settings().credentials()
        assert creds.aws_access_key_id.get_secret_value() == "AKIAPLAIN"
        assert creds.aws_region == "ap-southeast-2"
        assert creds.missing_cloud_credentials() == []

    def test_prefixed_aws_name_wins(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("AWS_ACCESS_KEY_ID", "AKIAPLAIN")
        monkeypatch.setenv("SHIPWRIGHT_AWS_ACCESS_KEY_ID", "AKIAPREFIXED")
        assert Settings().credentials().aws_access_key_id.get_secret_value() == "AKIAPREFIXED"

    def test_host_keys(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("SHIPWRIGHT_HOST_PUBLIC_KEY", "ssh-ed25519 AAAA")
        monkeypatch.setenv("SHIPWRIGHT_HOST_PRIVATE_KEY", "PRIVATE")
        creds = Settings().credentials()
        assert creds.host_public_key.get_secret_value() == "ssh-ed25519 AAAA"
        assert "PRIVATE" not in repr(creds)

    def test_dotenv_file(self, tmp_path: Path):
        (tmp_path / ".env").write_text("SHIPWRIGHT_REPO_URL=https://example.com/acme/app.git\n")
        assert Settings().pipeline_config().repo_url == "https://example.com/acme/app.git"

    @pytest.mark.parametrize("name", ["SHIPWRIGHT_APP_PORT", "SHIPWRIGHT_ADMIN_PORT"])
    def test_port_out_of_range_rejected(self, monkeypatch: pytest.MonkeyPatch, name: str):
        monkeypatch.setenv(name, "70000")
        with pytest.raises(ValidationError):
            Settings()

    def test_ledger_path_maps_to_config(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
        monkeypatch.setenv("SHIPWRIGHT_LEDGER_PATH", str(tmp_path / "l.db"))
        assert Settings().pipeline_config().ledger_db_path == tmp_path / "l.db"
