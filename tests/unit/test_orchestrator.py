"""Tests for the Orchestrator — sequencing, fail-fast and ledger recording."""

from __future__ import annotations

import pytest

from shipwright.core.orchestrator import Orchestrator
from shipwright.core.prerequisite_graph import PrerequisiteNotMetError
from shipwright.errors import (
    ApplyFailure,
    BuildFailure,
    CloneFailure,
    ConnectFailure,
    QuotaFailure,
    ShipwrightError,
)
from shipwright.models.config import Credentials, PipelineConfig
from shipwright.models.stages import StageState


@pytest.fixture
def orchestrator(pipeline_config: PipelineConfig, credentials: Credentials, fake_runner) -> Orchestrator:
    return Orchestrator(
        config=pipeline_config,
        credentials=credentials,
        runner=fake_runner,
        run_id="sw-test-run-001",
    )


class TestOrchestratorRun:
    def test_full_run_passes(self, orchestrator: Orchestrator):
        summary = orchestrator.run()
        assert summary.succeeded
        assert summary.states == {
            "build": StageState.PASSED,
            "provision": StageState.PASSED,
            "deploy": StageState.PASSED,
        }
        assert summary.artifact is not None
        assert summary.artifact_consumed is True
        assert summary.connected_address == summary.host.public_ip
        assert summary.app_url == "http://203.0.113.10:8080/"

    def test_ipv6_app_url_is_bracketed(self, orchestrator: Orchestrator, fake_runner, terraform_outputs):
        fake_runner.on("terraform", "output", stdout=terraform_outputs("2001:db8::10", ""))
        summary = orchestrator.run()
        assert summary.connected_address == "2001:db8::10"
        assert summary.app_url == "http://[2001:db8::10]:8080/"

    def test_stage_order(self, orchestrator: Orchestrator, fake_runner):
        orchestrator.run()
        tools = [c.args[0] for c in fake_runner.calls]
        first_tf = tools.index("terraform")
        assert tools.index("mvn") < first_tf < tools.index("ansible-playbook")

    def test_ledger_records_transitions(self, orchestrator: Orchestrator):
        orchestrator.run()
        transitions = [(e.stage_id, e.state_transition) for e in orchestrator.get_run_entries()]
        assert transitions == [
            ("build", "not_started->running"),
            ("build", "running->passed"),
            ("provision", "not_started->running"),
            ("provision", "running->passed"),
            ("deploy", "not_started->running"),
            ("deploy", "running->passed"),
        ]
        assert orchestrator.verify_chain() is True

    def test_passed_entries_carry_detail(self, orchestrator: Orchestrator):
        orchestrator.run()
        passed = {e.stage_id: e for e in orchestrator.get_run_entries() if e.to_state == "passed"}
        assert passed["provision"].detail["public_ip"] == "203.0.113.10"
        assert passed["deploy"].detail["connected_address"] == "203.0.113.10"
        assert passed["build"].artifact_references == passed["deploy"].artifact_references
        assert passed["build"].input_hash and passed["build"].output_hash
        assert "candidates" not in passed["build"].detail

    def test_repo_url_override(self, orchestrator: Orchestrator, fake_runner):
        orchestrator.run("https://example.com/acme/other.git")
        [clone] = fake_runner.calls_to("git", "clone")
        assert "https://example.com/acme/other.git" in clone.args

    def test_until_build(self, orchestrator: Orchestrator, fake_runner):
        summary = orchestrator.run(until="build")
        assert summary.states["build"] == StageState.PASSED
        assert summary.states["provision"] == StageState.NOT_STARTED
        assert not summary.succeeded
        assert not fake_runner.ran("terraform")

    def test_unknown_until(self, orchestrator: Orchestrator):
        with pytest.raises(ValueError):
            orchestrator.run(until="release")


class TestOrchestratorFailFast:
    def test_build_failure_blocks_rest(self, orchestrator: Orchestrator, fake_runner):
        fake_runner.on("mvn", returncode=1, stdout="[ERROR] BUILD FAILURE")
        with pytest.raises(BuildFailure):
            orchestrator.run()
        assert orchestrator.get_states() == {
            "build": StageState.FAILED,
            "provision": StageState.BLOCKED,
            "deploy": StageState.BLOCKED,
        }
        assert not fake_runner.ran("terraform")
        assert not fake_runner.ran("ansible-playbook")

    def test_failure_detail_recorded(self, orchestrator: Orchestrator, fake_runner):
        fake_runner.on("git", "clone", returncode=128, stderr="fatal: not found")
        with pytest.raises(CloneFailure):
            orchestrator.run()
        failed = [e for e in orchestrator.get_run_entries() if e.to_state == "failed"]
        assert failed[0].detail["error"] == "CloneFailure"
        assert orchestrator.verify_chain()

    def test_provision_failure_leaves_artifact_unconsumed(self, orchestrator: Orchestrator, fake_runner):
        fake_runner.on("terraform", "apply", returncode=1, stderr="InstanceLimitExceeded")
        with pytest.raises(QuotaFailure):
            orchestrator.run()
        summary = orchestrator.summary()
        assert summary.states["deploy"] == StageState.BLOCKED
        assert summary.artifact is not None
        assert summary.artifact_consumed is False
        assert not fake_runner.ran("ansible-playbook")

    def test_deploy_failure(self, orchestrator: Orchestrator, fake_runner):
        fake_runner.on("ansible-playbook", returncode=4, stdout="UNREACHABLE!")
        with pytest.raises(ConnectFailure):
            orchestrator.run()
        assert orchestrator.get_stage_state("deploy") == StageState.FAILED
        assert orchestrator.get_stage_state("provision") == StageState.PASSED

    def test_out_of_range_port_fails_provision_with_typed_error(self, orchestrator: Orchestrator, fake_runner):
        orchestrator.config = orchestrator.config.model_copy(update={"app_port": 70000})
        with pytest.raises(ApplyFailure) as excinfo:
            orchestrator.run()
        assert isinstance(excinfo.value, ShipwrightError)
        assert orchestrator.get_stage_state("provision") == StageState.FAILED
        assert orchestrator.get_stage_state("deploy") == StageState.BLOCKED
        assert not fake_runner.ran("terraform")


class TestOrchestratorGuards:
    def test_execute_before_start(self, orchestrator: Orchestrator):
        with pytest.raises(RuntimeError):
            orchestrator.execute_stage("build")

    def test_deploy_out_of_order(self, orchestrator: Orchestrator, fake_runner):
        orchestrator.start_run()
        with pytest.raises(PrerequisiteNotMetError):
            orchestrator.execute_stage("deploy")
        assert fake_runner.calls == []

    def test_run_id_format(self, pipeline_config: PipelineConfig):
        orch = Orchestrator(config=pipeline_config)
        assert orch.run_id.startswith("sw-")

    def test_fresh_workdir_per_run(self, pipeline_config: PipelineConfig, credentials, fake_runner):
        a = Orchestrator(config=pipeline_config, credentials=credentials, runner=fake_runner, run_id="a")
        b = Orchestrator(config=pipeline_config, credentials=credentials, runner=fake_runner, run_id="b")
        assert a.start_run().workdir != b.start_run().workdir
