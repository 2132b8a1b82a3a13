"""Shipwright: build → provision → deploy pipeline coordinator.

Clones and compiles a Java service, applies a Terraform description to
create a host for it, and runs an Ansible playbook that installs the build
artifact as a systemd service.  Stages run strictly in order and the first
failure ends the run.
"""

__version__ = "0.1.0"

from shipwright.core.orchestrator import Orchestrator, RunSummary

__all__ = ["Orchestrator", "RunSummary", "__version__"]
