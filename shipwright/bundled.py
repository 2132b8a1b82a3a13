"""Access to the infrastructure description and playbook shipped with the package."""

from __future__ import annotations

from importlib.resources import files
from pathlib import Path

TERRAFORM_FILES: tuple[str, ...] = ("main.tf", "variables.tf", "outputs.tf")
PLAYBOOK_FILE = "deploy.yml"


def _resources():
    return files("shipwright").joinpath("resources")


def materialize_terraform(dest: Path) -> list[Path]:
    """Write the bundled ``.tf`` files into *dest*, overwriting older copies.

    Other files in *dest* (Terraform state, var-files, the ``.terraform``
    directory) are left alone so a re-apply converges on the same resources.
    """
    dest = Path(dest)
    dest.mkdir(parents=True, exist_ok=True)
    written = []
    for name in TERRAFORM_FILES:
        target = dest / name
        target.write_text(_resources().joinpath("terraform", name).read_text("utf-8"), "utf-8")
        written.append(target)
    return written


def materialize_playbook(dest: Path) -> Path:
    """Write the bundled deploy playbook into directory *dest*."""
    dest = Path(dest)
    dest.mkdir(parents=True, exist_ok=True)
    target = dest / PLAYBOOK_FILE
    target.write_text(_resources().joinpath("ansible", PLAYBOOK_FILE).read_text("utf-8"), "utf-8")
    return target
