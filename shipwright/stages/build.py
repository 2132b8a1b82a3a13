"""Build stage — clone, compile, select one artifact, publish it.

The source is cloned shallowly into ``<workdir>/source`` and compiled with
the configured build command.  Candidate artifacts are matched by
``artifact_glob`` relative to the clone.  Exactly one must remain after
filtering: zero is a BuildFailure, several is an ArtifactSelectionError
unless ``artifact_selector`` narrows them to one.
"""

from __future__ import annotations

import fnmatch
import logging
import re
import shutil
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from shipwright.core.context import PipelineContext
from shipwright.errors import (
    ArtifactPublishError,
    ArtifactSelectionError,
    BuildFailure,
    CloneFailure,
)
from shipwright.stages.base import BaseStage

logger = logging.getLogger(__name__)

# Secondary outputs a Maven build places next to the runnable jar.
EXCLUDED_ARTIFACT_PATTERNS: tuple[str, ...] = (
    "*-sources.jar",
    "*-javadoc.jar",
    "*-tests.jar",
    "original-*.jar",
)

_REMOTE_SCHEMES = frozenset({"https", "http", "ssh", "git", "file"})
_SCP_LIKE = re.compile(r"^[\w.-]+@[\w.-]+:[\w./~-]+$")


def validate_repo_url(url: str) -> None:
    """Reject URLs git could never clone before spawning it."""
    if not url or not url.strip():
        raise CloneFailure("Source repository URL is empty")
    if _SCP_LIKE.match(url):
        return
    parsed = urlparse(url)
    if parsed.scheme not in _REMOTE_SCHEMES:
        raise CloneFailure(f"Unsupported repository URL scheme: {url!r}")
    if parsed.scheme != "file" and not parsed.netloc:
        raise CloneFailure(f"Repository URL has no host: {url!r}")


def find_artifact_candidates(root: Path, pattern: str) -> list[Path]:
    """Files under *root* matching *pattern*, minus secondary outputs, sorted."""
    return sorted(
        path
        for path in root.glob(pattern)
        if path.is_file()
        and not any(fnmatch.fnmatch(path.name, ex) for ex in EXCLUDED_ARTIFACT_PATTERNS)
    )


def select_artifact(candidates: list[Path], selector: str | None = None) -> Path:
    """Pick exactly one artifact or fail.

    *selector* is a glob matched against file names.
    """
    pool = candidates
    if selector:
        pool = [p for p in candidates if fnmatch.fnmatch(p.name, selector)]
        if not pool:
            raise BuildFailure(
                f"Artifact selector {selector!r} matched none of: "
                f"{', '.join(p.name for p in candidates) or '(no candidates)'}"
            )

    if not pool:
        raise BuildFailure("Build produced no artifact")
    if len(pool) > 1:
        names = [p.name for p in pool]
        raise ArtifactSelectionError(
            f"Build produced {len(names)} candidate artifacts ({', '.join(names)}); "
            "set SHIPWRIGHT_ARTIFACT_SELECTOR to choose one",
            candidates=names,
        )
    return pool[0]


class BuildStage(BaseStage):
    """Clones the source repository and publishes one build artifact."""

    @property
    def stage_id(self) -> str:
        return "build"

    @property
    def display_name(self) -> str:
        return "Build"

    def describe_inputs(self, context: PipelineContext) -> dict[str, Any]:
        return {
            "repo_url": context.repo_url,
            "repo_ref": context.repo_ref,
            "build_command": list(context.config.build_command),
            "artifact_glob": context.config.artifact_glob,
            "artifact_selector": context.config.artifact_selector,
        }

    def execute(self, context: PipelineContext) -> dict[str, Any]:
        config = context.config
        validate_repo_url(context.repo_url)

        source_dir = context.workdir / "source"
        if source_dir.exists():
            shutil.rmtree(source_dir)
        source_dir.parent.mkdir(parents=True, exist_ok=True)

        # --- Clone ------------------------------------------------------
        clone_args = [config.git_bin, "clone", "--depth", "1"]
        if context.repo_ref:
            clone_args += ["--branch", context.repo_ref]
        clone_args += [context.repo_url, str(source_dir)]

        clone = self.invoke(clone_args, CloneFailure)
        if not clone.ok:
            raise CloneFailure(
                f"git clone of {context.repo_url} exited with code {clone.returncode}",
                output=clone.output,
            )

        rev = self.invoke([config.git_bin, "rev-parse", "HEAD"], CloneFailure, cwd=source_dir)
        commit = rev.stdout.strip() if rev.ok else ""

        # --- Compile ----------------------------------------------------
        if not config.build_command:
            raise BuildFailure("No build command configured")
        build = self.invoke(list(config.build_command), BuildFailure, cwd=source_dir)
        if not build.ok:
            raise BuildFailure(
                f"{config.build_command[0]} exited with code {build.returncode}",
                output=build.output,
            )

        # --- Select and publish -----------------------------------------
        candidates = find_artifact_candidates(source_dir, config.artifact_glob)
        selected = select_artifact(candidates, config.artifact_selector)
        try:
            handle = context.slots.publish(config.artifact_name, selected)
        except ArtifactPublishError as exc:
            raise BuildFailure(str(exc)) from exc

        context.artifact = handle
        logger.info("selected %s from %d candidate(s)", selected.name, len(candidates))

        return {
            "repo_url": context.repo_url,
            "commit": commit,
            "artifact_name": handle.name,
            "artifact_file": handle.file_name,
            "content_address": handle.content_address,
            "size_bytes": handle.size_bytes,
            "candidates": [p.name for p in candidates],
            "_artifact_refs": [handle.content_address],
        }
