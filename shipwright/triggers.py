"""Resolve a CI event into a run request.

Two events start a run: a manual dispatch, which may override the source
repository URL, and a push to the mainline branch, which always builds the
configured default.  Every other event is ignored.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from shipwright.models.config import DEFAULT_REPO_URL
from shipwright.models.triggers import RunRequest

logger = logging.getLogger(__name__)

DISPATCH_EVENTS = frozenset({"workflow_dispatch", "manual"})
PUSH_EVENT = "push"


def resolve_trigger(
    event_name: str,
    git_ref: str = "",
    inputs: Mapping[str, str] | None = None,
    *,
    mainline: str = "main",
    default_repo_url: str = DEFAULT_REPO_URL,
) -> RunRequest | None:
    """Return the RunRequest for *event_name*, or None if it does not trigger.

    >>> resolve_trigger("push", "refs/heads/main").reason
    'push:main'
    >>> resolve_trigger("push", "refs/heads/feature") is None
    True
    """
    inputs = inputs or {}

    if event_name in DISPATCH_EVENTS:
        repo_url = (inputs.get("repo_url") or "").strip() or default_repo_url
        return RunRequest(repo_url=repo_url, reason=f"dispatch:{event_name}")

    if event_name == PUSH_EVENT:
        if git_ref == f"refs/heads/{mainline}":
            return RunRequest(repo_url=default_repo_url, reason=f"push:{mainline}")
        logger.info("push to %s does not trigger a run (mainline is %s)", git_ref, mainline)
        return None

    logger.info("event %r does not trigger a run", event_name)
    return None
