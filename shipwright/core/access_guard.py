"""Network access guard — world-open ingress needs explicit acknowledgment.

The infrastructure description opens the admin and application ports to the
configured source ranges.  A range that admits every address is refused
unless the operator set ``acknowledge_open_ingress``.  The guard runs once,
before any provisioning command.
"""

from __future__ import annotations

import logging

from shipwright.errors import OpenIngressNotAcknowledgedError
from shipwright.models.infra import NetworkAccessPolicy

logger = logging.getLogger(__name__)


def enforce_access_policy(policy: NetworkAccessPolicy, ports: list[int]) -> None:
    """Validate the ingress policy before provisioning.

    Raises
    ------
    OpenIngressNotAcknowledgedError
        If any CIDR admits all sources and the policy was not acknowledged.
    """
    if not policy.is_world_open:
        return

    ranges = ", ".join(policy.open_cidrs)
    port_list = ", ".join(str(p) for p in ports)
    if not policy.acknowledge_open_ingress:
        raise OpenIngressNotAcknowledgedError(
            f"Ingress from {ranges} on ports {port_list} admits any source. "
            "Restrict SHIPWRIGHT_INGRESS_CIDRS or set "
            "SHIPWRIGHT_ACKNOWLEDGE_OPEN_INGRESS=true."
        )

    logger.warning(
        "Provisioning with world-open ingress (%s) on ports %s; "
        "acknowledged by configuration.",
        ranges,
        port_list,
    )
