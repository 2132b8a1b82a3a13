"""Inputs handed to the declarative infrastructure description."""

from __future__ import annotations

import ipaddress
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

WORLD_OPEN_CIDRS: frozenset[str] = frozenset({"0.0.0.0/0", "::/0"})


class NetworkAccessPolicy(BaseModel):
    """Source ranges allowed to reach the admin and application ports.

    World-open ranges are only accepted when ``acknowledge_open_ingress``
    is set; see ``shipwright.core.access_guard``.
    """

    model_config = ConfigDict(frozen=True)

    ingress_cidrs: list[str] = ["0.0.0.0/0"]
    acknowledge_open_ingress: bool = False

    @field_validator("ingress_cidrs")
    @classmethod
    def _check_cidrs(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("at least one ingress CIDR is required")
        normalized = []
        for cidr in value:
            try:
                normalized.append(str(ipaddress.ip_network(cidr.strip(), strict=False)))
            except ValueError as exc:
                raise ValueError(f"invalid CIDR {cidr!r}: {exc}") from exc
        return normalized

    @property
    def open_cidrs(self) -> list[str]:
        """CIDRs in the policy that admit any source address."""
        return [c for c in self.ingress_cidrs if c in WORLD_OPEN_CIDRS]

    @property
    def is_world_open(self) -> bool:
        return bool(self.open_cidrs)


class InfraVariables(BaseModel):
    """Variables passed to Terraform via a JSON var-file."""

    model_config = ConfigDict(frozen=True)

    project_name: str = "shipwright"
    region: str = "us-east-1"
    instance_type: str = "t2.micro"
    key_name: str = "shipwright-deployer"
    public_key: str = Field(min_length=1, repr=False)
    admin_port: int = Field(default=22, ge=1, le=65535)
    app_port: int = Field(default=8080, ge=1, le=65535)
    ingress_cidrs: list[str] = ["0.0.0.0/0"]

    def to_tfvars(self) -> dict[str, Any]:
        """Return the var-file payload, keyed by Terraform variable name."""
        return self.model_dump(mode="json")
