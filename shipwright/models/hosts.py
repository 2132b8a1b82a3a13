"""Provisioned host and per-run inventory models."""

from __future__ import annotations

import ipaddress
import re

from pydantic import BaseModel, ConfigDict, field_validator

# RFC 1123 hostname: dot-separated labels of letters, digits and inner hyphens.
_HOSTNAME_LABEL = re.compile(r"^(?!-)[A-Za-z0-9-]{1,63}(?<!-)$")

INVENTORY_GROUP = "app"
INVENTORY_HOST_ALIAS = "shipwright-host"


def is_valid_address(value: str) -> bool:
    """Return True if *value* is an IP address or a syntactically valid hostname."""
    if not value or value != value.strip():
        return False
    try:
        ipaddress.ip_address(value)
        return True
    except ValueError:
        pass
    hostname = value[:-1] if value.endswith(".") else value
    if len(hostname) > 253:
        return False
    labels = hostname.split(".")
    # An all-numeric dotted name is a malformed IPv4 address, not a hostname.
    if all(label.isdigit() for label in labels):
        return False
    return all(_HOSTNAME_LABEL.match(label) for label in labels)


class ProvisionedHost(BaseModel):
    """The compute instance created by the provision stage.

    Only ``public_ip`` is propagated forward to deploy.  The private key is
    referenced by name; the key material never lives on this model.
    """

    model_config = ConfigDict(frozen=True)

    public_ip: str
    public_dns: str = ""
    login_user: str = "ubuntu"
    private_key_ref: str = "host_private_key"

    @field_validator("public_ip")
    @classmethod
    def _check_address(cls, value: str) -> str:
        if not is_valid_address(value):
            raise ValueError(f"not a valid IP address or hostname: {value!r}")
        return value

    @field_validator("public_dns")
    @classmethod
    def _check_dns(cls, value: str) -> str:
        if value and not is_valid_address(value):
            raise ValueError(f"not a valid hostname: {value!r}")
        return value


class InventoryEntry(BaseModel):
    """Connection parameters for the single deploy target.

    Built immediately before the playbook runs and discarded afterwards;
    the host address changes across runs so it is never cached.
    """

    model_config = ConfigDict(frozen=True)

    address: str
    login_user: str
    python_interpreter: str = "/usr/bin/python3"
    private_key_path: str

    @classmethod
    def for_host(
        cls,
        host: ProvisionedHost,
        private_key_path: str,
        python_interpreter: str = "/usr/bin/python3",
    ) -> InventoryEntry:
        return cls(
            address=host.public_ip,
            login_user=host.login_user,
            python_interpreter=python_interpreter,
            private_key_path=private_key_path,
        )

    def render(self) -> str:
        """Render as an INI-style Ansible inventory with one host."""
        host_line = " ".join([
            INVENTORY_HOST_ALIAS,
            f"ansible_host={self.address}",
            f"ansible_user={self.login_user}",
            f"ansible_python_interpreter={self.python_interpreter}",
            f"ansible_ssh_private_key_file={self.private_key_path}",
        ])
        return f"[{INVENTORY_GROUP}]\n{host_line}\n"
