"""DigitalOcean droplet provisioning: types, API helpers, SSH polling, provisioner."""

from dropdock.provisioning.catalog import find_first_match, resolve_config
from dropdock.provisioning.digitalocean import DEFAULT_API_URL, wait_for_status
from dropdock.provisioning.errors import ProvisionError, ResolutionError
from dropdock.provisioning.provisioner import Provisioner
from dropdock.provisioning.ssh import wait_for_sshd
from dropdock.provisioning.types import CatalogEntry, Credentials, InstanceState

__all__ = [
    "CatalogEntry",
    "Credentials",
    "InstanceState",
    "ProvisionError",
    "ResolutionError",
    "Provisioner",
    "find_first_match",
    "resolve_config",
    "wait_for_status",
    "wait_for_sshd",
    "DEFAULT_API_URL",
]
