"""Instance configuration: YAML loading, defaults and env-var fallbacks."""

import dataclasses
import getpass
import logging
import os
import random
import socket
import string
import sys
from dataclasses import dataclass

import yaml

from dropdock.provisioning.digitalocean import DEFAULT_API_URL
from dropdock.provisioning.types import Credentials
from dropdock.redact import register_secret

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "dropdock.yml"
DEFAULT_FLAVOR = "512mb"
DEFAULT_REGION = "New York 2"

# Config key -> env vars consulted, in preference order, when the key is absent.
ENV_FALLBACKS = {
    "digitalocean_client_id": ("DIGITALOCEAN_CLIENT_ID",),
    "digitalocean_api_key": ("DIGITALOCEAN_API_KEY",),
    "ssh_key_ids": ("DIGITALOCEAN_SSH_KEY_IDS", "SSH_KEY_IDS"),
}

REQUIRED_KEYS = ("digitalocean_client_id", "digitalocean_api_key", "ssh_key_ids")

_BASE36 = string.digits + string.ascii_lowercase


class ConfigError(ValueError):
    """Required configuration is missing or malformed."""


@dataclass
class InstanceConfig:
    """Resolved settings for one droplet.

    ``region_id``/``flavor_id``/``image_id`` are provider IDs. When one is
    None, the matching ``region``/``flavor``/``image`` name fragment is
    resolved against the provider catalog at create time.
    """

    digitalocean_client_id: str
    digitalocean_api_key: str
    ssh_key_ids: list[str]
    server_name: str
    username: str = "root"
    port: int = 22
    private_networking: bool = True
    region_id: str | None = None
    flavor_id: str | None = None
    image_id: str | None = None
    region: str = DEFAULT_REGION
    flavor: str = DEFAULT_FLAVOR
    image: str = ""
    api_url: str = DEFAULT_API_URL
    ready_timeout: int = 600
    ssh_timeout: int = 300
    poll_interval: int = 10

    @property
    def credentials(self) -> Credentials:
        return Credentials(client_id=self.digitalocean_client_id, api_key=self.digitalocean_api_key)


_CONFIG_FIELDS = {f.name for f in dataclasses.fields(InstanceConfig)}


def load_config(config_path: str = DEFAULT_CONFIG_PATH) -> dict:
    """Load configuration from YAML file."""
    try:
        with open(config_path) as f:
            config = yaml.safe_load(f)
        return config or {}
    except FileNotFoundError:
        logger.error(f"Error: Config file '{config_path}' not found.")
        sys.exit(1)
    except yaml.YAMLError as e:
        logger.error(f"Error parsing YAML config: {e}")
        sys.exit(1)


def lookup_fallback(key, sources):
    """Return the first value found for *key* in its env fallback chain.

    Args:
        sources: ordered list of mappings (e.g. ``[os.environ]``).
    """
    for env_var in ENV_FALLBACKS.get(key, ()):
        for source in sources:
            value = source.get(env_var)
            if value:
                return value
    return None


def parse_ssh_key_ids(value) -> list[str]:
    """Normalize SSH key IDs given as a list, an int or a comma-separated string."""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v).strip() for v in value if str(v).strip()]
    return [part.strip() for part in str(value).split(",") if part.strip()]


def default_image_name(platform_name) -> str:
    """Platform name with ``-`` and ``_`` turned into spaces (``ubuntu-14.04`` -> ``ubuntu 14.04``)."""
    return str(platform_name).replace("-", " ").replace("_", " ")


def default_server_name(instance_name) -> str:
    """Generate what should be a unique server name.

    ``<instance>-<login>-<8 random base-36 chars>-<hostname>``. Uniqueness is
    best effort.
    """
    rand_str = "".join(random.choice(_BASE36) for _ in range(8))
    login = getpass.getuser().replace("_", "-")
    return f"{instance_name}-{login}-{rand_str}-{socket.gethostname()}"


def _to_bool(value):
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def _optional_id(value):
    return None if value is None or value == "" else str(value)


def _apply_fallbacks(raw, sources):
    for key in ENV_FALLBACKS:
        if not raw.get(key):
            fallback = lookup_fallback(key, sources)
            if fallback:
                raw[key] = fallback


def _require(raw, keys):
    for key in keys:
        if not raw.get(key):
            env_vars = " or ".join(ENV_FALLBACKS[key])
            raise ConfigError(f"Missing required config '{key}'. Set it in the driver config or via {env_vars}.")


def resolve_credentials(driver_config, sources=None) -> Credentials:
    """API credentials from the driver config, falling back to env vars.

    Raises:
        ConfigError: if the client ID or API key is missing.
    """
    sources = [os.environ] if sources is None else sources
    raw = dict(driver_config or {})
    _apply_fallbacks(raw, sources)
    _require(raw, ("digitalocean_client_id", "digitalocean_api_key"))
    credentials = Credentials(client_id=str(raw["digitalocean_client_id"]), api_key=str(raw["digitalocean_api_key"]))
    register_secret(credentials.api_key)
    register_secret(credentials.client_id)
    return credentials


def build_instance_config(driver_config, instance_name, platform_name, sources=None) -> InstanceConfig:
    """Build an InstanceConfig from the ``driver:`` mapping plus fallbacks.

    Args:
        driver_config: user-supplied settings (may be empty).
        instance_name: test-suite/instance name, used for the default server name.
        platform_name: test-target platform; default image name fragment.
        sources: ordered env lookup sources, defaults to ``[os.environ]``.

    Raises:
        ConfigError: if credentials or SSH key IDs are missing after fallbacks.
    """
    sources = [os.environ] if sources is None else sources
    raw = dict(driver_config or {})

    unknown = set(raw) - _CONFIG_FIELDS
    for key in sorted(unknown):
        logger.warning(f"Warning: ignoring unknown driver config key '{key}'")

    _apply_fallbacks(raw, sources)
    _require(raw, REQUIRED_KEYS)

    ssh_key_ids = parse_ssh_key_ids(raw["ssh_key_ids"])
    if not ssh_key_ids:
        raise ConfigError("Config 'ssh_key_ids' is empty.")

    image = raw.get("image") or (default_image_name(platform_name) if platform_name else "")
    if not raw.get("image_id") and not image:
        raise ConfigError("Either 'image_id', 'image' or a platform name is required.")

    config = InstanceConfig(
        digitalocean_client_id=str(raw["digitalocean_client_id"]),
        digitalocean_api_key=str(raw["digitalocean_api_key"]),
        ssh_key_ids=ssh_key_ids,
        server_name=raw.get("server_name") or default_server_name(instance_name),
        username=raw.get("username", "root"),
        port=int(raw.get("port", 22)),
        private_networking=_to_bool(raw.get("private_networking", True)),
        region_id=_optional_id(raw.get("region_id")),
        flavor_id=_optional_id(raw.get("flavor_id")),
        image_id=_optional_id(raw.get("image_id")),
        region=raw.get("region") or DEFAULT_REGION,
        flavor=raw.get("flavor") or DEFAULT_FLAVOR,
        image=image,
        api_url=(raw.get("api_url") or DEFAULT_API_URL).rstrip("/"),
        ready_timeout=int(raw.get("ready_timeout", 600)),
        ssh_timeout=int(raw.get("ssh_timeout", 300)),
        poll_interval=int(raw.get("poll_interval", 10)),
    )

    register_secret(config.digitalocean_api_key)
    register_secret(config.digitalocean_client_id)
    return config
