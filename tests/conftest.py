"""Shared pytest fixtures for all test modules."""

import os
import subprocess
import sys

import pytest
import yaml

from dropdock.config import InstanceConfig

PROJECT_ROOT = os.path.normpath(os.path.join(os.path.dirname(__file__), ".."))

# Env vars that would leak credentials from the developer's shell into tests
_PROVIDER_ENV_VARS = (
    "DIGITALOCEAN_CLIENT_ID",
    "DIGITALOCEAN_API_KEY",
    "DIGITALOCEAN_SSH_KEY_IDS",
    "SSH_KEY_IDS",
)


@pytest.fixture(scope="session")
def project_root():
    """Absolute path to the project root directory."""
    return PROJECT_ROOT


@pytest.fixture(scope="session")
def run_cli(project_root):
    """Return a callable that invokes the dropdock CLI as a subprocess."""

    def _run(*args, env=None):
        base_env = {k: v for k, v in os.environ.items() if k not in _PROVIDER_ENV_VARS}
        result = subprocess.run(
            [sys.executable, "-m", "dropdock.dropdock", *args],
            capture_output=True,
            text=True,
            cwd=project_root,
            env={**base_env, **(env or {})},
        )
        return result.returncode, result.stdout, result.stderr

    return _run


@pytest.fixture
def make_config(tmp_path):
    """Return a factory that writes a temporary dropdock.yml."""

    def _make(driver=None, name="default-ubuntu-1404", platform="ubuntu-14.04"):
        config = {"driver": driver or {}}
        if name:
            config["name"] = name
        if platform:
            config["platform"] = platform
        config_path = tmp_path / "dropdock.yml"
        with open(config_path, "w") as f:
            yaml.dump(config, f)
        return str(config_path)

    return _make


@pytest.fixture(autouse=True)
def clean_provider_env(monkeypatch):
    for var in _PROVIDER_ENV_VARS:
        monkeypatch.delenv(var, raising=False)


# ── Unit-test fixtures ──────────────────────────────────────────────


@pytest.fixture
def instance_config():
    """Return an InstanceConfig with concrete region/flavor/image IDs."""
    return InstanceConfig(
        digitalocean_client_id="client-id-test",
        digitalocean_api_key="api-key-test-0123456789",
        ssh_key_ids=["1234", "5678"],
        server_name="default-ubuntu-1404-jdoe-abcd1234-ws01",
        region_id="1",
        flavor_id="2",
        image_id="3",
        api_url="https://api.test.digitalocean.com/v1",
        poll_interval=0,
    )
