"""create/destroy command handlers."""

import asyncio
import logging
import sys

from dropdock.config import DEFAULT_CONFIG_PATH, ConfigError, build_instance_config, load_config
from dropdock.provisioning import Provisioner, ProvisionError, ResolutionError
from dropdock.state import DEFAULT_STATE_DIR, load_state, save_state, state_path

logger = logging.getLogger(__name__)


def _load_instance(args):
    """Return (instance_name, InstanceConfig) from the config file and CLI overrides.

    Exits on missing or invalid configuration.
    """
    raw = load_config(args.config)
    instance_name = args.name or raw.get("name")
    platform_name = getattr(args, "platform", None) or raw.get("platform")
    if not instance_name:
        logger.error("Error: instance name required. Use --name or set 'name' in the config file.")
        sys.exit(1)

    driver = dict(raw.get("driver") or {})
    if args.api_url:
        driver["api_url"] = args.api_url
    try:
        config = build_instance_config(driver, instance_name, platform_name)
    except ConfigError as e:
        logger.error(f"Error: {e}")
        sys.exit(1)
    return instance_name, config


# ── CLI handlers ───────────────────────────────────────────────────


def handle_create(args):
    """CLI handler for 'create'."""
    asyncio.run(_handle_create(args))


async def _handle_create(args):
    instance_name, config = _load_instance(args)
    path = state_path(args.state_dir, instance_name)
    state = load_state(path)

    if state.server_id is not None:
        logger.info(f"Instance '{instance_name}' already created (server_id={state.server_id}).")
        return

    logger.info(f"Creating DigitalOcean droplet '{config.server_name}'...")
    provisioner = Provisioner(config, dry_run=args.dry_run)
    try:
        await provisioner.create(state)
    except (ProvisionError, ResolutionError) as e:
        logger.error(f"Error: {e}")
        if state.server_id is not None:
            logger.info(f"Droplet {state.server_id} was created; run 'destroy' to clean it up.")
        sys.exit(1)
    finally:
        # Whatever was recorded must survive any failure or interrupt.
        if not args.dry_run:
            save_state(path, state)

    if args.dry_run:
        return
    logger.info(f"Host:     {state.hostname}")
    logger.info(f"Connect:  ssh -p {config.port} {config.username}@{state.hostname}")


def handle_destroy(args):
    """CLI handler for 'destroy'."""
    asyncio.run(_handle_destroy(args))


async def _handle_destroy(args):
    instance_name, config = _load_instance(args)
    path = state_path(args.state_dir, instance_name)
    state = load_state(path)

    if state.server_id is None:
        logger.info(f"No droplet recorded for '{instance_name}', nothing to destroy.")
        return

    provisioner = Provisioner(config, dry_run=args.dry_run)
    try:
        await provisioner.destroy(state)
    except ProvisionError as e:
        logger.error(f"Error: {e}")
        sys.exit(1)

    if not args.dry_run:
        save_state(path, state)


# ── Registration ───────────────────────────────────────────────────


def _add_common_args(parser):
    parser.add_argument(
        "--config", default=DEFAULT_CONFIG_PATH, help=f"YAML config file (default: {DEFAULT_CONFIG_PATH})"
    )
    parser.add_argument("--name", default=None, help="Instance name (overrides 'name' in the config file)")
    parser.add_argument(
        "--state-dir", default=DEFAULT_STATE_DIR, help=f"Directory for state files (default: {DEFAULT_STATE_DIR})"
    )
    parser.add_argument("--api-url", default=None, help="API base URL (overrides 'driver.api_url')")
    parser.add_argument("--dry-run", action="store_true", help="Print requests without executing")


def register_create_command(subparsers):
    """Register the 'create' subcommand."""
    parser = subparsers.add_parser("create", help="Create a droplet and wait for SSH")
    _add_common_args(parser)
    parser.add_argument("--platform", default=None, help="Platform name, default image match (e.g. ubuntu-14.04)")
    parser.set_defaults(func=handle_create)


def register_destroy_command(subparsers):
    """Register the 'destroy' subcommand."""
    parser = subparsers.add_parser("destroy", help="Destroy the droplet recorded in the state file")
    _add_common_args(parser)
    parser.set_defaults(func=handle_destroy)
