"""catalog command: list regions, sizes or images to pick name fragments from."""

import asyncio
import logging
import sys

import httpx

from dropdock.config import DEFAULT_CONFIG_PATH, ConfigError, load_config, resolve_credentials
from dropdock.provisioning import digitalocean as do_api
from dropdock.provisioning.catalog import name_matches
from dropdock.provisioning.errors import DigitalOceanAPIError

logger = logging.getLogger(__name__)

CATALOG_KINDS = ("images", "regions", "sizes")


def handle_catalog(args):
    """CLI handler for 'catalog'."""
    asyncio.run(_handle_catalog(args))


async def _handle_catalog(args):
    raw = load_config(args.config) if args.config else {}
    driver = raw.get("driver") or {}
    try:
        credentials = resolve_credentials(driver)
    except ConfigError as e:
        logger.error(f"Error: {e}")
        sys.exit(1)
    api_url = (args.api_url or driver.get("api_url") or do_api.DEFAULT_API_URL).rstrip("/")

    try:
        entries = await getattr(do_api, f"list_{args.kind}")(credentials, api_url)
    except (httpx.HTTPError, DigitalOceanAPIError) as e:
        logger.error(f"Error listing {args.kind}: {e}")
        sys.exit(1)

    if args.filter:
        entries = [e for e in entries if name_matches(e, args.filter)]
    for entry in entries:
        logger.info(f"{entry.id}\t{entry.name}")


def register_catalog_command(subparsers):
    """Register the 'catalog' subcommand."""
    parser = subparsers.add_parser("catalog", help="List available regions, sizes or images")
    parser.add_argument("kind", choices=CATALOG_KINDS, help="Catalog to list")
    parser.add_argument(
        "--config", default=None, help=f"YAML config file for credentials (e.g. {DEFAULT_CONFIG_PATH})"
    )
    parser.add_argument("--filter", default=None, help="Only show entries whose name contains this (case-insensitive)")
    parser.add_argument("--api-url", default=None, help=f"API base URL (default: {do_api.DEFAULT_API_URL})")
    parser.set_defaults(func=handle_catalog)
