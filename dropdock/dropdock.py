#!/usr/bin/env python3
"""DigitalOcean test-instance provisioning: CLI entrypoint."""

import argparse

from dropdock.commands.catalog import register_catalog_command
from dropdock.commands.instance import register_create_command, register_destroy_command
from dropdock.logging_setup import setup_cli_logging


def main():
    parser = argparse.ArgumentParser(description="Provision and tear down a DigitalOcean droplet for testing")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug output")
    subparsers = parser.add_subparsers(dest="command", required=True)

    register_create_command(subparsers)
    register_destroy_command(subparsers)
    register_catalog_command(subparsers)

    args = parser.parse_args()
    setup_cli_logging(verbose=args.verbose)
    args.func(args)


if __name__ == "__main__":
    main()
