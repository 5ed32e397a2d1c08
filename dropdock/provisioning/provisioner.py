"""Provisioner: create and destroy a single DigitalOcean droplet.

create() resolves names to IDs, requests the droplet, waits for it to go
active and for sshd to accept connections, and records server_id/hostname
in the caller's state. destroy() reverses it.
"""

import logging

import httpx

from dropdock.provisioning import digitalocean as do_api
from dropdock.provisioning.catalog import resolve_config
from dropdock.provisioning.errors import DigitalOceanAPIError, ProvisionError
from dropdock.provisioning.ssh import wait_for_sshd

logger = logging.getLogger(__name__)

DRY_RUN_SERVER_ID = "dry-run-id"
DRY_RUN_HOSTNAME = "dry-run-host"


class Provisioner:
    """Drives the droplet lifecycle for one InstanceConfig.

    Holds no state between calls; the InstanceState passed to create and
    destroy is owned by the caller and mutated in place.
    """

    def __init__(self, config, dry_run=False):
        self.config = config
        self.dry_run = dry_run

    async def create(self, state):
        """Create the droplet and fill *state* with ``server_id`` and ``hostname``.

        ``server_id`` is written as soon as the API returns it, so a failure
        while waiting still leaves enough state for destroy().

        Raises:
            ResolutionError: a region/flavor/image name matched nothing.
            ProvisionError: any API or transport failure, or a polling timeout.
        """
        credentials = self.config.credentials
        self._debug_compute_config()
        try:
            config = await resolve_config(self.config, credentials, dry_run=self.dry_run)
            droplet = await self._create_server(config, credentials)
            if self.dry_run:
                logger.info("[dry-run] Would wait for active status and sshd, then record state.")
                state.server_id = DRY_RUN_SERVER_ID
                state.hostname = DRY_RUN_HOSTNAME
                return state

            state.server_id = str(droplet["id"])
            logger.info(f"DigitalOcean instance <{state.server_id}> created.")

            info = await do_api.wait_for_status(
                credentials,
                state.server_id,
                config.ready_timeout,
                api_url=config.api_url,
                interval=config.poll_interval,
            )
            if info is None:
                raise ProvisionError(
                    f"Droplet {state.server_id} did not become active within {config.ready_timeout}s"
                )
            logger.info("(server ready)")
            state.hostname = info["ip_address"]

            ready = await wait_for_sshd(
                state.hostname,
                config.port,
                timeout=config.ssh_timeout,
                interval=config.poll_interval,
            )
            if not ready:
                raise ProvisionError(
                    f"sshd on {state.hostname}:{config.port} not reachable within {config.ssh_timeout}s"
                )
            logger.info("(ssh ready)")
            logger.debug(f"digitalocean:create {state.hostname}")
        except (httpx.HTTPError, DigitalOceanAPIError) as e:
            raise ProvisionError(str(e) or type(e).__name__) from e
        return state

    async def destroy(self, state):
        """Destroy the droplet recorded in *state* and clear it.

        No-op without a ``server_id``. A droplet the provider no longer
        knows about is treated as already destroyed.
        """
        if state.server_id is None:
            return

        credentials = self.config.credentials
        api_url = self.config.api_url
        try:
            if self.dry_run:
                await do_api.destroy_droplet(credentials, state.server_id, api_url, dry_run=True)
            else:
                droplet = await do_api.get_droplet(credentials, state.server_id, api_url)
                if droplet is not None:
                    await do_api.destroy_droplet(credentials, state.server_id, api_url)
                else:
                    logger.info(f"DigitalOcean instance <{state.server_id}> not found, skipping.")
        except (httpx.HTTPError, DigitalOceanAPIError) as e:
            raise ProvisionError(str(e) or type(e).__name__) from e

        if not self.dry_run:
            logger.info(f"DigitalOcean instance <{state.server_id}> destroyed.")
        state.clear()

    async def _create_server(self, config, credentials):
        self._debug_server_config(config)
        return await do_api.create_droplet(
            credentials,
            name=config.server_name,
            size_id=config.flavor_id,
            image_id=config.image_id,
            region_id=config.region_id,
            ssh_key_ids=config.ssh_key_ids,
            private_networking=config.private_networking,
            api_url=config.api_url,
            dry_run=self.dry_run,
        )

    def _debug_server_config(self, config):
        logger.debug(f"digitalocean:name {config.server_name}")
        logger.debug(f"digitalocean:image_id {config.image_id}")
        logger.debug(f"digitalocean:flavor_id {config.flavor_id}")
        logger.debug(f"digitalocean:region_id {config.region_id}")
        logger.debug(f"digitalocean:ssh_key_ids {','.join(config.ssh_key_ids)}")
        logger.debug(f"digitalocean:private_networking {config.private_networking}")

    def _debug_compute_config(self):
        logger.debug(f"digitalocean_api_key {self.config.digitalocean_api_key}")
        logger.debug(f"digitalocean_client_id {self.config.digitalocean_client_id}")
