"""Resolve region/size/image name fragments to DigitalOcean IDs."""

import dataclasses
import logging

from dropdock.provisioning import digitalocean as do_api
from dropdock.provisioning.errors import ResolutionError

logger = logging.getLogger(__name__)


def name_matches(entry, fragment):
    """True when *entry*'s name contains *fragment*, ignoring case."""
    return str(fragment).casefold() in entry.name.casefold()


def find_first_match(entries, fragment):
    """Return the first entry whose name contains *fragment*, ignoring case.

    Catalog order is preserved: the provider's first match wins.
    """
    for entry in entries:
        if name_matches(entry, fragment):
            return entry
    return None


async def _resolve(field, fragment, list_fn, credentials, api_url, dry_run):
    entries = await list_fn(credentials, api_url, dry_run)
    if entries is None:  # dry-run
        logger.info(f"[dry-run] would resolve {field} matching '{fragment}'")
        return f"dry-run-{field}"
    entry = find_first_match(entries, fragment)
    if entry is None:
        raise ResolutionError(field, fragment)
    logger.debug(f"digitalocean:{field} '{fragment}' -> {entry.name} ({entry.id})")
    return entry.id


async def resolve_region_id(config, credentials, dry_run=False):
    """Concrete region ID: ``region_id`` as given, else first region matching ``region``."""
    if config.region_id:
        return config.region_id
    return await _resolve("region", config.region, do_api.list_regions, credentials, config.api_url, dry_run)


async def resolve_flavor_id(config, credentials, dry_run=False):
    """Concrete size ID: ``flavor_id`` as given, else first size matching ``flavor``."""
    if config.flavor_id:
        return config.flavor_id
    return await _resolve("flavor", config.flavor, do_api.list_sizes, credentials, config.api_url, dry_run)


async def resolve_image_id(config, credentials, dry_run=False):
    """Concrete image ID: ``image_id`` as given, else first image matching ``image``."""
    if config.image_id:
        return config.image_id
    return await _resolve("image", config.image, do_api.list_images, credentials, config.api_url, dry_run)


async def resolve_config(config, credentials, dry_run=False):
    """Return a copy of *config* with region, flavor and image IDs concrete.

    Each catalog is fetched at most once, and only when its ID is missing.

    Raises:
        ResolutionError: a name fragment matched no catalog entry.
    """
    region_id = await resolve_region_id(config, credentials, dry_run)
    flavor_id = await resolve_flavor_id(config, credentials, dry_run)
    image_id = await resolve_image_id(config, credentials, dry_run)
    return dataclasses.replace(config, region_id=region_id, flavor_id=flavor_id, image_id=image_id)
