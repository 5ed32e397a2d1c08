"""DigitalOcean provider: create/delete droplets via the v1 REST API."""

import asyncio
import json
import logging
import re

import httpx

from dropdock.provisioning.errors import DigitalOceanAPIError
from dropdock.provisioning.types import CatalogEntry

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.digitalocean.com/v1"
ACTIVE_STATUS = "active"
_NOT_FOUND_RE = re.compile(r"no droplets? found|not found", re.IGNORECASE)


# ── API helpers ───────────────────────────────────────────────────


async def _api_request(path, params, credentials, api_url=DEFAULT_API_URL, dry_run=False):
    """Make an authenticated DigitalOcean API request.

    Credentials travel as ``client_id``/``api_key`` query parameters.

    Returns:
        Parsed JSON body, or ``None`` in dry-run mode.

    Raises:
        httpx.HTTPStatusError: on a non-2xx response.
        DigitalOceanAPIError: when the body reports ``"status": "ERROR"`` or is not a JSON object.
    """
    url = f"{api_url}{path}"

    if dry_run:
        logger.info(f"[dry-run] GET {url}")
        if params:
            logger.info(f"[dry-run] params: {json.dumps(params, indent=2)}")
        return None

    query = {**credentials.as_params(), **params}
    async with httpx.AsyncClient() as client:
        resp = await client.get(url, params=query, timeout=60)
    resp.raise_for_status()
    try:
        body = resp.json()
    except ValueError as e:
        raise DigitalOceanAPIError(f"Invalid JSON from {path}: {e}") from e
    if not isinstance(body, dict):
        raise DigitalOceanAPIError(f"Unexpected response from {path}: {body!r}")
    if body.get("status") == "ERROR":
        raise DigitalOceanAPIError(body.get("error_message") or body.get("message") or "unknown API error")
    return body


def _parse_catalog(body, key):
    if body is None:  # dry-run
        return None
    try:
        return [CatalogEntry(id=str(item["id"]), name=item.get("name", "")) for item in body.get(key, [])]
    except (KeyError, TypeError, AttributeError) as e:
        raise DigitalOceanAPIError(f"Malformed {key} catalog: {e!r}") from e


async def list_regions(credentials, api_url=DEFAULT_API_URL, dry_run=False):
    """GET /regions/"""
    body = await _api_request("/regions/", {}, credentials, api_url, dry_run)
    return _parse_catalog(body, "regions")


async def list_sizes(credentials, api_url=DEFAULT_API_URL, dry_run=False):
    """GET /sizes/"""
    body = await _api_request("/sizes/", {}, credentials, api_url, dry_run)
    return _parse_catalog(body, "sizes")


async def list_images(credentials, api_url=DEFAULT_API_URL, dry_run=False):
    """GET /images/"""
    body = await _api_request("/images/", {}, credentials, api_url, dry_run)
    return _parse_catalog(body, "images")


async def create_droplet(
    credentials,
    name,
    size_id,
    image_id,
    region_id,
    ssh_key_ids,
    private_networking=True,
    api_url=DEFAULT_API_URL,
    dry_run=False,
):
    """Request a new droplet.

    GET /droplets/new

    Args:
        ssh_key_ids: list of registered SSH key IDs.

    Returns:
        The ``droplet`` dict from the response, or ``None`` in dry-run mode.
    """
    params = {
        "name": name,
        "size_id": str(size_id),
        "image_id": str(image_id),
        "region_id": str(region_id),
        "ssh_key_ids": ",".join(str(k) for k in ssh_key_ids),
        "private_networking": "true" if private_networking else "false",
    }
    body = await _api_request("/droplets/new", params, credentials, api_url, dry_run)
    if body is None:
        return None
    droplet = body.get("droplet")
    if not isinstance(droplet, dict) or droplet.get("id") is None:
        raise DigitalOceanAPIError(f"Droplet creation response has no droplet id: {body!r}")
    return droplet


def _is_not_found(exc):
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code == 404
    return bool(_NOT_FOUND_RE.search(str(exc)))


async def get_droplet(credentials, droplet_id, api_url=DEFAULT_API_URL, dry_run=False):
    """Get a single droplet by ID.

    GET /droplets/<id>
    Returns the droplet dict, or None if the droplet does not exist.
    """
    try:
        body = await _api_request(f"/droplets/{droplet_id}", {}, credentials, api_url, dry_run)
    except (httpx.HTTPStatusError, DigitalOceanAPIError) as e:
        if _is_not_found(e):
            return None
        raise
    if body is None:  # dry-run
        return None
    return body.get("droplet")


async def destroy_droplet(credentials, droplet_id, api_url=DEFAULT_API_URL, dry_run=False):
    """Destroy a droplet.

    GET /droplets/<id>/destroy/
    """
    return await _api_request(f"/droplets/{droplet_id}/destroy/", {}, credentials, api_url, dry_run)


# ── Polling ────────────────────────────────────────────────────────


async def wait_for_status(
    credentials, droplet_id, timeout, target_status=ACTIVE_STATUS, api_url=DEFAULT_API_URL, interval=10
):
    """Poll droplet status until it matches *target_status* and has a public IP.

    Returns:
        The droplet dict once ready, None on timeout.
    """
    elapsed = 0
    status = None
    while elapsed < timeout:
        info = await get_droplet(credentials, droplet_id, api_url)
        if info is None:
            logger.warning(f"Warning: droplet {droplet_id} not found.")
        else:
            status = info.get("status")
            if status == target_status and info.get("ip_address"):
                return info
            logger.debug(f"droplet {droplet_id} status '{status}', waiting...")
        await asyncio.sleep(interval)
        elapsed += interval

    logger.error(f"Timeout after {timeout}s waiting for status '{target_status}' (last: '{status}')")
    return None
