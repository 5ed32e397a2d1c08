"""Unit tests for DigitalOcean API helper functions."""

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from dropdock.provisioning.digitalocean import (
    _api_request,
    create_droplet,
    destroy_droplet,
    get_droplet,
    list_images,
    list_regions,
    wait_for_status,
)
from dropdock.provisioning.errors import DigitalOceanAPIError
from dropdock.provisioning.types import CatalogEntry, Credentials

CREDENTIALS = Credentials(client_id="client-abc", api_key="key-xyz")
API_URL = "https://api.test.digitalocean.com/v1"


# ── API response fixtures ─────────────────────────────────────────

REGIONS_RESPONSE = {
    "status": "OK",
    "regions": [
        {"id": 1, "name": "New York 1", "slug": "nyc1"},
        {"id": 3, "name": "San Francisco 1", "slug": "sfo1"},
        {"id": 4, "name": "New York 2", "slug": "nyc2"},
    ],
}

IMAGES_RESPONSE = {
    "status": "OK",
    "images": [
        {"id": 1601, "name": "CentOS 5.8 x64", "distribution": "CentOS"},
        {"id": 3240036, "name": "Ubuntu 14.04 x64", "distribution": "Ubuntu"},
    ],
}

CREATE_RESPONSE = {
    "status": "OK",
    "droplet": {"id": 1657399, "name": "test-droplet", "image_id": 3240036, "size_id": 66, "event_id": 2360931},
}

DROPLET_NEW = {"id": 1657399, "name": "test-droplet", "status": "new", "ip_address": None}
DROPLET_ACTIVE = {
    "id": 1657399,
    "name": "test-droplet",
    "status": "active",
    "ip_address": "198.199.92.14",
    "private_ip_address": "10.128.1.2",
}


@pytest.fixture
def mock_api(monkeypatch):
    """Route httpx.AsyncClient through a MockTransport.

    Returns (routes, requests): set ``routes[path] = (status, body)`` and
    inspect ``requests`` afterwards. A ``str`` body is sent as raw text.
    """
    routes = {}
    requests = []

    def handler(request):
        requests.append(request)
        status, body = routes[request.url.path]
        if isinstance(body, str):
            return httpx.Response(status, text=body)
        return httpx.Response(status, json=body)

    real_client = httpx.AsyncClient
    monkeypatch.setattr(
        httpx, "AsyncClient", lambda **kw: real_client(transport=httpx.MockTransport(handler), **kw)
    )
    return routes, requests


# ── _api_request ──────────────────────────────────────────────────


async def test_api_request_sends_credentials_as_query(mock_api):
    routes, requests = mock_api
    routes["/v1/regions/"] = (200, REGIONS_RESPONSE)

    result = await _api_request("/regions/", {"foo": "bar"}, CREDENTIALS, API_URL)

    assert result == REGIONS_RESPONSE
    assert len(requests) == 1
    params = requests[0].url.params
    assert requests[0].method == "GET"
    assert params["client_id"] == "client-abc"
    assert params["api_key"] == "key-xyz"
    assert params["foo"] == "bar"


async def test_api_request_error_status_raises(mock_api):
    routes, _ = mock_api
    routes["/v1/droplets/new"] = (200, {"status": "ERROR", "error_message": "Access Denied"})

    with pytest.raises(DigitalOceanAPIError, match="Access Denied"):
        await _api_request("/droplets/new", {}, CREDENTIALS, API_URL)


async def test_api_request_http_error_raises(mock_api):
    routes, _ = mock_api
    routes["/v1/sizes/"] = (500, {"message": "boom"})

    with pytest.raises(httpx.HTTPStatusError):
        await _api_request("/sizes/", {}, CREDENTIALS, API_URL)


async def test_api_request_dry_run(caplog):
    with caplog.at_level("INFO"):
        result = await _api_request("/droplets/new", {"name": "vm"}, CREDENTIALS, API_URL, dry_run=True)

    assert result is None
    assert "[dry-run] GET" in caplog.text
    assert "/droplets/new" in caplog.text
    assert '"name": "vm"' in caplog.text
    assert "key-xyz" not in caplog.text


async def test_api_request_non_json_body_raises(mock_api):
    routes, _ = mock_api
    routes["/v1/droplets/42"] = (200, "<html>502 Bad Gateway</html>")

    with pytest.raises(DigitalOceanAPIError, match="Invalid JSON"):
        await _api_request("/droplets/42", {}, CREDENTIALS, API_URL)


async def test_api_request_non_object_body_raises(mock_api):
    routes, _ = mock_api
    routes["/v1/sizes/"] = (200, [])

    with pytest.raises(DigitalOceanAPIError, match="Unexpected response"):
        await _api_request("/sizes/", {}, CREDENTIALS, API_URL)


# ── Catalog listing ───────────────────────────────────────────────


async def test_list_regions_preserves_order(mock_api):
    routes, _ = mock_api
    routes["/v1/regions/"] = (200, REGIONS_RESPONSE)

    regions = await list_regions(CREDENTIALS, API_URL)

    assert regions == [
        CatalogEntry(id="1", name="New York 1"),
        CatalogEntry(id="3", name="San Francisco 1"),
        CatalogEntry(id="4", name="New York 2"),
    ]


async def test_list_images(mock_api):
    routes, _ = mock_api
    routes["/v1/images/"] = (200, IMAGES_RESPONSE)

    images = await list_images(CREDENTIALS, API_URL)

    assert [i.name for i in images] == ["CentOS 5.8 x64", "Ubuntu 14.04 x64"]
    assert images[1].id == "3240036"


async def test_list_regions_malformed_entry_raises(mock_api):
    routes, _ = mock_api
    routes["/v1/regions/"] = (200, {"status": "OK", "regions": [{"name": "New York 1"}]})

    with pytest.raises(DigitalOceanAPIError, match="Malformed regions"):
        await list_regions(CREDENTIALS, API_URL)


async def test_list_regions_dry_run_returns_none():
    assert await list_regions(CREDENTIALS, API_URL, dry_run=True) is None


# ── create_droplet ────────────────────────────────────────────────


@patch("dropdock.provisioning.digitalocean._api_request", new_callable=AsyncMock)
async def test_create_droplet_params(mock_req):
    mock_req.return_value = CREATE_RESPONSE

    droplet = await create_droplet(
        CREDENTIALS,
        name="test-droplet",
        size_id=66,
        image_id=3240036,
        region_id=4,
        ssh_key_ids=["1234", "5678"],
        private_networking=True,
        api_url=API_URL,
    )

    path, params = mock_req.call_args[0][:2]
    assert path == "/droplets/new"
    assert params == {
        "name": "test-droplet",
        "size_id": "66",
        "image_id": "3240036",
        "region_id": "4",
        "ssh_key_ids": "1234,5678",
        "private_networking": "true",
    }
    assert droplet["id"] == 1657399


@patch("dropdock.provisioning.digitalocean._api_request", new_callable=AsyncMock)
async def test_create_droplet_private_networking_off(mock_req):
    mock_req.return_value = CREATE_RESPONSE

    await create_droplet(CREDENTIALS, "vm", 1, 2, 3, ["9"], private_networking=False, api_url=API_URL)

    assert mock_req.call_args[0][1]["private_networking"] == "false"



@patch("dropdock.provisioning.digitalocean._api_request", new_callable=AsyncMock)
async def test_create_droplet_missing_droplet_id_raises(mock_req):
    mock_req.return_value = {"status": "OK", "id": 42}

    with pytest.raises(DigitalOceanAPIError, match="no droplet id"):
        await create_droplet(CREDENTIALS, "vm", 1, 2, 3, ["9"], api_url=API_URL)

# ── get_droplet / destroy_droplet ─────────────────────────────────


async def test_get_droplet_found(mock_api):
    routes, _ = mock_api
    routes["/v1/droplets/1657399"] = (200, {"status": "OK", "droplet": DROPLET_ACTIVE})

    droplet = await get_droplet(CREDENTIALS, "1657399", API_URL)
    assert droplet["ip_address"] == "198.199.92.14"


async def test_get_droplet_http_404_returns_none(mock_api):
    routes, _ = mock_api
    routes["/v1/droplets/999"] = (404, {"status": "ERROR", "message": "Not Found"})

    assert await get_droplet(CREDENTIALS, "999", API_URL) is None


async def test_get_droplet_error_not_found_returns_none(mock_api):
    routes, _ = mock_api
    routes["/v1/droplets/999"] = (200, {"status": "ERROR", "error_message": "Droplet not found"})

    assert await get_droplet(CREDENTIALS, "999", API_URL) is None


async def test_get_droplet_no_droplets_found_returns_none(mock_api):
    routes, _ = mock_api
    routes["/v1/droplets/123"] = (200, {"status": "ERROR", "error_message": "No Droplets Found"})

    assert await get_droplet(CREDENTIALS, "123", API_URL) is None


async def test_get_droplet_other_error_raises(mock_api):
    routes, _ = mock_api
    routes["/v1/droplets/999"] = (200, {"status": "ERROR", "error_message": "Access Denied"})

    with pytest.raises(DigitalOceanAPIError):
        await get_droplet(CREDENTIALS, "999", API_URL)


async def test_destroy_droplet_path(mock_api):
    routes, requests = mock_api
    routes["/v1/droplets/1657399/destroy/"] = (200, {"status": "OK", "event_id": 7501})

    await destroy_droplet(CREDENTIALS, "1657399", API_URL)

    assert requests[0].url.path == "/v1/droplets/1657399/destroy/"


# ── wait_for_status ───────────────────────────────────────────────


@patch("dropdock.provisioning.digitalocean.get_droplet", new_callable=AsyncMock)
async def test_wait_for_status_polls_until_active(mock_get):
    mock_get.side_effect = [DROPLET_NEW, None, DROPLET_ACTIVE]

    info = await wait_for_status(CREDENTIALS, "1657399", timeout=10, api_url=API_URL, interval=0.001)

    assert info == DROPLET_ACTIVE
    assert mock_get.call_count == 3


@patch("dropdock.provisioning.digitalocean.get_droplet", new_callable=AsyncMock)
async def test_wait_for_status_waits_for_ip(mock_get):
    active_no_ip = {**DROPLET_ACTIVE, "ip_address": None}
    mock_get.side_effect = [active_no_ip, DROPLET_ACTIVE]

    info = await wait_for_status(CREDENTIALS, "1657399", timeout=10, api_url=API_URL, interval=0.001)

    assert info["ip_address"] == "198.199.92.14"


@patch("dropdock.provisioning.digitalocean.get_droplet", new_callable=AsyncMock)
async def test_wait_for_status_timeout(mock_get, caplog):
    mock_get.return_value = DROPLET_NEW

    info = await wait_for_status(CREDENTIALS, "1657399", timeout=0.03, api_url=API_URL, interval=0.01)

    assert info is None
    assert "Timeout" in caplog.text
    assert "'new'" in caplog.text
