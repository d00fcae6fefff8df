import aiohttp
import pytest

from rancher_configs.api.auth import StaticCredentialProvider
from rancher_configs.api.client import RancherAPIClient


async def test_wrong_credentials_raise_client_error(rancher):
    async with RancherAPIClient(
        rancher.base_url, StaticCredentialProvider("access", "wrong")
    ) as client:
        with pytest.raises(aiohttp.ClientResponseError) as excinfo:
            await client.list_hosts()

    assert excinfo.value.status == 401


async def test_config_fetch_with_unknown_token_is_refused(rancher, api_client):
    with pytest.raises(aiohttp.ClientResponseError) as excinfo:
        await api_client.fetch_machine_config("p-1", "h-1", "not-issued")

    assert excinfo.value.status == 403


async def test_fetch_exposes_content_disposition(rancher, api_client):
    rancher.issued_tokens["x"] = "t0k"
    rancher.content_disposition["h-1"] = "attachment; filename=h-1.tar.gz"

    archive = await api_client.fetch_machine_config("p-1", "h-1", "t0k")

    assert archive.content == b"archive-of-h-1"
    assert archive.content_disposition == "attachment; filename=h-1.tar.gz"


def test_url_for_joins_without_double_slashes():
    client = RancherAPIClient(
        "https://rancher.example/api/", StaticCredentialProvider("a", "b")
    )

    assert client.url_for("/v1/hosts") == "https://rancher.example/api/v1/hosts"
