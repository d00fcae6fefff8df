import pytest

from rancher_configs.core.host_enumerator import (
    HostEnumerator,
    all_of,
    by_name,
    by_project,
    by_state,
)
from rancher_configs.exceptions import MalformedResponseError, UnexpectedResponseError

HOSTS = [
    {"id": "1h1", "accountId": "1a5", "hostname": "web-01", "state": "active"},
    {"id": "1h2", "accountId": "1a7", "hostname": "db-01", "state": "inactive"},
    {"id": "1h3", "accountId": "1a5", "name": "web-02", "state": "Active", "labels": {}},
]


@pytest.fixture
def enumerator(api_client, log_config):
    return HostEnumerator(api_client, log_config.build())


async def test_lists_all_hosts_in_order(rancher, enumerator):
    rancher.hosts = HOSTS

    hosts = await enumerator.list_hosts()

    assert [h.id for h in hosts] == ["1h1", "1h2", "1h3"]
    assert hosts[0].project_id == "1a5"
    assert hosts[2].display_name == "web-02"


async def test_unknown_fields_are_kept(rancher, enumerator):
    rancher.hosts = HOSTS

    hosts = await enumerator.list_hosts()

    assert hosts[2].model_extra == {"labels": {}}


async def test_predicate_filters_and_keeps_order(rancher, enumerator):
    rancher.hosts = HOSTS

    hosts = await enumerator.list_hosts(by_project("1a5"))

    assert [h.id for h in hosts] == ["1h1", "1h3"]


async def test_combined_predicates(rancher, enumerator):
    rancher.hosts = HOSTS

    hosts = await enumerator.list_hosts(all_of(by_state("active"), by_name("web-*")))

    assert [h.id for h in hosts] == ["1h1", "1h3"]


async def test_empty_list(rancher, enumerator):
    assert await enumerator.list_hosts() == []


async def test_host_without_id_is_malformed(rancher, enumerator):
    rancher.hosts_payload = {"data": [{"hostname": "ghost"}]}

    with pytest.raises(MalformedResponseError):
        await enumerator.list_hosts()


async def test_non_json_response_is_malformed(rancher, enumerator):
    rancher.hosts_payload = "<html>login</html>"

    with pytest.raises(MalformedResponseError):
        await enumerator.list_hosts()


async def test_malformed_response_is_not_a_name_mismatch(rancher, enumerator):
    rancher.hosts_payload = "<html>login</html>"

    with pytest.raises(MalformedResponseError) as excinfo:
        await enumerator.list_hosts()

    assert not isinstance(excinfo.value, UnexpectedResponseError)
