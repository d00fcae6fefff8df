"""
Lists the hosts known to the server, with small predicate builders for filtering.
"""

import fnmatch
from typing import Callable, Optional

from rancher_configs.api.client import RancherAPIClient
from rancher_configs.models.schemas import Host
from rancher_configs.utils.structured_logger import EventLogger, default_logger

HostPredicate = Callable[[Host], bool]


def accept_all(host: Host) -> bool:
    return True


def by_project(project_id: str) -> HostPredicate:
    return lambda host: host.project_id == project_id


def by_state(state: str) -> HostPredicate:
    wanted = state.lower()
    return lambda host: (host.state or "").lower() == wanted


def by_name(pattern: str) -> HostPredicate:
    """Matches a shell-style pattern against the host's name or hostname."""

    def predicate(host: Host) -> bool:
        return any(
            candidate and fnmatch.fnmatch(candidate, pattern)
            for candidate in (host.name, host.hostname)
        )

    return predicate


def all_of(*predicates: HostPredicate) -> HostPredicate:
    return lambda host: all(predicate(host) for predicate in predicates)


class HostEnumerator:
    """Fetches the full host list in one request; no pagination is attempted."""

    def __init__(
        self, api_client: RancherAPIClient, logger: Optional[EventLogger] = None
    ):
        self.api_client = api_client
        self.logger = logger or default_logger()

    async def list_hosts(self, predicate: Optional[HostPredicate] = None) -> list[Host]:
        """Returns the hosts accepted by `predicate`, in server order."""
        predicate = predicate or accept_all
        host_list = await self.api_client.list_hosts()
        hosts = [host for host in host_list.data if predicate(host)]
        self.logger.verbose(
            "hosts_listed", total=len(host_list.data), matched=len(hosts)
        )
        return hosts
