"""
Downloads machine config archives, one registration token per project.
"""

from pathlib import Path
from typing import Iterable, Optional, Sequence, Union

import aiofiles

from rancher_configs.api.client import RancherAPIClient
from rancher_configs.models.schemas import Host
from rancher_configs.models.stats import FetchStats
from rancher_configs.utils.path import (
    ARCHIVE_SUFFIX,
    create_dir,
    fallback_archive_name,
    parse_archive_name,
)
from rancher_configs.utils.structured_logger import EventLogger, default_logger

from .token_provisioner import TokenProvisioner


class TokenCache:
    """Project ID -> registration token, for the lifetime of one batch."""

    def __init__(self):
        self._tokens: dict[str, str] = {}

    def get(self, project_id: str) -> Optional[str]:
        return self._tokens.get(project_id)

    def put(self, project_id: str, token: str) -> None:
        self._tokens[project_id] = token

    def __contains__(self, project_id: str) -> bool:
        return project_id in self._tokens

    def __len__(self) -> int:
        return len(self._tokens)


class ConfigDownloader:
    """
    Fetches the config archive of each requested host and writes it to disk.

    Requests run strictly one after another. The first failure aborts the
    batch; files written before it stay on disk.
    """

    def __init__(
        self,
        api_client: RancherAPIClient,
        provisioner: TokenProvisioner,
        logger: Optional[EventLogger] = None,
    ):
        self.api_client = api_client
        self.provisioner = provisioner
        self.logger = logger or default_logger()
        self.stats = FetchStats()

    async def download_configs(
        self,
        host_ids: Sequence[str],
        project_ids: Sequence[str],
        destination: Union[str, Path],
    ) -> list[Path]:
        """
        Downloads one archive per `(host_ids[i], project_ids[i])` pair.

        Returns:
            The written file paths, in request order.
        """
        if len(host_ids) != len(project_ids):
            raise ValueError(
                f"Got {len(host_ids)} host IDs but {len(project_ids)} project IDs."
            )

        destination = Path(destination)
        create_dir(destination)
        tokens = TokenCache()
        written = []

        for host_id, project_id in zip(host_ids, project_ids):
            self.stats.hosts_requested += 1
            token = tokens.get(project_id)
            if token is None:
                token = await self.provisioner.acquire_token(project_id)
                tokens.put(project_id, token)
                self.stats.tokens_acquired += 1
            else:
                self.stats.token_cache_hits += 1
                self.logger.debug("token_cache_hit", project_id=project_id)

            path = await self._download_one(host_id, project_id, token, destination)
            written.append(path)

        return written

    async def download_for_hosts(
        self, hosts: Iterable[Host], destination: Union[str, Path]
    ) -> list[Path]:
        """Convenience wrapper pairing each host with its own project."""
        host_ids, project_ids = [], []
        for host in hosts:
            if not host.project_id:
                raise ValueError(f"Host '{host.id}' has no project (accountId).")
            host_ids.append(host.id)
            project_ids.append(host.project_id)
        return await self.download_configs(host_ids, project_ids, destination)

    async def _download_one(
        self, host_id: str, project_id: str, token: str, destination: Path
    ) -> Path:
        archive = await self.api_client.fetch_machine_config(project_id, host_id, token)

        filename = parse_archive_name(archive.content_disposition)
        if filename is None:
            filename = fallback_archive_name(host_id)
            self.stats.header_fallbacks += 1
            self.logger.verbose(
                "archive_name_fallback",
                host_id=host_id,
                content_disposition=archive.content_disposition,
                filename=filename,
            )
            if filename != f"{host_id}{ARCHIVE_SUFFIX}":
                self.logger.warning(
                    "archive_name_sanitized", host_id=host_id, filename=filename
                )

        path = destination / filename
        async with aiofiles.open(path, "wb") as f:
            await f.write(archive.content)

        self.stats.record_archive(path, len(archive.content))
        self.logger.info(
            "config_downloaded",
            host_id=host_id,
            project_id=project_id,
            path=path,
            size_bytes=len(archive.content),
        )
        return path
