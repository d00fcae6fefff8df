"""
Async client for the Rancher v1 API endpoints used to provision machines.
"""

import json
import time
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

import aiohttp

from rancher_configs.exceptions import MalformedResponseError
from rancher_configs.models.schemas import (
    HostList,
    RegistrationToken,
    RegistrationTokenList,
    parse_response,
)
from rancher_configs.utils.structured_logger import EventLogger, default_logger

from .auth import CredentialProvider


@dataclass
class ConfigArchive:
    """The raw body of a machine config download plus the header naming it."""

    content: bytes
    content_disposition: Optional[str] = None


class RancherAPIClient:
    """
    Async client for the Rancher v1 JSON API.

    Every request is authenticated with the key pair from the injected
    credential provider and awaited before the caller continues. Non-2xx
    answers raise `aiohttp.ClientResponseError`.
    """

    def __init__(
        self,
        base_url: str,
        credentials: CredentialProvider,
        request_timeout: Optional[float] = 60.0,
        verify_ssl: bool = True,
        logger: Optional[EventLogger] = None,
    ):
        """
        Initializes the API client.

        Args:
            base_url: Server API root, e.g. `https://rancher.example/api`.
            credentials: Supplies the API key pair for each request.
            request_timeout: Total seconds per request; None or 0 disables it.
            verify_ssl: Whether to verify the server's TLS certificate.
            logger: Event logger shared with the rest of the run.
        """
        self.base_url = base_url.rstrip("/")
        self.credentials = credentials
        self.request_timeout = request_timeout or None
        self.verify_ssl = verify_ssl
        self.logger = logger or default_logger()
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> "RancherAPIClient":
        await self._initialize_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _initialize_session(self) -> None:
        """Ensures an active aiohttp session is available."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                connector=aiohttp.TCPConnector(ssl=self.verify_ssl),
                headers={"Accept": "application/json"},
                timeout=aiohttp.ClientTimeout(total=self.request_timeout),
            )

    async def close(self) -> None:
        """Gracefully closes the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()

    def url_for(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, str]] = None,
        json_body: Optional[Dict[str, Any]] = None,
    ) -> tuple[bytes, Mapping[str, str]]:
        await self._initialize_session()
        auth = self.credentials.get_credential().as_basic_auth()

        self.logger.debug("api_request_started", method=method, path=path)
        start_time = time.monotonic()

        async with self._session.request(
            method, self.url_for(path), params=params, json=json_body, auth=auth
        ) as r:
            duration_ms = (time.monotonic() - start_time) * 1000
            if r.status >= 400:
                self.logger.error(
                    "api_request_failed",
                    method=method,
                    path=path,
                    status_code=r.status,
                    duration_ms=round(duration_ms, 2),
                )
            r.raise_for_status()
            body = await r.read()
            self.logger.debug(
                "api_request_completed",
                method=method,
                path=path,
                status_code=r.status,
                duration_ms=round(duration_ms, 2),
                size_bytes=len(body),
            )
            return body, r.headers

    async def api_call(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, str]] = None,
        json_body: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Makes an authenticated JSON API call and returns the decoded body."""
        body, _ = await self._request(method, path, params=params, json_body=json_body)
        try:
            return json.loads(body)
        except ValueError as e:
            raise MalformedResponseError(
                f"Response from '{path}' is not valid JSON: {e}"
            ) from e

    # Public API Methods
    async def create_registration_token(
        self, project_id: str, name: str
    ) -> RegistrationToken:
        path = f"/v1/projects/{project_id}/registrationTokens"
        payload = await self.api_call("POST", path, json_body={"name": name})
        return parse_response(RegistrationToken, payload, path)

    async def list_registration_tokens(self) -> RegistrationTokenList:
        path = "/v1/registrationTokens"
        payload = await self.api_call("GET", path)
        return parse_response(RegistrationTokenList, payload, path)

    async def list_hosts(self) -> HostList:
        path = "/v1/hosts"
        payload = await self.api_call("GET", path)
        return parse_response(HostList, payload, path)

    async def fetch_machine_config(
        self, project_id: str, host_id: str, token: str
    ) -> ConfigArchive:
        """Downloads the `.tar.gz` config archive for one host."""
        path = f"/v1/projects/{project_id}/machines/{host_id}/config"
        body, headers = await self._request(
            "GET", path, params={"token": token, "projectId": project_id}
        )
        return ConfigArchive(
            content=body, content_disposition=headers.get("Content-Disposition")
        )
