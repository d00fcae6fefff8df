"""
A fake Rancher v1 API served by aiohttp's test server.

Each knob on `FakeRancher` shapes one aspect of the server's behaviour; every
request is recorded so tests can assert on exactly what the client sent.
"""

import asyncio
import threading
from typing import Any, Optional

import aiohttp
import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from rancher_configs.api.auth import StaticCredentialProvider
from rancher_configs.api.client import RancherAPIClient
from rancher_configs.core.config_downloader import ConfigDownloader
from rancher_configs.core.token_provisioner import TokenProvisioner
from rancher_configs.models.config import PollPolicy
from rancher_configs.utils.structured_logger import LogConfig

ACCESS_KEY = "access"
SECRET_KEY = "secret"


class FakeRancher:
    def __init__(self):
        self.base_url = ""

        # Behaviour knobs
        self.hosts: list[dict[str, Any]] = []
        self.hosts_payload: Optional[Any] = None
        self.name_override: Optional[str] = None
        self.initial_state = "registering"
        self.registering_label = "registering"
        self.polls_before_active = 1
        self.final_state = "active"
        self.final_token: Optional[str] = None  # None: generate one per token
        self.drop_tokens_from_list = False
        self.reject_projects: set[str] = set()
        self.content_disposition: dict[str, str] = {}

        # Recorded traffic
        self.create_calls: list[tuple[str, str]] = []
        self.create_paths: list[str] = []
        self.list_calls = 0
        self.config_calls: list[dict[str, str]] = []
        self.issued_tokens: dict[str, str] = {}

        self._tokens: dict[str, dict[str, Any]] = {}

    def archive_body(self, host_id: str) -> bytes:
        return f"archive-of-{host_id}".encode()

    @web.middleware
    async def check_auth(self, request: web.Request, handler):
        expected = aiohttp.BasicAuth(ACCESS_KEY, SECRET_KEY).encode()
        if request.headers.get("Authorization") != expected:
            return web.json_response({"message": "Unauthorized"}, status=401)
        return await handler(request)

    async def create_token(self, request: web.Request) -> web.Response:
        project_id = request.match_info["project_id"]
        name = (await request.json())["name"]
        self.create_calls.append((project_id, name))
        self.create_paths.append(request.path)

        state = "active" if project_id in self.reject_projects else self.initial_state
        self._tokens[name] = {"project_id": project_id, "polls": 0}
        return web.json_response(
            {
                "id": f"1c{len(self._tokens)}",
                "type": "registrationToken",
                "name": self.name_override or name,
                "state": state,
                "token": None,
                "accountId": project_id,
            },
            status=201,
        )

    async def list_tokens(self, request: web.Request) -> web.Response:
        self.list_calls += 1
        data = [{"id": "1c0", "name": "00000000", "state": "active", "token": "old"}]
        if not self.drop_tokens_from_list:
            for name, record in self._tokens.items():
                record["polls"] += 1
                entry = {"id": f"1c-{name}", "name": name, "accountId": record["project_id"]}
                if record["polls"] > self.polls_before_active:
                    token = self.final_token
                    if token is None:
                        token = f"tok-{record['project_id']}-{name}"
                    self.issued_tokens[name] = token
                    entry.update(state=self.final_state, token=token)
                else:
                    entry.update(state=self.registering_label, token=None)
                data.append(entry)
        return web.json_response({"type": "collection", "data": data})

    async def list_hosts(self, request: web.Request) -> web.Response:
        if self.hosts_payload is not None:
            if isinstance(self.hosts_payload, str):
                return web.Response(text=self.hosts_payload, content_type="text/html")
            return web.json_response(self.hosts_payload)
        return web.json_response({"type": "collection", "data": self.hosts})

    async def machine_config(self, request: web.Request) -> web.Response:
        host_id = request.match_info["host_id"]
        project_id = request.match_info["project_id"]
        self.config_calls.append(
            {"path": request.path, "host_id": host_id, **dict(request.query)}
        )
        if request.query.get("token") not in self.issued_tokens.values():
            return web.json_response({"message": "bad token"}, status=403)
        if request.query.get("projectId") != project_id:
            return web.json_response({"message": "project mismatch"}, status=400)

        headers = {}
        if host_id in self.content_disposition:
            headers["Content-Disposition"] = self.content_disposition[host_id]
        return web.Response(
            body=self.archive_body(host_id),
            headers=headers,
            content_type="application/octet-stream",
        )

    def make_app(self) -> web.Application:
        app = web.Application(middlewares=[self.check_auth])
        app.router.add_post(
            "/api/v1/projects/{project_id}/registrationTokens", self.create_token
        )
        app.router.add_get("/api/v1/registrationTokens", self.list_tokens)
        app.router.add_get("/api/v1/hosts", self.list_hosts)
        app.router.add_get(
            "/api/v1/projects/{project_id}/machines/{host_id}/config",
            self.machine_config,
        )
        return app


@pytest.fixture
def log_config():
    return LogConfig(level="DEBUG")


@pytest.fixture
async def rancher():
    fake = FakeRancher()
    server = TestServer(fake.make_app())
    await server.start_server()
    fake.base_url = str(server.make_url("/api"))
    yield fake
    await server.close()


@pytest.fixture
async def api_client(rancher, log_config):
    client = RancherAPIClient(
        rancher.base_url,
        StaticCredentialProvider(ACCESS_KEY, SECRET_KEY),
        request_timeout=10,
        logger=log_config.build(),
    )
    yield client
    await client.close()


@pytest.fixture
def provisioner(api_client, log_config):
    return TokenProvisioner(api_client, PollPolicy(interval=0), log_config.build())


@pytest.fixture
def downloader(api_client, provisioner, log_config):
    return ConfigDownloader(api_client, provisioner, log_config.build())


@pytest.fixture
def threaded_rancher():
    """
    The same fake server on its own loop in a background thread, for code
    that calls `asyncio.run` itself (the CLI commands).
    """
    fake = FakeRancher()
    loop = asyncio.new_event_loop()
    thread = threading.Thread(target=loop.run_forever, daemon=True)
    thread.start()

    async def start() -> TestServer:
        server = TestServer(fake.make_app())
        await server.start_server()
        return server

    server = asyncio.run_coroutine_threadsafe(start(), loop).result(timeout=10)
    fake.base_url = str(server.make_url("/api"))
    yield fake

    asyncio.run_coroutine_threadsafe(server.close(), loop).result(timeout=10)
    loop.call_soon_threadsafe(loop.stop)
    thread.join(timeout=10)
    loop.close()
