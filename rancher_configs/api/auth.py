"""
Credential records and the providers that supply them to the API client.

The client never prompts. Whoever builds it decides where the API key pair
comes from and injects a provider.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

import aiohttp

from rancher_configs.exceptions import CredentialsError

log = logging.getLogger(__name__)

ACCESS_KEY_ENV = "RANCHER_ACCESS_KEY"
SECRET_KEY_ENV = "RANCHER_SECRET_KEY"


@dataclass(frozen=True)
class Credential:
    """A Rancher API key pair. The secret never shows up in reprs."""

    username: str
    secret: str = field(repr=False)

    def as_basic_auth(self) -> aiohttp.BasicAuth:
        return aiohttp.BasicAuth(self.username, self.secret)


@runtime_checkable
class CredentialProvider(Protocol):
    """Anything that can hand out the credential for the next request."""

    def get_credential(self) -> Credential: ...


class StaticCredentialProvider:
    """Serves a key pair known up front (CLI options, config file, tests)."""

    def __init__(self, username: str, secret: str):
        if not username or not secret:
            raise CredentialsError("Both an access key and a secret key are required.")
        self._credential = Credential(username, secret)

    def get_credential(self) -> Credential:
        return self._credential


class EnvCredentialProvider:
    """Reads the key pair from the environment on every call."""

    def __init__(
        self, access_key_var: str = ACCESS_KEY_ENV, secret_key_var: str = SECRET_KEY_ENV
    ):
        self.access_key_var = access_key_var
        self.secret_key_var = secret_key_var

    def is_configured(self) -> bool:
        return bool(os.getenv(self.access_key_var) and os.getenv(self.secret_key_var))

    def get_credential(self) -> Credential:
        username = os.getenv(self.access_key_var, "")
        secret = os.getenv(self.secret_key_var, "")
        if not username or not secret:
            raise CredentialsError(
                f"Environment variables {self.access_key_var} and "
                f"{self.secret_key_var} must both be set."
            )
        log.debug(f"Using API key from ${self.access_key_var}")
        return Credential(username, secret)
