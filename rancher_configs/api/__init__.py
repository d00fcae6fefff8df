"""
Rancher API Layer.

This package handles all communication with the Rancher v1 API.
"""

from .auth import (
    Credential,
    CredentialProvider,
    EnvCredentialProvider,
    StaticCredentialProvider,
)
from .client import ConfigArchive, RancherAPIClient

__all__ = [
    "ConfigArchive",
    "Credential",
    "CredentialProvider",
    "EnvCredentialProvider",
    "RancherAPIClient",
    "StaticCredentialProvider",
]
