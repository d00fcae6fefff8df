"""
Core workflow for fetching machine configs.

`ConfigDownloader` drives the batch, asking the `TokenProvisioner` for one
registration token per project. `HostEnumerator` discovers which hosts to ask for.
"""

from .config_downloader import ConfigDownloader, TokenCache
from .host_enumerator import HostEnumerator
from .token_provisioner import TokenProvisioner, generate_token_name

__all__ = [
    "ConfigDownloader",
    "HostEnumerator",
    "TokenCache",
    "TokenProvisioner",
    "generate_token_name",
]
