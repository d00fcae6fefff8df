"""
rancher-configs: fetch machine provisioning archives from a Rancher server.
"""

__version__ = "0.1.0"
