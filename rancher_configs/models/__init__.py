"""
Data Models Layer.

This package contains Pydantic models that define the core data structures
used throughout the application: configuration, API payloads and statistics.
"""

from .config import AppConfig, PollPolicy
from .schemas import Host, HostList, RegistrationToken, RegistrationTokenList
from .stats import FetchStats

__all__ = [
    "AppConfig",
    "FetchStats",
    "Host",
    "HostList",
    "PollPolicy",
    "RegistrationToken",
    "RegistrationTokenList",
]
