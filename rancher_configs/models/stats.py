"""
Dataclass for tracking the statistics of a config download session.
"""

from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class FetchStats:
    """Counts what a download batch did, for the final summary."""

    hosts_requested: int = 0
    archives_written: int = 0
    bytes_written: int = 0
    tokens_acquired: int = 0
    token_cache_hits: int = 0
    header_fallbacks: int = 0
    files: list[Path] = field(default_factory=list)

    def record_archive(self, path: Path, size: int) -> None:
        self.archives_written += 1
        self.bytes_written += size
        self.files.append(path)
