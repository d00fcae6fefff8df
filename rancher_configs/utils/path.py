"""
Utilities for naming and placing downloaded config archives.
"""

import re
from pathlib import Path
from typing import Optional

from pathvalidate import sanitize_filename

ARCHIVE_SUFFIX = ".tar.gz"

# `attachment; filename=myhost.tar.gz` or `...filename="myhost.tar.gz"`
_CONTENT_DISPOSITION_PATTERN = re.compile(r'=\s*"?([^";=]+)\.tar\.gz"?\s*$')


def parse_archive_name(content_disposition: Optional[str]) -> Optional[str]:
    """
    Extracts `<name>.tar.gz` from a Content-Disposition header value.

    Returns None when the header is missing or does not end in a
    `=<name>.tar.gz` assignment.
    """
    if not content_disposition:
        return None
    match = _CONTENT_DISPOSITION_PATTERN.search(content_disposition.strip())
    if not match:
        return None
    name = sanitize_filename(match.group(1).strip())
    if not name:
        return None
    return f"{name}{ARCHIVE_SUFFIX}"


def fallback_archive_name(host_id: str) -> str:
    """The file name used when the server does not suggest one."""
    return f"{sanitize_filename(host_id)}{ARCHIVE_SUFFIX}"


def create_dir(directory_path: Path) -> None:
    """Creates a directory if it does not already exist."""
    directory_path.mkdir(parents=True, exist_ok=True)
