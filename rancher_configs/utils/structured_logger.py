"""
Structured logging for the token and download workflow.

Components never read a global verbosity setting. A `LogConfig` carries the
minimum level, and the `EventLogger` built from it is handed to each component.
"""

import json
import logging
import sys
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Union

VERBOSE = 15
logging.addLevelName(VERBOSE, "VERBOSE")

LEVEL_NAMES = {
    "DEBUG": logging.DEBUG,
    "VERBOSE": VERBOSE,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


def resolve_level(level: Union[int, str]) -> int:
    """Maps a level name (case-insensitive) or number to a logging level."""
    if isinstance(level, int):
        return level
    try:
        return LEVEL_NAMES[level.upper()]
    except KeyError:
        raise ValueError(f"Unknown log level: {level}") from None


@dataclass(frozen=True)
class LogConfig:
    """
    Logging settings shared by every component of one run.

    Args:
        level: Minimum level to emit (name or number).
        log_dir: Directory for JSON log files (None = disabled).
        enable_json: Enable JSON file logging when `log_dir` is set.
        name: Name of the underlying stdlib logger.
    """

    level: Union[int, str] = logging.INFO
    log_dir: Optional[Path] = None
    enable_json: bool = False
    name: str = "rancher_configs"

    def build(self) -> "EventLogger":
        return EventLogger(
            self.name,
            level=resolve_level(self.level),
            log_dir=self.log_dir if self.enable_json else None,
        )


class EventLogger:
    """
    Emits `[event] key=value` lines through stdlib logging, and optionally the
    same events as JSON lines to a file.

    Usage:
        logger = LogConfig(level="VERBOSE").build()
        logger.info("token_acquired", project_id="1a5", token_name="3f9c01ab")
    """

    def __init__(
        self,
        name: str,
        level: int = logging.INFO,
        log_dir: Optional[Path] = None,
    ):
        self.name = name
        self.level = level
        self._logger = logging.getLogger(name)
        # Gating happens here; the stdlib logger only has to let records through
        if self._logger.level == logging.NOTSET or self._logger.level > level:
            self._logger.setLevel(level)

        self._json_file = None
        if log_dir is not None:
            log_dir.mkdir(parents=True, exist_ok=True)
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            json_log_path = log_dir / f"rancher_configs_{timestamp}.jsonl"
            self._json_file = open(json_log_path, "a", encoding="utf-8")  # noqa: SIM115

        self._session_context: dict[str, Any] = {
            "session_id": f"{int(time.time())}_{id(self)}",
        }

    def set_session_context(self, **kwargs) -> None:
        """Set session-level context that appears in all JSON entries."""
        self._session_context.update(kwargs)

    def is_enabled_for(self, level: int) -> bool:
        return level >= self.level

    def _format_message(self, event: str, **context) -> str:
        parts = [f"[{event}]"]
        for key, value in context.items():
            parts.append(f"{key}={value}")
        return " ".join(parts)

    def _write_json(self, level: int, event: str, **context) -> None:
        if not self._json_file or self._json_file.closed:
            return

        entry = {
            "timestamp": datetime.now().isoformat(),
            "level": logging.getLevelName(level),
            "event": event,
            **self._session_context,
            **context,
        }

        try:
            self._json_file.write(json.dumps(entry, default=str) + "\n")
            self._json_file.flush()
        except OSError as e:
            print(f"JSON logging failed: {e}", file=sys.stderr)

    def log(self, level: int, event: str, exc_info: bool = False, **context) -> None:
        if not self.is_enabled_for(level):
            return
        # `[event]` must not be read as Rich markup by a RichHandler
        self._logger.log(
            level,
            self._format_message(event, **context),
            exc_info=exc_info,
            extra={"markup": False},
        )
        self._write_json(level, event, **context)

    def debug(self, event: str, **context) -> None:
        self.log(logging.DEBUG, event, **context)

    def verbose(self, event: str, **context) -> None:
        self.log(VERBOSE, event, **context)

    def info(self, event: str, **context) -> None:
        self.log(logging.INFO, event, **context)

    def warning(self, event: str, **context) -> None:
        self.log(logging.WARNING, event, **context)

    def error(self, event: str, **context) -> None:
        self.log(logging.ERROR, event, **context)

    def exception(self, event: str, **context) -> None:
        """
        Logs an error with the active traceback. Call from an `except` block
        and re-raise afterwards; this method never swallows the error.
        """
        self.log(logging.ERROR, event, exc_info=True, **context)

    def close(self) -> None:
        """Close JSON log file."""
        if self._json_file and not self._json_file.closed:
            self._json_file.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


def default_logger() -> EventLogger:
    """The logger components fall back to when none is injected."""
    return LogConfig().build()
