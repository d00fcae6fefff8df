"""
Manages loading, validation, and migration of the INI configuration file.
"""

import configparser
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from rancher_configs.exceptions import ConfigurationError
from rancher_configs.models.config import AppConfig

log = logging.getLogger(__name__)

# Defaults written for keys missing from the file; base_url has none
INI_DEFAULTS: dict[str, str] = {
    "access_key": "",
    "secret_key": "",
    "verify_ssl": "true",
    "output_dir": ".",
    "request_timeout": "60",
    "poll_interval": "1.0",
    "poll_backoff": "1.0",
    "poll_max_interval": "30.0",
    "poll_max_attempts": "0",
}


class ConfigManager:
    """Handles all operations related to the application's INI config file."""

    def __init__(self, config_file_path: Path):
        self.config_file_path = config_file_path
        self._parser = configparser.ConfigParser(interpolation=None)

    def load_config(self, cli_options: dict[str, Any] | None = None) -> AppConfig:
        """
        Loads configuration from the INI file, applies CLI overrides, and validates it.

        A missing file is only an error when the CLI options do not name a
        server on their own.

        Args:
            cli_options: A dictionary of options provided via the command line.

        Returns:
            A validated AppConfig object.

        Raises:
            ConfigurationError: If the config file is invalid, or validation fails.
        """
        cli_options = cli_options or {}
        config_from_file: dict[str, Any] = {}

        if self.config_file_path.is_file():
            try:
                self._parser.read(self.config_file_path, encoding="utf-8")
            except configparser.Error as e:
                raise ConfigurationError(
                    f"Error parsing configuration file: {e}"
                ) from e

            if self._migrate_if_needed():
                log.info(
                    "[yellow]Configuration file was updated with new default values."
                    "[/yellow]"
                )
            config_from_file = self._get_config_as_dict()
        elif "base_url" not in cli_options:
            raise ConfigurationError(
                f"Configuration file not found at '{self.config_file_path}'. "
                "Please run 'rancher-configs init' first or pass --url."
            )

        config_from_file.update(cli_options)

        try:
            return AppConfig(
                **config_from_file, config_path=str(self.config_file_path.parent)
            )
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed:\n{e}") from e

    def save_new_config(self, settings: dict[str, Any]) -> None:
        """
        Creates and saves a new configuration file.

        Args:
            settings: A dictionary of settings to save. Must contain 'base_url'.
        """
        try:
            validated = AppConfig(**settings)
        except ValidationError as e:
            raise ConfigurationError(f"Refusing to save invalid settings:\n{e}") from e

        config = configparser.ConfigParser(interpolation=None)
        config["DEFAULT"] = {}

        for key in sorted(AppConfig.get_ini_keys()):
            value = getattr(validated, key)
            if isinstance(value, bool):
                config["DEFAULT"][key] = "true" if value else "false"
            else:
                config["DEFAULT"][key] = str(value)

        try:
            self.config_file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_file_path, "w", encoding="utf-8") as configfile:
                config.write(configfile)
        except OSError as e:
            raise ConfigurationError(f"Failed to save configuration file: {e}") from e

    def _get_config_as_dict(self) -> dict[str, Any]:
        """Reads the 'DEFAULT' section of the INI file into a dictionary."""
        section = self._parser["DEFAULT"]
        try:
            return {
                "base_url": section.get("base_url", ""),
                "access_key": section.get("access_key", ""),
                "secret_key": section.get("secret_key", ""),
                "verify_ssl": section.getboolean("verify_ssl", True),
                "output_dir": section.get("output_dir", "."),
                "request_timeout": section.getfloat("request_timeout", 60.0),
                "poll_interval": section.getfloat("poll_interval", 1.0),
                "poll_backoff": section.getfloat("poll_backoff", 1.0),
                "poll_max_interval": section.getfloat("poll_max_interval", 30.0),
                "poll_max_attempts": section.getint("poll_max_attempts", 0),
            }
        except ValueError as e:
            raise ConfigurationError(f"Invalid value in configuration file: {e}") from e

    def _migrate_if_needed(self) -> bool:
        """Adds missing default values to an existing config file."""
        needs_saving = False
        config_section = self._parser["DEFAULT"]

        for key, default_value in INI_DEFAULTS.items():
            if key not in config_section:
                config_section[key] = default_value
                needs_saving = True
                log.debug(
                    f"Migrating config: added missing key '{key}' with "
                    f"value '{default_value}'."
                )

        if needs_saving:
            try:
                with open(self.config_file_path, "w", encoding="utf-8") as f:
                    self._parser.write(f)
            except OSError as e:
                log.error(f"Could not save migrated configuration file: {e}")
                return False

        return needs_saving
