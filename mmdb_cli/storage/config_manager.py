"""
Manages loading, validation, and migration of the INI configuration file.
"""

import configparser
import logging
import os
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from mmdb_cli.exceptions import ConfigurationError
from mmdb_cli.models.config import FeedConfig

from .cache import CACHE_DIR_ENV

log = logging.getLogger(__name__)


def get_config_dir() -> Path:
    if os.name == "nt":
        base_dir = Path(os.getenv("APPDATA", "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", "~/.config"))
    return base_dir.expanduser() / "mmdb-cli"


def default_config_file() -> Path:
    return get_config_dir() / "config.ini"


def _optional_float(value: str | None) -> float | None:
    if value is None or not value.strip():
        return None
    return float(value)


class ConfigManager:
    """Handles all operations related to the application's INI config file."""

    def __init__(self, config_file_path: Path):
        self.config_file_path = config_file_path
        self._parser = configparser.ConfigParser()

    def load_config(self, cli_options: dict[str, Any] | None = None) -> FeedConfig:
        """
        Loads configuration from the INI file, applies CLI overrides, and validates it.

        A missing configuration file is not an error: the built-in defaults
        are used instead.

        Args:
            cli_options: A dictionary of options provided via the command line.

        Returns:
            A validated FeedConfig object.

        Raises:
            ConfigurationError: If the config file is invalid or validation fails.
        """
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
        else:
            log.debug(
                f"No configuration file at '{self.config_file_path}', using defaults."
            )

        if not config_from_file.get("cache_dir") and os.getenv(CACHE_DIR_ENV):
            config_from_file["cache_dir"] = os.environ[CACHE_DIR_ENV]

        # Override with CLI options
        if cli_options:
            config_from_file.update(
                {k: v for k, v in cli_options.items() if v is not None}
            )

        try:
            return FeedConfig(**config_from_file)
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed:\n{e}") from e

    def save_new_config(self, settings: dict[str, Any] | None = None) -> None:
        """
        Creates and saves a new configuration file.

        Args:
            settings: A dictionary of settings to save; unspecified keys get
            their default values.
        """
        settings = settings or {}
        config = configparser.ConfigParser()
        config["DEFAULT"] = {}

        defaults = FeedConfig()
        for key in sorted(FeedConfig.get_ini_keys()):
            value = settings.get(key, getattr(defaults, key, None))
            config["DEFAULT"][key] = self._serialize(value)

        try:
            self.config_file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_file_path, "w", encoding="utf-8") as configfile:
                config.write(configfile)
        except OSError as e:
            raise ConfigurationError(f"Failed to save configuration file: {e}") from e

    @staticmethod
    def _serialize(value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (list, tuple)):
            return ",".join(map(str, value))
        # configparser uses % for interpolation, so we must escape it
        return str(value).replace("%", "%%")

    def _get_config_as_dict(self) -> dict[str, Any]:
        """Reads the 'DEFAULT' section of the INI file into a dictionary."""
        section = self._parser["DEFAULT"]
        defaults = FeedConfig()
        try:
            return {
                "repo_url": section.get("repo_url", defaults.repo_url),
                "files": [
                    f.strip()
                    for f in section.get("files", ",".join(defaults.files)).split(",")
                    if f.strip()
                ],
                "cache_dir": section.get("cache_dir", "") or None,
                "use_lock": section.getboolean("use_lock", defaults.use_lock),
                "lock_timeout": section.getfloat("lock_timeout", defaults.lock_timeout),
                "timeout": section.getfloat("timeout", defaults.timeout),
                "connect_timeout": section.getfloat(
                    "connect_timeout", defaults.connect_timeout
                ),
                "chunk_size": section.getint("chunk_size", defaults.chunk_size),
                "deadline": _optional_float(section.get("deadline")),
            }
        except ValueError as e:
            raise ConfigurationError(f"Invalid value in configuration file: {e}") from e

    def _migrate_if_needed(self) -> bool:
        """Adds missing default values to an existing config file."""
        defaults = FeedConfig()
        needs_saving = False

        config_section = self._parser["DEFAULT"]

        for key in sorted(FeedConfig.get_ini_keys()):
            if key not in config_section:
                config_section[key] = self._serialize(getattr(defaults, key))
                needs_saving = True
                log.debug(
                    f"Migrating config: added missing key '{key}' with "
                    f"value '{config_section[key]}'."
                )

        if needs_saving:
            try:
                with open(self.config_file_path, "w", encoding="utf-8") as f:
                    self._parser.write(f)
            except OSError as e:
                log.error(f"Could not save migrated configuration file: {e}")
                return False

        return needs_saving
