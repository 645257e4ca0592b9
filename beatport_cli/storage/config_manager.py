"""
Manages loading, validation, and migration of the INI configuration file.

Shared settings live in `[DEFAULT]`; every `[account:<name>]` section holds one
account's credentials and may override any shared setting.
"""

import configparser
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from beatport_cli.exceptions import ConfigurationError
from beatport_cli.models.config import AppConfig

log = logging.getLogger(__name__)

ACCOUNT_PREFIX = "account:"
CREDENTIAL_KEYS = ("username", "password")

BOOL_KEYS = {"write_tags", "save_cover", "write_error_log"}
INT_KEYS = {"max_global_workers", "max_download_workers"}


class ConfigManager:
    """Handles all operations related to the application's INI config file."""

    def __init__(self, config_file_path: Path):
        self.config_file_path = config_file_path
        self._parser = configparser.ConfigParser(interpolation=None)

    def _read(self) -> None:
        if not self.config_file_path.is_file():
            raise ConfigurationError(
                f"Configuration file not found at '{self.config_file_path}'. "
                "Please run 'beatport-cli init' first."
            )
        try:
            self._parser.read(self.config_file_path, encoding="utf-8")
        except configparser.Error as e:
            raise ConfigurationError(f"Error parsing configuration file: {e}") from e

    def account_names(self) -> list[str]:
        """Names of the configured accounts, in file order."""
        names = [
            section[len(ACCOUNT_PREFIX) :].strip()
            for section in self._parser.sections()
            if section.startswith(ACCOUNT_PREFIX)
        ]
        if not names and all(self._parser.defaults().get(k) for k in CREDENTIAL_KEYS):
            names = ["default"]
        return names

    def load_accounts(self, cli_options: dict[str, Any] | None = None) -> list[AppConfig]:
        """
        Loads every account from the INI file, applies CLI overrides, and
        validates each one.

        Args:
            cli_options: A dictionary of options provided via the command line.

        Returns:
            One validated AppConfig per account, in file order.

        Raises:
            ConfigurationError: If the file is missing, invalid, has no
            accounts, or an account fails validation.
        """
        self._read()

        if self._migrate_if_needed():
            log.info(
                "[yellow]Configuration file was updated with new default values."
                "[/yellow]"
            )

        names = self.account_names()
        if not names:
            raise ConfigurationError(
                "No accounts configured. Add one with 'beatport-cli init'."
            )

        configs = []
        for name in names:
            values = self._get_section_as_dict(name)
            if cli_options:
                values.update(cli_options)
            try:
                configs.append(
                    AppConfig(
                        **values,
                        account_name=name,
                        config_path=str(self.config_file_path.parent),
                    )
                )
            except ValidationError as e:
                raise ConfigurationError(
                    f"Configuration validation failed for account '{name}':\n{e}"
                ) from e
        return configs

    def save_account(self, name: str, username: str, password: str) -> None:
        """
        Adds or replaces an account section, creating the file with defaults
        when it does not exist yet.
        """
        if self.config_file_path.is_file():
            self._read()
        else:
            defaults = AppConfig.model_construct()
            for key in sorted(AppConfig.get_ini_keys() - set(CREDENTIAL_KEYS)):
                self._parser["DEFAULT"][key] = self._to_ini(getattr(defaults, key))

        section = ACCOUNT_PREFIX + name
        if not self._parser.has_section(section):
            self._parser.add_section(section)
        self._parser[section]["username"] = username
        self._parser[section]["password"] = password
        self._write()

    def get_config_as_dict(self) -> dict[str, dict[str, str]]:
        """Raw view of the file for display, one entry per section."""
        self._read()
        view = {"DEFAULT": dict(self._parser.defaults())}
        for section in self._parser.sections():
            view[section] = {
                k: v
                for k, v in self._parser[section].items()
                if k not in self._parser.defaults() or k in CREDENTIAL_KEYS
            }
        return view

    def _get_section_as_dict(self, name: str) -> dict[str, Any]:
        section_name = ACCOUNT_PREFIX + name
        section = (
            self._parser[section_name]
            if self._parser.has_section(section_name)
            else self._parser["DEFAULT"]
        )
        values: dict[str, Any] = {}
        for key in AppConfig.get_ini_keys():
            if key not in section:
                continue
            try:
                if key in BOOL_KEYS:
                    values[key] = section.getboolean(key)
                elif key in INT_KEYS:
                    values[key] = section.getint(key)
                else:
                    values[key] = section.get(key)
            except ValueError as e:
                raise ConfigurationError(
                    f"Invalid value for '{key}' in account '{name}': {e}"
                ) from e
        return values

    @staticmethod
    def _to_ini(value: Any) -> str:
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)

    def _migrate_if_needed(self) -> bool:
        """Adds missing default values to an existing config file."""
        defaults = AppConfig.model_construct()
        section = self._parser["DEFAULT"]
        needs_saving = False

        for key in AppConfig.get_ini_keys() - set(CREDENTIAL_KEYS):
            if key not in section:
                section[key] = self._to_ini(getattr(defaults, key))
                needs_saving = True
                log.debug(
                    f"Migrating config: added missing key '{key}' with "
                    f"value '{section[key]}'."
                )

        if needs_saving:
            try:
                self._write()
            except ConfigurationError as e:
                log.error(f"Could not save migrated configuration file: {e}")
                return False
        return needs_saving

    def _write(self) -> None:
        try:
            self.config_file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_file_path, "w", encoding="utf-8") as configfile:
                self._parser.write(configfile)
        except OSError as e:
            raise ConfigurationError(f"Failed to save configuration file: {e}") from e
