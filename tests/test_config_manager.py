"""Tests for loading and writing the multi-account INI file."""

from __future__ import annotations

import configparser
from pathlib import Path

import pytest

from beatport_cli.exceptions import ConfigurationError
from beatport_cli.models.config import AppConfig
from beatport_cli.storage.config_manager import ConfigManager


def _write(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


def test_missing_file_is_a_configuration_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError):
        ConfigManager(tmp_path / "config.ini").load_accounts()


def test_accounts_load_in_file_order_with_overrides(tmp_path: Path) -> None:
    path = _write(
        tmp_path / "config.ini",
        "[DEFAULT]\n"
        "quality = high\n"
        "max_download_workers = 3\n"
        "\n"
        "[account:main]\n"
        "username = main@example.com\n"
        "password = one\n"
        "\n"
        "[account:backup]\n"
        "username = backup@example.com\n"
        "password = two\n"
        "quality = medium\n",
    )

    configs = ConfigManager(path).load_accounts({"max_global_workers": 5})

    assert [c.account_name for c in configs] == ["main", "backup"]
    assert [c.quality for c in configs] == ["high", "medium"]
    assert all(c.max_download_workers == 3 for c in configs)
    assert all(c.max_global_workers == 5 for c in configs)


def test_credentials_in_default_section_form_one_account(tmp_path: Path) -> None:
    path = _write(
        tmp_path / "config.ini",
        "[DEFAULT]\nusername = solo@example.com\npassword = pw\n",
    )

    configs = ConfigManager(path).load_accounts()

    assert len(configs) == 1
    assert configs[0].account_name == "default"
    assert configs[0].username == "solo@example.com"


def test_file_without_accounts_is_rejected(tmp_path: Path) -> None:
    path = _write(tmp_path / "config.ini", "[DEFAULT]\nquality = lossless\n")

    with pytest.raises(ConfigurationError, match="No accounts"):
        ConfigManager(path).load_accounts()


def test_invalid_account_is_reported_by_name(tmp_path: Path) -> None:
    path = _write(
        tmp_path / "config.ini",
        "[account:broken]\nusername = x@example.com\npassword = pw\nquality = mp3\n",
    )

    with pytest.raises(ConfigurationError, match="broken"):
        ConfigManager(path).load_accounts()


def test_bad_integer_is_a_configuration_error(tmp_path: Path) -> None:
    path = _write(
        tmp_path / "config.ini",
        "[account:main]\nusername = x@example.com\npassword = pw\n"
        "max_download_workers = many\n",
    )

    with pytest.raises(ConfigurationError, match="max_download_workers"):
        ConfigManager(path).load_accounts()


def test_missing_defaults_are_migrated(tmp_path: Path) -> None:
    path = _write(
        tmp_path / "config.ini",
        "[account:main]\nusername = x@example.com\npassword = pw\n",
    )

    ConfigManager(path).load_accounts()

    parser = configparser.ConfigParser(interpolation=None)
    parser.read(path, encoding="utf-8")
    expected = AppConfig.get_ini_keys() - {"username", "password"}
    assert expected <= set(parser.defaults())


def test_save_account_creates_and_extends_file(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "config.ini"
    manager = ConfigManager(path)

    manager.save_account("main", "main@example.com", "one")
    ConfigManager(path).save_account("backup", "backup@example.com", "two")

    configs = ConfigManager(path).load_accounts()
    assert [(c.account_name, c.password) for c in configs] == [
        ("main", "one"),
        ("backup", "two"),
    ]


def test_config_view_keeps_sections(tmp_path: Path) -> None:
    path = tmp_path / "config.ini"
    ConfigManager(path).save_account("main", "main@example.com", "one")

    view = ConfigManager(path).get_config_as_dict()

    assert "quality" in view["DEFAULT"]
    assert view["account:main"] == {"username": "main@example.com", "password": "one"}
