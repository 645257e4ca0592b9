"""
Optional append-only error log mirroring every ERROR record to a file.
"""

import logging
from pathlib import Path

from rich.errors import MarkupError
from rich.text import Text

from beatport_cli.exceptions import ConfigurationError

ERROR_LOG_FILENAME = "beatport-cli-err.log"


class PlainFormatter(logging.Formatter):
    """Strips Rich markup so the file holds plain text."""

    def format(self, record: logging.LogRecord) -> str:
        formatted = super().format(record)
        try:
            return Text.from_markup(formatted).plain
        except MarkupError:
            return formatted


def find_error_log_file(config_dir: Path) -> Path:
    """
    Returns the first existing error log among the working directory and the
    config directory, or the config directory default when none exists.
    """
    candidates = [Path.cwd() / ERROR_LOG_FILENAME, config_dir / ERROR_LOG_FILENAME]
    for candidate in candidates:
        if candidate.is_file():
            return candidate
    return candidates[-1]


def attach_error_log(logger: logging.Logger, path: Path) -> logging.FileHandler:
    """
    Adds an ERROR-level file handler to `logger`.

    Raises:
        ConfigurationError: If the log file cannot be opened for appending.
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Cannot open error log '{path}': {e}") from e
    handler.setLevel(logging.ERROR)
    handler.setFormatter(PlainFormatter("%(asctime)s %(name)s: %(message)s"))
    logger.addHandler(handler)
    return handler
