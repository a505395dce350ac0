"""Logger hierarchy for labdocs and the CLI's handler setup."""

from __future__ import annotations

import logging
from pathlib import Path

_LOGGER_NAME = "labdocs"
_CONSOLE_FORMAT = "[labdocs] %(levelname)s %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return ``labdocs.<name>``, or the package root logger when no name is given."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Send labdocs records to stderr and, when ``log_file`` is set, to that file.

    The file always receives debug records so a failed CI run can be inspected
    without rerunning it with ``--verbose``. Calling this again replaces the
    handlers installed by the previous call.
    """
    console_level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler()
    console.setLevel(console_level)
    console.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    logger.addHandler(console)

    if log_file is None:
        logger.setLevel(console_level)
        return logger

    log_file.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
    logger.addHandler(file_handler)
    logger.setLevel(logging.DEBUG)
    return logger


__all__ = ["configure_logging", "get_logger"]
