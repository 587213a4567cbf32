"""CLI logging configuration with file output.

Log files live under ``~/.local/share/cosmic/logs/`` and are named
after the CLI command (``ssh.log``, ``credentials.log``)::

    tail -f ~/.local/share/cosmic/logs/ssh.log
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.logging import RichHandler

# Standard log directory follows XDG convention
LOG_DIR = Path.home() / ".local" / "share" / "cosmic" / "logs"


def get_log_dir() -> Path:
    """Return the CLI log directory, creating it if needed."""
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    return LOG_DIR


def get_log_file(command: str) -> Path:
    """Return the log file path for a given CLI command."""
    return get_log_dir() / f"{command}.log"


def configure_cli_logging(
    command: str,
    *,
    verbose: bool = False,
    file_level: int = logging.DEBUG,
    max_bytes: int = 10 * 1024 * 1024,  # 10 MB
    backup_count: int = 3,
) -> Path:
    """Configure logging for a CLI command.

    Sets up a DEBUG-level rotating file handler and, when verbose, a
    Rich console handler at INFO level on the ``cosmic`` logger.

    Returns:
        Path to the log file
    """
    log_file = get_log_file(command)
    root_logger = logging.getLogger("cosmic")

    # Remove handlers from earlier calls to avoid duplicates
    for handler in root_logger.handlers[:]:
        if isinstance(handler, (logging.FileHandler, RichHandler)):
            root_logger.removeHandler(handler)
            handler.close()

    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    file_handler.setLevel(file_level)
    file_handler.setFormatter(
        logging.Formatter(
            "%(asctime)s %(levelname)-8s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root_logger.addHandler(file_handler)

    if verbose:
        console_handler = RichHandler(show_path=False, markup=False)
        console_handler.setLevel(logging.INFO)
        root_logger.addHandler(console_handler)

    # NOTSET would inherit WARNING from the root logger
    if root_logger.level == logging.NOTSET or root_logger.level > file_level:
        root_logger.setLevel(file_level)

    return log_file
