"""Root logger setup: one format for console and file output."""

from __future__ import annotations

import logging
from pathlib import Path

LOG_FORMAT = "%(asctime)s - %(levelname)s:%(name)s:%(lineno)d:%(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    level: int | str = logging.INFO,
    log_file: str | None = None,
    console: bool = False,
) -> None:
    """Configure the root logger.

    The TUI owns the terminal, so by default logs only go to `log_file`.

    Args:
        level: Logging level, as an int or a name such as "DEBUG"
        log_file: Path of the log file (None disables file logging)
        console: Also log to stderr (headless mode)
    """
    if isinstance(level, str):
        level = level.upper()

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    if console:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
        root_logger.info("Logging initialized - writing to %s", log_file)

    if not root_logger.handlers:
        root_logger.addHandler(logging.NullHandler())
