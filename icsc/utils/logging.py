"""Logging configuration for ICSC tools."""

import logging
import sys
from pathlib import Path
from typing import Iterable, Optional

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Library loggers held at WARNING unless the caller says otherwise
QUIET_LOGGERS = ("asyncio", "serial_asyncio")


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
    format_string: Optional[str] = None,
    quiet: Iterable[str] = QUIET_LOGGERS,
) -> logging.Logger:
    """Configure the root logger for a station process.

    Frame traffic is logged by the ``icsc`` loggers at DEBUG, so ``level``
    "DEBUG" shows every frame sent and rejected.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional file path for log output
        format_string: Custom log format string
        quiet: Logger names to keep at WARNING

    Returns:
        The configured root logger
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    formatter = logging.Formatter(format_string or DEFAULT_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    for handler in handlers:
        handler.setLevel(numeric_level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    for name in quiet:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.debug(f"Logging configured: level={level}")
    if log_file:
        logging.info(f"Log file: {log_file}")

    return root_logger
