"""Logging setup for the actorkit CLI.

Command results go to stdout (rich text or ``-o json``); log records always
go to stderr, plus an optional log file. ``--verbose`` turns on DEBUG, which
includes every compiler command line and pipeline stage transition.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

# Client libraries that log every request at DEBUG
NOISY_LOGGERS = ("httpx", "httpcore", "nats")

VERBOSE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
QUIET_FORMAT = "%(levelname)s: %(message)s"


def setup_logging(
    level: str = "WARNING",
    log_file: Optional[Path] = None,
    include_timestamp: bool = True,
) -> None:
    """Configure the root logger for one CLI invocation.

    Args:
        level: Logging level name; unknown names fall back to WARNING
        log_file: Optional file that receives the same records as stderr
        include_timestamp: Use the detailed format with time and logger name
    """
    numeric_level = getattr(logging, level.upper(), logging.WARNING)
    formatter = logging.Formatter(VERBOSE_FORMAT if include_timestamp else QUIET_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    # Keep transport chatter out of --verbose output
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.INFO))
