"""
Logging for the collector.

Levels may be given as log4js-style names ("debug", "warn", "off") so the
DEBUG_LEVEL variable keeps working unchanged; ``setup_logger`` resolves them.
"""

import logging
import sys
from typing import Optional, Union

from shared.utils.configs import log_configs

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LOGGER_NAME = "geossh"

# log4js-style level names accepted in DEBUG_LEVEL
LEVEL_NAMES = {
    "all": logging.NOTSET,
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
    "critical": logging.CRITICAL,
    "off": logging.CRITICAL + 10,
}


def resolve_log_level(level: Union[str, int, None]) -> int:
    """
    Translate a configured level into a logging level.

    Accepts names such as "debug" or "WARN" and numeric values or strings.
    Anything unrecognised resolves to INFO.
    """
    if isinstance(level, int):
        return level
    if not level:
        return logging.INFO
    value = level.strip().lower()
    if value.isdigit():
        return int(value)
    return LEVEL_NAMES.get(value, logging.INFO)


def setup_logger(
    name: str = LOGGER_NAME,
    level: Union[str, int, None] = log_configs["level"],
    log_file: Optional[str] = log_configs["log_file"],
    stream: bool = True,
) -> logging.Logger:
    """
    Configure the collector's logger from DEBUG_LEVEL and LOG_FILE.

    Calling it again replaces the handlers, so the entry point can re-apply
    configuration without duplicating output.

    Args:
        name: Logger name; children of "geossh" inherit its handlers
        level: Level name ("warn", "off", ...) or numeric logging level
        log_file: Also append to this file when set
        stream: Whether to log to stdout (default: True)

    Returns:
        Configured logger instance
    """
    configured = logging.getLogger(name)
    configured.setLevel(resolve_log_level(level))
    configured.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    handlers = [logging.StreamHandler(sys.stdout)] if stream else []
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    for handler in handlers:
        handler.setFormatter(formatter)
        configured.addHandler(handler)

    return configured


logger = setup_logger(log_file=None)
