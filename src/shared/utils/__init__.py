"""
Utility functions and shared resources.
"""

from .configs import geolocation_configs, influx_configs, listener_configs, log_configs
from .errors import (
    DatabaseInitError,
    GeolocationLookupError,
    GeosshError,
    InfluxWriteError,
    ParseError,
    TagCollisionError,
)
from .logger import logger, resolve_log_level, setup_logger
from .types import ErrorType
