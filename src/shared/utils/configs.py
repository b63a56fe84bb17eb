"""
Configuration settings for the application.
"""

import os
from typing import Optional, TypedDict

from dotenv import load_dotenv

load_dotenv()  # Load variables from .env


def _int_env(name: str, default: int) -> int:
    """Read an integer variable, falling back to the default when unset or unparsable."""
    try:
        return int(os.getenv(name, ""))
    except ValueError:
        return default


def _float_env(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, ""))
    except ValueError:
        return default


class ListenerConfig(TypedDict):
    """Type definition for the dual-transport listener.

    Attributes:
        host: Interface both transports bind to
        port: Port number shared by the TCP and UDP endpoints
        max_payload_bytes: Largest chunk read from a single TCP connection
        payload_delimiter: Token delimiter for notification lines (None = whitespace)
    """

    host: str
    port: int
    max_payload_bytes: int
    payload_delimiter: Optional[str]


class InfluxConfig(TypedDict):
    """Type definition for the InfluxDB connection.

    Attributes:
        database: Target database, created at startup if absent
        protocol: http or https
        host: InfluxDB host name
        port: InfluxDB HTTP API port
        username: Basic auth user
        password: Basic auth password
        measurement: Measurement name for emitted points
        retry_interval: Seconds between database creation attempts
    """

    database: str
    protocol: str
    host: str
    port: int
    username: str
    password: str
    measurement: str
    retry_interval: float


class GeolocationConfig(TypedDict):
    base_url: str


class LogConfig(TypedDict):
    level: str
    log_file: Optional[str]


listener_configs: ListenerConfig = {
    "host": os.getenv("HOST", "0.0.0.0"),
    "port": _int_env("PORT", 7070),
    "max_payload_bytes": _int_env("MAX_PAYLOAD_BYTES", 4096),
    "payload_delimiter": os.getenv("PAYLOAD_DELIMITER") or None,
}

influx_configs: InfluxConfig = {
    "database": os.getenv("INFLUX_DB", "geossh"),
    "protocol": os.getenv("INFLUX_PROTOCOL", "http"),
    "host": os.getenv("INFLUX_HOST") or os.getenv("INFLUX_URL") or "localhost",
    "port": _int_env("INFLUX_PORT", 8086),
    "username": os.getenv("INFLUX_USER", "root"),
    "password": os.getenv("INFLUX_PWD", "root"),
    "measurement": os.getenv("INFLUX_MEASUREMENT", "geossh"),
    "retry_interval": _float_env("INFLUX_RETRY_INTERVAL", 10.0),
}

geolocation_configs: GeolocationConfig = {
    "base_url": os.getenv("GEOLOCATION_API_URL", "http://ip-api.com/json/"),
}

log_configs: LogConfig = {
    "level": os.getenv("DEBUG_LEVEL", "info"),
    "log_file": os.getenv("LOG_FILE") or None,
}
