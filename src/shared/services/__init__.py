"""
Clients for the external services the collector talks to.
"""

from .geolocation_service import GeolocationService
from .influx_service import InfluxService, RetryPolicy, to_line_protocol
