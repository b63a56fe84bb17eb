"""
Data Transfer Objects (DTOs) for the application.
"""

from dataclasses import dataclass, field
from typing import Any, Dict

from shared.utils.errors import TagCollisionError
from shared.utils.types import ProviderPayload

DEFAULT_MEASUREMENT = "geossh"

# Tags set by the collector itself; location attributes may not reuse them
RESERVED_TAGS = ("geohash", "username", "port", "ip", "location")

# Provider response keys that describe the response rather than the location
PROVIDER_ENVELOPE_KEYS = ("status", "message")


@dataclass(frozen=True)
class ParsedEvent:
    """
    One SSH login notification.

    Attributes:
        source_address (str): IPv4 or IPv6 literal of the connecting client.
        source_port (int): Source port of the connecting client.
        username (str): Account name the client tried to log in as.
    """

    source_address: str
    source_port: int
    username: str


@dataclass
class LocationRecord:
    """
    Geographic attributes of a network address.

    Attributes:
        latitude (float): Latitude in degrees.
        longitude (float): Longitude in degrees.
        region_name (str): Region or state name.
        city (str): City name.
        attributes (Dict[str, Any]): Any further descriptive attributes
            returned by the provider, keyed by the provider's names.
    """

    latitude: float
    longitude: float
    region_name: str = ""
    city: str = ""
    attributes: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_provider(cls, payload: ProviderPayload) -> "LocationRecord":
        """
        Build a record from an ip-api style response object.

        Raises:
            ValueError: If lat/lon are missing, not numeric or out of range.
        """
        try:
            latitude = float(payload["lat"])
            longitude = float(payload["lon"])
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Invalid coordinates in provider response: {e}")
        if not -90.0 <= latitude <= 90.0 or not -180.0 <= longitude <= 180.0:
            raise ValueError(
                f"Coordinates out of range: lat={latitude}, lon={longitude}"
            )

        skipped = {"lat", "lon", "regionName", "city", *PROVIDER_ENVELOPE_KEYS}
        return cls(
            latitude=latitude,
            longitude=longitude,
            region_name=payload.get("regionName") or "",
            city=payload.get("city") or "",
            attributes={k: v for k, v in payload.items() if k not in skipped},
        )

    @property
    def description(self) -> str:
        return f"{self.region_name}, {self.city}"


@dataclass
class MeasurementRecord:
    """
    A single InfluxDB point.

    Attributes:
        measurement (str): Measurement (series) name.
        fields (Dict[str, Any]): Numeric field values.
        tags (Dict[str, Any]): Indexed tag key/value pairs.
    """

    measurement: str
    fields: Dict[str, Any]
    tags: Dict[str, Any]


def build_measurement(
    event: ParsedEvent,
    location: LocationRecord,
    geohash: str,
    measurement: str = DEFAULT_MEASUREMENT,
) -> MeasurementRecord:
    """
    Turn an enriched event into the point written for it.

    Latitude and longitude are only used through the geohash and never
    become tags. Every other location attribute is copied verbatim.

    Raises:
        TagCollisionError: If a location attribute uses a reserved tag name.
    """
    for name in location.attributes:
        if name in RESERVED_TAGS:
            raise TagCollisionError(
                message=f"Location attribute '{name}' collides with a reserved tag",
                tag=name,
            )

    tags: Dict[str, Any] = {
        "geohash": geohash,
        "username": event.username,
        "port": event.source_port,
        "ip": event.source_address,
        "location": location.description,
    }
    tags.update(location.attributes)

    return MeasurementRecord(measurement=measurement, fields={"value": 1}, tags=tags)
