from enum import Enum
from typing import Any, Dict


class ErrorType(Enum):
    """
    Enumeration for various error types used in the application.

    Attributes:
        GENERAL_ERROR: Represents a general error that does not fall into specific categories.
        PARSE_ERROR: A notification payload could not be parsed into an event.
        LOOKUP_ERROR: The geolocation provider or its transport failed.
        TAG_COLLISION_ERROR: A provider attribute clashes with a reserved tag name.
        WRITE_ERROR: A point could not be written to InfluxDB.
        DATABASE_ERROR: The InfluxDB database could not be created.
    """

    GENERAL_ERROR = "GENERAL_ERROR"
    PARSE_ERROR = "PARSE_ERROR"
    LOOKUP_ERROR = "LOOKUP_ERROR"
    TAG_COLLISION_ERROR = "TAG_COLLISION_ERROR"
    WRITE_ERROR = "WRITE_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"


# Decoded JSON object returned by the geolocation provider
ProviderPayload = Dict[str, Any]
