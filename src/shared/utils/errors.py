"""
Error handling for the application.
"""

from typing import Optional

from shared.utils.types import ErrorType


class GeosshError(Exception):
    """Base class for the collector's errors.

    Attributes:
        message (str): A human-readable error message.
        error_type (ErrorType): The category of the error.
        status_code (int): HTTP-style status code associated with the error.
    """

    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.GENERAL_ERROR,
        status_code: int = 500,
    ):
        self.message = message
        self.error_type = error_type
        self.status_code = status_code
        super().__init__(self.message)


class ParseError(GeosshError):
    """Raised when a notification payload is not a well-formed event.

    Common status codes:
    - 400: Bad Request (default) - Malformed or incomplete payload
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        error_type: ErrorType = ErrorType.PARSE_ERROR,
        status_code: int = 400,
    ):
        """
        Initialize a ParseError.

        Args:
            message (str): A human-readable error message.
            field (str): The event field that could not be extracted, if any.
            error_type (ErrorType): The category of the error (default: PARSE_ERROR).
            status_code (int): HTTP-style status code associated with the error (default: 400).
        """
        self.field = field
        super().__init__(message, error_type, status_code)


class GeolocationLookupError(GeosshError):
    """Custom exception for geolocation provider errors.

    Common status codes:
    - 502: Bad Gateway (default) - Provider unreachable or returned garbage
    - 429: Too Many Requests - Provider rate limit hit
    """

    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.LOOKUP_ERROR,
        status_code: int = 502,
    ):
        super().__init__(message, error_type, status_code)


class TagCollisionError(GeosshError):
    """Raised when a location attribute would overwrite a reserved tag."""

    def __init__(
        self,
        message: str,
        tag: str,
        error_type: ErrorType = ErrorType.TAG_COLLISION_ERROR,
        status_code: int = 502,
    ):
        self.tag = tag
        super().__init__(message, error_type, status_code)


class InfluxWriteError(GeosshError):
    """Custom exception for failed point writes.

    Common status codes:
    - 503: Service Unavailable (default) - InfluxDB is down or unreachable
    - 400: Bad Request - Line protocol rejected
    - 404: Not Found - Database does not exist (yet)
    """

    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.WRITE_ERROR,
        status_code: int = 503,
    ):
        super().__init__(message, error_type, status_code)


class DatabaseInitError(GeosshError):
    """Custom exception for when the InfluxDB database cannot be created.

    Common status codes:
    - 503: Service Unavailable (default) - InfluxDB is down or unreachable
    - 401: Unauthorized - Bad credentials
    """

    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.DATABASE_ERROR,
        status_code: int = 503,
    ):
        super().__init__(message, error_type, status_code)
