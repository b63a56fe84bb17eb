"""
Geolocation service for resolving network addresses to geographic attributes.
"""

import asyncio
from typing import Optional

import aiohttp

from shared.schemas.dto import LocationRecord
from shared.utils.configs import geolocation_configs
from shared.utils.errors import ErrorType, GeolocationLookupError
from shared.utils.logger import logger


class GeolocationService:
    """
    A service for looking up IP addresses against an ip-api style JSON API.

    The provider is called as ``GET {base_url}{address}`` and answers with a
    JSON object. A ``"status": "fail"`` answer (private ranges, reserved
    addresses, unknown addresses) means no location is known and is not an
    error. One client session is shared by every lookup.
    """

    def __init__(
        self,
        base_url: str = geolocation_configs["base_url"],
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """
        Initialize the geolocation service.

        Args:
            base_url: Provider URL the address is appended to
            session: Optional client session; created on first use otherwise
        """
        self.base_url = base_url
        self._session = session

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return self._session

    async def lookup(self, address: str) -> Optional[LocationRecord]:
        """
        Look up the location of a network address.

        Args:
            address (str): IPv4 or IPv6 literal.

        Returns:
            LocationRecord: The location, or None when the provider has no
                data for the address.

        Raises:
            GeolocationLookupError: If the provider cannot be reached or
                returns something other than a usable JSON object.
        """
        url = f"{self.base_url}{address}"
        logger.debug(f"Geolocating {address=}")

        try:
            async with self._get_session().get(url) as response:
                if response.status >= 400:
                    raise GeolocationLookupError(
                        message=f"Geolocation provider returned HTTP {response.status} for {address}",
                        error_type=ErrorType.LOOKUP_ERROR,
                        status_code=response.status,
                    )
                data = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise GeolocationLookupError(
                message=f"Geolocation request for {address} failed: {str(e)}"
            )
        except ValueError as e:
            raise GeolocationLookupError(
                message=f"Geolocation provider sent invalid JSON for {address}: {str(e)}"
            )

        if not isinstance(data, dict):
            raise GeolocationLookupError(
                message=f"Unexpected geolocation response for {address}: {data!r}"
            )

        if data.get("status") == "fail":
            logger.debug(
                f"No location known for {address}: {data.get('message', 'no reason given')}"
            )
            return None
        if data.get("lat") is None or data.get("lon") is None:
            logger.debug(f"Geolocation response for {address} has no coordinates")
            return None

        try:
            return LocationRecord.from_provider(data)
        except ValueError as e:
            raise GeolocationLookupError(message=f"{str(e)} (address {address})")

    async def close(self):
        """Close the underlying client session."""
        if self._session is not None and not self._session.closed:
            await self._session.close()
            logger.debug("Geolocation session closed")
