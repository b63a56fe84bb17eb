"""
Per-notification ingestion pipeline.

parse -> geolocate -> geohash -> build point -> best-effort write
"""

from typing import Optional

from shared.schemas.dto import DEFAULT_MEASUREMENT, MeasurementRecord, build_measurement
from shared.services.geolocation_service import GeolocationService
from shared.services.influx_service import InfluxService
from shared.utils import geohash
from shared.utils.errors import GeolocationLookupError, ParseError, TagCollisionError
from shared.utils.logger import logger
from shared.utils.parser import parse_payload


class IngestionPipeline:
    """
    Turns one raw notification into one InfluxDB point.

    Every failure is logged and contained in ``process``; one bad payload
    never affects another or the listener feeding it.
    """

    def __init__(
        self,
        geolocation: GeolocationService,
        sink: InfluxService,
        delimiter: Optional[str] = None,
        measurement: str = DEFAULT_MEASUREMENT,
    ):
        self.geolocation = geolocation
        self.sink = sink
        self.delimiter = delimiter
        self.measurement = measurement

    async def process(self, raw: bytes) -> Optional[MeasurementRecord]:
        """
        Run the pipeline for one payload.

        Args:
            raw: Bytes received from a sender

        Returns:
            MeasurementRecord: The point handed to the sink, or None if the
                event was dropped.
        """
        try:
            logger.debug(f"Received data {raw!r}")
            event = parse_payload(raw, self.delimiter)
            logger.debug(
                f"Parsed {event.username} {event.source_address} {event.source_port}"
            )

            location = await self.geolocation.lookup(event.source_address)
            if location is None:
                logger.error(
                    f"No data retrieved for {event.source_address}, cannot continue"
                )
                return None

            geohashed = geohash.encode(location.latitude, location.longitude)
            logger.debug(
                f"Geohashing with lat: {location.latitude}, lon: {location.longitude}: {geohashed}"
            )

            record = build_measurement(event, location, geohashed, self.measurement)
            self.sink.write_point_nowait(record)
            return record

        except ParseError as e:
            logger.warning(f"Dropping unparsable payload {raw!r}: {e.message}")
        except GeolocationLookupError as e:
            logger.error(f"Geolocation failed: {e.message}")
        except TagCollisionError as e:
            logger.error(f"Provider returned a reserved attribute: {e.message}")
        except Exception as e:
            logger.exception(
                f"An error has occurred processing one connection: {str(e)}"
            )
        return None
