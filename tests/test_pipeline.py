"""
Tests for the ingestion pipeline.

The geolocation service and the InfluxDB sink are replaced with mocks so
each test can assert exactly which side effects a payload produced.
"""

import asyncio
import logging
import re
from unittest.mock import AsyncMock, Mock

import pytest

from collector.service import IngestionPipeline
from shared.schemas.dto import LocationRecord
from shared.services.influx_service import InfluxService, to_line_protocol
from shared.utils import geohash
from shared.utils.errors import GeolocationLookupError, InfluxWriteError


@pytest.fixture
def london():
    return LocationRecord(latitude=51.5, longitude=-0.12, region_name="England", city="London")


@pytest.fixture
def geolocation(london):
    service = Mock()
    service.lookup = AsyncMock(return_value=london)
    return service


@pytest.fixture
def sink():
    service = Mock()
    service.write_point_nowait = Mock()
    return service


class TestIngestionPipeline:
    """End-to-end behaviour of IngestionPipeline.process."""

    @pytest.mark.asyncio
    async def test_enriched_event_is_written(self, geolocation, sink):
        """Test a well-formed payload produces exactly the expected point."""
        pipeline = IngestionPipeline(geolocation, sink)

        record = await pipeline.process(b"alice 203.0.113.5 22")

        geolocation.lookup.assert_awaited_once_with("203.0.113.5")
        sink.write_point_nowait.assert_called_once_with(record)
        assert record.measurement == "geossh"
        assert record.fields == {"value": 1}
        assert record.tags == {
            "geohash": geohash.encode(51.5, -0.12),
            "username": "alice",
            "port": 22,
            "ip": "203.0.113.5",
            "location": "England, London",
        }

    @pytest.mark.asyncio
    async def test_garbage_payload_has_no_side_effects(self, geolocation, sink, caplog):
        caplog.set_level(logging.WARNING, logger="geossh")
        pipeline = IngestionPipeline(geolocation, sink)

        assert await pipeline.process(b"garbage") is None

        geolocation.lookup.assert_not_awaited()
        sink.write_point_nowait.assert_not_called()
        assert "Dropping unparsable payload" in caplog.text

    @pytest.mark.asyncio
    async def test_no_location_means_no_write(self, geolocation, sink, caplog):
        caplog.set_level(logging.ERROR, logger="geossh")
        geolocation.lookup.return_value = None
        pipeline = IngestionPipeline(geolocation, sink)

        assert await pipeline.process(b"bob 10.0.0.8 22") is None

        geolocation.lookup.assert_awaited_once_with("10.0.0.8")
        sink.write_point_nowait.assert_not_called()
        assert "No data retrieved" in caplog.text

    @pytest.mark.asyncio
    async def test_lookup_failure_is_contained(self, geolocation, sink, caplog):
        caplog.set_level(logging.ERROR, logger="geossh")
        geolocation.lookup.side_effect = GeolocationLookupError("provider down")
        pipeline = IngestionPipeline(geolocation, sink)

        assert await pipeline.process(b"carol 203.0.113.5 22") is None
        sink.write_point_nowait.assert_not_called()
        assert "provider down" in caplog.text

    @pytest.mark.asyncio
    async def test_reserved_attribute_drops_event(self, geolocation, sink, london):
        london.attributes = {"ip": "spoofed"}
        pipeline = IngestionPipeline(geolocation, sink)

        assert await pipeline.process(b"dave 203.0.113.5 22") is None
        sink.write_point_nowait.assert_not_called()

    @pytest.mark.asyncio
    async def test_unexpected_error_is_contained(self, geolocation, sink, caplog):
        caplog.set_level(logging.ERROR, logger="geossh")
        geolocation.lookup.side_effect = RuntimeError("boom")
        pipeline = IngestionPipeline(geolocation, sink)

        assert await pipeline.process(b"erin 203.0.113.5 22") is None
        assert "An error has occurred processing one connection" in caplog.text

    @pytest.mark.asyncio
    async def test_custom_delimiter_and_measurement(self, geolocation, sink):
        pipeline = IngestionPipeline(geolocation, sink, delimiter="|", measurement="logins")

        record = await pipeline.process(b"frank|203.0.113.5|2222")

        assert record.measurement == "logins"
        assert record.tags["port"] == 2222

    @pytest.mark.asyncio
    async def test_username_ending_in_backslash_keeps_other_tags(
        self, geolocation, sink, london
    ):
        """Test a hostile username cannot merge the following tag into its own."""
        london.attributes = {"zip": "EC1A"}
        pipeline = IngestionPipeline(geolocation, sink)

        record = await pipeline.process(b"root\\ 203.0.113.5 22")

        assert record.tags["username"] == "root\\"
        line = to_line_protocol(record)
        assert "username=root\\\\,zip=EC1A" in line
        unescaped = line.replace("\\\\", "")
        tag_set = re.split(r"(?<!\\) ", unescaped, maxsplit=1)[0]
        tag_keys = [part.split("=", 1)[0] for part in re.split(r"(?<!\\),", tag_set)[1:]]
        assert tag_keys == ["geohash", "ip", "location", "port", "username", "zip"]


class TestBestEffortWrites:
    """The pipeline never waits on, or fails because of, the InfluxDB write."""

    @pytest.mark.asyncio
    async def test_failing_write_does_not_raise(self, geolocation):
        sink = InfluxService(base_url="http://127.0.0.1:9")
        sink.write_points = AsyncMock(side_effect=InfluxWriteError("influx down"))
        pipeline = IngestionPipeline(geolocation, sink)

        record = await pipeline.process(b"alice 203.0.113.5 22")
        await sink.close()

        assert record is not None
        sink.write_points.assert_awaited_once_with([record])

    @pytest.mark.asyncio
    async def test_slow_write_does_not_delay_caller(self, geolocation):
        release = asyncio.Event()

        async def slow_write(records):
            await release.wait()

        sink = InfluxService(base_url="http://127.0.0.1:9")
        sink.write_points = slow_write
        pipeline = IngestionPipeline(geolocation, sink)

        record = await asyncio.wait_for(pipeline.process(b"alice 203.0.113.5 22"), timeout=1)

        assert record is not None
        assert len(sink._pending) == 1
        release.set()
        await sink.close()
        assert not sink._pending


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
