"""
Tests for the geolocation service against a local fake provider.
"""

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from shared.schemas.dto import LocationRecord
from shared.services.geolocation_service import GeolocationService
from shared.utils.errors import ErrorType, GeolocationLookupError

LONDON = {
    "status": "success",
    "country": "United Kingdom",
    "regionName": "England",
    "city": "London",
    "lat": 51.5,
    "lon": -0.12,
    "query": "203.0.113.5",
}


def provider_app(responses):
    """Serve ``responses[ip]``: a dict is returned as JSON, an int as that HTTP status."""
    requested = []

    async def lookup(request):
        ip = request.match_info["ip"]
        requested.append(ip)
        answer = responses[ip]
        if isinstance(answer, int):
            return web.Response(status=answer, text="provider error")
        if isinstance(answer, str):
            return web.Response(text=answer, content_type="text/plain")
        return web.json_response(answer)

    app = web.Application()
    app.router.add_get("/json/{ip}", lookup)
    app["requested"] = requested
    return app


class TestGeolocationService:
    """Test cases for GeolocationService.lookup."""

    @pytest.mark.asyncio
    async def test_successful_lookup(self):
        app = provider_app({"203.0.113.5": LONDON})
        async with TestServer(app) as server:
            service = GeolocationService(base_url=str(server.make_url("/json/")))
            try:
                record = await service.lookup("203.0.113.5")
            finally:
                await service.close()

        assert isinstance(record, LocationRecord)
        assert record.latitude == 51.5
        assert record.longitude == -0.12
        assert record.region_name == "England"
        assert record.city == "London"
        assert "status" not in record.attributes
        assert record.attributes["country"] == "United Kingdom"
        assert app["requested"] == ["203.0.113.5"]

    @pytest.mark.asyncio
    async def test_fail_status_is_absent_not_error(self):
        """Test a provider 'fail' answer yields None."""
        app = provider_app(
            {"10.0.0.1": {"status": "fail", "message": "private range", "query": "10.0.0.1"}}
        )
        async with TestServer(app) as server:
            service = GeolocationService(base_url=str(server.make_url("/json/")))
            try:
                assert await service.lookup("10.0.0.1") is None
            finally:
                await service.close()

    @pytest.mark.asyncio
    async def test_missing_coordinates_is_absent(self):
        app = provider_app({"192.0.2.1": {"status": "success", "country": "Nowhere"}})
        async with TestServer(app) as server:
            service = GeolocationService(base_url=str(server.make_url("/json/")))
            try:
                assert await service.lookup("192.0.2.1") is None
            finally:
                await service.close()

    @pytest.mark.asyncio
    async def test_http_error_raises(self):
        app = provider_app({"203.0.113.5": 429})
        async with TestServer(app) as server:
            service = GeolocationService(base_url=str(server.make_url("/json/")))
            try:
                with pytest.raises(GeolocationLookupError) as exc_info:
                    await service.lookup("203.0.113.5")
            finally:
                await service.close()

        assert exc_info.value.status_code == 429
        assert exc_info.value.error_type == ErrorType.LOOKUP_ERROR

    @pytest.mark.asyncio
    async def test_invalid_json_raises(self):
        app = provider_app({"203.0.113.5": "<html>not json</html>"})
        async with TestServer(app) as server:
            service = GeolocationService(base_url=str(server.make_url("/json/")))
            try:
                with pytest.raises(GeolocationLookupError):
                    await service.lookup("203.0.113.5")
            finally:
                await service.close()

    @pytest.mark.asyncio
    async def test_non_object_json_raises(self):
        app = provider_app({"203.0.113.5": "[1, 2, 3]"})
        async with TestServer(app) as server:
            service = GeolocationService(base_url=str(server.make_url("/json/")))
            try:
                with pytest.raises(GeolocationLookupError):
                    await service.lookup("203.0.113.5")
            finally:
                await service.close()

    @pytest.mark.asyncio
    async def test_out_of_range_coordinates_raise(self):
        app = provider_app({"203.0.113.5": {"status": "success", "lat": 123.0, "lon": 0.0}})
        async with TestServer(app) as server:
            service = GeolocationService(base_url=str(server.make_url("/json/")))
            try:
                with pytest.raises(GeolocationLookupError):
                    await service.lookup("203.0.113.5")
            finally:
                await service.close()

    @pytest.mark.asyncio
    async def test_unreachable_provider_raises(self):
        async with TestServer(web.Application()) as server:
            base_url = str(server.make_url("/json/"))
        # The server is gone once the context exits
        service = GeolocationService(base_url=base_url)
        try:
            with pytest.raises(GeolocationLookupError):
                await service.lookup("203.0.113.5")
        finally:
            await service.close()

    @pytest.mark.asyncio
    async def test_session_is_reused(self):
        app = provider_app({"203.0.113.5": LONDON, "198.51.100.1": LONDON})
        async with TestServer(app) as server:
            service = GeolocationService(base_url=str(server.make_url("/json/")))
            try:
                await service.lookup("203.0.113.5")
                session = service._session
                await service.lookup("198.51.100.1")
                assert service._session is session
            finally:
                await service.close()
        assert session.closed


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
