import asyncio
import math
import time

import pytest
import requests

from config import GeoConfig
from errors import PositionUnavailable, UnsupportedPlatform
from geo import (
    Coordinates,
    GeoLocator,
    IPPositionProvider,
    Position,
    StaticPositionProvider,
    distance_km,
    provider_from_config,
)

from conftest import FakeResponse, FakeSession

LISBON = Coordinates(38.7223, -9.1393)
PORTO = Coordinates(41.1579, -8.6291)
FUNCHAL = Coordinates(32.6669, -16.9241)


class TestDistance:

    def test_same_point_is_zero(self):
        assert distance_km(LISBON, LISBON) == 0

    @pytest.mark.parametrize("a,b", [
        (LISBON, PORTO),
        (PORTO, FUNCHAL),
        (Coordinates(-33.9, 151.2), Coordinates(51.5, -0.12)),
        (Coordinates(0, 179.9), Coordinates(0, -179.9)),
    ])
    def test_symmetric(self, a, b):
        assert math.isclose(distance_km(a, b), distance_km(b, a), rel_tol=1e-9)

    def test_lisbon_porto(self):
        assert distance_km(LISBON, PORTO) == pytest.approx(274, abs=2)

    def test_one_degree_of_latitude(self):
        d = distance_km(Coordinates(0, 0), Coordinates(1, 0))
        assert d == pytest.approx(6371 * math.pi / 180, rel=1e-9)

    def test_antipodes_are_finite(self):
        d = distance_km(Coordinates(0, 0), Coordinates(0, 180))
        assert d == pytest.approx(math.pi * 6371, rel=1e-9)

    def test_off_equator_antipodes_are_finite(self):
        a = Coordinates(18.071332014670602, -52.18163449916848)
        b = Coordinates(-18.071332014670602, 127.81836550083152)
        d = distance_km(a, b)
        assert d == pytest.approx(math.pi * 6371, rel=1e-9)


class FailingProvider:
    name = "failing"

    def locate(self):
        raise PositionUnavailable("User denied Geolocation")


class SlowProvider:
    name = "slow"

    def locate(self):
        time.sleep(0.3)
        return Position(LISBON, 10)


class TestGeoLocator:

    def test_no_provider_is_unsupported(self):
        with pytest.raises(UnsupportedPlatform):
            asyncio.run(GeoLocator(None).resolve_current_position())

    def test_static_fix(self):
        locator = GeoLocator(StaticPositionProvider(32.65, -16.91, 40))
        position = asyncio.run(locator.resolve_current_position())
        assert position.coordinates == Coordinates(32.65, -16.91)
        assert position.accuracy_m == 40

    def test_provider_failure_propagates(self):
        with pytest.raises(PositionUnavailable, match="denied"):
            asyncio.run(GeoLocator(FailingProvider()).resolve_current_position())

    def test_timeout(self):
        locator = GeoLocator(SlowProvider(), timeout_seconds=0.05)
        with pytest.raises(PositionUnavailable, match="within"):
            asyncio.run(locator.resolve_current_position())


class TestIPPositionProvider:

    def _provider(self, response):
        session = FakeSession({("GET", "http://geo.test/json/"): response})
        return IPPositionProvider("http://geo.test/json/", accuracy_m=5000, session=session)

    def test_ipapi_shape(self):
        provider = self._provider(FakeResponse(200, {"latitude": 38.7, "longitude": -9.1}))
        position = provider.locate()
        assert position.coordinates == Coordinates(38.7, -9.1)
        assert position.accuracy_m == 5000

    def test_ip_api_shape(self):
        provider = self._provider(FakeResponse(200, {"status": "success", "lat": 41.1, "lon": -8.6}))
        assert provider.locate().coordinates == Coordinates(41.1, -8.6)

    def test_denied(self):
        with pytest.raises(PositionUnavailable) as exc:
            self._provider(FakeResponse(429, {"error": True})).locate()
        assert exc.value.status_code == 429

    def test_network_error(self):
        with pytest.raises(PositionUnavailable):
            self._provider(requests.exceptions.ConnectionError("offline")).locate()

    def test_timeout(self):
        with pytest.raises(PositionUnavailable, match="timed out"):
            self._provider(requests.exceptions.Timeout("slow")).locate()

    def test_no_coordinates(self):
        with pytest.raises(PositionUnavailable):
            self._provider(FakeResponse(200, {"error": "reserved range"})).locate()


class TestProviderFromConfig:

    def test_fixed_origin_wins(self):
        cfg = GeoConfig(origin_lat=1.0, origin_lon=2.0, geoip_url="http://geo.test/")
        assert isinstance(provider_from_config(cfg), StaticPositionProvider)

    def test_ip_lookup(self):
        cfg = GeoConfig(origin_lat=None, origin_lon=None, geoip_url="http://geo.test/")
        assert isinstance(provider_from_config(cfg), IPPositionProvider)

    def test_nothing_available(self):
        cfg = GeoConfig(origin_lat=None, origin_lon=None, geoip_url="http://geo.test/")
        assert provider_from_config(cfg, allow_network=False) is None
