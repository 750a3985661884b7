"""
Position fixes and great-circle distance.

The positioning capability is pluggable: a fixed origin taken from the
configuration, or an IP geolocation lookup. GeoLocator turns whichever is
available into a single-shot awaitable fix.
"""

import asyncio
import logging
import math
from dataclasses import dataclass
from typing import Optional, Protocol

import requests

from config import GeoConfig
from errors import PositionUnavailable, UnsupportedPlatform

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class Coordinates:
    latitude: float
    longitude: float


@dataclass(frozen=True)
class Position:
    """A resolved fix. ``accuracy_m`` is the radius of uncertainty."""
    coordinates: Coordinates
    accuracy_m: float = 0.0

    @property
    def latitude(self) -> float:
        return self.coordinates.latitude

    @property
    def longitude(self) -> float:
        return self.coordinates.longitude


def distance_km(a: Coordinates, b: Coordinates) -> float:
    """Haversine distance in kilometres between two points."""
    phi1 = math.radians(a.latitude)
    phi2 = math.radians(b.latitude)
    d_phi = math.radians(b.latitude - a.latitude)
    d_lambda = math.radians(b.longitude - a.longitude)

    h = math.sin(d_phi / 2.0) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2.0) ** 2
    # rounding can push h just past 1 for near-antipodal pairs
    h = min(1.0, max(0.0, h))
    c = 2.0 * math.atan2(math.sqrt(h), math.sqrt(1.0 - h))
    return EARTH_RADIUS_KM * c


# ── Positioning sources ────────────────────────────────────────────────────

class PositionProvider(Protocol):
    """A blocking, one-shot source of position fixes."""
    name: str

    def locate(self) -> Position:
        """Return a fix or raise PositionUnavailable."""
        ...


class StaticPositionProvider:
    """Always reports the same configured origin."""

    name = "static"

    def __init__(self, latitude: float, longitude: float, accuracy_m: float = 0.0):
        self._position = Position(Coordinates(latitude, longitude), accuracy_m)

    def locate(self) -> Position:
        return self._position


class IPPositionProvider:
    """
    Approximate fix from an IP geolocation service.
    Understands both ``latitude/longitude`` (ipapi.co) and ``lat/lon``
    (ip-api.com) response shapes.
    """

    name = "geoip"

    def __init__(self, url: str, accuracy_m: float, timeout: float = 10.0,
                 session: Optional[requests.Session] = None):
        self.url = url
        self.accuracy_m = accuracy_m
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json"})

    def locate(self) -> Position:
        try:
            resp = self.session.get(self.url, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            raise PositionUnavailable(f"Position lookup timed out: {e}") from e
        except requests.exceptions.RequestException as e:
            raise PositionUnavailable(f"Position lookup failed: {e}") from e

        if resp.status_code in (401, 403, 429):
            raise PositionUnavailable("Position lookup denied", status_code=resp.status_code)
        if resp.status_code != 200:
            raise PositionUnavailable(f"Position lookup returned HTTP {resp.status_code}",
                                      status_code=resp.status_code)
        try:
            data = resp.json()
            lat = float(data.get("latitude", data.get("lat")))
            lon = float(data.get("longitude", data.get("lon")))
        except (ValueError, TypeError, AttributeError) as e:
            raise PositionUnavailable("Position lookup returned no coordinates") from e

        return Position(Coordinates(lat, lon), self.accuracy_m)


def provider_from_config(cfg: GeoConfig, allow_network: bool = True) -> Optional[PositionProvider]:
    """Pick the positioning source. None means the platform has none."""
    if cfg.origin_lat is not None and cfg.origin_lon is not None:
        return StaticPositionProvider(cfg.origin_lat, cfg.origin_lon, cfg.origin_accuracy_m)
    if allow_network and cfg.geoip_url:
        return IPPositionProvider(cfg.geoip_url, cfg.geoip_accuracy_m, timeout=cfg.timeout_seconds)
    return None


# ── Locator ────────────────────────────────────────────────────────────────

class GeoLocator:
    """Single-shot asynchronous position fix. Never retries."""

    def __init__(self, provider: Optional[PositionProvider], timeout_seconds: float = 12.0):
        self.provider = provider
        self.timeout_seconds = timeout_seconds

    async def resolve_current_position(self) -> Position:
        if self.provider is None:
            raise UnsupportedPlatform("No positioning capability available")

        loop = asyncio.get_running_loop()
        try:
            position = await asyncio.wait_for(
                loop.run_in_executor(None, self.provider.locate),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise PositionUnavailable(
                f"No fix from {self.provider.name} within {self.timeout_seconds}s"
            ) from e

        logger.info(f"[{self.provider.name}] Position fix: "
                    f"{position.latitude:.5f}, {position.longitude:.5f} (±{position.accuracy_m:.0f} m)")
        return position
