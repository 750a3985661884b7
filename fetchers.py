"""
HTTP access to the Locais backend and the normalized location model.

GET /locations is public; everything under /favorites needs the bearer
credential kept by session.SessionStore.
"""

import asyncio
import logging
import math
import re
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Optional

import requests

from config import APIConfig
from errors import FetchFailed, Unauthenticated
from geo import Coordinates

logger = logging.getLogger(__name__)


# ── Unified Location Model ─────────────────────────────────────────────────

@dataclass(frozen=True)
class LocationRecord:
    """A point of interest as served by the API. Vote counts are server-owned."""
    id: str
    latitude: float
    longitude: float
    title: str = ""
    description: str = ""
    image_ref: str = ""
    category_tags: tuple = ()            # from "typeicon", e.g. ("Praia",)
    amenity_tags: tuple = ()             # from "types", e.g. ("WC", "Parque")
    likes: int = 0
    dislikes: int = 0
    url: str = ""
    raw_data: dict = field(default_factory=dict, compare=False, repr=False)

    @property
    def coordinates(self) -> Coordinates:
        return Coordinates(self.latitude, self.longitude)

    @classmethod
    def from_api(cls, item: dict) -> "LocationRecord":
        """Build a record from one API document. Raises on missing id/coords."""
        record_id = item.get("_id", item.get("id"))
        if record_id in (None, ""):
            raise ValueError("location without id")

        return cls(
            id=str(record_id),
            latitude=_coordinate(item["latitude"]),
            longitude=_coordinate(item["longitude"]),
            title=str(item.get("title") or ""),
            description=str(item.get("description") or ""),
            image_ref=str(item.get("src") or ""),
            category_tags=_split_labels(item.get("typeicon")),
            amenity_tags=_split_labels(item.get("types")),
            likes=_count(item.get("likes")),
            dislikes=_count(item.get("dislikes")),
            url=str(item.get("url") or ""),
            raw_data=item,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "src": self.image_ref,
            "lat": self.latitude,
            "lng": self.longitude,
            "categories": list(self.category_tags),
            "types": list(self.amenity_tags),
            "likes": self.likes,
            "dislikes": self.dislikes,
            "url": self.url,
        }


def _split_labels(value: Any) -> tuple:
    if not value:
        return ()
    if isinstance(value, (list, tuple, set, frozenset)):
        labels = [str(v).strip() for v in value]
    else:
        labels = re.split(r"[,;/|\s]+", str(value))
    return tuple(dict.fromkeys(l for l in labels if l))


def _coordinate(value: Any) -> float:
    x = float(value)
    if not math.isfinite(x):
        raise ValueError(f"non-finite coordinate: {value!r}")
    return x


def _count(value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, float) and not math.isfinite(value):
        raise ValueError(f"non-finite vote count: {value!r}")
    n = int(value)
    if n < 0:
        raise ValueError(f"negative vote count: {n}")
    return n


def decode_records(payload: Any, source: str) -> list[LocationRecord]:
    """Normalize a list payload; malformed items are skipped."""
    if not isinstance(payload, list):
        raise FetchFailed(f"[{source}] Expected a list of locations, got {type(payload).__name__}")

    records = []
    for item in payload:
        try:
            records.append(LocationRecord.from_api(item))
        except (KeyError, TypeError, ValueError, OverflowError, AttributeError) as e:
            logger.debug(f"[{source}] Skipping item: {e}")
    return records


# ── Base Fetcher ────────────────────────────────────────────────────────────

class BaseFetcher:
    """Shared requests session and the blocking → awaitable bridge."""

    source_name = "api"

    def __init__(self, api: APIConfig, session: Optional[requests.Session] = None):
        self.api = api
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json"})

    def _url(self, path: str) -> str:
        return f"{self.api.base_url.rstrip('/')}/{path.lstrip('/')}"

    def _request(self, method: str, path: str, token: Optional[str] = None, **kwargs) -> requests.Response:
        """Send one request. Transport errors propagate as requests exceptions."""
        headers = dict(kwargs.pop("headers", None) or {})
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return self.session.request(
            method, self._url(path), headers=headers, timeout=self.api.timeout_seconds, **kwargs
        )

    async def _request_async(self, method: str, path: str, token: Optional[str] = None,
                             **kwargs) -> requests.Response:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None, partial(self._request, method, path, token, **kwargs)
        )

    async def _get_records(self, path: str, token: Optional[str] = None) -> list[LocationRecord]:
        """GET a list of locations. Any failure becomes FetchFailed (or Unauthenticated)."""
        try:
            resp = await self._request_async("GET", path, token)
        except requests.exceptions.RequestException as e:
            logger.error(f"[{self.source_name}] Request failed: {e}")
            raise FetchFailed(f"[{self.source_name}] Request failed: {e}") from e

        if token and resp.status_code in (401, 403):
            raise Unauthenticated(f"[{self.source_name}] Credential rejected", status_code=resp.status_code)
        if not resp.ok:
            logger.error(f"[{self.source_name}] HTTP {resp.status_code}")
            raise FetchFailed(f"[{self.source_name}] HTTP {resp.status_code}", status_code=resp.status_code)

        try:
            payload = resp.json()
        except ValueError as e:
            logger.error(f"[{self.source_name}] Invalid JSON response")
            raise FetchFailed(f"[{self.source_name}] Invalid JSON response") from e
        return decode_records(payload, self.source_name)

    def close(self) -> None:
        self.session.close()


# ── Location Store ──────────────────────────────────────────────────────────

class LocationStore(BaseFetcher):
    """
    Latest successful GET /locations, kept in memory.
    A failed refresh leaves the previous cache in place. Each refresh is
    numbered; a response whose number is no longer the latest is discarded,
    whether it lands before or after the newer one.
    """

    source_name = "locations"

    def __init__(self, api: APIConfig, session: Optional[requests.Session] = None):
        super().__init__(api, session)
        self._records: list[LocationRecord] = []
        self._issued = 0

    def current(self) -> list[LocationRecord]:
        return list(self._records)

    def seed(self, records: list[LocationRecord]) -> None:
        """Install records without a fetch (demo mode)."""
        self._records = list(records)

    async def refresh(self) -> list[LocationRecord]:
        self._issued += 1
        seq = self._issued

        records = await self._get_records("/locations")

        if seq != self._issued:
            logger.info(f"[{self.source_name}] Discarding superseded fetch #{seq} (latest is #{self._issued})")
            return self.current()

        self._records = records
        logger.info(f"[{self.source_name}] Fetched {len(records)} locations")
        return self.current()


# ── Favorites ───────────────────────────────────────────────────────────────

class FavoritesFetcher(BaseFetcher):
    """GET /favorites for the logged-in user."""

    source_name = "favorites"

    def __init__(self, api: APIConfig, credentials, session: Optional[requests.Session] = None):
        super().__init__(api, session)
        self.credentials = credentials

    async def fetch(self) -> list[LocationRecord]:
        token = self.credentials.token()
        if not token:
            raise Unauthenticated("Not logged in")
        records = await self._get_records("/favorites", token)
        logger.info(f"[{self.source_name}] Fetched {len(records)} favorites")
        return records
