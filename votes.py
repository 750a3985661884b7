"""
Like/dislike/favorite mutations.

Each call needs the bearer credential; without one nothing is sent.
Calls on the same location are serialized so their responses arrive in
the order they were issued.
"""

import asyncio
import logging
from enum import Enum
from typing import Optional

import requests

from config import APIConfig
from errors import AlreadyFavorited, RequestFailed, Unauthenticated
from fetchers import BaseFetcher, LocationRecord

logger = logging.getLogger(__name__)


class Vote(str, Enum):
    LIKE = "like"
    DISLIKE = "dislike"


class VoteClient(BaseFetcher):
    source_name = "votes"

    def __init__(self, api: APIConfig, credentials, session: Optional[requests.Session] = None):
        super().__init__(api, session)
        self.credentials = credentials
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    async def vote(self, location_id: str, direction: Vote) -> LocationRecord:
        """POST a like/dislike and return the server's updated record."""
        direction = Vote(direction)
        resp = await self._post(location_id, f"/locations/{location_id}/{direction.value}")

        if resp.status_code == 404:
            raise RequestFailed(f"Location {location_id} not found", status_code=404)
        self._raise_for_status(resp, f"{direction.value} {location_id}")

        try:
            record = LocationRecord.from_api(resp.json())
        except (ValueError, KeyError, TypeError, OverflowError, AttributeError) as e:
            raise RequestFailed(f"Unreadable {direction.value} response for {location_id}") from e

        logger.info(f"[{self.source_name}] {direction.value} {location_id}: "
                    f"{record.likes} likes / {record.dislikes} dislikes")
        return record

    async def save_favorite(self, location_id: str) -> None:
        resp = await self._post(location_id, f"/favorites/{location_id}")
        if resp.status_code == 400:
            raise AlreadyFavorited(f"Location {location_id} already in favorites", status_code=400)
        self._raise_for_status(resp, f"favorite {location_id}")
        logger.info(f"[{self.source_name}] Saved {location_id} to favorites")

    async def _post(self, location_id: str, path: str) -> requests.Response:
        token = self.credentials.token()
        if not token:
            raise Unauthenticated("No token found, please login first.")

        lock = self._locks.setdefault(location_id, asyncio.Lock())
        self._users[location_id] = self._users.get(location_id, 0) + 1
        try:
            async with lock:
                return await self._request_async(
                    "POST", path, token, headers={"Content-Type": "application/json"}
                )
        except requests.exceptions.RequestException as e:
            logger.error(f"[{self.source_name}] Request failed: {e}")
            raise RequestFailed(f"[{self.source_name}] Request failed: {e}") from e
        finally:
            self._users[location_id] -= 1
            if not self._users[location_id]:
                # nobody holds or waits on it any more
                del self._users[location_id]
                del self._locks[location_id]

    def _raise_for_status(self, resp: requests.Response, what: str) -> None:
        if resp.status_code in (401, 403):
            raise Unauthenticated(f"Credential rejected for {what}", status_code=resp.status_code)
        if not resp.ok:
            logger.error(f"[{self.source_name}] HTTP {resp.status_code} on {what}")
            raise RequestFailed(f"HTTP {resp.status_code} on {what}", status_code=resp.status_code)
