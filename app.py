"""
The application session: one object owning the store, filter engine, view,
locator and vote client, plus the current filter criteria.

Criteria changes re-filter the cached locations locally; the network is
only hit by refresh(), locate() and the vote/favorite actions. Every
failure from those is turned into a notice on the view or a degraded state
(no origin, stale cache), never an exception out of the render pipeline.
"""

import logging
from typing import Optional

from errors import (
    AlreadyFavorited,
    FetchFailed,
    PositionUnavailable,
    RequestFailed,
    Unauthenticated,
    UnsupportedPlatform,
    ViewNodeMissing,
)
from fetchers import LocationRecord, LocationStore
from filters import FilterCriteria, FilterEngine, FilterOutcome
from geo import GeoLocator, Position
from projector import ViewProjector
from votes import Vote, VoteClient

logger = logging.getLogger(__name__)


class AppSession:

    def __init__(
        self,
        store: LocationStore,
        engine: FilterEngine,
        projector: ViewProjector,
        locator: Optional[GeoLocator] = None,
        votes: Optional[VoteClient] = None,
        criteria: Optional[FilterCriteria] = None,
    ):
        self.store = store
        self.engine = engine
        self.projector = projector
        self.locator = locator
        self.votes = votes
        self.criteria = criteria or engine.initial_criteria()
        self.position: Optional[Position] = None
        self.last_outcome: Optional[FilterOutcome] = None
        self._cycle = 0

    async def start(self, locate: bool = True, fetch: bool = True) -> None:
        """Initial locate + fetch + render."""
        if locate:
            await self.locate()
        if fetch:
            await self.refresh()
        else:
            self.rerender()

    def close(self) -> None:
        self.store.close()
        if self.votes is not None:
            self.votes.close()

    # ── Position ────────────────────────────────────────────────────────

    async def locate(self) -> Optional[Position]:
        """One fix. On failure the distance filter stays disabled."""
        if self.locator is None:
            return None
        try:
            position = await self.locator.resolve_current_position()
        except UnsupportedPlatform as e:
            logger.warning(f"Geolocation unsupported: {e}")
            self.projector.notify("Geolocation is not supported here; distance filter disabled.")
            return None
        except PositionUnavailable as e:
            logger.warning(f"Geolocation error: {e}")
            self.projector.notify(f"Could not determine your location ({e}); distance filter disabled.")
            return None

        self.position = position
        self.projector.show_position(position)
        self.criteria = self.engine.set_origin(self.criteria, position.coordinates)
        return position

    # ── Fetch + render ──────────────────────────────────────────────────

    async def refresh(self) -> bool:
        """
        Re-fetch and re-render. Returns False if the fetch failed (the stale
        cache is rendered instead) or a newer refresh overtook this one.
        """
        self._cycle += 1
        cycle = self._cycle

        ok = True
        try:
            records = await self.store.refresh()
        except FetchFailed as e:
            ok = False
            records = self.store.current()
            logger.error(f"Failed to fetch locations: {e}")
            if cycle == self._cycle:
                if records:
                    self.projector.notify(f"Could not refresh locations; showing {len(records)} cached.")
                else:
                    self.projector.notify("Could not load locations.")

        if cycle != self._cycle:
            logger.info(f"Refresh #{cycle} superseded by #{self._cycle}; not rendering")
            return False

        self._render(records)
        return ok

    def rerender(self) -> FilterOutcome:
        return self._render(self.store.current())

    def _render(self, records: list[LocationRecord]) -> FilterOutcome:
        outcome = self.engine.evaluate(records, self.criteria)
        self.projector.render_outcome(outcome)
        self.last_outcome = outcome
        return outcome

    # ── Criteria changes (local only) ───────────────────────────────────

    def select_category(self, label: Optional[str]) -> FilterOutcome:
        return self._update(self.engine.select_category(self.criteria, label))

    def toggle_category(self, label: str) -> FilterOutcome:
        return self._update(self.engine.toggle_category(self.criteria, label))

    def set_amenity_only(self, enabled: bool) -> FilterOutcome:
        return self._update(self.engine.set_amenity_only(self.criteria, enabled))

    def set_distance(self, km: float) -> FilterOutcome:
        return self._update(self.engine.set_distance(self.criteria, km))

    def _update(self, criteria: FilterCriteria) -> FilterOutcome:
        self.criteria = criteria
        return self.rerender()

    # ── Actions ─────────────────────────────────────────────────────────

    async def handle_action(self, location_id: str, action: str):
        """
        Dispatch a card action ("like", "dislike" or "favorite") through the
        rendered-card registry. Ids with no rendered card are not sent.
        """
        try:
            self.projector.node(location_id)
        except ViewNodeMissing as e:
            logger.warning(f"Ignoring {action}: {e}")
            self.projector.notify(f"Location {location_id} is not in the current view.")
            return None

        if action == "favorite":
            return await self.save_favorite(location_id)
        return await self.vote(location_id, Vote(action))

    async def vote(self, location_id: str, direction: Vote) -> Optional[LocationRecord]:
        if self.votes is None:
            self.projector.notify("Voting is not available.")
            return None
        direction = Vote(direction)
        try:
            record = await self.votes.vote(location_id, direction)
        except Unauthenticated as e:
            logger.error(f"Failed to {direction.value} location: {e}")
            self.projector.notify("Please login first.")
            return None
        except RequestFailed as e:
            logger.error(f"Failed to {direction.value} location: {e}")
            self.projector.notify(f"Failed to {direction.value} location: {e}")
            return None

        self.projector.patch_votes(record)
        return record

    async def save_favorite(self, location_id: str) -> bool:
        if self.votes is None:
            self.projector.notify("Favorites are not available.")
            return False
        try:
            await self.votes.save_favorite(location_id)
        except AlreadyFavorited:
            self.projector.notify("Location already in favorites.")
            return False
        except Unauthenticated as e:
            logger.error(f"Error saving favorite: {e}")
            self.projector.notify("Please login first.")
            return False
        except RequestFailed as e:
            logger.error(f"Error saving favorite: {e}")
            self.projector.notify(f"Failed to save favorite: {e}")
            return False

        self.projector.notify("Location saved to favorites!")
        return True
