"""
In-memory view of the filtered locations: a map-marker layer and a card grid.

render_full rebuilds both from scratch; patch_votes touches only the vote
labels and bars of one card. The card registry (location id -> CardNode) is
also what vote actions are dispatched through.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from errors import ViewNodeMissing
from fetchers import LocationRecord
from geo import Position

logger = logging.getLogger(__name__)


def vote_percentages(likes: int, dislikes: int) -> tuple[float, float]:
    """Bar widths in percent; both 0 when nobody has voted."""
    total = likes + dislikes
    if total == 0:
        return 0.0, 0.0
    return likes / total * 100, dislikes / total * 100


@dataclass
class MapMarker:
    location_id: str
    latitude: float
    longitude: float
    title: str
    image_ref: str
    description: str
    types: tuple = ()

    def to_dict(self) -> dict:
        return {
            "id": self.location_id,
            "lat": self.latitude,
            "lng": self.longitude,
            "title": self.title,
            "src": self.image_ref,
            "description": self.description,
            "types": list(self.types),
        }


@dataclass
class CardNode:
    location_id: str
    title: str
    description: str
    image_ref: str
    likes: int = 0
    dislikes: int = 0
    like_pct: float = 0.0
    dislike_pct: float = 0.0
    distance_km: Optional[float] = None

    def set_votes(self, likes: int, dislikes: int) -> None:
        self.likes = likes
        self.dislikes = dislikes
        self.like_pct, self.dislike_pct = vote_percentages(likes, dislikes)

    def to_dict(self) -> dict:
        return {
            "id": self.location_id,
            "title": self.title,
            "description": self.description,
            "src": self.image_ref,
            "likes": self.likes,
            "dislikes": self.dislikes,
            "like_pct": round(self.like_pct, 2),
            "dislike_pct": round(self.dislike_pct, 2),
            "distance_km": None if self.distance_km is None else round(self.distance_km, 2),
        }


@dataclass
class PositionMarker:
    """The user's own fix, drawn as a marker plus an accuracy circle."""
    latitude: float
    longitude: float
    radius_m: float

    @property
    def popup(self) -> str:
        return f"You are within {self.radius_m:g} meters from this point"

    def to_dict(self) -> dict:
        return {"lat": self.latitude, "lng": self.longitude,
                "radius": self.radius_m, "popup": self.popup}


class ViewProjector:

    def __init__(self, empty_message: str = "No locations match",
                 default_title: str = "Locais"):
        self.empty_message = empty_message
        self.title = default_title
        self.markers: list[MapMarker] = []
        self.cards: dict[str, CardNode] = {}
        self.bounds: Optional[tuple[tuple[float, float], tuple[float, float]]] = None
        self.position_marker: Optional[PositionMarker] = None
        self.awaiting_location = False
        self.notices: list[str] = []

    # ── Full render ─────────────────────────────────────────────────────

    def render_full(self, records: list[LocationRecord], *, title: Optional[str] = None,
                    awaiting_location: bool = False,
                    distances: Optional[dict[str, float]] = None) -> None:
        """Throw away the marker layer and card grid and rebuild both."""
        distances = distances or {}
        self.markers = []
        self.cards = {}
        if title is not None:
            self.title = title
        self.awaiting_location = awaiting_location

        for r in records:
            self.markers.append(MapMarker(
                location_id=r.id,
                latitude=r.latitude,
                longitude=r.longitude,
                title=r.title,
                image_ref=r.image_ref,
                description=r.description,
                types=r.amenity_tags,
            ))
            card = CardNode(
                location_id=r.id,
                title=r.title,
                description=r.description,
                image_ref=r.image_ref,
                distance_km=distances.get(r.id),
            )
            card.set_votes(r.likes, r.dislikes)
            self.cards[r.id] = card

        self.bounds = self._fit_bounds()
        if not records:
            logger.info("No locations to show on the map.")
        else:
            logger.debug(f"Rendered {len(records)} locations")

    def render_outcome(self, outcome) -> None:
        """render_full from a filters.FilterOutcome."""
        self.render_full(outcome.records, title=outcome.title,
                         awaiting_location=outcome.awaiting_location,
                         distances=outcome.distances)

    def _fit_bounds(self):
        if not self.markers:
            return None
        lats = [m.latitude for m in self.markers]
        lngs = [m.longitude for m in self.markers]
        return (min(lats), min(lngs)), (max(lats), max(lngs))

    # ── Incremental updates ─────────────────────────────────────────────

    def node(self, location_id: str) -> CardNode:
        try:
            return self.cards[location_id]
        except KeyError:
            raise ViewNodeMissing(f"Location {location_id} is not rendered") from None

    def patch_votes(self, record: LocationRecord) -> bool:
        """Update one card's counts and bars. Returns False if it isn't rendered."""
        try:
            card = self.node(record.id)
        except ViewNodeMissing as e:
            logger.warning(f"Location element not found in the view: {e}")
            return False
        card.set_votes(record.likes, record.dislikes)
        return True

    def show_position(self, position: Position) -> None:
        self.position_marker = PositionMarker(
            latitude=position.latitude,
            longitude=position.longitude,
            radius_m=position.accuracy_m / 2,
        )

    def notify(self, message: str) -> None:
        self.notices.append(message)

    # ── Export ──────────────────────────────────────────────────────────

    @property
    def is_empty(self) -> bool:
        return not self.cards

    @property
    def status_message(self) -> str:
        if self.awaiting_location:
            return "Waiting for your location (distance filter off)"
        if self.is_empty:
            return self.empty_message
        return ""

    def center(self) -> Optional[tuple[float, float]]:
        if self.bounds:
            (s, w), (n, e) = self.bounds
            return (s + n) / 2, (w + e) / 2
        if self.position_marker:
            return self.position_marker.latitude, self.position_marker.longitude
        return None

    def snapshot(self) -> dict:
        return {
            "title": self.title,
            "status": self.status_message,
            "awaiting_location": self.awaiting_location,
            "empty_message": self.empty_message if self.is_empty else "",
            "bounds": self.bounds,
            "center": self.center(),
            "position": self.position_marker.to_dict() if self.position_marker else None,
            "markers": [m.to_dict() for m in self.markers],
            "cards": [c.to_dict() for c in self.cards.values()],
            "notices": list(self.notices),
        }
