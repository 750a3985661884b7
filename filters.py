"""
Category, amenity and distance filtering of the cached locations.

Criteria are immutable values rebuilt on every interaction; the helpers on
FilterEngine are the only place they are constructed, which is where the
single-category rule is enforced.
"""

import logging
import math
from dataclasses import dataclass, field, replace
from typing import Iterable, Optional

from config import FilterDefaults
from fetchers import LocationRecord
from geo import Coordinates, distance_km

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FilterCriteria:
    """What the user asked to see."""
    selected_category: Optional[str] = None
    amenity_only: bool = False
    max_distance_km: float = 50.0
    origin: Optional[Coordinates] = None   # unset until a position fix resolves


@dataclass
class FilterOutcome:
    """
    Result of one filter pass.
    ``awaiting_location`` is True when no origin is known, in which case the
    distance predicate was left out rather than passing or failing everything.
    """
    records: list[LocationRecord]
    title: str
    awaiting_location: bool
    distances: dict[str, float] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.records


class FilterEngine:

    def __init__(self, defaults: Optional[FilterDefaults] = None):
        self.defaults = defaults or FilterDefaults()

    # ── Criteria construction ───────────────────────────────────────────

    def initial_criteria(self) -> FilterCriteria:
        return FilterCriteria(max_distance_km=self.defaults.default_distance_km)

    def select_category(self, criteria: FilterCriteria, label: Optional[str]) -> FilterCriteria:
        """Make ``label`` the only active category (None clears the selection)."""
        if label is not None and label not in self.defaults.categories:
            raise ValueError(f"Unknown category {label!r}; expected one of {', '.join(self.defaults.categories)}")
        return replace(criteria, selected_category=label)

    def toggle_category(self, criteria: FilterCriteria, label: str) -> FilterCriteria:
        """Checkbox semantics: clicking the active category clears it."""
        if criteria.selected_category == label:
            return replace(criteria, selected_category=None)
        return self.select_category(criteria, label)

    def set_amenity_only(self, criteria: FilterCriteria, enabled: bool) -> FilterCriteria:
        return replace(criteria, amenity_only=bool(enabled))

    def set_distance(self, criteria: FilterCriteria, km: float) -> FilterCriteria:
        """Slider value, clamped to the slider's range."""
        km = float(km)
        if math.isnan(km):
            raise ValueError("Distance must be a number")
        km = max(self.defaults.min_distance_km, min(self.defaults.max_distance_km, km))
        return replace(criteria, max_distance_km=km)

    def set_origin(self, criteria: FilterCriteria, origin: Optional[Coordinates]) -> FilterCriteria:
        return replace(criteria, origin=origin)

    # ── Filtering ───────────────────────────────────────────────────────

    def apply(self, records: Iterable[LocationRecord], criteria: FilterCriteria) -> list[LocationRecord]:
        """Subset of ``records`` matching every active predicate, in input order."""
        return self.evaluate(records, criteria).records

    def evaluate(self, records: Iterable[LocationRecord], criteria: FilterCriteria) -> FilterOutcome:
        selected = list(records)
        total = len(selected)

        if criteria.selected_category:
            selected = [r for r in selected if criteria.selected_category in r.category_tags]

        if criteria.amenity_only:
            selected = [r for r in selected if self.defaults.amenity_label in r.amenity_tags]

        distances: dict[str, float] = {}
        if criteria.origin is not None:
            kept = []
            for r in selected:
                d = distance_km(criteria.origin, r.coordinates)
                if d <= criteria.max_distance_km:
                    kept.append(r)
                    distances[r.id] = d
            selected = kept

        title = criteria.selected_category or self.defaults.default_title
        logger.debug(f"Filter '{title}' (WC={criteria.amenity_only}, "
                     f"≤{criteria.max_distance_km} km): {len(selected)}/{total}")

        return FilterOutcome(
            records=selected,
            title=title,
            awaiting_location=criteria.origin is None,
            distances=distances,
        )
