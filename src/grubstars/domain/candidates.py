"""Locate stored restaurants that an incoming record could describe."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from grubstars.config.indexing import DEFAULT_CANDIDATE_RADIUS_DEGREES

if TYPE_CHECKING:
    from grubstars.domain.model import Candidate
    from grubstars.domain.ports import RestaurantRepository

log = logging.getLogger(__name__)


class CandidateLocator:
    """Bounding-box lookup of nearby restaurants.

    Records without coordinates get no candidates and are therefore always
    created as new restaurants. ``name_fallback`` switches on a name search for
    that case instead.
    """

    def __init__(
        self,
        restaurants: RestaurantRepository,
        *,
        radius_degrees: float = DEFAULT_CANDIDATE_RADIUS_DEGREES,
        name_fallback: bool = False,
        name_fallback_limit: int = 20,
    ) -> None:
        self._restaurants = restaurants
        self._radius_degrees = radius_degrees
        self._name_fallback = name_fallback
        self._name_fallback_limit = name_fallback_limit

    def find_candidates(
        self,
        latitude: float | None,
        longitude: float | None,
        radius_degrees: float | None = None,
        *,
        name: str | None = None,
    ) -> list[Candidate]:
        if latitude is None or longitude is None:
            return self._without_coordinates(name)

        radius = self._radius_degrees if radius_degrees is None else radius_degrees
        found = self._restaurants.find_in_bounds(
            min_latitude=latitude - radius,
            max_latitude=latitude + radius,
            min_longitude=longitude - radius,
            max_longitude=longitude + radius,
        )
        return [restaurant.to_candidate() for restaurant in found]

    def _without_coordinates(self, name: str | None) -> list[Candidate]:
        if self._name_fallback and name:
            found = self._restaurants.find_by_name(name, limit=self._name_fallback_limit)
            return [restaurant.to_candidate() for restaurant in found]
        log.debug("No coordinates for %r; it will be stored as a new restaurant", name)
        return []
