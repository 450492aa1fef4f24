"""Turn provider records into create / merge / update actions on restaurants."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from grubstars.domain.model import ReconcileOutcome, Restaurant

if TYPE_CHECKING:
    from grubstars.domain.matching import MatchResult
    from grubstars.domain.model import ProviderRecord
    from grubstars.domain.ports import RestaurantRepository

log = logging.getLogger(__name__)


class Reconciler:
    """Applies one record to the restaurant store.

    An existing owner of ``(source, external_id)`` always wins over a fresh
    match, so re-indexing a location refreshes rows instead of re-merging them.
    """

    def __init__(self, restaurants: RestaurantRepository) -> None:
        self._restaurants = restaurants

    def apply(
        self,
        record: ProviderRecord,
        source: str,
        match: MatchResult | None,
        *,
        location: str | None = None,
    ) -> ReconcileOutcome:
        owner = self._restaurants.get_by_external_id(source, record.external_id)
        if owner is not None:
            self._refresh(owner, record, source, location)
            log.debug("Updated %s from %s:%s", owner.name, source, record.external_id)
            return ReconcileOutcome.UPDATED

        if match is not None:
            target = self._restaurants.get(match.candidate.id)
            if target is not None and self._accepts(target, record, source):
                self.merge_into(target, record, source, location=location)
                log.debug(
                    "Merged %s:%s into %s (score %s)",
                    source,
                    record.external_id,
                    target.name,
                    match.score,
                )
                return ReconcileOutcome.MERGED

        restaurant = Restaurant.from_record(record, source=source, location=location)
        self._restaurants.add(restaurant)
        log.debug("Created %s from %s:%s", restaurant.name, source, record.external_id)
        return ReconcileOutcome.CREATED

    def merge_into(
        self,
        target: Restaurant,
        record: ProviderRecord,
        source: str,
        *,
        location: str | None = None,
    ) -> None:
        self._refresh(target, record, source, location)

    def absorb(self, duplicate: Restaurant, target: Restaurant) -> None:
        """Fold ``duplicate`` into ``target`` and delete it."""

        if duplicate is target or duplicate.id == target.id:
            return
        target.absorb_duplicate(duplicate)
        self._restaurants.delete(duplicate)
        log.info("Absorbed duplicate %s (%s) into %s", duplicate.name, duplicate.id, target.id)

    @staticmethod
    def _refresh(
        restaurant: Restaurant, record: ProviderRecord, source: str, location: str | None
    ) -> None:
        restaurant.backfill(record, location=location)
        restaurant.absorb_record(record, source=source)

    @staticmethod
    def _accepts(target: Restaurant, record: ProviderRecord, source: str) -> bool:
        # a different listing id from the same provider describes another place
        existing = target.external_id_for(source)
        if existing is not None and existing != record.external_id:
            log.debug(
                "Not merging %s:%s into %s, which already holds %s:%s",
                source,
                record.external_id,
                target.name,
                source,
                existing,
            )
            return False
        return True
