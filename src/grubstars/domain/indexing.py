"""Multi-provider indexing of one location.

A run has two phases:

1. Forward indexing pages through every configured provider's area search and
   reconciles each record against the store.
2. Reverse lookup revisits providers whose forward coverage was sparse and
   searches them by name for restaurants other providers already reported.

Providers are used one after another. Every provider request first takes one
unit of that provider's budget; retries take one unit each.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from functools import partial
from typing import TYPE_CHECKING, Any

from grubstars.config.indexing import IndexingConfig
from grubstars.domain.candidates import CandidateLocator
from grubstars.domain.errors import (
    NoProvidersConfiguredError,
    ProviderBudgetExhaustedError,
    ProviderError,
    ProviderUnavailableError,
    RecordMalformedError,
    RestaurantNotFoundError,
)
from grubstars.domain.matching import Matcher
from grubstars.domain.model import (
    IndexPhase,
    JobResult,
    ReconcileOutcome,
    SkipReason,
    normalize_location_key,
    progress_percent,
)
from grubstars.domain.reconciliation import Reconciler

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Sequence
    from uuid import UUID

    from grubstars.domain.budget import BudgetTracker
    from grubstars.domain.model import ProviderRecord, Restaurant
    from grubstars.domain.ports import (
        IndexRepositories,
        IndexUnitOfWork,
        IndexUnitOfWorkFactory,
        ProviderAdapter,
        SearchPage,
    )

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ProgressEvent:
    adapter: str
    phase: IndexPhase
    current: int
    total: int
    record_name: str | None = None

    @property
    def percent(self) -> float:
        return progress_percent(self.phase, self.current, self.total)

    def as_dict(self) -> dict[str, Any]:
        return {
            "adapter": self.adapter,
            "phase": self.phase.value,
            "current": self.current,
            "total": self.total,
            "percent": self.percent,
            "record_name": self.record_name,
        }


type ProgressCallback = Callable[[ProgressEvent], None]


@dataclass(slots=True)
class IndexStats:
    """Counters for one run."""

    total: int = 0
    created: int = 0
    merged: int = 0
    updated: int = 0
    absorbed: int = 0
    skipped: dict[str, SkipReason] = field(default_factory=dict[str, SkipReason])
    warnings: list[str] = field(default_factory=list[str])
    forward_totals: dict[str, int] = field(default_factory=dict[str, int])

    def record(self, outcome: ReconcileOutcome) -> None:
        self.total += 1
        match outcome:
            case ReconcileOutcome.CREATED:
                self.created += 1
            case ReconcileOutcome.MERGED:
                self.merged += 1
            case ReconcileOutcome.UPDATED:
                self.updated += 1

    def skip(self, provider: str, reason: SkipReason, warning: str | None = None) -> None:
        self.skipped.setdefault(provider, reason)
        if warning:
            self.warn(warning)

    def warn(self, message: str) -> None:
        log.warning(message)
        self.warnings.append(message)

    def to_result(self) -> JobResult:
        return JobResult(
            total=self.total,
            created=self.created,
            merged=self.merged,
            updated=self.updated,
            skipped={provider: reason.value for provider, reason in self.skipped.items()},
            warnings=tuple(self.warnings),
        )


@dataclass(slots=True)
class ReindexResult:
    """Outcome of refreshing one restaurant from the providers that list it."""

    restaurant_id: UUID
    sources_updated: list[str] = field(default_factory=list[str])
    sources_failed: dict[str, str] = field(default_factory=dict[str, str])
    changes: dict[str, dict[str, Any]] = field(default_factory=dict[str, dict[str, Any]])

    @property
    def message(self) -> str:
        if not self.sources_updated and not self.sources_failed:
            return "No external sources to refresh"
        parts: list[str] = []
        if self.sources_updated:
            parts.append(f"updated from {', '.join(self.sources_updated)}")
        if self.sources_failed:
            parts.append(f"failed for {', '.join(self.sources_failed)}")
        parts.append(f"{len(self.changes)} field(s) changed" if self.changes else "no changes")
        message = "; ".join(parts)
        return message[0].upper() + message[1:]

    def as_dict(self) -> dict[str, Any]:
        return {
            "restaurant_id": str(self.restaurant_id),
            "sources_updated": list(self.sources_updated),
            "sources_failed": dict(self.sources_failed),
            "changes": {key: dict(change) for key, change in self.changes.items()},
            "message": self.message,
        }


class IndexingOrchestrator:
    """Runs forward indexing and reverse lookup for one location.

    ``reindex`` refreshes a single stored restaurant from the providers it is
    already linked to.
    """

    def __init__(
        self,
        adapters: Sequence[ProviderAdapter],
        uow_factory: IndexUnitOfWorkFactory,
        budget: BudgetTracker,
        *,
        config: IndexingConfig | None = None,
        matcher: Matcher | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._adapters = list(adapters)
        self._uow_factory = uow_factory
        self._budget = budget
        self._config = config or IndexingConfig()
        self._matcher = matcher or Matcher(self._config.forward_policy)
        self._sleep = sleep

    def index(
        self,
        location: str,
        category: str | None = None,
        *,
        on_progress: ProgressCallback | None = None,
    ) -> IndexStats:
        stats = IndexStats()
        emit = _emitter(on_progress)
        location_key = normalize_location_key(location)

        configured: list[ProviderAdapter] = []
        for adapter in self._adapters:
            if adapter.is_configured():
                configured.append(adapter)
            else:
                log.info("Skipping %s: no credentials configured", adapter.source_name)
                stats.skip(adapter.source_name, SkipReason.NOT_CONFIGURED)
        if not configured:
            raise NoProvidersConfiguredError

        log.info(
            "Indexing %r (category=%s) with %s",
            location,
            category,
            ", ".join(adapter.source_name for adapter in configured),
        )
        for adapter in configured:
            stats.forward_totals[adapter.source_name] = self._index_forward(
                adapter, location, location_key, category, stats, emit
            )

        if self._config.reverse_lookup:
            for adapter in self._sparse_adapters(configured, stats):
                self._reverse_lookup(adapter, location, location_key, stats, emit)

        log.info(
            "Indexed %r: %s records, %s created, %s merged, %s updated, skipped=%s",
            location,
            stats.total,
            stats.created,
            stats.merged,
            stats.updated,
            dict(stats.skipped) or "none",
        )
        return stats

    def reindex(self, restaurant_id: UUID) -> ReindexResult:
        """Fetch fresh details for ``restaurant_id`` from every provider that lists it.

        Only providers already linked to the restaurant are asked, so the row is
        refreshed in place and never re-matched. A failing provider is reported
        in ``sources_failed`` and does not stop the others.
        """

        with self._repositories() as (_, repositories):
            restaurant = repositories.restaurants.get(restaurant_id)
            if restaurant is None:
                raise RestaurantNotFoundError(restaurant_id)
            before = _restaurant_state(restaurant)
            listings = [(ext.source, ext.value) for ext in restaurant.external_ids]

        result = ReindexResult(restaurant_id)
        adapters = {adapter.source_name: adapter for adapter in self._adapters}
        for source, external_id in listings:
            adapter = adapters.get(source)
            if adapter is None or not adapter.is_configured():
                log.info("Not refreshing %s from %s: not configured", restaurant_id, source)
                continue
            try:
                record = self._call(adapter, partial(adapter.get_details, external_id))
            except ProviderError as exc:
                log.warning("Failed to refresh %s from %s: %s", restaurant_id, source, exc)
                result.sources_failed[source] = str(exc)
                continue
            with self._repositories() as (uow, repositories):
                target = repositories.restaurants.get(restaurant_id)
                if target is None:
                    raise RestaurantNotFoundError(restaurant_id)
                Reconciler(repositories.restaurants).merge_into(target, record, source)
                uow.commit()
            result.sources_updated.append(source)

        with self._repositories() as (_, repositories):
            refreshed = repositories.restaurants.get(restaurant_id)
            after = _restaurant_state(refreshed) if refreshed is not None else {}
        result.changes = _state_changes(before, after)
        log.info("Reindexed %s: %s", restaurant_id, result.message)
        return result

    # forward indexing --------------------------------------------------------

    def _index_forward(
        self,
        adapter: ProviderAdapter,
        location: str,
        location_key: str,
        category: str | None,
        stats: IndexStats,
        emit: ProgressCallback,
    ) -> int:
        source = adapter.source_name
        emit(ProgressEvent(source, IndexPhase.STARTING, 0, 0))
        if not self._budget.can_call(source):
            stats.skip(
                source,
                SkipReason.BUDGET_EXHAUSTED,
                f"{source}: request budget exhausted, provider skipped",
            )
            emit(ProgressEvent(source, IndexPhase.COMPLETED, 0, 0))
            return 0

        processed = 0
        total = 0
        for page in self._pages(adapter, location, category, stats):
            total = max(total, page.estimated_total, processed + len(page.records))
            for record in page.records:
                enriched = self._enrich(adapter, record, stats)
                stats.record(self._reconcile(enriched, source, location_key))
                processed += 1
                emit(ProgressEvent(source, IndexPhase.INDEXING, processed, total, enriched.name))

        emit(ProgressEvent(source, IndexPhase.COMPLETED, processed, max(total, processed)))
        return processed

    def _pages(
        self,
        adapter: ProviderAdapter,
        location: str,
        category: str | None,
        stats: IndexStats,
    ) -> Iterator[SearchPage]:
        source = adapter.source_name
        token: str | None = None
        while True:
            try:
                page = self._call(
                    adapter, partial(adapter.search_by_area, location, category, token)
                )
            except ProviderBudgetExhaustedError:
                stats.skip(
                    source,
                    SkipReason.BUDGET_EXHAUSTED,
                    f"{source}: request budget exhausted during area search",
                )
                return
            except ProviderUnavailableError as exc:
                stats.skip(source, SkipReason.UNAVAILABLE, f"{source}: {exc}")
                return
            yield page
            if page.next_page_token is None or not page.records:
                return
            token = page.next_page_token

    def _enrich(
        self, adapter: ProviderAdapter, record: ProviderRecord, stats: IndexStats
    ) -> ProviderRecord:
        if not self._config.enrich_details or not record.is_shallow:
            return record
        details = self._details(adapter, record, stats)
        return record.enriched_with(details) if details is not None else record

    def _details(
        self, adapter: ProviderAdapter, record: ProviderRecord, stats: IndexStats
    ) -> ProviderRecord | None:
        source = adapter.source_name
        try:
            return self._call(adapter, partial(adapter.get_details, record.external_id))
        except ProviderBudgetExhaustedError:
            log.info("No budget left to fetch %s details for %r", source, record.name)
        except (ProviderUnavailableError, RecordMalformedError) as exc:
            stats.warn(f"{source}: details for {record.name!r} unavailable ({exc})")
        return None

    def _reconcile(
        self, record: ProviderRecord, source: str, location_key: str
    ) -> ReconcileOutcome:
        with self._repositories() as (uow, repositories):
            locator = CandidateLocator(
                repositories.restaurants,
                radius_degrees=self._config.candidate_radius_degrees,
                name_fallback=self._config.name_fallback,
            )
            candidates = locator.find_candidates(
                record.latitude, record.longitude, name=record.name
            )
            match = self._matcher.best_match(record, candidates, self._config.forward_policy)
            outcome = Reconciler(repositories.restaurants).apply(
                record, source, match, location=location_key
            )
            uow.commit()
        return outcome

    # reverse lookup ----------------------------------------------------------

    def _sparse_adapters(
        self, configured: Sequence[ProviderAdapter], stats: IndexStats
    ) -> list[ProviderAdapter]:
        best = max(stats.forward_totals.values(), default=0)
        if best == 0:
            return []
        floor = best * self._config.sparse_ratio
        return [
            adapter
            for adapter in configured
            if adapter.source_name not in stats.skipped
            and stats.forward_totals.get(adapter.source_name, 0) < floor
        ]

    def _reverse_lookup(
        self,
        adapter: ProviderAdapter,
        location: str,
        location_key: str,
        stats: IndexStats,
        emit: ProgressCallback,
    ) -> None:
        source = adapter.source_name
        with self._repositories() as (_, repositories):
            targets = [
                (restaurant.id, restaurant.name)
                for restaurant in repositories.restaurants.missing_source(location_key, source)
            ]
        log.info("Reverse lookup on %s for %s restaurants", source, len(targets))

        total = len(targets)
        emit(ProgressEvent(source, IndexPhase.REVERSE_LOOKUP, 0, total))
        for position, (restaurant_id, name) in enumerate(targets, start=1):
            try:
                results = self._call(adapter, partial(adapter.search_by_name, name, location))
            except ProviderBudgetExhaustedError:
                stats.skip(
                    source,
                    SkipReason.BUDGET_EXHAUSTED,
                    f"{source}: request budget exhausted during reverse lookup",
                )
                break
            except ProviderUnavailableError as exc:
                stats.skip(source, SkipReason.UNAVAILABLE, f"{source}: {exc}")
                break

            located = [self._with_coordinates(adapter, result, stats) for result in results]
            if self._merge_reverse(restaurant_id, located, source, location_key, stats):
                stats.merged += 1
            emit(ProgressEvent(source, IndexPhase.REVERSE_LOOKUP, position, total, name))
        emit(ProgressEvent(source, IndexPhase.COMPLETED, total, total))

    def _with_coordinates(
        self, adapter: ProviderAdapter, record: ProviderRecord, stats: IndexStats
    ) -> ProviderRecord:
        # without coordinates a name-only result cannot clear the reverse threshold
        if record.has_coordinates:
            return record
        details = self._details(adapter, record, stats)
        return record.enriched_with(details) if details is not None else record

    def _merge_reverse(
        self,
        restaurant_id: UUID,
        results: Sequence[ProviderRecord],
        source: str,
        location_key: str,
        stats: IndexStats,
    ) -> bool:
        policy = self._config.reverse_policy
        with self._repositories() as (uow, repositories):
            target = repositories.restaurants.get(restaurant_id)
            if target is None or target.external_id_for(source) is not None:
                return False
            candidate = target.to_candidate()

            chosen: ProviderRecord | None = None
            chosen_score = -1
            for result in results:
                match = self._matcher.best_match(result, [candidate], policy)
                if match is not None and match.score > chosen_score:
                    chosen, chosen_score = result, match.score
            if chosen is None:
                return False

            reconciler = Reconciler(repositories.restaurants)
            owner = repositories.restaurants.get_by_external_id(source, chosen.external_id)
            if owner is not None and owner.id != target.id:
                reconciler.absorb(owner, target)
                stats.absorbed += 1
            reconciler.merge_into(target, chosen, source, location=location_key)
            uow.commit()
        log.info(
            "Reverse lookup matched %s to %s:%s (score %s)",
            target.name,
            source,
            chosen.external_id,
            chosen_score,
        )
        return True

    # plumbing ----------------------------------------------------------------

    def _call[T](self, adapter: ProviderAdapter, request: Callable[[], T]) -> T:
        """Run one provider request with budget accounting and bounded retries."""

        source = adapter.source_name
        attempts = max(1, self._config.retry_attempts)
        attempt = 1
        while True:
            self._budget.acquire(source)
            try:
                return request()
            except ProviderUnavailableError as exc:
                if attempt >= attempts:
                    raise
                delay = self._config.retry_backoff_seconds * attempt
                log.warning(
                    "%s request failed (attempt %s/%s), retrying in %.1fs: %s",
                    source,
                    attempt,
                    attempts,
                    delay,
                    exc,
                )
                self._sleep(delay)
                attempt += 1

    @contextmanager
    def _repositories(self) -> Iterator[tuple[IndexUnitOfWork, IndexRepositories]]:
        with self._uow_factory() as uow:
            yield uow, uow.repositories


def _emitter(callback: ProgressCallback | None) -> ProgressCallback:
    def emit(event: ProgressEvent) -> None:
        log.debug("Progress %s", event.as_dict())
        if callback is not None:
            callback(event)

    return emit


def _restaurant_state(restaurant: Restaurant) -> dict[str, Any]:
    state: dict[str, Any] = {
        "name": restaurant.name,
        "address": restaurant.address,
        "phone": restaurant.phone,
        "photos": len(restaurant.photos),
    }
    for rating in restaurant.ratings:
        state[f"{rating.source}_rating"] = rating.score
        state[f"{rating.source}_review_count"] = rating.review_count
    return state


def _state_changes(before: dict[str, Any], after: dict[str, Any]) -> dict[str, dict[str, Any]]:
    return {
        key: {"old": before.get(key), "new": after.get(key)}
        for key in sorted(before.keys() | after.keys())
        if before.get(key) != after.get(key)
    }
