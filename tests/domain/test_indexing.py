from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import uuid4

import pytest

from grubstars.config.indexing import IndexingConfig
from grubstars.domain.budget import BudgetTracker
from grubstars.domain.errors import NoProvidersConfiguredError, RestaurantNotFoundError
from grubstars.domain.indexing import IndexingOrchestrator, IndexStats, ProgressEvent
from grubstars.domain.model import IndexPhase, ReconcileOutcome, SkipReason
from tests.helpers.providers import (
    PLACES,
    FakeProviderAdapter,
    make_record,
    place_records,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from grubstars.adapters.sqlalchemy import SqlAlchemyIndexUnitOfWork
    from grubstars.domain.model import Restaurant

    UowFactory = Callable[[], SqlAlchemyIndexUnitOfWork]

LOCATION = "Austin, TX"
LOCATION_KEY = "austin, tx"


def _orchestrator(
    uow_factory: UowFactory,
    adapters: Sequence[FakeProviderAdapter],
    *,
    limits: dict[str, int | None] | None = None,
    sleeps: list[float] | None = None,
    config: IndexingConfig | None = None,
) -> tuple[IndexingOrchestrator, BudgetTracker]:
    budget = BudgetTracker(
        uow_factory,
        limits if limits is not None else {adapter.source_name: None for adapter in adapters},
    )
    recorder = sleeps if sleeps is not None else []
    orchestrator = IndexingOrchestrator(
        adapters, uow_factory, budget, config=config, sleep=recorder.append
    )
    return orchestrator, budget


def _stored(uow_factory: UowFactory) -> list[Restaurant]:
    with uow_factory() as uow:
        return list(uow.repositories.restaurants.list_for_location(LOCATION_KEY))


def test_two_providers_merge_into_one_restaurant_per_place(
    sqlite_unit_of_work: UowFactory,
) -> None:
    yelp = FakeProviderAdapter("yelp", place_records("y", rating=4.5))
    google = FakeProviderAdapter("google", place_records("g", rating=4.1))
    orchestrator, _ = _orchestrator(sqlite_unit_of_work, [yelp, google])

    stats = orchestrator.index(LOCATION)

    assert (stats.total, stats.created, stats.merged, stats.updated) == (8, 4, 4, 0)
    assert stats.skipped == {}
    assert stats.forward_totals == {"yelp": 4, "google": 4}
    restaurants = _stored(sqlite_unit_of_work)
    assert sorted(restaurant.name for restaurant in restaurants) == sorted(
        name for name, _, _ in PLACES
    )
    for restaurant in restaurants:
        assert restaurant.sources == frozenset({"yelp", "google"})
        assert {rating.source: rating.score for rating in restaurant.ratings} == {
            "yelp": 4.5,
            "google": 4.1,
        }


def test_reindexing_updates_without_duplicates(sqlite_unit_of_work: UowFactory) -> None:
    yelp = FakeProviderAdapter("yelp", place_records("y"))
    google = FakeProviderAdapter("google", place_records("g"))
    orchestrator, _ = _orchestrator(sqlite_unit_of_work, [yelp, google])
    orchestrator.index(LOCATION)

    stats = orchestrator.index(" austin,  TX ")

    assert (stats.total, stats.created, stats.merged, stats.updated) == (8, 0, 0, 8)
    assert len(_stored(sqlite_unit_of_work)) == len(PLACES)


def test_reverse_lookup_absorbs_duplicate_without_coordinates(
    sqlite_unit_of_work: UowFactory,
) -> None:
    name, address, phone = PLACES[1]
    located = place_records("y")[1]
    shallow = make_record(
        name, "t-1", latitude=None, longitude=None, address=address, phone=phone, rating=4.0
    )
    details = make_record(
        name,
        "t-1",
        latitude=located.latitude,
        longitude=located.longitude,
        address=address,
        phone=phone,
        rating=4.0,
    )
    yelp = FakeProviderAdapter("yelp", place_records("y"))
    tripadvisor = FakeProviderAdapter("tripadvisor", [shallow], details={"t-1": details})
    orchestrator, _ = _orchestrator(sqlite_unit_of_work, [yelp, tripadvisor])

    stats = orchestrator.index(LOCATION)

    assert stats.forward_totals == {"yelp": 4, "tripadvisor": 1}
    assert stats.created == 5
    assert stats.merged == 1
    assert stats.absorbed == 1
    assert "get_details:t-1" in tripadvisor.calls
    assert sum(call.startswith("search_by_name:") for call in tripadvisor.calls) == 4
    restaurants = _stored(sqlite_unit_of_work)
    assert len(restaurants) == len(PLACES)
    uchi = next(restaurant for restaurant in restaurants if restaurant.name == name)
    assert uchi.sources == frozenset({"yelp", "tripadvisor"})
    assert uchi.external_id_for("tripadvisor") == "t-1"
    tripadvisor_rating = uchi.rating_for("tripadvisor")
    assert tripadvisor_rating is not None
    assert tripadvisor_rating.score == 4.0


def test_reverse_lookup_can_be_switched_off(sqlite_unit_of_work: UowFactory) -> None:
    yelp = FakeProviderAdapter("yelp", place_records("y"))
    tripadvisor = FakeProviderAdapter("tripadvisor", place_records("t", count=1))
    orchestrator, _ = _orchestrator(
        sqlite_unit_of_work, [yelp, tripadvisor], config=IndexingConfig(reverse_lookup=False)
    )

    orchestrator.index(LOCATION)

    assert tripadvisor.calls == ["search_by_area:None"]


def test_exhausted_budget_skips_provider_without_calls(sqlite_unit_of_work: UowFactory) -> None:
    yelp = FakeProviderAdapter("yelp", place_records("y"))
    google = FakeProviderAdapter("google", place_records("g"))
    orchestrator, _ = _orchestrator(
        sqlite_unit_of_work, [yelp, google], limits={"yelp": 0, "google": None}
    )

    stats = orchestrator.index(LOCATION)

    assert yelp.calls == []
    assert stats.skipped == {"yelp": SkipReason.BUDGET_EXHAUSTED}
    assert stats.created == 4
    assert stats.warnings
    assert stats.to_result().skipped == {"yelp": "budget_exhausted"}


def test_budget_running_out_mid_search_keeps_earlier_pages(
    sqlite_unit_of_work: UowFactory,
) -> None:
    yelp = FakeProviderAdapter("yelp", place_records("y"), page_size=2)
    orchestrator, budget = _orchestrator(sqlite_unit_of_work, [yelp], limits={"yelp": 1})

    stats = orchestrator.index(LOCATION)

    assert yelp.calls == ["search_by_area:None"]
    assert stats.created == 2
    assert stats.skipped == {"yelp": SkipReason.BUDGET_EXHAUSTED}
    assert budget.remaining("yelp") == 0


def test_unconfigured_providers_are_skipped(sqlite_unit_of_work: UowFactory) -> None:
    yelp = FakeProviderAdapter("yelp", place_records("y"))
    google = FakeProviderAdapter("google", place_records("g"), configured=False)
    orchestrator, _ = _orchestrator(sqlite_unit_of_work, [yelp, google])

    stats = orchestrator.index(LOCATION)

    assert google.calls == []
    assert stats.skipped == {"google": SkipReason.NOT_CONFIGURED}
    assert stats.created == 4


def test_no_configured_provider_raises(sqlite_unit_of_work: UowFactory) -> None:
    yelp = FakeProviderAdapter("yelp", place_records("y"), configured=False)
    orchestrator, _ = _orchestrator(sqlite_unit_of_work, [yelp])

    with pytest.raises(NoProvidersConfiguredError):
        orchestrator.index(LOCATION)


def test_unavailable_provider_is_retried_then_skipped(sqlite_unit_of_work: UowFactory) -> None:
    yelp = FakeProviderAdapter("yelp", place_records("y"), failures=10)
    sleeps: list[float] = []
    orchestrator, budget = _orchestrator(sqlite_unit_of_work, [yelp], sleeps=sleeps)

    stats = orchestrator.index(LOCATION)

    assert sleeps == [0.5, 1.0]
    assert yelp.calls == ["search_by_area:None"] * 3
    assert stats.skipped == {"yelp": SkipReason.UNAVAILABLE}
    assert stats.total == 0
    assert budget.state("yelp").request_count == 3


def test_transient_failure_recovers(sqlite_unit_of_work: UowFactory) -> None:
    yelp = FakeProviderAdapter("yelp", place_records("y"), failures=1)
    sleeps: list[float] = []
    orchestrator, budget = _orchestrator(sqlite_unit_of_work, [yelp], sleeps=sleeps)

    stats = orchestrator.index(LOCATION)

    assert sleeps == [0.5]
    assert stats.created == 4
    assert stats.skipped == {}
    assert budget.state("yelp").request_count == 2


def test_progress_is_reported_in_order(sqlite_unit_of_work: UowFactory) -> None:
    yelp = FakeProviderAdapter("yelp", place_records("y"), page_size=3)
    orchestrator, _ = _orchestrator(sqlite_unit_of_work, [yelp])
    events: list[ProgressEvent] = []

    orchestrator.index(LOCATION, on_progress=events.append)

    assert yelp.calls == ["search_by_area:None", "search_by_area:3"]
    assert [event.phase for event in events] == [
        IndexPhase.STARTING,
        IndexPhase.INDEXING,
        IndexPhase.INDEXING,
        IndexPhase.INDEXING,
        IndexPhase.INDEXING,
        IndexPhase.COMPLETED,
    ]
    indexing = [event for event in events if event.phase is IndexPhase.INDEXING]
    assert [(event.current, event.total) for event in indexing] == [(1, 4), (2, 4), (3, 4), (4, 4)]
    assert [event.percent for event in indexing] == [25, 50, 75, 100]
    assert indexing[0].record_name == PLACES[0][0]
    assert events[-1].percent == 100


def test_progress_percent_keeps_one_decimal_rounded_half_up() -> None:
    assert ProgressEvent("yelp", IndexPhase.INDEXING, 1, 8).percent == 12.5
    assert ProgressEvent("yelp", IndexPhase.INDEXING, 1, 3).percent == 33.3
    assert ProgressEvent("yelp", IndexPhase.INDEXING, 2, 3).percent == 66.7
    assert ProgressEvent("yelp", IndexPhase.INDEXING, 0, 0).percent == 0.0
    assert ProgressEvent("yelp", IndexPhase.COMPLETED, 0, 0).percent == 100.0
    assert ProgressEvent("yelp", IndexPhase.INDEXING, 1, 4).as_dict()["percent"] == 25.0


def test_stats_count_each_outcome() -> None:
    stats = IndexStats()

    for outcome in (
        ReconcileOutcome.CREATED,
        ReconcileOutcome.CREATED,
        ReconcileOutcome.MERGED,
        ReconcileOutcome.UPDATED,
    ):
        stats.record(outcome)
    stats.skip("google", SkipReason.UNAVAILABLE, "google: down")
    stats.skip("google", SkipReason.BUDGET_EXHAUSTED)

    result = stats.to_result()
    assert (result.total, result.created, result.merged, result.updated) == (4, 2, 1, 1)
    assert result.skipped == {"google": "unavailable"}
    assert result.warnings == ("google: down",)


def _franklin(uow_factory: UowFactory) -> Restaurant:
    return next(r for r in _stored(uow_factory) if r.name == "Franklin Barbecue")


def test_reindex_refreshes_each_linked_provider(sqlite_unit_of_work: UowFactory) -> None:
    yelp = FakeProviderAdapter("yelp", place_records("y", rating=4.5))
    google = FakeProviderAdapter("google", place_records("g", rating=4.1))
    orchestrator, _ = _orchestrator(sqlite_unit_of_work, [yelp, google])
    orchestrator.index(LOCATION)
    restaurant_id = _franklin(sqlite_unit_of_work).id
    yelp.details["y-0"] = make_record("Franklin Barbecue", "y-0", rating=4.8, review_count=99)
    google.details["g-0"] = make_record("Franklin Barbecue", "g-0", rating=4.1)
    yelp.calls.clear()
    google.calls.clear()

    result = orchestrator.reindex(restaurant_id)

    assert sorted(result.sources_updated) == ["google", "yelp"]
    assert result.sources_failed == {}
    assert result.changes == {
        "yelp_rating": {"old": 4.5, "new": 4.8},
        "yelp_review_count": {"old": 10, "new": 99},
    }
    assert yelp.calls == ["get_details:y-0"]
    assert google.calls == ["get_details:g-0"]
    refreshed = _franklin(sqlite_unit_of_work)
    assert refreshed.id == restaurant_id
    assert refreshed.address == PLACES[0][1]
    assert {rating.source: rating.score for rating in refreshed.ratings} == {
        "yelp": 4.8,
        "google": 4.1,
    }
    assert len(_stored(sqlite_unit_of_work)) == len(PLACES)


def test_reindex_reports_failing_provider_and_keeps_the_rest(
    sqlite_unit_of_work: UowFactory,
) -> None:
    yelp = FakeProviderAdapter("yelp", place_records("y"))
    google = FakeProviderAdapter("google", place_records("g"))
    orchestrator, _ = _orchestrator(sqlite_unit_of_work, [yelp, google])
    orchestrator.index(LOCATION)
    restaurant_id = _franklin(sqlite_unit_of_work).id
    yelp.details["y-0"] = make_record("Franklin Barbecue", "y-0")
    google.failures = 10

    result = orchestrator.reindex(restaurant_id)

    assert result.sources_updated == ["yelp"]
    assert result.sources_failed == {"google": "google: service unavailable"}
    assert result.changes == {}
    assert result.as_dict()["message"] == "Updated from yelp; failed for google; no changes"


def test_reindex_skips_unconfigured_provider(sqlite_unit_of_work: UowFactory) -> None:
    yelp = FakeProviderAdapter("yelp", place_records("y"))
    orchestrator, _ = _orchestrator(sqlite_unit_of_work, [yelp])
    orchestrator.index(LOCATION)
    yelp.configured = False
    yelp.calls.clear()

    result = orchestrator.reindex(_franklin(sqlite_unit_of_work).id)

    assert yelp.calls == []
    assert (result.sources_updated, result.sources_failed) == ([], {})
    assert result.message == "No external sources to refresh"


def test_reindex_unknown_restaurant_raises(sqlite_unit_of_work: UowFactory) -> None:
    orchestrator, _ = _orchestrator(sqlite_unit_of_work, [FakeProviderAdapter("yelp")])

    with pytest.raises(RestaurantNotFoundError):
        orchestrator.reindex(uuid4())
