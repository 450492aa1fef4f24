from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import uuid4

import pytest

from grubstars.app import (
    budget_snapshot,
    build_adapters,
    build_worker,
    get_job,
    index_location,
    reindex_restaurant,
    request_index,
)
from grubstars.domain.errors import JobNotFoundError, RestaurantNotFoundError
from grubstars.domain.indexing import ProgressEvent
from grubstars.domain.model import JobStatus
from tests.helpers.providers import FakeProviderAdapter, make_record, place_records

if TYPE_CHECKING:
    from collections.abc import Callable

    from grubstars.adapters.sqlalchemy import SqlAlchemyIndexUnitOfWork

    UowFactory = Callable[[], SqlAlchemyIndexUnitOfWork]


@pytest.fixture
def no_provider_keys(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("YELP_API_KEY", "GOOGLE_API_KEY", "TRIPADVISOR_API_KEY"):
        monkeypatch.delenv(name, raising=False)


def test_build_adapters_lists_providers_in_order(no_provider_keys: None) -> None:
    adapters = build_adapters()

    assert [adapter.source_name for adapter in adapters] == ["yelp", "google", "tripadvisor"]
    assert not any(adapter.is_configured() for adapter in adapters)
    assert [adapter.request_limit for adapter in adapters] == [5000, 10_000, None]


def test_index_location_runs_synchronously(sqlite_unit_of_work: UowFactory) -> None:
    yelp = FakeProviderAdapter("yelp", place_records("y"))
    google = FakeProviderAdapter("google", place_records("g"))
    events: list[ProgressEvent] = []

    stats = index_location(
        "Austin, TX",
        adapters=[yelp, google],
        unit_of_work_factory=sqlite_unit_of_work,
        on_progress=events.append,
    )

    assert (stats.created, stats.merged) == (4, 4)
    assert {event.adapter for event in events} == {"yelp", "google"}


def test_request_index_then_worker_completes_job(sqlite_unit_of_work: UowFactory) -> None:
    yelp = FakeProviderAdapter("yelp", place_records("y"))
    job = request_index("Austin, TX", unit_of_work_factory=sqlite_unit_of_work)
    worker = build_worker(adapters=[yelp], unit_of_work_factory=sqlite_unit_of_work)

    assert worker.run_once() is True

    done = get_job(job.id, unit_of_work_factory=sqlite_unit_of_work)
    assert done.status is JobStatus.COMPLETED
    reused = request_index("austin, tx", unit_of_work_factory=sqlite_unit_of_work)
    assert reused.id == job.id


def test_get_job_raises_for_unknown_id(sqlite_unit_of_work: UowFactory) -> None:
    with pytest.raises(JobNotFoundError):
        get_job(uuid4(), unit_of_work_factory=sqlite_unit_of_work)


def test_budget_snapshot_covers_all_adapters(sqlite_unit_of_work: UowFactory) -> None:
    adapters = [
        FakeProviderAdapter("yelp", request_limit=5000),
        FakeProviderAdapter("tripadvisor"),
    ]

    snapshot = budget_snapshot(adapters=adapters, unit_of_work_factory=sqlite_unit_of_work)

    assert [(state.provider, state.request_limit) for state in snapshot] == [
        ("tripadvisor", None),
        ("yelp", 5000),
    ]


def test_reindex_restaurant_refreshes_stored_row(sqlite_unit_of_work: UowFactory) -> None:
    yelp = FakeProviderAdapter("yelp", place_records("y", rating=4.0))
    index_location("Austin, TX", adapters=[yelp], unit_of_work_factory=sqlite_unit_of_work)
    with sqlite_unit_of_work() as uow:
        stored = uow.repositories.restaurants.get_by_external_id("yelp", "y-1")
        assert stored is not None
        restaurant_id = stored.id
    yelp.details["y-1"] = make_record("Uchi", "y-1", rating=4.7)

    result = reindex_restaurant(
        restaurant_id, adapters=[yelp], unit_of_work_factory=sqlite_unit_of_work
    )

    assert result.sources_updated == ["yelp"]
    assert result.changes == {"yelp_rating": {"old": 4.0, "new": 4.7}}
    assert result.as_dict()["restaurant_id"] == str(restaurant_id)


def test_reindex_restaurant_raises_for_unknown_id(sqlite_unit_of_work: UowFactory) -> None:
    with pytest.raises(RestaurantNotFoundError):
        reindex_restaurant(
            uuid4(),
            adapters=[FakeProviderAdapter("yelp")],
            unit_of_work_factory=sqlite_unit_of_work,
        )
