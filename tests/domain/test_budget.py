from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import pytest

from grubstars.config.indexing import BudgetConfig
from grubstars.domain.budget import BudgetTracker
from grubstars.domain.errors import ProviderBudgetExhaustedError

if TYPE_CHECKING:
    from collections.abc import Callable

    from grubstars.adapters.sqlalchemy import SqlAlchemyIndexUnitOfWork

    UowFactory = Callable[[], SqlAlchemyIndexUnitOfWork]

START = datetime(2026, 1, 1, tzinfo=UTC)


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


def _tracker(
    uow_factory: UowFactory, limits: dict[str, int | None], clock: FakeClock | None = None
) -> BudgetTracker:
    return BudgetTracker(uow_factory, limits, clock=clock or FakeClock(START))


def test_acquire_until_limit_then_raise(sqlite_unit_of_work: UowFactory) -> None:
    tracker = _tracker(sqlite_unit_of_work, {"yelp": 2})

    tracker.acquire("yelp")
    tracker.acquire("yelp")
    with pytest.raises(ProviderBudgetExhaustedError) as excinfo:
        tracker.acquire("yelp")

    assert excinfo.value.provider == "yelp"
    assert excinfo.value.limit == 2
    assert tracker.can_call("yelp") is False
    assert tracker.remaining("yelp") == 0
    assert tracker.state("yelp").request_count == 2


def test_unlimited_provider_is_still_counted(sqlite_unit_of_work: UowFactory) -> None:
    tracker = _tracker(sqlite_unit_of_work, {"tripadvisor": None})

    for _ in range(3):
        tracker.acquire("tripadvisor")
    tracker.record_call("tripadvisor")

    assert tracker.can_call("tripadvisor") is True
    assert tracker.remaining("tripadvisor") is None
    assert tracker.state("tripadvisor").request_count == 4


def test_counter_resets_once_window_elapses(sqlite_unit_of_work: UowFactory) -> None:
    clock = FakeClock(START)
    tracker = _tracker(sqlite_unit_of_work, {"google": 1}, clock)
    tracker.acquire("google")
    assert tracker.can_call("google") is False

    clock.advance(timedelta(days=29))
    assert tracker.reset_if_window_elapsed("google") is False
    assert tracker.can_call("google") is False

    clock.advance(timedelta(days=2))
    assert tracker.can_call("google") is True
    state = tracker.state("google")
    assert state.request_count == 0
    assert state.window_started_at == START + timedelta(days=31)


def test_custom_window_length(sqlite_unit_of_work: UowFactory) -> None:
    clock = FakeClock(START)
    tracker = BudgetTracker(
        sqlite_unit_of_work,
        {"yelp": 1},
        config=BudgetConfig(window=timedelta(days=1)),
        clock=clock,
    )
    tracker.acquire("yelp")

    clock.advance(timedelta(days=1))

    assert tracker.reset_if_window_elapsed("yelp") is True
    tracker.acquire("yelp")


def test_budgets_persist_across_trackers(sqlite_unit_of_work: UowFactory) -> None:
    _tracker(sqlite_unit_of_work, {"yelp": 3}).acquire("yelp")

    fresh = _tracker(sqlite_unit_of_work, {"yelp": 3})

    assert fresh.remaining("yelp") == 2


def test_snapshot_lists_every_known_provider(sqlite_unit_of_work: UowFactory) -> None:
    tracker = _tracker(sqlite_unit_of_work, {"yelp": 5000, "google": None})
    tracker.acquire("google")

    snapshot = tracker.snapshot()

    assert [(state.provider, state.request_count, state.remaining) for state in snapshot] == [
        ("google", 1, None),
        ("yelp", 0, 5000),
    ]
