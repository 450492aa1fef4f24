"""Ports for persisting restaurants, jobs and request budgets."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime, timedelta
    from uuid import UUID

    from grubstars.domain.model import BudgetState, Job, JobProgress, JobResult, Restaurant


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for a persistent aggregate store."""

    def add(self, entity: TEntity) -> None: ...


@runtime_checkable
class RestaurantRepository(Repository["Restaurant"], Protocol):
    """Persistence contract for merged restaurants."""

    def get(self, restaurant_id: UUID) -> Restaurant | None: ...

    def delete(self, restaurant: Restaurant) -> None: ...

    def get_by_external_id(self, source: str, value: str) -> Restaurant | None: ...

    def find_in_bounds(
        self,
        *,
        min_latitude: float,
        max_latitude: float,
        min_longitude: float,
        max_longitude: float,
    ) -> Sequence[Restaurant]:
        """Restaurants with coordinates inside the box, oldest first."""
        ...

    def find_by_name(self, name: str, *, limit: int = 20) -> Sequence[Restaurant]: ...

    def list_for_location(self, location: str) -> Sequence[Restaurant]: ...

    def missing_source(self, location: str, source: str) -> Sequence[Restaurant]:
        """Restaurants indexed under ``location`` without an external id for ``source``."""
        ...


@runtime_checkable
class JobRepository(Repository["Job"], Protocol):
    """Persistence contract for index jobs.

    Transition methods raise ``InvalidJobTransitionError`` when the stored status
    does not permit the move.
    """

    def get(self, job_id: UUID) -> Job | None: ...

    def claim_next_pending(self, now: datetime) -> Job | None: ...

    def update_progress(self, job_id: UUID, progress: JobProgress) -> None: ...

    def mark_completed(self, job_id: UUID, result: JobResult, now: datetime) -> None: ...

    def mark_failed(self, job_id: UUID, error: str, now: datetime) -> None: ...

    def find_recent_completed(
        self, location_key: str, category: str | None, since: datetime
    ) -> Job | None: ...

    def find_active(self, location_key: str, category: str | None) -> Job | None: ...


@runtime_checkable
class BudgetRepository(Protocol):
    """Persistence contract for provider request counters."""

    def get(self, provider: str) -> BudgetState | None: ...

    def list_all(self) -> Sequence[BudgetState]: ...

    def ensure(self, provider: str, limit: int | None, now: datetime) -> None:
        """Create the counter row if missing and keep its limit in sync."""
        ...

    def reset_if_elapsed(self, provider: str, now: datetime, window: timedelta) -> bool: ...

    def try_increment(self, provider: str) -> bool:
        """Increment only while under the limit; report whether it happened."""
        ...

    def increment(self, provider: str) -> None: ...
