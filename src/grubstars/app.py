"""Application orchestration entry points."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from grubstars.adapters.google import GoogleAdapter
from grubstars.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyIndexUnitOfWork,
    is_started,
    startup,
)
from grubstars.adapters.tripadvisor import TripAdvisorAdapter
from grubstars.adapters.yelp import YelpAdapter
from grubstars.config.indexing import get_indexing_config, get_worker_config
from grubstars.domain.budget import BudgetTracker
from grubstars.domain.indexing import IndexingOrchestrator
from grubstars.domain.jobs import JobService
from grubstars.worker import IndexWorker

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

    from grubstars.config.indexing import IndexingConfig, WorkerConfig
    from grubstars.domain.indexing import IndexStats, ProgressCallback, ReindexResult
    from grubstars.domain.model import BudgetState, Job
    from grubstars.domain.ports import IndexUnitOfWorkFactory, ProviderAdapter

log = getLogger(__name__)


def _ensure_started(unit_of_work_factory: IndexUnitOfWorkFactory | None) -> IndexUnitOfWorkFactory:
    if unit_of_work_factory is not None:
        return unit_of_work_factory
    if not is_started():
        startup()
    return SqlAlchemyIndexUnitOfWork


def build_adapters() -> list[ProviderAdapter]:
    """Adapters for every supported provider, in indexing order."""

    return [YelpAdapter(), GoogleAdapter(), TripAdvisorAdapter()]


def build_budget_tracker(
    adapters: Sequence[ProviderAdapter],
    *,
    unit_of_work_factory: IndexUnitOfWorkFactory | None = None,
) -> BudgetTracker:
    effective_uow = _ensure_started(unit_of_work_factory)
    limits = {adapter.source_name: adapter.request_limit for adapter in adapters}
    return BudgetTracker(effective_uow, limits)


def build_orchestrator(
    *,
    adapters: Sequence[ProviderAdapter] | None = None,
    unit_of_work_factory: IndexUnitOfWorkFactory | None = None,
    config: IndexingConfig | None = None,
) -> IndexingOrchestrator:
    effective_uow = _ensure_started(unit_of_work_factory)
    effective_adapters = list(adapters) if adapters is not None else build_adapters()
    budget = build_budget_tracker(effective_adapters, unit_of_work_factory=effective_uow)
    return IndexingOrchestrator(
        effective_adapters,
        effective_uow,
        budget,
        config=config or get_indexing_config(),
    )


def build_job_service(
    *,
    unit_of_work_factory: IndexUnitOfWorkFactory | None = None,
    config: WorkerConfig | None = None,
) -> JobService:
    effective_config = config or get_worker_config()
    return JobService(
        _ensure_started(unit_of_work_factory),
        freshness_window=effective_config.freshness_window,
    )


def build_worker(
    *,
    adapters: Sequence[ProviderAdapter] | None = None,
    unit_of_work_factory: IndexUnitOfWorkFactory | None = None,
    indexing_config: IndexingConfig | None = None,
    worker_config: WorkerConfig | None = None,
) -> IndexWorker:
    effective_uow = _ensure_started(unit_of_work_factory)
    effective_config = worker_config or get_worker_config()
    jobs = build_job_service(unit_of_work_factory=effective_uow, config=effective_config)
    orchestrator = build_orchestrator(
        adapters=adapters, unit_of_work_factory=effective_uow, config=indexing_config
    )
    return IndexWorker(jobs, orchestrator, effective_config)


def request_index(
    location: str,
    category: str | None = None,
    *,
    force: bool = False,
    unit_of_work_factory: IndexUnitOfWorkFactory | None = None,
) -> Job:
    """Queue an index job, or return the fresh or active job that already covers it."""

    jobs = build_job_service(unit_of_work_factory=unit_of_work_factory)
    job = jobs.request_index(location, category, force=force)
    log.info("Index request for %r resolved to job %s (%s)", location, job.id, job.status)
    return job


def get_job(job_id: UUID, *, unit_of_work_factory: IndexUnitOfWorkFactory | None = None) -> Job:
    return build_job_service(unit_of_work_factory=unit_of_work_factory).require_job(job_id)


def index_location(
    location: str,
    category: str | None = None,
    *,
    adapters: Sequence[ProviderAdapter] | None = None,
    unit_of_work_factory: IndexUnitOfWorkFactory | None = None,
    on_progress: ProgressCallback | None = None,
) -> IndexStats:
    """Index ``location`` in the calling thread without creating a job."""

    orchestrator = build_orchestrator(adapters=adapters, unit_of_work_factory=unit_of_work_factory)
    stats = orchestrator.index(location, category, on_progress=on_progress)
    log.info(
        "Finished indexing %r: total=%s, created=%s, merged=%s, updated=%s",
        location,
        stats.total,
        stats.created,
        stats.merged,
        stats.updated,
    )
    return stats


def budget_snapshot(
    *,
    adapters: Sequence[ProviderAdapter] | None = None,
    unit_of_work_factory: IndexUnitOfWorkFactory | None = None,
) -> list[BudgetState]:
    effective_adapters = list(adapters) if adapters is not None else build_adapters()
    tracker = build_budget_tracker(effective_adapters, unit_of_work_factory=unit_of_work_factory)
    return tracker.snapshot()


def reindex_restaurant(
    restaurant_id: UUID,
    *,
    adapters: Sequence[ProviderAdapter] | None = None,
    unit_of_work_factory: IndexUnitOfWorkFactory | None = None,
) -> ReindexResult:
    """Refresh one stored restaurant from the providers it is linked to."""

    orchestrator = build_orchestrator(adapters=adapters, unit_of_work_factory=unit_of_work_factory)
    return orchestrator.reindex(restaurant_id)
