"""Job bookkeeping for background index runs."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from grubstars.config.indexing import DEFAULT_FRESHNESS_WINDOW
from grubstars.domain.errors import JobNotFoundError
from grubstars.domain.model import Job, JobProgress, normalize_location_key

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import timedelta
    from uuid import UUID

    from grubstars.domain.indexing import IndexStats, ProgressEvent
    from grubstars.domain.ports import IndexUnitOfWorkFactory

log = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class JobService:
    """Creates, hands out and finishes index jobs.

    ``request_index`` is the entry point for callers: it returns a recently
    completed job for the same location and category instead of starting a new
    run, and an already pending or running job instead of queueing a second one.
    """

    def __init__(
        self,
        uow_factory: IndexUnitOfWorkFactory,
        *,
        freshness_window: timedelta = DEFAULT_FRESHNESS_WINDOW,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._uow_factory = uow_factory
        self._freshness_window = freshness_window
        self._clock = clock

    def create_job(self, location: str, category: str | None = None) -> Job:
        job = Job(location=location.strip(), category=_clean_category(category))
        with self._uow_factory() as uow:
            uow.repositories.jobs.add(job)
            uow.commit()
        log.info("Queued index job %s for %r (category=%s)", job.id, job.location, job.category)
        return job

    def get_job(self, job_id: UUID) -> Job | None:
        with self._uow_factory() as uow:
            return uow.repositories.jobs.get(job_id)

    def require_job(self, job_id: UUID) -> Job:
        job = self.get_job(job_id)
        if job is None:
            raise JobNotFoundError(f"No job with id {job_id}")
        return job

    def find_recent_completed(self, location: str, category: str | None = None) -> Job | None:
        since = self._clock() - self._freshness_window
        with self._uow_factory() as uow:
            return uow.repositories.jobs.find_recent_completed(
                normalize_location_key(location), _clean_category(category), since
            )

    def find_active(self, location: str, category: str | None = None) -> Job | None:
        with self._uow_factory() as uow:
            return uow.repositories.jobs.find_active(
                normalize_location_key(location), _clean_category(category)
            )

    def request_index(
        self, location: str, category: str | None = None, *, force: bool = False
    ) -> Job:
        if not force:
            recent = self.find_recent_completed(location, category)
            if recent is not None:
                log.info("Reusing result of job %s for %r", recent.id, location)
                return recent
        active = self.find_active(location, category)
        if active is not None:
            log.info("Index of %r already %s as job %s", location, active.status, active.id)
            return active
        return self.create_job(location, category)

    # worker side -------------------------------------------------------------

    def claim_next(self) -> Job | None:
        with self._uow_factory() as uow:
            job = uow.repositories.jobs.claim_next_pending(self._clock())
            uow.commit()
        return job

    def record_progress(self, job_id: UUID, event: ProgressEvent) -> None:
        progress = JobProgress(
            current=event.current,
            total=event.total,
            adapter=event.adapter,
            record_name=event.record_name,
            phase=event.phase,
        )
        with self._uow_factory() as uow:
            uow.repositories.jobs.update_progress(job_id, progress)
            uow.commit()

    def complete(self, job_id: UUID, stats: IndexStats) -> None:
        with self._uow_factory() as uow:
            uow.repositories.jobs.mark_completed(job_id, stats.to_result(), self._clock())
            uow.commit()
        log.info("Job %s completed", job_id)

    def fail(self, job_id: UUID, error: str) -> None:
        with self._uow_factory() as uow:
            uow.repositories.jobs.mark_failed(job_id, error, self._clock())
            uow.commit()
        log.error("Job %s failed: %s", job_id, error)


def _clean_category(category: str | None) -> str | None:
    if category is None:
        return None
    cleaned = category.strip().casefold()
    return cleaned or None
