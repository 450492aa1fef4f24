"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import exists, func, insert, or_, select, update

from grubstars.adapters.sqlalchemy.mappings import (
    api_budget_table,
    index_job_table,
    restaurant_external_id_table,
    restaurant_table,
)
from grubstars.domain.errors import InvalidJobTransitionError
from grubstars.domain.model import (
    BudgetState,
    Job,
    JobProgress,
    JobResult,
    JobStatus,
    Restaurant,
    can_transition,
)

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from datetime import datetime, timedelta
    from uuid import UUID

    from sqlalchemy import ColumnElement, CursorResult, Executable
    from sqlalchemy.orm import Session


def _rowcount(session: Session, stmt: Executable) -> int:
    result = cast("CursorResult[Any]", session.execute(stmt))
    return result.rowcount


class SqlAlchemyRestaurantRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: Restaurant) -> None:
        self.session.add(entity)

    def get(self, restaurant_id: UUID) -> Restaurant | None:
        return self.session.get(Restaurant, restaurant_id)

    def delete(self, restaurant: Restaurant) -> None:
        self.session.delete(restaurant)

    def get_by_external_id(self, source: str, value: str) -> Restaurant | None:
        stmt = (
            select(Restaurant)
            .join(
                restaurant_external_id_table,
                restaurant_external_id_table.c.restaurant_id == restaurant_table.c.id,
            )
            .where(restaurant_external_id_table.c.source == source)
            .where(restaurant_external_id_table.c.value == value)
        )
        return self.session.execute(stmt).scalars().first()

    def find_in_bounds(
        self,
        *,
        min_latitude: float,
        max_latitude: float,
        min_longitude: float,
        max_longitude: float,
    ) -> Sequence[Restaurant]:
        stmt = (
            select(Restaurant)
            .where(restaurant_table.c.latitude.between(min_latitude, max_latitude))
            .where(restaurant_table.c.longitude.between(min_longitude, max_longitude))
            .order_by(restaurant_table.c.created_at, restaurant_table.c.id)
        )
        return self.session.execute(stmt).scalars().all()

    def find_by_name(self, name: str, *, limit: int = 20) -> Sequence[Restaurant]:
        stmt = (
            select(Restaurant)
            .where(func.lower(restaurant_table.c.name).contains(name.lower(), autoescape=True))
            .order_by(restaurant_table.c.created_at, restaurant_table.c.id)
            .limit(limit)
        )
        return self.session.execute(stmt).scalars().all()

    def list_for_location(self, location: str) -> Sequence[Restaurant]:
        stmt = (
            select(Restaurant)
            .where(restaurant_table.c.location == location)
            .order_by(restaurant_table.c.created_at, restaurant_table.c.id)
        )
        return self.session.execute(stmt).scalars().all()

    def missing_source(self, location: str, source: str) -> Sequence[Restaurant]:
        has_source = exists().where(
            restaurant_external_id_table.c.restaurant_id == restaurant_table.c.id,
            restaurant_external_id_table.c.source == source,
        )
        stmt = (
            select(Restaurant)
            .where(restaurant_table.c.location == location)
            .where(~has_source)
            .order_by(restaurant_table.c.created_at, restaurant_table.c.id)
        )
        return self.session.execute(stmt).scalars().all()


class SqlAlchemyJobRepository:
    """Index jobs stored through Core statements.

    Every status change is a conditional ``UPDATE`` on the expected current
    status, so two workers can never claim or finish the same job twice.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: Job) -> None:
        self.session.execute(insert(index_job_table).values(**self._to_row(entity)))

    def get(self, job_id: UUID) -> Job | None:
        stmt = select(index_job_table).where(index_job_table.c.id == job_id)
        row = self.session.execute(stmt).mappings().first()
        return self._from_row(row) if row is not None else None

    def claim_next_pending(self, now: datetime) -> Job | None:
        while True:
            stmt = (
                select(index_job_table.c.id)
                .where(index_job_table.c.status == JobStatus.PENDING.value)
                .order_by(index_job_table.c.created_at)
                .limit(1)
            )
            job_id = self.session.execute(stmt).scalar_one_or_none()
            if job_id is None:
                return None
            claimed = _rowcount(
                self.session,
                update(index_job_table)
                .where(index_job_table.c.id == job_id)
                .where(index_job_table.c.status == JobStatus.PENDING.value)
                .values(status=JobStatus.RUNNING.value, started_at=now),
            )
            if claimed:
                return self.get(job_id)

    def update_progress(self, job_id: UUID, progress: JobProgress) -> None:
        self._guarded_update(
            job_id,
            (JobStatus.RUNNING,),
            target=JobStatus.RUNNING,
            values={"progress": progress.as_dict()},
        )

    def mark_completed(self, job_id: UUID, result: JobResult, now: datetime) -> None:
        self._transition(
            job_id,
            JobStatus.COMPLETED,
            values={"result": result.as_dict(), "completed_at": now},
        )

    def mark_failed(self, job_id: UUID, error: str, now: datetime) -> None:
        self._transition(job_id, JobStatus.FAILED, values={"error": error, "completed_at": now})

    def find_recent_completed(
        self, location_key: str, category: str | None, since: datetime
    ) -> Job | None:
        stmt = (
            select(index_job_table)
            .where(index_job_table.c.location_key == location_key)
            .where(self._category_clause(category))
            .where(index_job_table.c.status == JobStatus.COMPLETED.value)
            .where(index_job_table.c.completed_at >= since)
            .order_by(index_job_table.c.completed_at.desc())
            .limit(1)
        )
        row = self.session.execute(stmt).mappings().first()
        return self._from_row(row) if row is not None else None

    def find_active(self, location_key: str, category: str | None) -> Job | None:
        stmt = (
            select(index_job_table)
            .where(index_job_table.c.location_key == location_key)
            .where(self._category_clause(category))
            .where(
                index_job_table.c.status.in_((JobStatus.PENDING.value, JobStatus.RUNNING.value))
            )
            .order_by(index_job_table.c.created_at)
            .limit(1)
        )
        row = self.session.execute(stmt).mappings().first()
        return self._from_row(row) if row is not None else None

    def _transition(self, job_id: UUID, target: JobStatus, *, values: dict[str, Any]) -> None:
        sources = tuple(status for status in JobStatus if can_transition(status, target))
        self._guarded_update(
            job_id, sources, target=target, values={"status": target.value, **values}
        )

    def _guarded_update(
        self,
        job_id: UUID,
        expected: Sequence[JobStatus],
        *,
        target: JobStatus,
        values: dict[str, Any],
    ) -> None:
        changed = _rowcount(
            self.session,
            update(index_job_table)
            .where(index_job_table.c.id == job_id)
            .where(index_job_table.c.status.in_([status.value for status in expected]))
            .values(**values),
        )
        if changed:
            return
        current = self.session.execute(
            select(index_job_table.c.status).where(index_job_table.c.id == job_id)
        ).scalar_one_or_none()
        raise InvalidJobTransitionError(
            job_id, JobStatus(current) if current is not None else None, target
        )

    @staticmethod
    def _category_clause(category: str | None) -> ColumnElement[bool]:
        if category is None:
            return index_job_table.c.category.is_(None)
        return index_job_table.c.category == category

    @staticmethod
    def _to_row(job: Job) -> dict[str, Any]:
        return {
            "id": job.id,
            "location": job.location,
            "location_key": job.location_key,
            "category": job.category,
            "status": job.status.value,
            "progress": job.progress.as_dict() if job.progress else None,
            "result": job.result.as_dict() if job.result else None,
            "error": job.error,
            "created_at": job.created_at,
            "started_at": job.started_at,
            "completed_at": job.completed_at,
        }

    @staticmethod
    def _from_row(row: Mapping[str, Any]) -> Job:
        progress = row["progress"]
        result = row["result"]
        return Job(
            id=row["id"],
            location=row["location"],
            location_key=row["location_key"],
            category=row["category"],
            status=JobStatus(row["status"]),
            progress=JobProgress.from_dict(progress) if progress else None,
            result=JobResult.from_dict(result) if result else None,
            error=row["error"],
            created_at=row["created_at"],
            started_at=row["started_at"],
            completed_at=row["completed_at"],
        )


class SqlAlchemyBudgetRepository:
    """Per-provider request counters.

    Increments happen in a single guarded ``UPDATE`` so the stored count never
    passes the stored limit.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, provider: str) -> BudgetState | None:
        stmt = select(api_budget_table).where(api_budget_table.c.provider == provider)
        row = self.session.execute(stmt).mappings().first()
        return self._from_row(row) if row is not None else None

    def list_all(self) -> Sequence[BudgetState]:
        stmt = select(api_budget_table).order_by(api_budget_table.c.provider)
        return [self._from_row(row) for row in self.session.execute(stmt).mappings()]

    def ensure(self, provider: str, limit: int | None, now: datetime) -> None:
        existing = self.get(provider)
        if existing is None:
            self.session.execute(
                insert(api_budget_table).values(
                    provider=provider,
                    request_count=0,
                    request_limit=limit,
                    window_started_at=now,
                )
            )
            return
        if existing.request_limit != limit:
            self.session.execute(
                update(api_budget_table)
                .where(api_budget_table.c.provider == provider)
                .values(request_limit=limit)
            )

    def reset_if_elapsed(self, provider: str, now: datetime, window: timedelta) -> bool:
        reset = _rowcount(
            self.session,
            update(api_budget_table)
            .where(api_budget_table.c.provider == provider)
            .where(api_budget_table.c.window_started_at <= now - window)
            .values(request_count=0, window_started_at=now),
        )
        return reset > 0

    def try_increment(self, provider: str) -> bool:
        incremented = _rowcount(
            self.session,
            update(api_budget_table)
            .where(api_budget_table.c.provider == provider)
            .where(
                or_(
                    api_budget_table.c.request_limit.is_(None),
                    api_budget_table.c.request_count < api_budget_table.c.request_limit,
                )
            )
            .values(request_count=api_budget_table.c.request_count + 1),
        )
        return incremented == 1

    def increment(self, provider: str) -> None:
        self.session.execute(
            update(api_budget_table)
            .where(api_budget_table.c.provider == provider)
            .values(request_count=api_budget_table.c.request_count + 1)
        )

    @staticmethod
    def _from_row(row: Mapping[str, Any]) -> BudgetState:
        return BudgetState(
            provider=row["provider"],
            request_count=row["request_count"],
            request_limit=row["request_limit"],
            window_started_at=row["window_started_at"],
        )
