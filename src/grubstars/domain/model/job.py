"""Index job state as seen by callers polling for progress."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Final
from uuid import UUID

from .entity import new_id
from .enums import IndexPhase, JobStatus

ALLOWED_TRANSITIONS: Final[dict[JobStatus, frozenset[JobStatus]]] = {
    JobStatus.PENDING: frozenset({JobStatus.RUNNING}),
    JobStatus.RUNNING: frozenset({JobStatus.COMPLETED, JobStatus.FAILED}),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.FAILED: frozenset(),
}

_WHITESPACE = re.compile(r"\s+")


def normalize_location_key(location: str) -> str:
    """Key used to recognise repeated requests for the same place."""

    collapsed = _WHITESPACE.sub(" ", location.casefold()).strip()
    return collapsed.strip(" ,")


def can_transition(current: JobStatus, target: JobStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def progress_percent(phase: IndexPhase, current: int, total: int) -> float:
    """Share of the phase done, to one decimal place, rounded half up."""

    if phase is IndexPhase.COMPLETED:
        return 100.0
    if total <= 0:
        return 0.0
    return min(100.0, math.floor(current * 1000 / total + 0.5) / 10)


@dataclass(frozen=True, slots=True)
class JobProgress:
    current: int = 0
    total: int = 0
    adapter: str | None = None
    record_name: str | None = None
    phase: IndexPhase = IndexPhase.STARTING

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

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> JobProgress:
        return cls(
            current=int(payload.get("current", 0)),
            total=int(payload.get("total", 0)),
            adapter=payload.get("adapter"),
            record_name=payload.get("record_name"),
            phase=IndexPhase(payload.get("phase", IndexPhase.STARTING)),
        )


@dataclass(frozen=True, slots=True)
class JobResult:
    total: int = 0
    created: int = 0
    merged: int = 0
    updated: int = 0
    skipped: dict[str, str] = field(default_factory=dict[str, str])
    warnings: tuple[str, ...] = ()

    def as_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "created": self.created,
            "merged": self.merged,
            "updated": self.updated,
            "skipped": dict(self.skipped),
            "warnings": list(self.warnings),
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> JobResult:
        return cls(
            total=int(payload.get("total", 0)),
            created=int(payload.get("created", 0)),
            merged=int(payload.get("merged", 0)),
            updated=int(payload.get("updated", 0)),
            skipped={str(k): str(v) for k, v in (payload.get("skipped") or {}).items()},
            warnings=tuple(str(w) for w in payload.get("warnings") or ()),
        )


@dataclass(slots=True, kw_only=True)
class Job:
    """One indexing request and its lifecycle.

    Status only moves pending -> running -> completed | failed.
    """

    location: str
    category: str | None = None
    id: UUID = field(default_factory=new_id)
    location_key: str = ""
    status: JobStatus = JobStatus.PENDING
    progress: JobProgress | None = None
    result: JobResult | None = None
    error: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    started_at: datetime | None = None
    completed_at: datetime | None = None

    def __post_init__(self) -> None:
        if not self.location_key:
            self.location_key = normalize_location_key(self.location)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def as_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": str(self.id),
            "location": self.location,
            "category": self.category,
            "status": self.status.value,
            "progress": self.progress.as_dict() if self.progress else None,
            "created_at": self.created_at.isoformat(),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }
        if self.status is JobStatus.COMPLETED and self.result is not None:
            payload["result"] = self.result.as_dict()
        if self.status is JobStatus.FAILED:
            payload["error"] = self.error
        return payload
