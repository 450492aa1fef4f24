"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class Provider(StrEnum):
    YELP = "yelp"
    GOOGLE = "google"
    TRIPADVISOR = "tripadvisor"


class JobStatus(StrEnum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in {JobStatus.COMPLETED, JobStatus.FAILED}


class IndexPhase(StrEnum):
    STARTING = "starting"
    INDEXING = "indexing"
    REVERSE_LOOKUP = "reverse_lookup"
    COMPLETED = "completed"


class ReconcileOutcome(StrEnum):
    CREATED = "created"
    MERGED = "merged"
    UPDATED = "updated"


class SkipReason(StrEnum):
    NOT_CONFIGURED = "not_configured"
    BUDGET_EXHAUSTED = "budget_exhausted"
    UNAVAILABLE = "unavailable"
