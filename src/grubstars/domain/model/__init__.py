"""Public domain model surface."""

from __future__ import annotations

from grubstars.domain.model.budget import BudgetState
from grubstars.domain.model.entity import Entity, new_id
from grubstars.domain.model.enums import (
    IndexPhase,
    JobStatus,
    Provider,
    ReconcileOutcome,
    SkipReason,
)
from grubstars.domain.model.job import (
    Job,
    JobProgress,
    JobResult,
    can_transition,
    normalize_location_key,
    progress_percent,
)
from grubstars.domain.model.records import Candidate, ProviderRecord
from grubstars.domain.model.restaurant import (
    CategoryTag,
    Photo,
    Rating,
    Restaurant,
    RestaurantExternalId,
)

__all__ = [  # noqa: RUF022
    # base
    "Entity",
    "new_id",
    # enums
    "IndexPhase",
    "JobStatus",
    "Provider",
    "ReconcileOutcome",
    "SkipReason",
    # restaurants
    "Restaurant",
    "Rating",
    "RestaurantExternalId",
    "CategoryTag",
    "Photo",
    # provider data
    "ProviderRecord",
    "Candidate",
    # jobs and budgets
    "Job",
    "JobProgress",
    "JobResult",
    "can_transition",
    "normalize_location_key",
    "progress_percent",
    "BudgetState",
]
