"""Defaults for indexing runs, the budget tracker and the background worker."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from .env import optional_env_var
from .matching import FORWARD_INDEX_POLICY, REVERSE_LOOKUP_POLICY, MatchPolicy

DEFAULT_CANDIDATE_RADIUS_DEGREES = 0.01
DEFAULT_FRESHNESS_WINDOW = timedelta(hours=24)
DEFAULT_BUDGET_WINDOW = timedelta(days=30)


@dataclass(frozen=True, slots=True)
class IndexingConfig:
    forward_policy: MatchPolicy = FORWARD_INDEX_POLICY
    reverse_policy: MatchPolicy = REVERSE_LOOKUP_POLICY
    candidate_radius_degrees: float = DEFAULT_CANDIDATE_RADIUS_DEGREES
    retry_attempts: int = 3
    retry_backoff_seconds: float = 0.5
    enrich_details: bool = False
    reverse_lookup: bool = True
    # forward totals below this share of the best provider trigger reverse lookup
    sparse_ratio: float = 0.5
    name_fallback: bool = False


@dataclass(frozen=True, slots=True)
class WorkerConfig:
    poll_interval_seconds: float = 1.0
    shutdown_timeout_seconds: float = 5.0
    freshness_window: timedelta = DEFAULT_FRESHNESS_WINDOW


@dataclass(frozen=True, slots=True)
class BudgetConfig:
    window: timedelta = DEFAULT_BUDGET_WINDOW


def _env_flag(name: str, *, default: bool) -> bool:
    raw = optional_env_var(name)
    if raw is None:
        return default
    return raw.lower() in {"1", "true", "yes", "on"}


def get_indexing_config() -> IndexingConfig:
    return IndexingConfig(
        enrich_details=_env_flag("GRUBSTARS_ENRICH_DETAILS", default=False),
        reverse_lookup=_env_flag("GRUBSTARS_REVERSE_LOOKUP", default=True),
    )


def get_worker_config() -> WorkerConfig:
    return WorkerConfig()
