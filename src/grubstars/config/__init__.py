"""Application configuration helpers."""

from __future__ import annotations

from .env import optional_env_int, optional_env_var
from .errors import ConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .indexing import (
    BudgetConfig,
    IndexingConfig,
    WorkerConfig,
    get_indexing_config,
    get_worker_config,
)
from .logging import configure_logging
from .matching import FORWARD_INDEX_POLICY, REVERSE_LOOKUP_POLICY, MatchPolicy, MatchWeights
from .providers import (
    GoogleConfig,
    TripAdvisorConfig,
    YelpConfig,
    get_google_config,
    get_tripadvisor_config,
    get_yelp_config,
)
from .storage import StorageConfig, get_database_uri, get_storage_config

__all__ = [
    "FORWARD_INDEX_POLICY",
    "REVERSE_LOOKUP_POLICY",
    "BudgetConfig",
    "ConfigurationError",
    "GoogleConfig",
    "IndexingConfig",
    "MatchPolicy",
    "MatchWeights",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "TripAdvisorConfig",
    "WorkerConfig",
    "YelpConfig",
    "configure_logging",
    "get_database_uri",
    "get_google_config",
    "get_indexing_config",
    "get_storage_config",
    "get_tripadvisor_config",
    "get_worker_config",
    "get_yelp_config",
    "optional_env_int",
    "optional_env_var",
]
