"""Provider API configuration values.

A missing API key is not an error here: the provider is simply reported as
unconfigured and skipped by the indexer.
"""

from __future__ import annotations

from dataclasses import dataclass

import httpx

from .env import optional_env_int, optional_env_var
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy

YELP_BASE_URL = "https://api.yelp.com/v3"
GOOGLE_BASE_URL = "https://maps.googleapis.com/maps/api/place"
TRIPADVISOR_BASE_URL = "https://api.content.tripadvisor.com/api/v1"

PROVIDER_TIMEOUT_SECONDS = 10.0

YELP_REQUEST_LIMIT = 5000
GOOGLE_REQUEST_LIMIT = 10_000

# transport retries cover connection failures only; HTTP errors are retried by the
# indexer, which charges every attempt to the request budget
PROVIDER_RETRY = RetryPolicy(
    total=2,
    status_forcelist=frozenset(),
    retry_on_exceptions=(httpx.ConnectError, httpx.ConnectTimeout),
)


@dataclass(frozen=True)
class YelpConfig:
    """Yelp Fusion API settings."""

    api_key: str | None
    resilience: ResilienceConfig
    request_limit: int | None = YELP_REQUEST_LIMIT
    page_size: int = 50
    max_results: int = 240

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)


@dataclass(frozen=True)
class GoogleConfig:
    """Google Places API settings."""

    api_key: str | None
    resilience: ResilienceConfig
    request_limit: int | None = GOOGLE_REQUEST_LIMIT
    max_results: int = 60
    page_delay_seconds: float = 2.0
    max_photos: int = 5

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)


@dataclass(frozen=True)
class TripAdvisorConfig:
    """TripAdvisor Content API settings."""

    api_key: str | None
    resilience: ResilienceConfig
    request_limit: int | None = None
    language: str = "en"

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)


def get_yelp_config(*, resilience: ResilienceConfig | None = None) -> YelpConfig:
    return YelpConfig(
        api_key=optional_env_var("YELP_API_KEY"),
        request_limit=optional_env_int("YELP_REQUEST_LIMIT", YELP_REQUEST_LIMIT),
        resilience=resilience
        or ResilienceConfig(
            name="yelp",
            base_url=optional_env_var("YELP_API_BASE_URL") or YELP_BASE_URL,
            timeout_seconds=PROVIDER_TIMEOUT_SECONDS,
            retry=PROVIDER_RETRY,
            ratelimit=RateLimit(max_calls=5, per_seconds=1.0),
        ),
    )


def get_google_config(*, resilience: ResilienceConfig | None = None) -> GoogleConfig:
    return GoogleConfig(
        api_key=optional_env_var("GOOGLE_API_KEY"),
        request_limit=optional_env_int("GOOGLE_REQUEST_LIMIT", GOOGLE_REQUEST_LIMIT),
        resilience=resilience
        or ResilienceConfig(
            name="google",
            base_url=optional_env_var("GOOGLE_API_BASE_URL") or GOOGLE_BASE_URL,
            timeout_seconds=PROVIDER_TIMEOUT_SECONDS,
            retry=PROVIDER_RETRY,
            ratelimit=RateLimit(max_calls=10, per_seconds=1.0),
        ),
    )


def get_tripadvisor_config(*, resilience: ResilienceConfig | None = None) -> TripAdvisorConfig:
    return TripAdvisorConfig(
        api_key=optional_env_var("TRIPADVISOR_API_KEY"),
        request_limit=optional_env_int("TRIPADVISOR_REQUEST_LIMIT", None),
        resilience=resilience
        or ResilienceConfig(
            name="tripadvisor",
            base_url=optional_env_var("TRIPADVISOR_API_BASE_URL") or TRIPADVISOR_BASE_URL,
            timeout_seconds=PROVIDER_TIMEOUT_SECONDS,
            retry=PROVIDER_RETRY,
            ratelimit=RateLimit(max_calls=50, per_seconds=1.0),
        ),
    )
