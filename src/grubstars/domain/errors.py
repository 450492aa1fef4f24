"""Failure conditions raised across the indexing domain."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from grubstars.domain.model.enums import JobStatus


class GrubstarsError(Exception):
    """Base class for domain failures."""


class ProviderError(GrubstarsError):
    """A failure attributed to one external provider."""

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider


class ProviderUnavailableError(ProviderError):
    """The provider could not be reached or answered with an error payload."""


class ProviderBudgetExhaustedError(ProviderError):
    """The provider's request budget for the current window is used up."""

    def __init__(self, provider: str, limit: int | None = None) -> None:
        detail = "request budget exhausted"
        if limit is not None:
            detail = f"{detail} ({limit} requests per window)"
        super().__init__(provider, detail)
        self.limit = limit


class RecordMalformedError(ProviderError):
    """A single provider record could not be interpreted."""


class NoProvidersConfiguredError(GrubstarsError):
    """No provider adapter has credentials; nothing can be indexed."""

    def __init__(self) -> None:
        super().__init__("No restaurant providers are configured")


class PersistenceUnavailableError(GrubstarsError):
    """The store rejected a read or write."""


class InvalidJobTransitionError(GrubstarsError):
    """A job was asked to move along an edge its lifecycle does not allow."""

    def __init__(self, job_id: object, current: JobStatus | None, target: JobStatus) -> None:
        state = current.value if current is not None else "missing"
        super().__init__(f"Job {job_id} cannot move from {state} to {target.value}")
        self.job_id = job_id
        self.current = current
        self.target = target


class JobNotFoundError(GrubstarsError):
    """No job exists under the requested id."""


class RestaurantNotFoundError(GrubstarsError):
    """No restaurant exists under the requested id."""

    def __init__(self, restaurant_id: object) -> None:
        super().__init__(f"No restaurant with id {restaurant_id}")
        self.restaurant_id = restaurant_id
