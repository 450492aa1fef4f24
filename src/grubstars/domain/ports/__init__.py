"""Domain port definitions for adapters."""

from __future__ import annotations

from .persistence import BudgetRepository, JobRepository, Repository, RestaurantRepository
from .providers import ProviderAdapter, SearchPage
from .unit_of_work import (
    IndexRepositories,
    IndexUnitOfWork,
    IndexUnitOfWorkFactory,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "BudgetRepository",
    "IndexRepositories",
    "IndexUnitOfWork",
    "IndexUnitOfWorkFactory",
    "JobRepository",
    "ProviderAdapter",
    "Repository",
    "RepositoryCollection",
    "RestaurantRepository",
    "SearchPage",
    "UnitOfWork",
]
