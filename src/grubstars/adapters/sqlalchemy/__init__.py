"""SQLAlchemy adapter package for grubstars."""

from __future__ import annotations

from .mappings import create_all_tables, mapper_registry, start_mappers
from .repositories import (
    SqlAlchemyBudgetRepository,
    SqlAlchemyJobRepository,
    SqlAlchemyRestaurantRepository,
)
from .unit_of_work import (
    SqlAlchemyIndexUnitOfWork,
    StartupError,
    configured_engine,
    is_started,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyBudgetRepository",
    "SqlAlchemyIndexUnitOfWork",
    "SqlAlchemyJobRepository",
    "SqlAlchemyRestaurantRepository",
    "StartupError",
    "configured_engine",
    "create_all_tables",
    "is_started",
    "mapper_registry",
    "shutdown",
    "start_mappers",
    "startup",
]
