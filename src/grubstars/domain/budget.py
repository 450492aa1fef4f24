"""Per-provider request budgets stored alongside the index.

Counters live in the same database as jobs so they survive restarts. Each
operation is its own short unit of work; ``acquire`` relies on a conditional
increment in the store so two callers cannot both take the last request.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from grubstars.config.indexing import BudgetConfig
from grubstars.domain.errors import ProviderBudgetExhaustedError

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from grubstars.domain.model import BudgetState
    from grubstars.domain.ports import IndexRepositories, IndexUnitOfWorkFactory

log = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class BudgetTracker:
    """Counts provider requests against an optional limit per window.

    A limit of ``None`` means unlimited; such providers are still counted.
    """

    def __init__(
        self,
        uow_factory: IndexUnitOfWorkFactory,
        limits: Mapping[str, int | None],
        *,
        config: BudgetConfig | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._uow_factory = uow_factory
        self._limits = dict(limits)
        self._config = config or BudgetConfig()
        self._clock = clock

    def limit_for(self, provider: str) -> int | None:
        return self._limits.get(provider)

    def can_call(self, provider: str) -> bool:
        state = self.state(provider)
        return state.remaining is None or state.remaining > 0

    def remaining(self, provider: str) -> int | None:
        return self.state(provider).remaining

    def state(self, provider: str) -> BudgetState:
        with self._uow_factory() as uow:
            repositories = uow.repositories
            self._prepare(repositories, provider)
            state = repositories.budgets.get(provider)
            uow.commit()
        if state is None:
            raise LookupError(f"Budget row for {provider} vanished")
        return state

    def record_call(self, provider: str) -> None:
        """Count one request regardless of the limit."""

        with self._uow_factory() as uow:
            repositories = uow.repositories
            self._prepare(repositories, provider)
            repositories.budgets.increment(provider)
            uow.commit()

    def acquire(self, provider: str) -> None:
        """Reserve one request or raise ``ProviderBudgetExhaustedError``."""

        with self._uow_factory() as uow:
            repositories = uow.repositories
            self._prepare(repositories, provider)
            taken = repositories.budgets.try_increment(provider)
            uow.commit()
        if not taken:
            log.warning("Request budget for %s is exhausted", provider)
            raise ProviderBudgetExhaustedError(provider, self.limit_for(provider))

    def reset_if_window_elapsed(self, provider: str) -> bool:
        with self._uow_factory() as uow:
            repositories = uow.repositories
            now = self._clock()
            repositories.budgets.ensure(provider, self.limit_for(provider), now)
            reset = repositories.budgets.reset_if_elapsed(provider, now, self._config.window)
            uow.commit()
        if reset:
            log.info("Request budget window for %s restarted", provider)
        return reset

    def snapshot(self) -> list[BudgetState]:
        with self._uow_factory() as uow:
            repositories = uow.repositories
            for provider in self._limits:
                self._prepare(repositories, provider)
            states = list(repositories.budgets.list_all())
            uow.commit()
        return states

    def _prepare(self, repositories: IndexRepositories, provider: str) -> None:
        now = self._clock()
        repositories.budgets.ensure(provider, self.limit_for(provider), now)
        if repositories.budgets.reset_if_elapsed(provider, now, self._config.window):
            log.info("Request budget window for %s restarted", provider)
