"""Per-provider request budget snapshot."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime, timedelta


@dataclass(frozen=True, slots=True)
class BudgetState:
    provider: str
    request_count: int
    request_limit: int | None
    window_started_at: datetime

    @property
    def is_unlimited(self) -> bool:
        return self.request_limit is None

    @property
    def remaining(self) -> int | None:
        if self.request_limit is None:
            return None
        return max(self.request_limit - self.request_count, 0)

    def window_elapsed(self, now: datetime, window: timedelta) -> bool:
        return now - self.window_started_at >= window
