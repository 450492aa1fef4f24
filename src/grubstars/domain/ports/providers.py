"""Ports for restaurant data providers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from grubstars.domain.model import ProviderRecord


@dataclass(slots=True)
class SearchPage:
    """One page of an area search.

    ``next_page_token`` is opaque to callers and ``None`` on the last page.
    ``estimated_total`` already respects the provider's own result cap.
    """

    records: list[ProviderRecord] = field(default_factory=list["ProviderRecord"])
    next_page_token: str | None = None
    estimated_total: int = 0


@runtime_checkable
class ProviderAdapter(Protocol):
    """Contract every restaurant provider implements.

    Implementations raise ``ProviderUnavailableError`` for transport failures or
    error payloads and ``RecordMalformedError`` for a single unusable record.
    """

    @property
    def source_name(self) -> str: ...

    @property
    def request_limit(self) -> int | None: ...

    def is_configured(self) -> bool: ...

    def search_by_area(
        self,
        location: str,
        category: str | None = None,
        page_token: str | None = None,
    ) -> SearchPage: ...

    def search_by_name(self, name: str, location: str | None = None) -> list[ProviderRecord]: ...

    def get_details(self, external_id: str) -> ProviderRecord: ...


__all__ = ["ProviderAdapter", "SearchPage"]
