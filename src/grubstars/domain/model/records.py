"""Normalized provider output and the read-only candidate projection."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from uuid import UUID


@dataclass(frozen=True, slots=True, kw_only=True)
class ProviderRecord:
    """One business as reported by a single provider.

    ``external_id`` is the provider's own identifier, without any source prefix.
    """

    external_id: str
    name: str
    address: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    phone: str | None = None
    rating: float | None = None
    review_count: int | None = None
    categories: tuple[str, ...] = field(default_factory=tuple)
    photos: tuple[str, ...] = field(default_factory=tuple)
    url: str | None = None

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @property
    def is_shallow(self) -> bool:
        """Whether a detail lookup could fill fields the search response omitted."""

        return not self.has_coordinates or self.phone is None or not self.categories

    def enriched_with(self, details: ProviderRecord) -> ProviderRecord:
        """Return a copy where missing values are taken from ``details``."""

        return replace(
            self,
            address=self.address or details.address,
            latitude=self.latitude if self.latitude is not None else details.latitude,
            longitude=self.longitude if self.longitude is not None else details.longitude,
            phone=self.phone or details.phone,
            rating=self.rating if self.rating is not None else details.rating,
            review_count=(
                self.review_count if self.review_count is not None else details.review_count
            ),
            categories=self.categories or details.categories,
            photos=self.photos or details.photos,
            url=self.url or details.url,
        )


@dataclass(frozen=True, slots=True, kw_only=True)
class Candidate:
    """Read-only view of a stored restaurant considered for a merge."""

    id: UUID
    name: str
    address: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    phone: str | None = None

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None
