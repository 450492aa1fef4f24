"""The merged restaurant aggregate and its per-source children."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from .entity import Entity
from .records import Candidate

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .records import ProviderRecord


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(eq=False, kw_only=True)
class Rating(Entity):
    source: str
    score: float
    review_count: int | None = None


@dataclass(eq=False, kw_only=True)
class RestaurantExternalId(Entity):
    source: str
    value: str


@dataclass(eq=False, kw_only=True)
class CategoryTag(Entity):
    name: str


@dataclass(eq=False, kw_only=True)
class Photo(Entity):
    source: str
    url: str


@dataclass(eq=False, kw_only=True)
class Restaurant(Entity):
    """A physical establishment, merged from one or more provider records.

    Holds at most one rating and one external id per source. Attribute
    back-filling never replaces a value that is already present.
    """

    name: str
    address: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    phone: str | None = None
    location: str | None = None
    created_at: datetime = field(default_factory=_utcnow)
    last_enriched_at: datetime | None = None

    _ratings: list[Rating] = field(default_factory=list["Rating"], repr=False, init=False)
    _external_ids: list[RestaurantExternalId] = field(
        default_factory=list["RestaurantExternalId"], repr=False, init=False
    )
    _categories: list[CategoryTag] = field(
        default_factory=list["CategoryTag"], repr=False, init=False
    )
    _photos: list[Photo] = field(default_factory=list["Photo"], repr=False, init=False)

    @classmethod
    def from_record(
        cls, record: ProviderRecord, *, source: str, location: str | None = None
    ) -> Restaurant:
        restaurant = cls(
            name=record.name,
            address=record.address,
            latitude=record.latitude,
            longitude=record.longitude,
            phone=record.phone,
            location=location,
        )
        restaurant.absorb_record(record, source=source)
        return restaurant

    # read access -------------------------------------------------------------

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @property
    def ratings(self) -> tuple[Rating, ...]:
        return tuple(self._ratings)

    @property
    def external_ids(self) -> tuple[RestaurantExternalId, ...]:
        return tuple(self._external_ids)

    @property
    def categories(self) -> tuple[str, ...]:
        return tuple(tag.name for tag in self._categories)

    @property
    def photos(self) -> tuple[Photo, ...]:
        return tuple(self._photos)

    @property
    def sources(self) -> frozenset[str]:
        return frozenset(ext.source for ext in self._external_ids)

    def rating_for(self, source: str) -> Rating | None:
        return next((rating for rating in self._ratings if rating.source == source), None)

    def external_id_for(self, source: str) -> str | None:
        return next((ext.value for ext in self._external_ids if ext.source == source), None)

    def to_candidate(self) -> Candidate:
        return Candidate(
            id=self.id,
            name=self.name,
            address=self.address,
            latitude=self.latitude,
            longitude=self.longitude,
            phone=self.phone,
        )

    # mutation ----------------------------------------------------------------

    def upsert_rating(self, source: str, score: float, review_count: int | None) -> None:
        # updated in place: replacing the row would collide with the
        # (restaurant, source) unique constraint during flush
        existing = self.rating_for(source)
        if existing is None:
            self._ratings.append(Rating(source=source, score=score, review_count=review_count))
            return
        existing.score = score
        existing.review_count = review_count

    def set_external_id(self, source: str, value: str) -> None:
        existing = next((ext for ext in self._external_ids if ext.source == source), None)
        if existing is None:
            self._external_ids.append(RestaurantExternalId(source=source, value=value))
            return
        existing.value = value

    def add_categories(self, names: Iterable[str]) -> None:
        known = {name.casefold() for name in self.categories}
        for name in names:
            cleaned = name.strip()
            if not cleaned or cleaned.casefold() in known:
                continue
            known.add(cleaned.casefold())
            self._categories.append(CategoryTag(name=cleaned))

    def add_photos(self, source: str, urls: Iterable[str]) -> None:
        known = {photo.url for photo in self._photos}
        for url in urls:
            if not url or url in known:
                continue
            known.add(url)
            self._photos.append(Photo(source=source, url=url))

    def backfill(self, record: ProviderRecord, *, location: str | None = None) -> list[str]:
        """Fill attributes that are currently missing; return the names filled."""

        filled: list[str] = []
        if self.address is None and record.address:
            self.address = record.address
            filled.append("address")
        if self.phone is None and record.phone:
            self.phone = record.phone
            filled.append("phone")
        if not self.has_coordinates and record.has_coordinates:
            self.latitude = record.latitude
            self.longitude = record.longitude
            filled.append("coordinates")
        if self.location is None and location:
            self.location = location
            filled.append("location")
        return filled

    def absorb_record(self, record: ProviderRecord, *, source: str) -> None:
        """Attach the per-source data carried by ``record``."""

        self.set_external_id(source, record.external_id)
        if record.rating is not None:
            self.upsert_rating(source, record.rating, record.review_count)
        self.add_categories(record.categories)
        self.add_photos(source, record.photos)
        self.last_enriched_at = _utcnow()

    def absorb_duplicate(self, duplicate: Restaurant) -> None:
        """Take over per-source data from ``duplicate`` for sources not yet present.

        External ids and ratings are moved rather than copied so their unique
        keys never exist twice. The caller deletes ``duplicate`` afterwards.
        """

        own_sources = self.sources
        for ext in list(duplicate._external_ids):
            if ext.source not in own_sources:
                duplicate._external_ids.remove(ext)
                self._external_ids.append(ext)
        rated = {rating.source for rating in self._ratings}
        for rating in list(duplicate._ratings):
            if rating.source not in rated:
                duplicate._ratings.remove(rating)
                self._ratings.append(rating)
        self.add_categories(duplicate.categories)
        for photo in duplicate.photos:
            self.add_photos(photo.source, (photo.url,))
        if self.address is None:
            self.address = duplicate.address
        if self.phone is None:
            self.phone = duplicate.phone
        if not self.has_coordinates and duplicate.has_coordinates:
            self.latitude = duplicate.latitude
            self.longitude = duplicate.longitude
        if self.location is None:
            self.location = duplicate.location
        self.last_enriched_at = _utcnow()
