"""Pydantic models describing the TripAdvisor Content API payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


class TripAdvisorBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class AddressPayload(TripAdvisorBaseModel):
    street1: str | None = None
    street2: str | None = None
    city: str | None = None
    state: str | None = None
    postalcode: str | None = None
    country: str | None = None
    latitude: float | None = None
    longitude: float | None = None

    _normalize = field_validator(
        "street1",
        "street2",
        "city",
        "state",
        "postalcode",
        "country",
        "latitude",
        "longitude",
        mode="before",
    )(_blank_to_none)

    def joined(self) -> str | None:
        parts = [self.street1, self.street2, self.city, self.state, self.postalcode, self.country]
        present = [part for part in parts if part]
        return ", ".join(present) or None


class NamedPayload(TripAdvisorBaseModel):
    name: str | None = None


class LocationPayload(TripAdvisorBaseModel):
    """A search hit or a full location detail record.

    The API sends numbers as strings; coordinates appear either at the top
    level (details) or inside ``address_obj``.
    """

    location_id: str
    name: str
    address_obj: AddressPayload | None = None
    latitude: float | None = None
    longitude: float | None = None
    phone: str | None = None
    rating: float | None = None
    num_reviews: int | None = None
    web_url: str | None = None
    category: NamedPayload | None = None
    subcategory: list[NamedPayload] = Field(default_factory=list[NamedPayload])

    _normalize = field_validator(
        "latitude", "longitude", "phone", "rating", "num_reviews", "web_url", mode="before"
    )(_blank_to_none)

    @field_validator("location_id", mode="before")
    @classmethod
    def _stringify_id(cls, value: object) -> object:
        return str(value) if isinstance(value, int) else value

    @field_validator("location_id", "name")
    @classmethod
    def _require_text(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("must not be blank")
        return stripped

    @property
    def coordinates(self) -> tuple[float | None, float | None]:
        if self.latitude is not None and self.longitude is not None:
            return self.latitude, self.longitude
        if self.address_obj is not None:
            return self.address_obj.latitude, self.address_obj.longitude
        return None, None

    @property
    def category_names(self) -> tuple[str, ...]:
        names: list[str] = []
        if self.category is not None and self.category.name:
            names.append(self.category.name)
        names.extend(sub.name for sub in self.subcategory if sub.name)
        return tuple(dict.fromkeys(names))


class SearchResponse(TripAdvisorBaseModel):
    data: list[object] = Field(default_factory=list[object])


class ErrorDetail(TripAdvisorBaseModel):
    message: str | None = None
    type: str | None = None
    code: int | None = None


class ErrorResponse(TripAdvisorBaseModel):
    error: ErrorDetail | None = None
    message: str | None = None
