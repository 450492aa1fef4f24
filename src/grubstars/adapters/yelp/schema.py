"""Pydantic models describing the Yelp Fusion API payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


class YelpBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class CoordinatesPayload(YelpBaseModel):
    latitude: float | None = None
    longitude: float | None = None


class LocationPayload(YelpBaseModel):
    address1: str | None = None
    address2: str | None = None
    address3: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    country: str | None = None

    _normalize_parts = field_validator(
        "address1", "address2", "address3", "city", "state", "zip_code", "country", mode="before"
    )(_blank_to_none)

    def joined(self) -> str | None:
        parts = [
            self.address1,
            self.address2,
            self.address3,
            self.city,
            self.state,
            self.zip_code,
            self.country,
        ]
        present = [part for part in parts if part]
        return ", ".join(present) or None


class CategoryPayload(YelpBaseModel):
    alias: str
    title: str | None = None


class BusinessPayload(YelpBaseModel):
    id: str
    name: str
    phone: str | None = None
    location: LocationPayload | None = None
    coordinates: CoordinatesPayload | None = None
    rating: float | None = None
    review_count: int | None = None
    categories: list[CategoryPayload] = Field(default_factory=list[CategoryPayload])
    photos: list[str] = Field(default_factory=list[str])
    image_url: str | None = None
    url: str | None = None
    is_closed: bool | None = None

    _normalize_optional = field_validator("phone", "image_url", "url", mode="before")(
        _blank_to_none
    )

    @field_validator("id", "name")
    @classmethod
    def _require_text(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("must not be blank")
        return stripped


class SearchResponse(YelpBaseModel):
    """Search envelope; businesses stay raw so one bad entry does not sink the page."""

    businesses: list[object] = Field(default_factory=list[object])
    total: int = 0


class ErrorDetail(YelpBaseModel):
    code: str | None = None
    description: str | None = None


class ErrorResponse(YelpBaseModel):
    error: ErrorDetail
