"""Pydantic models describing the Google Places (legacy web service) payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

OK_STATUSES = frozenset({"OK", "ZERO_RESULTS"})


class GoogleBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class LatLngPayload(GoogleBaseModel):
    lat: float
    lng: float


class GeometryPayload(GoogleBaseModel):
    location: LatLngPayload | None = None


class PhotoPayload(GoogleBaseModel):
    photo_reference: str | None = None
    url: str | None = None


class PlacePayload(GoogleBaseModel):
    place_id: str
    name: str
    formatted_address: str | None = None
    vicinity: str | None = None
    formatted_phone_number: str | None = None
    geometry: GeometryPayload | None = None
    rating: float | None = None
    user_ratings_total: int | None = None
    types: list[str] = Field(default_factory=list[str])
    photos: list[PhotoPayload] = Field(default_factory=list[PhotoPayload])
    url: str | None = None

    @field_validator("place_id", "name")
    @classmethod
    def _require_text(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("must not be blank")
        return stripped

    @field_validator("formatted_address", "vicinity", "formatted_phone_number", mode="before")
    @classmethod
    def _blank_to_none(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip() or None
        return value


class StatusEnvelope(GoogleBaseModel):
    status: str = "OK"
    error_message: str | None = None


class TextSearchResponse(StatusEnvelope):
    results: list[object] = Field(default_factory=list[object])
    next_page_token: str | None = None


class DetailsResponse(StatusEnvelope):
    result: object | None = None
