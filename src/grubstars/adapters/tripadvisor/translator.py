"""Translate TripAdvisor location payloads into provider records."""

from __future__ import annotations

from pydantic import ValidationError

from grubstars.adapters.provider import describe_validation_error
from grubstars.domain.errors import RecordMalformedError
from grubstars.domain.model import Provider, ProviderRecord

from .schema import LocationPayload


def parse_location(payload: object) -> ProviderRecord:
    try:
        location = LocationPayload.model_validate(payload)
    except ValidationError as exc:
        detail = describe_validation_error("location", exc)
        raise RecordMalformedError(Provider.TRIPADVISOR, detail) from exc
    return location_to_record(location)


def location_to_record(location: LocationPayload) -> ProviderRecord:
    latitude, longitude = location.coordinates
    return ProviderRecord(
        external_id=location.location_id,
        name=location.name,
        address=location.address_obj.joined() if location.address_obj else None,
        latitude=latitude,
        longitude=longitude,
        phone=location.phone,
        rating=location.rating,
        review_count=location.num_reviews,
        categories=location.category_names,
        url=location.web_url,
    )
