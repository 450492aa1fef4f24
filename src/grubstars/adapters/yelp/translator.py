"""Translate Yelp business payloads into provider records."""

from __future__ import annotations

from pydantic import ValidationError

from grubstars.adapters.provider import describe_validation_error
from grubstars.domain.errors import RecordMalformedError
from grubstars.domain.model import Provider, ProviderRecord

from .schema import BusinessPayload


def parse_business(payload: object) -> ProviderRecord:
    try:
        business = BusinessPayload.model_validate(payload)
    except ValidationError as exc:
        detail = describe_validation_error("business", exc)
        raise RecordMalformedError(Provider.YELP, detail) from exc
    return business_to_record(business)


def business_to_record(business: BusinessPayload) -> ProviderRecord:
    coordinates = business.coordinates
    photos = business.photos or ([business.image_url] if business.image_url else [])
    return ProviderRecord(
        external_id=business.id,
        name=business.name,
        address=business.location.joined() if business.location else None,
        latitude=coordinates.latitude if coordinates else None,
        longitude=coordinates.longitude if coordinates else None,
        phone=business.phone,
        rating=business.rating,
        review_count=business.review_count,
        categories=tuple(category.alias for category in business.categories),
        photos=tuple(photos),
        url=business.url,
    )

