"""Translate Google Places payloads into provider records."""

from __future__ import annotations

from pydantic import ValidationError

from grubstars.adapters.provider import describe_validation_error
from grubstars.domain.errors import RecordMalformedError
from grubstars.domain.model import Provider, ProviderRecord

from .schema import PlacePayload

# types Google attaches to nearly every place; they say nothing about the cuisine
GENERIC_TYPES = frozenset({"point_of_interest", "establishment", "food"})


def parse_place(payload: object, *, photo_base_url: str, max_photos: int = 5) -> ProviderRecord:
    try:
        place = PlacePayload.model_validate(payload)
    except ValidationError as exc:
        detail = describe_validation_error("place", exc)
        raise RecordMalformedError(Provider.GOOGLE, detail) from exc
    return place_to_record(place, photo_base_url=photo_base_url, max_photos=max_photos)


def place_to_record(
    place: PlacePayload, *, photo_base_url: str, max_photos: int = 5
) -> ProviderRecord:
    location = place.geometry.location if place.geometry else None
    return ProviderRecord(
        external_id=place.place_id,
        name=place.name,
        address=place.formatted_address or place.vicinity,
        latitude=location.lat if location else None,
        longitude=location.lng if location else None,
        phone=place.formatted_phone_number,
        rating=place.rating,
        review_count=place.user_ratings_total,
        categories=tuple(kind for kind in place.types if kind not in GENERIC_TYPES),
        photos=_photo_urls(place, photo_base_url, max_photos),
        url=place.url,
    )


def _photo_urls(place: PlacePayload, base_url: str, limit: int) -> tuple[str, ...]:
    # stored without the API key; it is appended when the photo is fetched
    urls: list[str] = []
    for photo in place.photos[:limit]:
        if photo.url:
            urls.append(photo.url)
        elif photo.photo_reference:
            urls.append(
                f"{base_url.rstrip('/')}/photo?maxwidth=400&photoreference={photo.photo_reference}"
            )
    return tuple(urls)
