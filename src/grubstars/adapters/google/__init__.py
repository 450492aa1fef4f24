"""Public interface for the Google Places adapter."""

from __future__ import annotations

from .client import GoogleAdapter, area_query
from .schema import PlacePayload, TextSearchResponse
from .translator import GENERIC_TYPES, parse_place, place_to_record

__all__ = [
    "GENERIC_TYPES",
    "GoogleAdapter",
    "PlacePayload",
    "TextSearchResponse",
    "area_query",
    "parse_place",
    "place_to_record",
]
