"""Public interface for the Yelp adapter."""

from __future__ import annotations

from .client import YelpAdapter
from .schema import BusinessPayload, SearchResponse
from .translator import business_to_record, parse_business

__all__ = [
    "BusinessPayload",
    "SearchResponse",
    "YelpAdapter",
    "business_to_record",
    "parse_business",
]
