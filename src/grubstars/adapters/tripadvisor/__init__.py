"""Public interface for the TripAdvisor adapter."""

from __future__ import annotations

from .client import TripAdvisorAdapter, search_query
from .schema import LocationPayload, SearchResponse
from .translator import location_to_record, parse_location

__all__ = [
    "LocationPayload",
    "SearchResponse",
    "TripAdvisorAdapter",
    "location_to_record",
    "parse_location",
    "search_query",
]
