"""TripAdvisor Content API adapter."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from pydantic import ValidationError

from grubstars.adapters.http_resilience import build_limiter
from grubstars.adapters.provider import (
    ClientFactory,
    LoopRunner,
    default_client_factory,
    describe_validation_error,
    get_json,
    parse_records,
)
from grubstars.config.providers import TripAdvisorConfig, get_tripadvisor_config
from grubstars.domain.errors import ProviderUnavailableError
from grubstars.domain.model import Provider
from grubstars.domain.ports import ProviderAdapter, SearchPage

from .schema import ErrorResponse, SearchResponse
from .translator import parse_location

if TYPE_CHECKING:
    from aiolimiter import AsyncLimiter

    from grubstars.domain.model import ProviderRecord

log = getLogger(__name__)


def _error_message(payload: object) -> str | None:
    if not isinstance(payload, dict) or not ({"error", "message"} & payload.keys()):
        return None
    if "data" in payload:
        return None
    try:
        response = ErrorResponse.model_validate(payload)
    except ValidationError:
        return str(payload)
    if response.error is not None:
        return response.error.message or response.error.type or "unknown error"
    return response.message


def search_query(location: str, category: str | None) -> str:
    return f"{category} in {location}" if category else f"restaurants in {location}"


@dataclass(slots=True)
class TripAdvisorAdapter:
    """Location search returning a single unpaged result list.

    Search hits carry no coordinates, phone or categories; ``get_details``
    fills them in.
    """

    config: TripAdvisorConfig = field(default_factory=get_tripadvisor_config)
    client_factory: ClientFactory = field(default=default_client_factory)
    limiter: AsyncLimiter | None = field(init=False, repr=False)
    runner: LoopRunner = field(default_factory=LoopRunner, init=False, repr=False)

    def __post_init__(self) -> None:
        self.limiter = build_limiter(self.config.resilience.ratelimit)

    @property
    def source_name(self) -> str:
        return Provider.TRIPADVISOR.value

    @property
    def request_limit(self) -> int | None:
        return self.config.request_limit

    def is_configured(self) -> bool:
        return self.config.is_configured

    def search_by_area(
        self,
        location: str,
        category: str | None = None,
        page_token: str | None = None,
    ) -> SearchPage:
        if page_token is not None:
            return SearchPage(records=[], next_page_token=None, estimated_total=0)
        records = self.runner.run(self._search(search_query(location, category)))
        return SearchPage(records=records, next_page_token=None, estimated_total=len(records))

    def search_by_name(self, name: str, location: str | None = None) -> list[ProviderRecord]:
        query = f"{name} in {location}" if location else name
        return self.runner.run(self._search(query))

    def get_details(self, external_id: str) -> ProviderRecord:
        payload = self.runner.run(self._get(f"location/{external_id}/details", {}))
        return parse_location(payload)

    async def _search(self, query: str) -> list[ProviderRecord]:
        payload = await self._get("location/search", {"searchQuery": query})
        try:
            response = SearchResponse.model_validate(payload)
        except ValidationError as exc:
            detail = describe_validation_error("search response", exc)
            raise ProviderUnavailableError(self.source_name, detail) from exc
        return parse_records(self.source_name, response.data, parse_location)

    async def _get(self, path: str, params: dict[str, str | int]) -> object:
        if not self.config.api_key:
            raise ProviderUnavailableError(self.source_name, "TRIPADVISOR_API_KEY is not set")
        async with self.client_factory(self.config.resilience, self.limiter) as client:
            return await get_json(
                client,
                self.source_name,
                path,
                params={**params, "key": self.config.api_key, "language": self.config.language},
                error_message=_error_message,
            )


if TYPE_CHECKING:
    _adapter_check: ProviderAdapter = TripAdvisorAdapter()
