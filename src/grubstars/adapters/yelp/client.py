"""Yelp Fusion API adapter."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
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
from grubstars.config.providers import YelpConfig, get_yelp_config
from grubstars.domain.errors import ProviderUnavailableError
from grubstars.domain.model import Provider
from grubstars.domain.ports import ProviderAdapter, SearchPage

from .schema import ErrorResponse, SearchResponse
from .translator import parse_business

if TYPE_CHECKING:
    from aiolimiter import AsyncLimiter

    from grubstars.adapters.http_resilience import ResilientClient
    from grubstars.domain.model import ProviderRecord

log = getLogger(__name__)

NAME_SEARCH_LIMIT = 10


def _error_message(payload: object) -> str | None:
    if not isinstance(payload, dict) or "error" not in payload:
        return None
    try:
        error = ErrorResponse.model_validate(payload).error
    except ValidationError:
        return str(payload["error"])
    return error.description or error.code or "unknown error"


@dataclass(slots=True)
class YelpAdapter:
    """Offset-paged business search, capped at ``config.max_results`` results.

    Page tokens are the next offset rendered as a string.
    """

    config: YelpConfig = field(default_factory=get_yelp_config)
    client_factory: ClientFactory = field(default=default_client_factory)
    limiter: AsyncLimiter | None = field(init=False, repr=False)
    runner: LoopRunner = field(default_factory=LoopRunner, init=False, repr=False)

    def __post_init__(self) -> None:
        self.limiter = build_limiter(self.config.resilience.ratelimit)

    @property
    def source_name(self) -> str:
        return Provider.YELP.value

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
        offset = int(page_token) if page_token else 0
        return self.runner.run(self._search_page(location, category, offset))

    def search_by_name(self, name: str, location: str | None = None) -> list[ProviderRecord]:
        params: dict[str, str | int] = {"term": name, "limit": NAME_SEARCH_LIMIT}
        if location:
            params["location"] = location
        return self.runner.run(self._search(params))[0]

    def get_details(self, external_id: str) -> ProviderRecord:
        return self.runner.run(self._details(external_id))

    async def _search_page(self, location: str, category: str | None, offset: int) -> SearchPage:
        cap = self.config.max_results
        limit = min(self.config.page_size, cap - offset)
        if limit <= 0:
            return SearchPage(records=[], next_page_token=None, estimated_total=cap)

        params: dict[str, str | int] = {"location": location, "limit": limit, "offset": offset}
        if category:
            params["term"] = category
            params["categories"] = category
        records, returned, total = await self._search(params)

        estimated_total = min(total, cap)
        next_offset = offset + returned
        next_token = str(next_offset) if returned and next_offset < estimated_total else None
        log.debug(
            "Yelp page at offset %s: %s records, %s estimated",
            offset,
            len(records),
            estimated_total,
        )
        return SearchPage(
            records=records, next_page_token=next_token, estimated_total=estimated_total
        )

    async def _search(
        self, params: dict[str, str | int]
    ) -> tuple[list[ProviderRecord], int, int]:
        async with self._client() as client:
            payload = await get_json(
                client,
                self.source_name,
                "businesses/search",
                params=params,
                error_message=_error_message,
            )
        try:
            response = SearchResponse.model_validate(payload)
        except ValidationError as exc:
            detail = describe_validation_error("search response", exc)
            raise ProviderUnavailableError(self.source_name, detail) from exc
        records = parse_records(self.source_name, response.businesses, parse_business)
        return records, len(response.businesses), response.total

    async def _details(self, external_id: str) -> ProviderRecord:
        async with self._client() as client:
            payload = await get_json(
                client,
                self.source_name,
                f"businesses/{external_id}",
                error_message=_error_message,
            )
        return parse_business(payload)

    def _client(self) -> ResilientClient:
        if not self.config.api_key:
            raise ProviderUnavailableError(self.source_name, "YELP_API_KEY is not set")
        headers = {
            **(self.config.resilience.default_headers or {}),
            "Authorization": f"Bearer {self.config.api_key}",
            "Accept": "application/json",
        }
        resilience = replace(self.config.resilience, default_headers=headers)
        return self.client_factory(resilience, self.limiter)


if TYPE_CHECKING:
    _adapter_check: ProviderAdapter = YelpAdapter()
