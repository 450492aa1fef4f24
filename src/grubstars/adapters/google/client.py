"""Google Places text search adapter."""

from __future__ import annotations

import asyncio
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
from grubstars.config.providers import GOOGLE_BASE_URL, GoogleConfig, get_google_config
from grubstars.domain.errors import ProviderUnavailableError, RecordMalformedError
from grubstars.domain.model import Provider
from grubstars.domain.ports import ProviderAdapter, SearchPage

from .schema import OK_STATUSES, DetailsResponse, StatusEnvelope, TextSearchResponse
from .translator import parse_place

if TYPE_CHECKING:
    from aiolimiter import AsyncLimiter
    from pydantic import BaseModel

    from grubstars.domain.model import ProviderRecord

log = getLogger(__name__)

PAGE_SIZE = 20
DETAIL_FIELDS = (
    "place_id,name,formatted_address,formatted_phone_number,geometry,"
    "rating,user_ratings_total,types,url,photos"
)


def _error_message(payload: object) -> str | None:
    if not isinstance(payload, dict):
        return None
    try:
        envelope = StatusEnvelope.model_validate(payload)
    except ValidationError:
        return None
    if envelope.status in OK_STATUSES:
        return None
    if envelope.error_message:
        return f"{envelope.status}: {envelope.error_message}"
    return envelope.status


def area_query(location: str, category: str | None) -> str:
    return f"{category} in {location}" if category else f"restaurants in {location}"


def _decode_token(page_token: str | None) -> tuple[int, str | None]:
    if not page_token:
        return 0, None
    fetched, _, token = page_token.partition(":")
    return int(fetched), token or None


@dataclass(slots=True)
class GoogleAdapter:
    """Text search paged through Google's ``next_page_token``.

    Page tokens are ``"<results so far>:<google token>"``. Google only honours a
    token after a short delay, so follow-up pages wait ``page_delay_seconds``.
    """

    config: GoogleConfig = field(default_factory=get_google_config)
    client_factory: ClientFactory = field(default=default_client_factory)
    limiter: AsyncLimiter | None = field(init=False, repr=False)
    runner: LoopRunner = field(default_factory=LoopRunner, init=False, repr=False)

    def __post_init__(self) -> None:
        self.limiter = build_limiter(self.config.resilience.ratelimit)

    @property
    def source_name(self) -> str:
        return Provider.GOOGLE.value

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
        return self.runner.run(self._search_page(location, category, page_token))

    def search_by_name(self, name: str, location: str | None = None) -> list[ProviderRecord]:
        query = f"{name} in {location}" if location else name
        response = self._text_search({"query": query})
        return parse_records(self.source_name, response.results[:10], self._parse)

    def get_details(self, external_id: str) -> ProviderRecord:
        payload = self.runner.run(
            self._get("details/json", {"place_id": external_id, "fields": DETAIL_FIELDS})
        )
        response = self._validate(DetailsResponse, payload, "details response")
        if response.result is None:
            raise RecordMalformedError(self.source_name, f"no details for place {external_id}")
        return self._parse(response.result)

    async def _search_page(
        self, location: str, category: str | None, page_token: str | None
    ) -> SearchPage:
        fetched, google_token = _decode_token(page_token)
        cap = self.config.max_results
        if google_token is None:
            params = {"query": area_query(location, category)}
        else:
            await asyncio.sleep(self.config.page_delay_seconds)
            params = {"pagetoken": google_token}

        response = await self._text_search_async(params)
        raw = response.results[: max(cap - fetched, 0)]
        records = parse_records(self.source_name, raw, self._parse)
        fetched += len(raw)

        next_token = None
        if response.next_page_token and raw and fetched < cap:
            next_token = f"{fetched}:{response.next_page_token}"
        estimated_total = min(cap, fetched + (PAGE_SIZE if next_token else 0))
        log.debug("Google page: %s records, %s fetched so far", len(records), fetched)
        return SearchPage(
            records=records, next_page_token=next_token, estimated_total=estimated_total
        )

    def _text_search(self, params: dict[str, str | int]) -> TextSearchResponse:
        return self.runner.run(self._text_search_async(params))

    async def _text_search_async(self, params: dict[str, str | int]) -> TextSearchResponse:
        payload = await self._get("textsearch/json", params)
        return self._validate(TextSearchResponse, payload, "search response")

    async def _get(self, path: str, params: dict[str, str | int]) -> object:
        if not self.config.api_key:
            raise ProviderUnavailableError(self.source_name, "GOOGLE_API_KEY is not set")
        async with self.client_factory(self.config.resilience, self.limiter) as client:
            return await get_json(
                client,
                self.source_name,
                path,
                params={**params, "key": self.config.api_key},
                error_message=_error_message,
            )

    def _validate[TModel: BaseModel](
        self, model: type[TModel], payload: object, kind: str
    ) -> TModel:
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            detail = describe_validation_error(kind, exc)
            raise ProviderUnavailableError(self.source_name, detail) from exc

    def _parse(self, payload: object) -> ProviderRecord:
        return parse_place(
            payload,
            photo_base_url=self.config.resilience.base_url or GOOGLE_BASE_URL,
            max_photos=self.config.max_photos,
        )


if TYPE_CHECKING:
    _adapter_check: ProviderAdapter = GoogleAdapter()
