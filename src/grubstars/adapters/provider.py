"""Shared plumbing for the restaurant provider adapters."""

from __future__ import annotations

import asyncio
import threading
import weakref
from logging import getLogger
from typing import TYPE_CHECKING, Any

import httpx

from grubstars.adapters.http_resilience import ResilientClient
from grubstars.domain.errors import ProviderUnavailableError, RecordMalformedError

if TYPE_CHECKING:
    from collections.abc import Callable, Coroutine, Iterable, Mapping

    from aiolimiter import AsyncLimiter
    from pydantic import ValidationError

    from grubstars.config.http_resilience import ResilienceConfig
    from grubstars.domain.model import ProviderRecord

log = getLogger(__name__)

type ClientFactory = Callable[[ResilienceConfig, AsyncLimiter | None], ResilientClient]


def default_client_factory(
    config: ResilienceConfig, limiter: AsyncLimiter | None = None
) -> ResilientClient:
    return ResilientClient(config, limiter=limiter)


class LoopRunner:
    """Drives one adapter's coroutines on a single long-lived event loop.

    The adapter's rate limiter binds to the loop it first waits on, so all of
    that adapter's requests run here. Calls from different threads take turns.
    """

    def __init__(self) -> None:
        self._runner = asyncio.Runner()
        self._lock = threading.Lock()
        self._finalizer = weakref.finalize(self, self._runner.close)

    def run[T](self, coroutine: Coroutine[Any, Any, T]) -> T:
        with self._lock:
            return self._runner.run(coroutine)

    def close(self) -> None:
        self._finalizer()


async def get_json(
    client: ResilientClient,
    source: str,
    path: str,
    *,
    params: Mapping[str, str | int] | None = None,
    error_message: Callable[[object], str | None] | None = None,
) -> object:
    """GET ``path`` and decode the body; failures become ``ProviderUnavailableError``.

    ``error_message`` extracts a provider-specific error description from a
    decoded body, returning ``None`` when the body is not an error.
    """

    try:
        response = await client.get(path, params=httpx.QueryParams(params or {}))
    except httpx.HTTPError as exc:
        raise ProviderUnavailableError(source, f"request to {path} failed: {exc}") from exc

    try:
        payload: object = response.json()
    except ValueError:
        payload = None

    if response.is_error:
        detail = (error_message(payload) if error_message and payload is not None else None) or (
            response.reason_phrase or "error response"
        )
        log.error("%s API error %s on %s: %s", source, response.status_code, path, detail)
        raise ProviderUnavailableError(source, f"HTTP {response.status_code}: {detail}")

    if payload is None:
        raise ProviderUnavailableError(source, f"{path} returned a body that is not JSON")

    if error_message is not None:
        detail = error_message(payload)
        if detail is not None:
            log.error("%s API error on %s: %s", source, path, detail)
            raise ProviderUnavailableError(source, detail)
    return payload


def parse_records(
    source: str,
    items: Iterable[object],
    parse: Callable[[object], ProviderRecord],
) -> list[ProviderRecord]:
    """Translate raw items, dropping the ones that cannot be interpreted."""

    records: list[ProviderRecord] = []
    for item in items:
        try:
            records.append(parse(item))
        except RecordMalformedError as exc:
            log.warning("Skipping malformed %s record: %s", source, exc)
    return records


def describe_validation_error(kind: str, exc: ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first["loc"]) or "payload"
    return f"invalid {kind} ({location}: {first['msg']})"
