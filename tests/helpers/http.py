"""Mock transports for the HTTP provider adapters."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx

from grubstars.adapters.http_resilience import ResilientClient
from grubstars.config.http_resilience import RetryPolicy

if TYPE_CHECKING:
    from collections.abc import Callable

    from aiolimiter import AsyncLimiter

    from grubstars.config.http_resilience import ResilienceConfig

NO_RETRY = RetryPolicy(total=0)


def make_client_factory(
    handler: Callable[[httpx.Request], httpx.Response],
) -> Callable[[ResilienceConfig, AsyncLimiter | None], ResilientClient]:
    """Client factory whose requests end at ``handler`` instead of the network.

    The retry transport and the adapter's limiter still sit in front of it.
    """

    def factory(resilience: ResilienceConfig, limiter: AsyncLimiter | None) -> ResilientClient:
        return ResilientClient(resilience, limiter=limiter, transport=httpx.MockTransport(handler))

    return factory
