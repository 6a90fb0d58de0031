from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from cascade_tracker.config import Settings, get_settings

from .config import PolymarketClientConfig
from .exceptions import (
    PolymarketAPIError,
    PolymarketNotFoundError,
    PolymarketRateLimitError,
)
from .models import GammaEvent, MarketState
from .retry import RetryPolicy

logger = logging.getLogger(__name__)


class PolymarketClient:
    """Read-only client for the public Polymarket Gamma API."""

    def __init__(
        self,
        config: PolymarketClientConfig | None = None,
        retry_policy: RetryPolicy | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config or PolymarketClientConfig()
        self.retry_policy = retry_policy or RetryPolicy()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> PolymarketClient:
        limits = httpx.Limits(
            max_connections=self.config.max_connections,
            max_keepalive_connections=self.config.max_keepalive_connections,
        )
        self._client = httpx.AsyncClient(
            base_url=self.config.base_url,
            timeout=self.config.timeout_seconds,
            limits=limits,
            headers={"Accept": "application/json"},
            transport=self._transport,
        )
        return self

    async def __aexit__(
        self,
        exc_type: type | None,
        exc_val: Exception | None,
        exc_tb: Any,
    ) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.debug("Closed PolymarketClient")

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError(
                "PolymarketClient must be used as async context manager"
            )
        return self._client

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: dict[str, Any] | None = None,
    ) -> Any:
        policy = self.retry_policy
        attempt = 0
        last_error: Exception | None = None
        last_status: int | None = None

        while attempt < policy.max_attempts:
            attempt += 1
            try:
                response = await self.client.request(
                    method=method,
                    url=endpoint,
                    params=params,
                )

                if response.status_code == 404:
                    raise PolymarketNotFoundError(
                        f"Resource not found: {endpoint}", status_code=404
                    )
                if policy.is_retryable_status(response.status_code):
                    last_status = response.status_code
                    last_error = None
                    if policy.should_retry(attempt):
                        wait_time = policy.delay_for(attempt)
                        logger.warning(
                            f"Gamma API returned {response.status_code} for {endpoint}, "
                            f"retrying in {wait_time}s ({attempt}/{policy.max_attempts})"
                        )
                        await asyncio.sleep(wait_time)
                    continue

                response.raise_for_status()
                return response.json()

            except (httpx.TimeoutException, httpx.TransportError) as e:
                last_error = e
                last_status = None
                if policy.should_retry(attempt):
                    wait_time = policy.delay_for(attempt)
                    logger.warning(
                        f"Gamma API request failed ({e.__class__.__name__}), "
                        f"retrying in {wait_time}s ({attempt}/{policy.max_attempts})"
                    )
                    await asyncio.sleep(wait_time)

            except httpx.HTTPStatusError as e:
                raise PolymarketAPIError(
                    f"Gamma API error: {e}", status_code=e.response.status_code
                ) from e

        if last_status == 429:
            raise PolymarketRateLimitError(
                f"Rate limited after {attempt} attempts: {endpoint}", status_code=429
            )
        raise PolymarketAPIError(
            f"Request failed after {attempt} attempts: {last_error or last_status}",
            status_code=last_status,
        )

    async def search_events(
        self,
        limit: int | None = None,
        offset: int = 0,
        closed: bool = False,
        order: str = "volume",
        ascending: bool = False,
    ) -> list[GammaEvent]:
        """Fetch one page of events; pagination and ordering are caller-controlled."""
        params = {
            "limit": limit or self.config.default_page_size,
            "offset": offset,
            "closed": str(closed).lower(),
            "order": order,
            "ascending": str(ascending).lower(),
        }
        data = await self._request("GET", "/events", params=params)
        if not isinstance(data, list):
            logger.warning(f"Unexpected /events payload type: {type(data).__name__}")
            return []

        events = []
        for raw in data:
            if not raw.get("slug"):
                continue
            events.append(GammaEvent.from_api(raw))
        return events

    async def get_active_events(
        self, limit: int = 20, min_markets: int = 2
    ) -> list[GammaEvent]:
        """Active events with at least ``min_markets`` sub-markets, highest volume first."""
        events = await self.search_events(limit=limit * 2, closed=False)
        filtered = [
            e for e in events if not e.closed and e.markets_count >= min_markets
        ]
        logger.info(
            f"Fetched {len(filtered[:limit])} active events with {min_markets}+ markets"
        )
        return filtered[:limit]

    async def get_event(self, slug: str) -> GammaEvent:
        data = await self._request("GET", f"/events/slug/{slug}")
        # The slug endpoint may return a single object or a list
        if isinstance(data, list):
            if not data:
                raise PolymarketNotFoundError(
                    f"Event not found: {slug}", status_code=404
                )
            data = data[0]
        return GammaEvent.from_api(data)

    async def get_market_state(self, slug: str) -> MarketState:
        event = await self.get_event(slug)
        return MarketState.from_event(event)


def create_polymarket_client(settings: Settings | None = None) -> PolymarketClient:
    """Build a client from the ``polymarket`` settings section."""
    section = (settings or get_settings()).polymarket
    config = PolymarketClientConfig(
        base_url=section.gamma_base_url,
        timeout_seconds=section.timeout_seconds,
    )
    retry_policy = RetryPolicy(
        max_attempts=section.max_attempts,
        base_delay_seconds=section.base_delay_seconds,
        backoff_factor=section.backoff_factor,
    )
    return PolymarketClient(config, retry_policy)
