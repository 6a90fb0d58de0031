"""Polymarket Gamma client against a mocked transport.

Covers request parameters, payload parsing, retries and error mapping
without touching the network.
"""

import asyncio

import httpx
import pytest

from cascade_tracker.services.polymarket import (
    PolymarketAPIError,
    PolymarketClient,
    PolymarketNotFoundError,
    PolymarketRateLimitError,
    RetryPolicy,
)

from factories import MVP, TRIGGER, gamma_event_payload

FAST_RETRY = RetryPolicy(max_attempts=3, base_delay_seconds=0.0)


def _client(handler, retry_policy: RetryPolicy = FAST_RETRY) -> PolymarketClient:
    return PolymarketClient(retry_policy=retry_policy, transport=httpx.MockTransport(handler))


def test_get_active_events_filters_closed_and_single_market():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(
            200,
            json=[
                gamma_event_payload(TRIGGER, markets=3),
                gamma_event_payload(MVP, markets=1),
                gamma_event_payload(MVP.model_copy(update={"slug": "closed-one"}), closed=True),
                {"id": "9", "title": "no slug"},
            ],
        )

    async def run():
        async with _client(handler) as client:
            return await client.get_active_events(limit=10, min_markets=2)

    events = asyncio.run(run())

    assert [e.slug for e in events] == [TRIGGER.slug]
    assert events[0].markets_count == 3
    assert events[0].markets[0].outcomes == ["Yes", "No"]
    assert events[0].markets[0].outcome_prices == [0.5, 0.5]
    params = requests[0].url.params
    assert params["closed"] == "false"
    assert params["order"] == "volume"
    assert params["limit"] == "20"


def test_not_found_is_not_retried():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(404)

    async def run():
        async with _client(handler) as client:
            await client.get_event("missing")

    with pytest.raises(PolymarketNotFoundError):
        asyncio.run(run())
    assert len(calls) == 1


def test_server_error_retried_then_succeeds():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if len(calls) == 1:
            return httpx.Response(500)
        return httpx.Response(200, json=gamma_event_payload(TRIGGER))

    async def run():
        async with _client(handler) as client:
            return await client.get_event(TRIGGER.slug)

    event = asyncio.run(run())

    assert event.slug == TRIGGER.slug
    assert len(calls) == 2
    assert calls[0].url.path == f"/events/slug/{TRIGGER.slug}"


def test_rate_limit_exhausts_attempts():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(429)

    async def run():
        async with _client(handler) as client:
            await client.get_event(TRIGGER.slug)

    with pytest.raises(PolymarketRateLimitError):
        asyncio.run(run())
    assert len(calls) == 3


def test_client_error_raises_api_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"error": "bad request"})

    async def run():
        async with _client(handler) as client:
            await client.get_event(TRIGGER.slug)

    with pytest.raises(PolymarketAPIError) as exc_info:
        asyncio.run(run())
    assert exc_info.value.status_code == 400


def test_get_market_state_for_closed_binary_event():
    payload = gamma_event_payload(TRIGGER, markets=1, closed=True)
    payload["markets"][0]["outcomePrices"] = '["0.98", "0.02"]'
    payload["endDate"] = "2025-06-20T00:00:00Z"

    def handler(request: httpx.Request) -> httpx.Response:
        # The slug endpoint sometimes wraps the event in a list
        return httpx.Response(200, json=[payload])

    async def run():
        async with _client(handler) as client:
            return await client.get_market_state(TRIGGER.slug)

    state = asyncio.run(run())

    assert state.closed
    assert state.slug == TRIGGER.slug
    assert state.outcomes == ["Yes", "No"]
    assert state.outcome_prices == [0.98, 0.02]
    assert state.end_date is not None


def test_client_requires_context_manager():
    client = PolymarketClient()
    with pytest.raises(RuntimeError):
        client.client
