"""Event pool discovery, trigger lookup and candidate selection."""

import logging
import re

from cascade_tracker.config import GenerationConfig
from cascade_tracker.services.polymarket import (
    PolymarketAPIError,
    PolymarketClient,
    PolymarketNotFoundError,
)

from .exceptions import ClosedEventError, EventNotFoundError
from .models import Event, EventAnalysis, ScoredCandidate

logger = logging.getLogger(__name__)

_EVENT_URL_RE = re.compile(r"polymarket\.com/event/([a-z0-9-]+)", re.IGNORECASE)
_SLUG_RE = re.compile(r"^[a-z0-9-]+$", re.IGNORECASE)


async def discover_event_pool(
    client: PolymarketClient,
    config: GenerationConfig,
) -> list[Event]:
    """Fetch high-volume events plus a liquidity-ordered page for variety.

    Results are de-duplicated by slug. The supplementary page is best-effort:
    if it fails the high-volume events are still returned.
    """
    high_volume = await client.get_active_events(
        limit=config.high_volume_pool_size,
        min_markets=config.min_markets_per_event,
    )
    pool = [Event.from_gamma(e) for e in high_volume]
    seen = {e.slug for e in pool}

    try:
        diverse = await client.search_events(
            limit=config.liquidity_pool_size,
            offset=config.liquidity_pool_offset,
            closed=False,
            order="liquidity",
        )
    except PolymarketAPIError as e:
        logger.warning(f"Liquidity-ordered event page unavailable: {e}")
        diverse = []

    for gamma_event in diverse:
        if gamma_event.slug in seen or gamma_event.closed:
            continue
        if gamma_event.markets_count < config.min_markets_per_event:
            continue
        pool.append(Event.from_gamma(gamma_event))
        seen.add(gamma_event.slug)

    logger.info(f"Event pool: {len(pool)} events ({len(high_volume)} high-volume)")
    return pool


def parse_event_reference(reference: str) -> str:
    """Extract an event slug from a Polymarket event URL or a bare slug."""
    cleaned = reference.strip().split("?", 1)[0].rstrip("/")
    match = _EVENT_URL_RE.search(cleaned)
    if match:
        return match.group(1)
    if _SLUG_RE.match(cleaned):
        return cleaned
    raise EventNotFoundError(
        f"Invalid event reference '{reference}'. "
        "Expected https://polymarket.com/event/<slug> or a bare slug."
    )


async def find_trigger_event(
    client: PolymarketClient,
    reference: str,
    pool: list[Event] | None = None,
) -> Event:
    """Resolve a trigger reference to an active event."""
    slug = parse_event_reference(reference)

    for event in pool or []:
        if event.slug == slug:
            logger.info(f"Trigger found in event pool: '{event.title}'")
            return event

    try:
        gamma_event = await client.get_event(slug)
    except PolymarketNotFoundError as e:
        raise EventNotFoundError(f"Event not found on Polymarket: {slug}") from e

    if gamma_event.closed or not gamma_event.active:
        raise ClosedEventError(
            f"Event '{slug}' is closed and cannot be used for cascade generation"
        )
    return Event.from_gamma(gamma_event)


def select_candidates(
    trigger: EventAnalysis,
    ranked: list[ScoredCandidate],
    config: GenerationConfig,
) -> list[ScoredCandidate]:
    """Pick same-domain, related and exploratory candidates from a ranked list."""
    same_domain = [c for c in ranked if c.domain == trigger.domain][: config.same_domain_limit]
    related = [
        c
        for c in ranked
        if c.domain != trigger.domain and c.score >= config.related_min_score
    ][: config.related_limit]

    chosen = {c.slug for c in same_domain} | {c.slug for c in related}
    exploratory = [
        c
        for c in ranked
        if c.slug not in chosen and c.score >= config.exploratory_min_score
    ][: config.exploratory_limit]

    logger.info(
        f"Selected candidates: {len(same_domain)} same-domain ({trigger.domain}), "
        f"{len(related)} related, {len(exploratory)} exploratory"
    )
    return [*same_domain, *related, *exploratory]
