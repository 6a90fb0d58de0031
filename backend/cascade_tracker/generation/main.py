"""Cascade generation pipeline.

Pool -> classifier -> relevance scorer -> candidate selection ->
orchestrator -> validator -> persisted cascade + resolution queue entries.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from cascade_tracker.config import Settings, get_settings
from cascade_tracker.services.polymarket import PolymarketClient, create_polymarket_client
from cascade_tracker.storage.files import generate_cascade_id, save_cascade
from cascade_tracker.storage.queue import enqueue_event
from cascade_tracker.storage.state import (
    load_diversity_tracker,
    record_generation_outcome,
    save_diversity_tracker,
)

from .classifier import analyze_event
from .diversity import DiversityTracker
from .exceptions import CascadeRejectedError, EmptyEventPoolError, GenerationError
from .models import Cascade, Event
from .orchestrator import GenerationOrchestrator, TextGenerator
from .pool import discover_event_pool, find_trigger_event, select_candidates
from .relevance import RelevanceScorer
from .validator import CascadeValidator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _client_scope(
    settings: Settings,
    client: PolymarketClient | None,
) -> AsyncIterator[PolymarketClient]:
    if client is not None:
        yield client
        return
    async with create_polymarket_client(settings) as owned:
        yield owned


def _load_tracker(settings: Settings) -> DiversityTracker:
    config = settings.diversity
    if config.persist_history:
        return load_diversity_tracker(max_history=config.max_history, window=config.window)
    return DiversityTracker(max_history=config.max_history, window=config.window)


class CascadePipeline:
    """One generation context: settings, diversity history, generator and rules."""

    def __init__(
        self,
        settings: Settings | None = None,
        tracker: DiversityTracker | None = None,
        generator: TextGenerator | None = None,
        persist: bool = True,
    ):
        self.settings = settings or get_settings()
        self.tracker = tracker if tracker is not None else _load_tracker(self.settings)
        self.persist = persist
        self.scorer = RelevanceScorer(tracker=self.tracker)
        self.orchestrator = GenerationOrchestrator.from_settings(self.settings, generator=generator)
        self.validator = CascadeValidator(
            tracker=self.tracker,
            fail_fast=self.settings.validation.fail_fast,
        )

    async def build(self, trigger: Event, pool: list[Event]) -> Cascade:
        """Generate, validate and (optionally) persist one cascade for ``trigger``.

        Raises:
            EmptyEventPoolError: no candidates besides the trigger
            GenerationError: generator failure, malformed output or timeout
            CascadeRejectedError: the draft broke at least one rule
        """
        config = self.settings.generation
        trigger_analysis = analyze_event(trigger)
        logger.info(
            f"Trigger '{trigger.title}' -> {trigger_analysis.domain} "
            f"(topics: {', '.join(trigger_analysis.keywords[:5])})"
        )

        ranked = self.scorer.rank(trigger_analysis, pool)
        candidates = select_candidates(trigger_analysis, ranked, config)
        if not candidates:
            raise EmptyEventPoolError(f"No candidate events available for '{trigger.slug}'")

        draft = await self.orchestrator.generate(
            trigger_analysis,
            candidates,
            effect_count=config.effect_count,
            recent_domains=self.tracker.recent_domains(),
        )

        result = self.validator.validate(draft, [trigger, *candidates], trigger_slug=trigger.slug)
        if not result.valid:
            raise CascadeRejectedError(result.errors)

        cascade = Cascade.from_draft(
            draft,
            trigger=trigger,
            cascade_id=generate_cascade_id(),
            generator=str(config.model),
        )
        if self.persist:
            self._persist(cascade, [trigger, *(c.event for c in candidates)])

        self.tracker.record_cascade(cascade)
        if self.persist and self.settings.diversity.persist_history:
            save_diversity_tracker(self.tracker)

        logger.info(
            f"✓ Cascade accepted: {cascade.name} [{cascade.domain}] "
            f"with {len(cascade.all_effects)} effects"
        )
        return cascade

    def _persist(self, cascade: Cascade, events: list[Event]) -> None:
        save_cascade(cascade)

        ids_by_slug = {e.slug: e.id for e in events}
        queued = sum(
            1 for slug in cascade.event_slugs() if enqueue_event(ids_by_slug.get(slug, ""), slug)
        )
        logger.info(f"Queued {queued} new events for resolution monitoring")

    def record_outcome(self, outcome: str) -> None:
        if not self.persist:
            return
        try:
            record_generation_outcome(outcome)
        except Exception as e:
            logger.warning(f"Failed to record generation stats: {e}")


async def generate_custom_cascade(
    reference: str,
    settings: Settings | None = None,
    tracker: DiversityTracker | None = None,
    generator: TextGenerator | None = None,
    client: PolymarketClient | None = None,
    persist: bool = True,
) -> Cascade:
    """Generate a cascade seeded by a specific event URL or slug.

    Raises:
        EventNotFoundError: reference is malformed or unknown upstream
        ClosedEventError: the trigger event is closed
        CascadeRejectedError, GenerationError: as for CascadePipeline.build
    """
    pipeline = CascadePipeline(settings, tracker=tracker, generator=generator, persist=persist)

    async with _client_scope(pipeline.settings, client) as polymarket:
        pool = await discover_event_pool(polymarket, pipeline.settings.generation)
        trigger = await find_trigger_event(polymarket, reference, pool)

    try:
        cascade = await pipeline.build(trigger, pool)
    except CascadeRejectedError:
        pipeline.record_outcome("rejected")
        raise
    except GenerationError:
        pipeline.record_outcome("failed")
        raise

    pipeline.record_outcome("accepted")
    return cascade


async def generate_cascades(
    count: int | None = None,
    settings: Settings | None = None,
    tracker: DiversityTracker | None = None,
    generator: TextGenerator | None = None,
    client: PolymarketClient | None = None,
    persist: bool = True,
    max_attempts: int | None = None,
) -> list[Cascade]:
    """Generate up to ``count`` cascades from the highest-volume pool events.

    Each attempt uses a fresh trigger. Triggers whose domain the diversity
    tracker would reject, or that already appear in recent cascades, are
    skipped. A failed attempt is logged and the next trigger is tried.
    """
    pipeline = CascadePipeline(settings, tracker=tracker, generator=generator, persist=persist)
    count = count or pipeline.settings.scheduler.generation_batch_size
    max_attempts = max_attempts or count * 3

    async with _client_scope(pipeline.settings, client) as polymarket:
        pool = await discover_event_pool(polymarket, pipeline.settings.generation)
    if not pool:
        raise EmptyEventPoolError("No active events returned by Polymarket")

    triggers = sorted(pool, key=lambda e: e.volume, reverse=True)
    cascades: list[Cascade] = []
    attempts = 0

    for trigger in triggers:
        if len(cascades) >= count or attempts >= max_attempts:
            break
        if pipeline.tracker.usage_count(trigger.slug) > 0:
            continue
        domain = analyze_event(trigger).domain
        if not pipeline.tracker.should_allow_domain(domain):
            logger.debug(f"Skipping trigger {trigger.slug}: {domain} used too recently")
            continue

        attempts += 1
        try:
            cascades.append(await pipeline.build(trigger, pool))
            pipeline.record_outcome("accepted")
        except CascadeRejectedError as e:
            pipeline.record_outcome("rejected")
            logger.warning(f"Attempt {attempts} ({trigger.slug}) rejected: {len(e.errors)} violations")
        except GenerationError as e:
            pipeline.record_outcome("failed")
            logger.error(f"Attempt {attempts} ({trigger.slug}) failed: {e}")

    logger.info(f"Generated {len(cascades)}/{count} cascades in {attempts} attempts")
    return cascades


def generation_job() -> None:
    """Scheduler job wrapper for batch generation (blocking)."""
    try:
        cascades = asyncio.run(generate_cascades())
        logger.info(f"✓ Generation: {len(cascades)} cascades")
    except Exception as e:
        logger.error(f"Cascade generation failed: {e}", exc_info=True)
