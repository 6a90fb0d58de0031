"""Resolution poller: sweeps pending queue entries and settles closed events."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Protocol

from pydantic import BaseModel, Field

from cascade_tracker.config import Settings, get_settings
from cascade_tracker.services.polymarket import (
    MarketState,
    PolymarketNotFoundError,
    create_polymarket_client,
)
from cascade_tracker.storage.queue import (
    ResolutionQueueEntry,
    ResolutionSnapshot,
    cleanup_resolved,
    find_entry,
    get_pending_entries,
    get_queue_counts,
    mark_resolved,
    touch_last_checked,
)

from .exceptions import QueueEntryNotFoundError
from .settlement import SettlementResult, normalize_outcome, settle_event

logger = logging.getLogger(__name__)


class MarketStateSource(Protocol):
    async def get_market_state(self, slug: str) -> MarketState: ...


class PollResult(BaseModel):
    skipped: bool = False
    checked: int = 0
    resolved: int = 0
    still_open: int = 0
    not_found: int = 0
    errors: int = 0
    cleaned_up: int = 0
    settlements: list[SettlementResult] = Field(default_factory=list)


class ManualResolutionResult(BaseModel):
    event_slug: str
    outcome: str
    already_resolved: bool = False
    settlement: SettlementResult | None = None


class QueueStatus(BaseModel):
    pending: int
    resolved: int
    total: int
    is_polling: bool
    polling_active: bool


def _normalize_prices(prices: list[float]) -> list[float]:
    # Some feeds quote percentages instead of probabilities
    if any(p > 1 for p in prices):
        return [p / 100 for p in prices]
    return prices


def determine_outcome(state: MarketState) -> str:
    """Binary outcome of a closed market.

    An explicit resolved value wins; otherwise the side priced above 50% in
    the final two-outcome pricing; anything ambiguous resolves to "no".
    """
    if state.resolved_outcome is not None:
        explicit = state.resolved_outcome.strip().lower()
        if explicit in {"yes", "no"}:
            return explicit
        labels = [o.strip().lower() for o in state.outcomes]
        if len(labels) == 2 and explicit in labels:
            return "yes" if labels.index(explicit) == 0 else "no"

    if len(state.outcome_prices) == 2:
        yes_price = _normalize_prices(state.outcome_prices)[0]
        return "yes" if yes_price > 0.5 else "no"

    return "no"


class ResolutionPoller:
    """Background monitor for the resolution queue.

    One instance per process. ``is_polling`` guards against overlapping
    sweeps; ``polling_active`` reports whether a scheduler owns the poller.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        client: MarketStateSource | None = None,
    ):
        self.settings = settings or get_settings()
        self._client = client
        self.is_polling = False
        self.polling_active = False

    async def poll(self) -> PollResult:
        """Run one sweep over pending entries in creation order."""
        if self.is_polling:
            logger.info("Resolution poll already in progress, skipping")
            return PollResult(skipped=True)

        self.is_polling = True
        try:
            if self._client is not None:
                result = await self._sweep(self._client)
            else:
                async with create_polymarket_client(self.settings) as client:
                    result = await self._sweep(client)

            result.cleaned_up = cleanup_resolved(self.settings.resolution.retention_days)
            logger.info(
                f"Polling complete: {result.resolved} resolved, "
                f"{result.still_open} open, {result.errors} errors"
            )
            return result
        finally:
            self.is_polling = False

    async def _sweep(self, client: MarketStateSource) -> PollResult:
        result = PollResult()
        pending = get_pending_entries()
        if not pending:
            logger.debug("No pending events to check")
            return result

        logger.info(f"Checking {len(pending)} pending events")
        delay = self.settings.resolution.inter_call_delay_seconds

        for entry in pending:
            result.checked += 1
            try:
                await self._check_entry(client, entry, result)
            except PolymarketNotFoundError:
                result.not_found += 1
                logger.warning(f"Event not found on Polymarket: {entry.event_slug}")
            except Exception as e:
                result.errors += 1
                logger.error(f"Error checking {entry.event_slug}: {e}", exc_info=True)

            if delay > 0:
                await asyncio.sleep(delay)

        return result

    async def _check_entry(
        self,
        client: MarketStateSource,
        entry: ResolutionQueueEntry,
        result: PollResult,
    ) -> None:
        state = await client.get_market_state(entry.event_slug)

        if not state.closed:
            touch_last_checked(entry.id)
            result.still_open += 1
            return

        outcome = determine_outcome(state)
        logger.info(f"Event resolved: {entry.event_slug} -> {outcome.upper()}")

        settlement = settle_event(entry.event_slug, outcome)
        snapshot = ResolutionSnapshot(
            outcome=outcome,
            outcomes=state.outcomes,
            final_prices=state.outcome_prices,
            closed_at=state.end_date,
        )
        if mark_resolved(entry.id, snapshot):
            result.resolved += 1
        result.settlements.append(settlement)

    def resolve_manually(self, reference: str, outcome: str) -> ManualResolutionResult:
        """Resolve an event immediately with an operator-supplied outcome.

        Raises:
            QueueEntryNotFoundError: if no queue entry matches ``reference``
            InvalidOutcomeError: if ``outcome`` is not yes/no
        """
        actual = normalize_outcome(outcome)
        entry = find_entry(reference)
        if entry is None:
            raise QueueEntryNotFoundError(f"No queued event matches '{reference}'")

        if entry.status != "pending":
            logger.info(f"{entry.event_slug} is already resolved, nothing to do")
            return ManualResolutionResult(
                event_slug=entry.event_slug, outcome=actual, already_resolved=True
            )

        settlement = settle_event(entry.event_slug, actual)
        mark_resolved(
            entry.id,
            ResolutionSnapshot(
                outcome=actual,
                closed_at=datetime.now(timezone.utc),
                manual=True,
            ),
        )
        logger.info(f"Manually resolved {entry.event_slug} as {actual.upper()}")
        return ManualResolutionResult(
            event_slug=entry.event_slug, outcome=actual, settlement=settlement
        )

    def get_queue_status(self) -> QueueStatus:
        counts = get_queue_counts()
        return QueueStatus(
            pending=counts["pending"],
            resolved=counts["resolved"],
            total=counts["total"],
            is_polling=self.is_polling,
            polling_active=self.polling_active,
        )


_poller: ResolutionPoller | None = None


def get_poller() -> ResolutionPoller:
    """Process-wide poller used by the scheduler, CLI and API."""
    global _poller
    if _poller is None:
        _poller = ResolutionPoller()
    return _poller


def resolution_poll_job() -> None:
    """Scheduler entry point."""
    try:
        asyncio.run(get_poller().poll())
    except Exception as e:
        logger.error(f"Resolution poll failed: {e}", exc_info=True)
