"""Prediction intake: validate, persist and queue the event for resolution."""

import logging
from datetime import datetime, timezone

from cascade_tracker.storage.files import load_cascade
from cascade_tracker.storage.predictions import (
    Prediction,
    PredictionValidationError,
    create_prediction,
    validate_event_slug,
)
from cascade_tracker.storage.progress import TIER_ORDER, get_progress
from cascade_tracker.storage.queue import ResolutionQueueEntry, enqueue_event, find_entry

from .settlement import normalize_outcome

logger = logging.getLogger(__name__)


class TierLockedError(Exception):
    """User has not unlocked the difficulty tier of the target."""

    pass


def target_opened_at(
    target_type: str,
    target_id: str,
    entry: ResolutionQueueEntry | None,
) -> datetime:
    """When the prediction target became available, read from stored records.

    A cascade target opens when the cascade was created. Otherwise the event
    opens when it was first queued for resolution; an event seen for the
    first time opens now.
    """
    if target_type == "cascade":
        try:
            return load_cascade(target_id).created_at
        except FileNotFoundError:
            logger.debug(f"No cascade {target_id}, falling back to the queue entry")
    if entry is not None:
        return entry.created_at
    return datetime.now(timezone.utc)


def submit_prediction(
    user_id: str,
    target_id: str,
    event_slug: str,
    predicted_outcome: str,
    confidence_level: int,
    target_type: str = "cascade",
    event_id: str = "",
    category: str | None = None,
    difficulty: str = "beginner",
    reasoning: str | None = None,
) -> Prediction:
    """Record a user's yes/no prediction on an open event.

    Raises:
        PredictionValidationError: invalid slug/outcome/confidence, or the event already resolved
        DuplicatePredictionError: one prediction per user per target
        TierLockedError: the difficulty tier is not unlocked for this user
    """
    validate_event_slug(event_slug)
    try:
        normalize_outcome(predicted_outcome)
    except ValueError as e:
        raise PredictionValidationError(str(e)) from e

    entry = find_entry(event_slug)
    if entry is not None and entry.status == "resolved":
        raise PredictionValidationError(f"Event {event_slug} has already resolved")

    progress = get_progress(user_id)
    if difficulty in TIER_ORDER and difficulty not in progress.unlocked_tiers:
        raise TierLockedError(f"{user_id} has not unlocked {difficulty} predictions yet")

    prediction = create_prediction(
        user_id=user_id,
        target_id=target_id,
        event_slug=event_slug,
        predicted_outcome=predicted_outcome,
        confidence_level=confidence_level,
        opened_at=target_opened_at(target_type, target_id, entry),
        target_type=target_type,
        event_id=event_id,
        category=category,
        difficulty=difficulty,
        reasoning=reasoning,
    )
    if enqueue_event(event_id, event_slug):
        logger.debug(f"Started monitoring {event_slug} for resolution")
    return prediction
