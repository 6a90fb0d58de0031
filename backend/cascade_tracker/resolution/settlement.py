"""Settlement: score every open prediction on a resolved event."""

import logging
from datetime import datetime, timezone

from pydantic import BaseModel, Field

from cascade_tracker.storage.files import resolve_cascades_for_event
from cascade_tracker.storage.predictions import (
    get_open_predictions_for_event,
    settle_prediction,
)

from .exceptions import InvalidOutcomeError
from .progression import ProgressUpdate, update_progress
from .scoring import calculate_points, is_prediction_correct

logger = logging.getLogger(__name__)


class SettledPrediction(BaseModel):
    prediction_id: str
    user_id: str
    is_correct: bool
    points: int
    new_badges: list[str] = Field(default_factory=list)
    leveled_up: bool = False


class SettlementResult(BaseModel):
    event_slug: str
    outcome: str
    settled: list[SettledPrediction] = Field(default_factory=list)
    errors: int = 0
    resolved_cascades: list[str] = Field(default_factory=list)


def normalize_outcome(outcome: str) -> str:
    value = str(outcome).strip().lower()
    if value not in {"yes", "no"}:
        raise InvalidOutcomeError(f"Invalid outcome: {outcome} (expected yes or no)")
    return value


def settle_event(
    event_slug: str,
    outcome: str,
    resolved_at: datetime | None = None,
) -> SettlementResult:
    """Settle all open predictions for ``event_slug`` against ``outcome``.

    Predictions that are already settled are skipped, so calling this twice
    for the same event changes nothing the second time. A failure on one
    prediction is logged and does not stop the others.
    """
    actual = normalize_outcome(outcome)
    resolved_at = resolved_at or datetime.now(timezone.utc)
    result = SettlementResult(event_slug=event_slug, outcome=actual)

    for prediction in get_open_predictions_for_event(event_slug):
        try:
            is_correct = is_prediction_correct(prediction.predicted_outcome, actual)
            points = calculate_points(
                is_correct=is_correct,
                confidence_level=prediction.confidence_level,
                opened_at=prediction.opened_at,
                submitted_at=prediction.created_at,
                difficulty=prediction.difficulty,
            )

            if not settle_prediction(prediction, is_correct, points.total, resolved_at):
                logger.debug(f"Prediction {prediction.id} already settled, skipping")
                continue

            update: ProgressUpdate = update_progress(
                prediction.user_id,
                is_correct=is_correct,
                points=points.total,
                category=prediction.category,
                difficulty=prediction.difficulty,
            )
            result.settled.append(
                SettledPrediction(
                    prediction_id=prediction.id,
                    user_id=prediction.user_id,
                    is_correct=is_correct,
                    points=points.total,
                    new_badges=[b.id for b in update.new_badges],
                    leveled_up=update.leveled_up,
                )
            )
            logger.info(
                f"   Scored prediction {prediction.id}: "
                f"{'Correct' if is_correct else 'Incorrect'} ({points.total} pts)"
            )

        except Exception as e:
            result.errors += 1
            logger.error(f"   Error scoring prediction {prediction.id}: {e}", exc_info=True)

    result.resolved_cascades = resolve_cascades_for_event(event_slug, resolved_at)
    return result
