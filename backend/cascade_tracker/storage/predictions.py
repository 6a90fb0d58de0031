"""Prediction records, one JSON file per prediction.

Files are grouped by event so settlement only reads the predictions it needs:
data/predictions/{event_slug}/{prediction_id}.json
"""

import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Literal
from uuid import uuid4

from pydantic import BaseModel, Field

from cascade_tracker.storage.progress import Tier
from cascade_tracker.storage.state import atomic_write_text, get_data_dir

logger = logging.getLogger(__name__)

# Gamma event slugs; also used as a directory name under data/predictions
_EVENT_SLUG_RE = re.compile(r"^[a-z0-9-]+$")


class PredictionValidationError(ValueError):
    """Prediction input is outside the accepted values."""

    pass


class DuplicatePredictionError(Exception):
    """User already predicted on this target."""

    pass


class Prediction(BaseModel):
    id: str
    user_id: str
    target_type: Literal["challenge", "cascade"] = "cascade"
    target_id: str
    event_id: str = ""
    event_slug: str
    category: str | None = None
    difficulty: Tier = "beginner"
    predicted_outcome: Literal["yes", "no"]
    confidence_level: int = Field(ge=1, le=5)
    reasoning: str | None = None
    opened_at: datetime
    created_at: datetime
    is_correct: bool | None = None
    points_earned: int = 0
    resolved_at: datetime | None = None


def validate_event_slug(event_slug: str) -> None:
    if not isinstance(event_slug, str) or not _EVENT_SLUG_RE.fullmatch(event_slug):
        raise PredictionValidationError(
            f"Invalid event slug: {event_slug!r} (expected lower-case letters, digits and hyphens)"
        )


def generate_prediction_id() -> str:
    return f"pred_{uuid4().hex[:8]}"


def _get_predictions_dir() -> Path:
    predictions_dir = get_data_dir() / "predictions"
    predictions_dir.mkdir(parents=True, exist_ok=True)
    return predictions_dir


def _prediction_path(event_slug: str, prediction_id: str) -> Path:
    return _get_predictions_dir() / event_slug / f"{prediction_id}.json"


def _load(file_path: Path) -> Prediction:
    return Prediction.model_validate_json(file_path.read_text(encoding="utf-8"))


def save_prediction(prediction: Prediction) -> Path:
    file_path = _prediction_path(prediction.event_slug, prediction.id)
    atomic_write_text(file_path, prediction.model_dump_json(indent=2))
    return file_path


def list_predictions(event_slug: str | None = None) -> list[Prediction]:
    """Predictions oldest first, for one event or all of them."""
    pattern = f"{event_slug}/*.json" if event_slug else "*/*.json"
    predictions = []
    for file_path in _get_predictions_dir().glob(pattern):
        try:
            predictions.append(_load(file_path))
        except Exception as e:
            logger.warning(f"Failed to parse prediction {file_path}: {e}")
            continue
    predictions.sort(key=lambda p: (p.created_at, p.id))
    return predictions


def get_open_predictions_for_event(event_slug: str) -> list[Prediction]:
    return [p for p in list_predictions(event_slug) if p.is_correct is None]


def find_user_prediction(user_id: str, target_id: str) -> Prediction | None:
    for prediction in list_predictions():
        if prediction.user_id == user_id and prediction.target_id == target_id:
            return prediction
    return None


def settle_prediction(
    prediction: Prediction,
    is_correct: bool,
    points: int,
    resolved_at: datetime | None = None,
) -> bool:
    """Write the result unless the prediction was already settled.

    The stored file is re-read first, so a second settlement of the same
    prediction is a no-op returning False.
    """
    file_path = _prediction_path(prediction.event_slug, prediction.id)
    if not file_path.exists():
        logger.warning(f"Prediction {prediction.id} not found on disk")
        return False

    current = _load(file_path)
    if current.is_correct is not None:
        return False

    current.is_correct = is_correct
    current.points_earned = points
    current.resolved_at = resolved_at or datetime.now(timezone.utc)
    atomic_write_text(file_path, current.model_dump_json(indent=2))
    return True


def create_prediction(
    user_id: str,
    target_id: str,
    event_slug: str,
    predicted_outcome: str,
    confidence_level: int,
    opened_at: datetime,
    target_type: str = "cascade",
    event_id: str = "",
    category: str | None = None,
    difficulty: str = "beginner",
    reasoning: str | None = None,
    created_at: datetime | None = None,
) -> Prediction:
    """Validate and persist a new prediction.

    Raises:
        PredictionValidationError: malformed event slug, outcome not yes/no, confidence not 1-5,
            unknown difficulty tier or target type
        DuplicatePredictionError: the user already predicted on this target
    """
    validate_event_slug(event_slug)
    outcome = str(predicted_outcome).strip().lower()
    if outcome not in {"yes", "no"}:
        raise PredictionValidationError(f"Invalid outcome: {predicted_outcome} (expected yes or no)")
    if isinstance(confidence_level, bool) or not isinstance(confidence_level, int):
        raise PredictionValidationError(f"Confidence must be an integer 1-5, got {confidence_level!r}")
    if not 1 <= confidence_level <= 5:
        raise PredictionValidationError(f"Confidence must be 1-5, got {confidence_level}")
    if difficulty not in {"beginner", "intermediate", "advanced", "expert"}:
        raise PredictionValidationError(f"Unknown difficulty tier: {difficulty}")
    if target_type not in {"challenge", "cascade"}:
        raise PredictionValidationError(f"Unknown target type: {target_type}")

    existing = find_user_prediction(user_id, target_id)
    if existing is not None:
        raise DuplicatePredictionError(
            f"User {user_id} already predicted on {target_id} ({existing.id})"
        )

    prediction = Prediction(
        id=generate_prediction_id(),
        user_id=user_id,
        target_type=target_type,
        target_id=target_id,
        event_id=event_id,
        event_slug=event_slug,
        category=category,
        difficulty=difficulty,
        predicted_outcome=outcome,
        confidence_level=confidence_level,
        reasoning=reasoning,
        opened_at=opened_at,
        created_at=created_at or datetime.now(timezone.utc),
    )
    save_prediction(prediction)
    logger.info(
        f"Recorded prediction {prediction.id}: {user_id} -> {outcome.upper()} on {event_slug}"
    )
    return prediction
