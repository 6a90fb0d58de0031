"""Point calculation for settled predictions."""

import math
from datetime import datetime

from pydantic import BaseModel

BASE_POINTS_CORRECT = 50
CONFIDENCE_POINTS_PER_LEVEL = 10

# (hours since the target opened, bonus); first band that fits wins
TIME_BONUS_BANDS: tuple[tuple[float, int], ...] = ((1, 10), (6, 5), (24, 2))

DIFFICULTY_MULTIPLIERS: dict[str, float] = {
    "beginner": 1.0,
    "intermediate": 1.5,
    "advanced": 2.5,
    "expert": 4.0,
}


class PointsBreakdown(BaseModel):
    is_correct: bool
    base: int
    confidence_bonus: int
    time_bonus: int
    multiplier: float
    total: int


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def is_prediction_correct(predicted_outcome: str, actual_outcome: str) -> bool:
    return predicted_outcome.strip().lower() == actual_outcome.strip().lower()


def time_bonus(opened_at: datetime, submitted_at: datetime) -> int:
    """Bonus for predicting early: <1h 10, <6h 5, <24h 2, otherwise 0."""
    hours = (submitted_at - opened_at).total_seconds() / 3600
    for limit, bonus in TIME_BONUS_BANDS:
        if hours < limit:
            return bonus
    return 0


def calculate_points(
    is_correct: bool,
    confidence_level: int,
    opened_at: datetime,
    submitted_at: datetime,
    difficulty: str = "beginner",
) -> PointsBreakdown:
    """Score one prediction.

    total = (base + confidence bonus + time bonus) * tier multiplier, with
    halves rounded up (12.5 scores 13).
    Base and confidence bonus are only earned when correct; the time bonus
    rewards early submission regardless of correctness.
    """
    base = BASE_POINTS_CORRECT if is_correct else 0
    confidence_bonus = confidence_level * CONFIDENCE_POINTS_PER_LEVEL if is_correct else 0
    bonus = time_bonus(opened_at, submitted_at)
    multiplier = DIFFICULTY_MULTIPLIERS.get(difficulty, 1.0)

    return PointsBreakdown(
        is_correct=is_correct,
        base=base,
        confidence_bonus=confidence_bonus,
        time_bonus=bonus,
        multiplier=multiplier,
        total=round_half_up((base + confidence_bonus + bonus) * multiplier),
    )
