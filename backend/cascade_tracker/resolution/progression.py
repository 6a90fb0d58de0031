"""Levels, tier unlocks and badges applied after each settled prediction."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from pydantic import BaseModel, Field

from cascade_tracker.storage.progress import (
    Badge,
    SkillRecord,
    Tier,
    UserProgress,
    get_progress,
    save_progress,
)

logger = logging.getLogger(__name__)

# XP required for levels 1..20
LEVEL_THRESHOLDS: tuple[int, ...] = (
    0, 100, 250, 500, 800,
    1200, 1700, 2300, 3000, 4000,
    5500, 7500, 10000, 13000, 17000,
    22000, 28000, 35000, 43000, 52000,
)

BADGES: dict[str, tuple[str, str]] = {
    "FIRST_PREDICTION": ("First Step", "Making your first market prediction"),
    "PERFECT_SCORE_100": ("Perfect Vision", "Achieving a perfect prediction score"),
    "STREAK_3": ("Hat Trick", "Building prediction momentum"),
    "STREAK_5": ("On Fire", "Consistent market analysis"),
    "STREAK_10": ("Unstoppable", "Mastering market patterns"),
    "INTERMEDIATE_UNLOCK": ("Rising Star", "Advancing to intermediate challenges"),
    "ADVANCED_UNLOCK": ("Market Analyst", "Tackling advanced predictions"),
    "EXPERT_UNLOCK": ("Market Oracle", "Mastering expert-level analysis"),
    "LEVEL_5": ("Dedicated Learner", "Reaching level 5"),
    "LEVEL_10": ("Advanced Student", "Reaching level 10"),
    "LEVEL_15": ("Market Master", "Reaching level 15"),
    "LEVEL_20": ("Legendary Predictor", "Reaching level 20"),
}

STREAK_BADGES = {3: "STREAK_3", 5: "STREAK_5", 10: "STREAK_10"}
LEVEL_BADGES = {5: "LEVEL_5", 10: "LEVEL_10", 15: "LEVEL_15", 20: "LEVEL_20"}
PERFECT_SCORE_POINTS = 100


@dataclass(frozen=True)
class TierRule:
    tier: Tier
    prior_tier: Tier
    min_level: int
    min_attempts: int
    min_accuracy: float
    badge_id: str


TIER_RULES: tuple[TierRule, ...] = (
    TierRule("intermediate", "beginner", 3, 5, 0.70, "INTERMEDIATE_UNLOCK"),
    TierRule("advanced", "intermediate", 6, 10, 0.65, "ADVANCED_UNLOCK"),
    TierRule("expert", "advanced", 9, 15, 0.60, "EXPERT_UNLOCK"),
)


class ProgressUpdate(BaseModel):
    progress: UserProgress
    new_badges: list[Badge] = Field(default_factory=list)
    leveled_up: bool = False
    previous_level: int = 1
    newly_unlocked_tiers: list[Tier] = Field(default_factory=list)


def calculate_level(experience_points: int) -> int:
    """Highest level whose threshold is met, scanning from the top."""
    for i in range(len(LEVEL_THRESHOLDS) - 1, -1, -1):
        if experience_points >= LEVEL_THRESHOLDS[i]:
            return i + 1
    return 1


def get_next_level_xp(current_level: int) -> int | None:
    """XP needed to reach the next level, or None at max level."""
    if current_level >= len(LEVEL_THRESHOLDS):
        return None
    return LEVEL_THRESHOLDS[current_level]


def _make_badge(badge_id: str, earned_at: datetime) -> Badge:
    name, teaches = BADGES[badge_id]
    return Badge(id=badge_id, name=name, teaches=teaches, earned_at=earned_at)


def _unlocked_tiers(progress: UserProgress) -> list[Tier]:
    unlocked = list(progress.unlocked_tiers)
    for rule in TIER_RULES:
        if rule.tier in unlocked:
            continue
        prior = progress.tier_scores.get(rule.prior_tier, SkillRecord())
        if (
            progress.current_level >= rule.min_level
            and prior.total >= rule.min_attempts
            and prior.accuracy >= rule.min_accuracy
        ):
            unlocked.append(rule.tier)
    return unlocked


def apply_result(
    progress: UserProgress,
    is_correct: bool,
    points: int,
    category: str | None = None,
    difficulty: str = "beginner",
    now: datetime | None = None,
) -> ProgressUpdate:
    """Apply one settled prediction to ``progress`` in memory and report what changed."""
    now = now or datetime.now(timezone.utc)
    before = progress.model_copy(deep=True)
    after = progress.model_copy(deep=True)

    after.total_attempts += 1
    if is_correct:
        after.correct_count += 1
    after.experience_points += points
    after.current_level = calculate_level(after.experience_points)
    after.current_streak = before.current_streak + 1 if is_correct else 0
    after.best_streak = max(after.best_streak, after.current_streak)

    if category:
        after.skill_scores.setdefault(category.lower(), SkillRecord()).add(is_correct)
    after.tier_scores.setdefault(difficulty, SkillRecord()).add(is_correct)
    after.unlocked_tiers = _unlocked_tiers(after)

    earned: list[str] = []
    if after.total_attempts == 1:
        earned.append("FIRST_PREDICTION")
    if points == PERFECT_SCORE_POINTS:
        earned.append("PERFECT_SCORE_100")
    if after.current_streak in STREAK_BADGES:
        earned.append(STREAK_BADGES[after.current_streak])
    for rule in TIER_RULES:
        if rule.tier in after.unlocked_tiers and rule.tier not in before.unlocked_tiers:
            earned.append(rule.badge_id)
    for level, badge_id in LEVEL_BADGES.items():
        if before.current_level < level <= after.current_level:
            earned.append(badge_id)

    new_badges = [
        _make_badge(badge_id, now) for badge_id in earned if not before.has_badge(badge_id)
    ]
    after.badges.extend(new_badges)

    return ProgressUpdate(
        progress=after,
        new_badges=new_badges,
        leveled_up=after.current_level > before.current_level,
        previous_level=before.current_level,
        newly_unlocked_tiers=[t for t in after.unlocked_tiers if t not in before.unlocked_tiers],
    )


def update_progress(
    user_id: str,
    is_correct: bool,
    points: int,
    category: str | None = None,
    difficulty: str = "beginner",
) -> ProgressUpdate:
    """Load, update and persist a user's progress for one settled prediction."""
    update = apply_result(
        get_progress(user_id),
        is_correct=is_correct,
        points=points,
        category=category,
        difficulty=difficulty,
    )
    save_progress(update.progress)

    if update.leveled_up:
        logger.info(
            f"{user_id} leveled up: {update.previous_level} -> {update.progress.current_level}"
        )
    for badge in update.new_badges:
        logger.info(f"{user_id} earned badge {badge.id} ({badge.name})")
    return update
