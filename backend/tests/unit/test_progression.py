"""
Unit Tests: Progression

Test cases:
- Level thresholds
- Tier unlock on the prior tier's attempts and accuracy
- Badges: first prediction, streaks, perfect score, level milestones, no duplicates
"""

from datetime import datetime, timezone

from cascade_tracker.resolution.progression import (
    LEVEL_THRESHOLDS,
    apply_result,
    calculate_level,
    get_next_level_xp,
)
from cascade_tracker.storage.progress import UserProgress

NOW = datetime(2025, 6, 1, tzinfo=timezone.utc)


def _apply_many(progress: UserProgress, results: list[tuple[bool, int]]):
    updates = []
    for is_correct, points in results:
        update = apply_result(progress, is_correct, points, category="sports", now=NOW)
        progress = update.progress
        updates.append(update)
    return updates


def test_calculate_level():
    assert calculate_level(0) == 1
    assert calculate_level(99) == 1
    assert calculate_level(100) == 2
    assert calculate_level(549) == 4
    assert calculate_level(52000) == 20
    assert calculate_level(10**9) == 20


def test_next_level_xp():
    assert get_next_level_xp(1) == 100
    assert get_next_level_xp(4) == 800
    assert get_next_level_xp(len(LEVEL_THRESHOLDS)) is None


def test_intermediate_unlocks_on_fifth_correct_beginner_prediction():
    updates = _apply_many(UserProgress(user_id="u1"), [(True, 110)] * 5)

    for update in updates[:4]:
        assert "intermediate" not in update.progress.unlocked_tiers
    assert updates[3].progress.current_level == 3

    final = updates[4]
    assert final.newly_unlocked_tiers == ["intermediate"]
    assert final.progress.unlocked_tiers == ["beginner", "intermediate"]
    assert final.progress.current_level == 4
    assert "INTERMEDIATE_UNLOCK" in [b.id for b in final.new_badges]


def test_unlock_requires_prior_tier_accuracy():
    # 5 beginner attempts at 60% with enough XP for level 3+
    results = [(True, 200), (False, 0), (True, 200), (False, 0), (True, 200)]
    final = _apply_many(UserProgress(user_id="u1"), results)[-1]

    assert final.progress.current_level >= 3
    assert "intermediate" not in final.progress.unlocked_tiers


def test_streak_and_first_prediction_badges():
    updates = _apply_many(UserProgress(user_id="u1"), [(True, 60)] * 5)

    assert [b.id for b in updates[0].new_badges] == ["FIRST_PREDICTION"]
    assert "STREAK_3" in [b.id for b in updates[2].new_badges]
    assert "STREAK_5" in [b.id for b in updates[4].new_badges]
    assert updates[4].progress.best_streak == 5


def test_incorrect_prediction_resets_streak():
    updates = _apply_many(UserProgress(user_id="u1"), [(True, 60), (True, 60), (False, 0)])

    final = updates[-1].progress
    assert final.current_streak == 0
    assert final.best_streak == 2
    assert final.total_attempts == 3
    assert final.correct_count == 2
    assert final.skill_scores["sports"].total == 3
    assert final.tier_scores["beginner"].correct == 2


def test_perfect_score_badge_awarded_once():
    updates = _apply_many(UserProgress(user_id="u1"), [(True, 100), (True, 100)])

    assert "PERFECT_SCORE_100" in [b.id for b in updates[0].new_badges]
    assert "PERFECT_SCORE_100" not in [b.id for b in updates[1].new_badges]
    assert [b.id for b in updates[1].progress.badges].count("PERFECT_SCORE_100") == 1


def test_level_badge_on_crossing_milestone():
    # One jump from level 1 straight to level 6
    update = apply_result(UserProgress(user_id="u1"), True, 1200, now=NOW)

    assert update.leveled_up
    assert update.previous_level == 1
    assert update.progress.current_level == 6
    assert "LEVEL_5" in [b.id for b in update.new_badges]


def test_apply_result_does_not_mutate_input():
    progress = UserProgress(user_id="u1")
    apply_result(progress, True, 110, now=NOW)

    assert progress.total_attempts == 0
    assert progress.badges == []
