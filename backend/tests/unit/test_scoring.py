"""
Unit Tests: Prediction Scoring

Test cases:
- Correct predictions earn base + confidence + time bonus
- Incorrect predictions earn only the time bonus
- Time bonus bands
- Difficulty multiplier
- Half points round up
"""

from datetime import datetime, timedelta, timezone

from cascade_tracker.resolution.scoring import calculate_points, is_prediction_correct, time_bonus

OPENED = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def test_correct_immediate_high_confidence():
    points = calculate_points(True, 5, OPENED, OPENED + timedelta(minutes=5))

    assert points.base == 50
    assert points.confidence_bonus == 50
    assert points.time_bonus == 10
    assert points.total == 110


def test_incorrect_late_prediction_scores_zero():
    points = calculate_points(False, 2, OPENED, OPENED + timedelta(hours=30))

    assert not points.is_correct
    assert points.total == 0


def test_yes_prediction_outscores_late_no_prediction():
    """Event resolves yes: early confident yes beats a late hedged no."""
    yes_correct = is_prediction_correct("yes", "yes")
    no_correct = is_prediction_correct("no", "yes")

    yes_points = calculate_points(yes_correct, 5, OPENED, OPENED)
    no_points = calculate_points(no_correct, 2, OPENED, OPENED + timedelta(hours=25))

    assert yes_correct and not no_correct
    assert yes_points.total > no_points.total
    assert no_points.total == 0


def test_incorrect_prediction_keeps_time_bonus():
    points = calculate_points(False, 5, OPENED, OPENED + timedelta(minutes=30))
    assert points.total == 10


def test_time_bonus_bands():
    assert time_bonus(OPENED, OPENED + timedelta(minutes=59)) == 10
    assert time_bonus(OPENED, OPENED + timedelta(hours=1)) == 5
    assert time_bonus(OPENED, OPENED + timedelta(hours=5)) == 5
    assert time_bonus(OPENED, OPENED + timedelta(hours=12)) == 2
    assert time_bonus(OPENED, OPENED + timedelta(hours=24)) == 0


def test_difficulty_multiplier():
    points = calculate_points(True, 3, OPENED, OPENED + timedelta(days=2), difficulty="advanced")

    # (50 + 30 + 0) * 2.5
    assert points.multiplier == 2.5
    assert points.total == 200


def test_half_points_round_up():
    # (0 + 0 + 5) * 2.5 = 12.5
    wrong_advanced = calculate_points(False, 1, OPENED, OPENED + timedelta(hours=2), "advanced")
    # (50 + 20 + 5) * 1.5 = 112.5
    right_intermediate = calculate_points(
        True, 2, OPENED, OPENED + timedelta(hours=2), "intermediate"
    )

    assert wrong_advanced.total == 13
    assert right_intermediate.total == 113


def test_outcome_comparison_ignores_case():
    assert is_prediction_correct(" YES", "yes")
    assert not is_prediction_correct("no", "Yes")
