"""Resolution pipeline: queue polling, settlement, scoring and progression."""

from .exceptions import InvalidOutcomeError, QueueEntryNotFoundError, ResolutionError
from .poller import (
    ManualResolutionResult,
    PollResult,
    QueueStatus,
    ResolutionPoller,
    determine_outcome,
    get_poller,
    resolution_poll_job,
)
from .progression import (
    BADGES,
    LEVEL_THRESHOLDS,
    TIER_RULES,
    ProgressUpdate,
    apply_result,
    calculate_level,
    get_next_level_xp,
    update_progress,
)
from .scoring import DIFFICULTY_MULTIPLIERS, PointsBreakdown, calculate_points, time_bonus
from .settlement import SettlementResult, settle_event
from .submission import TierLockedError, submit_prediction

__all__ = [
    "InvalidOutcomeError",
    "QueueEntryNotFoundError",
    "ResolutionError",
    "ManualResolutionResult",
    "PollResult",
    "QueueStatus",
    "ResolutionPoller",
    "determine_outcome",
    "get_poller",
    "resolution_poll_job",
    "BADGES",
    "LEVEL_THRESHOLDS",
    "TIER_RULES",
    "ProgressUpdate",
    "apply_result",
    "calculate_level",
    "get_next_level_xp",
    "update_progress",
    "DIFFICULTY_MULTIPLIERS",
    "PointsBreakdown",
    "calculate_points",
    "time_bonus",
    "SettlementResult",
    "settle_event",
    "TierLockedError",
    "submit_prediction",
]
