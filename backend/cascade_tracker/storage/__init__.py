"""Storage layer for Cascade Tracker - file-based persistence and queuing.

This package provides:
- State management (diversity history and generation counters in data/state.yaml)
- Cascade files (markdown with YAML frontmatter under data/cascades/)
- Resolution queue (timestamp-prefixed JSON files under data/queue/resolution/)
- Predictions and user progression records

All records are Pydantic models and every rewrite is atomic.
"""

# State management
from .state import (
    GenerationStats,
    TrackerState,
    get_data_dir,
    load_diversity_tracker,
    load_state,
    record_generation_outcome,
    save_diversity_tracker,
    save_state,
)

# Cascade files
from .files import (
    find_cascade_file,
    generate_cascade_id,
    list_cascades,
    load_cascade,
    mark_cascade_resolved,
    resolve_cascades_for_event,
    save_cascade,
)

# Resolution queue
from .queue import (
    ResolutionQueueEntry,
    ResolutionSnapshot,
    cleanup_resolved,
    enqueue_event,
    find_entry,
    get_all_entries,
    get_pending_entries,
    get_queue_counts,
    mark_resolved,
    touch_last_checked,
)

# Predictions
from .predictions import (
    DuplicatePredictionError,
    Prediction,
    PredictionValidationError,
    create_prediction,
    generate_prediction_id,
    get_open_predictions_for_event,
    list_predictions,
    settle_prediction,
)

# Progression
from .progress import (
    TIER_ORDER,
    Badge,
    LeaderboardEntry,
    SkillRecord,
    Tier,
    UserProgress,
    find_progress,
    get_leaderboard,
    get_progress,
    get_user_rank,
    save_progress,
)

__all__ = [
    # State management
    "GenerationStats",
    "TrackerState",
    "get_data_dir",
    "load_diversity_tracker",
    "load_state",
    "record_generation_outcome",
    "save_diversity_tracker",
    "save_state",
    # Cascade files
    "find_cascade_file",
    "generate_cascade_id",
    "list_cascades",
    "load_cascade",
    "mark_cascade_resolved",
    "resolve_cascades_for_event",
    "save_cascade",
    # Resolution queue
    "ResolutionQueueEntry",
    "ResolutionSnapshot",
    "cleanup_resolved",
    "enqueue_event",
    "find_entry",
    "get_all_entries",
    "get_pending_entries",
    "get_queue_counts",
    "mark_resolved",
    "touch_last_checked",
    # Predictions
    "DuplicatePredictionError",
    "Prediction",
    "PredictionValidationError",
    "create_prediction",
    "generate_prediction_id",
    "get_open_predictions_for_event",
    "list_predictions",
    "settle_prediction",
    # Progression
    "TIER_ORDER",
    "Badge",
    "LeaderboardEntry",
    "SkillRecord",
    "Tier",
    "UserProgress",
    "find_progress",
    "get_leaderboard",
    "get_progress",
    "get_user_rank",
    "save_progress",
]
