"""Tracker state with atomic writes to data/state.yaml.

Holds process-independent state that must survive between CLI runs, most
importantly the diversity history of recently accepted cascades.
"""

import logging
import shutil
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

from cascade_tracker.config import get_settings
from cascade_tracker.generation.diversity import DiversityRecord, DiversityTracker

logger = logging.getLogger(__name__)


# ============================================================================
# Pydantic Models
# ============================================================================


class GenerationStats(BaseModel):
    """Running counters for generation attempts."""

    attempts: int = 0
    accepted: int = 0
    rejected: int = 0
    failed: int = 0
    last_generated_at: datetime | None = None


class TrackerState(BaseModel):
    """Complete tracker state - matches data/state.yaml schema."""

    last_updated: datetime | None = None
    diversity_history: list[DiversityRecord] = Field(default_factory=list)
    generation: GenerationStats = Field(default_factory=GenerationStats)


# ============================================================================
# Helper Functions
# ============================================================================


def get_data_dir() -> Path:
    """Get the data directory path from settings."""
    settings = get_settings()
    data_dir = settings.data_dir

    if not data_dir.exists():
        raise FileNotFoundError(
            f"Data directory not found: {data_dir}. "
            "Run 'python -m cascade_tracker init' to create it."
        )

    return data_dir


def atomic_write_text(path: Path, content: str) -> None:
    """Write ``content`` to ``path`` via tempfile + rename.

    If the process crashes mid-write, the original file remains intact.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_path: Path | None = None
    try:
        with tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            delete=False,
            suffix=path.suffix or ".tmp",
            encoding="utf-8",
        ) as temp_file:
            temp_file.write(content)
            temp_path = Path(temp_file.name)

        shutil.move(str(temp_path), str(path))

    except Exception:
        if temp_path is not None:
            temp_path.unlink(missing_ok=True)
        raise


def dump_yaml(data: Any) -> str:
    return yaml.dump(
        data,
        default_flow_style=False,
        allow_unicode=True,
        sort_keys=False,
    )


def load_yaml_file(path: Path) -> Any:
    """Load a YAML file, returning None if it is missing or empty."""
    if not path.exists():
        return None
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def _get_state_path() -> Path:
    return get_data_dir() / "state.yaml"


# ============================================================================
# Public API
# ============================================================================


def load_state() -> TrackerState:
    """Load tracker state, returning an empty state if the file does not exist."""
    state_path = _get_state_path()

    try:
        raw_data = load_yaml_file(state_path)
    except yaml.YAMLError as e:
        logger.error(f"Corrupted YAML in state file: {e}")
        raise

    if not raw_data:
        logger.debug(f"No state at {state_path}. Returning default state.")
        return TrackerState()

    return TrackerState(**raw_data)


def save_state(state: TrackerState) -> None:
    """Atomically save tracker state to data/state.yaml."""
    state_path = _get_state_path()
    state.last_updated = datetime.now(timezone.utc)

    try:
        atomic_write_text(state_path, dump_yaml(state.model_dump(mode="json")))
        logger.debug(f"Saved state to {state_path}")
    except Exception as e:
        logger.error(f"Failed to save state: {e}")
        raise


def load_diversity_tracker(max_history: int = 10, window: int = 3) -> DiversityTracker:
    """Rebuild a tracker from the persisted history (newest ``max_history`` kept)."""
    state = load_state()
    return DiversityTracker(
        max_history=max_history,
        window=window,
        records=state.diversity_history[-max_history:],
    )


def save_diversity_tracker(tracker: DiversityTracker) -> None:
    state = load_state()
    state.diversity_history = tracker.records
    save_state(state)


def record_generation_outcome(outcome: str) -> GenerationStats:
    """Increment generation counters; ``outcome`` is accepted, rejected or failed."""
    if outcome not in {"accepted", "rejected", "failed"}:
        raise ValueError(f"Unknown generation outcome: {outcome}")

    state = load_state()
    stats = state.generation
    stats.attempts += 1
    setattr(stats, outcome, getattr(stats, outcome) + 1)
    if outcome == "accepted":
        stats.last_generated_at = datetime.now(timezone.utc)
    save_state(state)
    return stats
