"""User progression records stored in data/progress.yaml.

One mapping of user_id -> record. Records are created lazily the first time
a user is seen and afterwards only written by the progression updater.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field

from cascade_tracker.storage.state import (
    atomic_write_text,
    dump_yaml,
    get_data_dir,
    load_yaml_file,
)

logger = logging.getLogger(__name__)

Tier = Literal["beginner", "intermediate", "advanced", "expert"]
TIER_ORDER: tuple[Tier, ...] = ("beginner", "intermediate", "advanced", "expert")


class SkillRecord(BaseModel):
    """Attempts and correct answers within one category or tier."""

    total: int = 0
    correct: int = 0

    @property
    def accuracy(self) -> float:
        return self.correct / self.total if self.total else 0.0

    def add(self, is_correct: bool) -> None:
        self.total += 1
        if is_correct:
            self.correct += 1


class Badge(BaseModel):
    id: str
    name: str
    teaches: str = ""
    earned_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class UserProgress(BaseModel):
    user_id: str
    total_attempts: int = 0
    correct_count: int = 0
    current_level: int = 1
    experience_points: int = 0
    skill_scores: dict[str, SkillRecord] = Field(default_factory=dict)
    tier_scores: dict[str, SkillRecord] = Field(default_factory=dict)
    unlocked_tiers: list[Tier] = Field(default_factory=lambda: ["beginner"])
    badges: list[Badge] = Field(default_factory=list)
    current_streak: int = 0
    best_streak: int = 0
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def accuracy(self) -> float:
        return self.correct_count / self.total_attempts if self.total_attempts else 0.0

    def has_badge(self, badge_id: str) -> bool:
        return any(b.id == badge_id for b in self.badges)


class LeaderboardEntry(BaseModel):
    rank: int
    user_id: str
    experience_points: int
    current_level: int
    correct_count: int
    total_attempts: int
    accuracy: float


def _get_progress_path() -> Path:
    return get_data_dir() / "progress.yaml"


def load_all_progress() -> dict[str, UserProgress]:
    raw = load_yaml_file(_get_progress_path()) or {}
    return {user_id: UserProgress(**record) for user_id, record in raw.items()}


def _save_all(records: dict[str, UserProgress]) -> None:
    data = {user_id: p.model_dump(mode="json") for user_id, p in records.items()}
    atomic_write_text(_get_progress_path(), dump_yaml(data))


def get_progress(user_id: str) -> UserProgress:
    """Return the user's record, creating and persisting an empty one if needed."""
    records = load_all_progress()
    if user_id in records:
        return records[user_id]

    progress = UserProgress(user_id=user_id)
    records[user_id] = progress
    _save_all(records)
    logger.info(f"Created progress record for {user_id}")
    return progress


def find_progress(user_id: str) -> UserProgress | None:
    return load_all_progress().get(user_id)


def save_progress(progress: UserProgress) -> None:
    records = load_all_progress()
    progress.updated_at = datetime.now(timezone.utc)
    records[progress.user_id] = progress
    _save_all(records)
    logger.debug(f"Saved progress for {progress.user_id}")


def _ranking_key(p: UserProgress) -> tuple[int, int, int]:
    return (-p.experience_points, -p.current_level, -p.correct_count)


def get_leaderboard(limit: int = 10) -> list[LeaderboardEntry]:
    """Users ordered by XP, then level, then correct answers."""
    ordered = sorted(load_all_progress().values(), key=_ranking_key)
    return [
        LeaderboardEntry(
            rank=i,
            user_id=p.user_id,
            experience_points=p.experience_points,
            current_level=p.current_level,
            correct_count=p.correct_count,
            total_attempts=p.total_attempts,
            accuracy=round(p.accuracy, 4),
        )
        for i, p in enumerate(ordered[:limit], start=1)
    ]


def get_user_rank(user_id: str) -> int | None:
    """1 + number of users with strictly more XP; None for unknown users."""
    records = load_all_progress()
    progress = records.get(user_id)
    if progress is None:
        return None
    return 1 + sum(
        1 for p in records.values() if p.experience_points > progress.experience_points
    )
