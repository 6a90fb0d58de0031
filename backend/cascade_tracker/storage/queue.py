"""File-based resolution queue.

Every event referenced by a cascade or a prediction gets one JSON file under
data/queue/resolution/, prefixed with a timestamp so a directory listing is
also creation order. The poller sweeps pending entries and flips them to
resolved exactly once.
"""

import json
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Literal
from uuid import uuid4

from pydantic import BaseModel, Field

from cascade_tracker.storage.state import atomic_write_text, get_data_dir

logger = logging.getLogger(__name__)

QueueStatus = Literal["pending", "resolved"]


class ResolutionSnapshot(BaseModel):
    """Outcome plus the closing market snapshot it was derived from."""

    outcome: Literal["yes", "no"]
    outcomes: list[str] = Field(default_factory=list)
    final_prices: list[float] = Field(default_factory=list)
    closed_at: datetime | None = None
    manual: bool = False


class ResolutionQueueEntry(BaseModel):
    id: str
    event_id: str = ""
    event_slug: str
    status: QueueStatus = "pending"
    last_checked_at: datetime | None = None
    resolution: ResolutionSnapshot | None = None
    created_at: datetime
    resolved_at: datetime | None = None
    file_path: Path = Field(exclude=True)

    def matches(self, reference: str) -> bool:
        return reference in {self.id, self.event_slug} or (
            bool(self.event_id) and reference == self.event_id
        )


def _get_queue_dir() -> Path:
    queue_dir = get_data_dir() / "queue" / "resolution"
    queue_dir.mkdir(parents=True, exist_ok=True)
    return queue_dir


def _generate_queue_filename() -> str:
    """Generate timestamp-prefixed filename (YYYYMMDD_HHMMSS_ffffff_{uuid}.json)."""
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S_%f")
    unique_id = uuid4().hex[:8]
    return f"{timestamp}_{unique_id}.json"


def _load_entry(file_path: Path) -> ResolutionQueueEntry:
    data = json.loads(file_path.read_text(encoding="utf-8"))
    return ResolutionQueueEntry(id=file_path.stem, file_path=file_path, **data)


def _write_entry(entry: ResolutionQueueEntry) -> None:
    atomic_write_text(entry.file_path, entry.model_dump_json(indent=2, exclude={"id"}))


def get_all_entries() -> list[ResolutionQueueEntry]:
    """All queue entries, oldest first. Unreadable files are skipped with a warning."""
    entries = []
    for file_path in sorted(_get_queue_dir().glob("*.json")):
        try:
            entries.append(_load_entry(file_path))
        except Exception as e:
            logger.warning(f"Failed to parse queue entry {file_path}: {e}")
            continue
    return entries


def enqueue_event(event_id: str, event_slug: str, created_at: datetime | None = None) -> bool:
    """Queue an event for resolution monitoring.

    ``created_at`` defaults to now and doubles as the time the event opened
    for predictions that do not target a stored cascade.

    Returns:
        True if a new entry was written, False if the event is already queued
    """
    for existing in get_all_entries():
        if existing.event_slug == event_slug or (event_id and existing.event_id == event_id):
            logger.debug(f"Event {event_slug} already queued as {existing.id}")
            return False

    file_path = _get_queue_dir() / _generate_queue_filename()
    entry = ResolutionQueueEntry(
        id=file_path.stem,
        event_id=event_id,
        event_slug=event_slug,
        created_at=created_at or datetime.now(timezone.utc),
        file_path=file_path,
    )

    try:
        _write_entry(entry)
        logger.info(f"Queued event {event_slug} for resolution")
        return True
    except Exception as e:
        logger.error(f"Failed to queue event {event_slug}: {e}")
        raise


def get_pending_entries() -> list[ResolutionQueueEntry]:
    """Pending entries in creation order."""
    pending = [e for e in get_all_entries() if e.status == "pending"]
    logger.debug(f"Found {len(pending)} pending resolution entries")
    return pending


def find_entry(reference: str) -> ResolutionQueueEntry | None:
    """Find an entry by entry id, event slug or event id."""
    for entry in get_all_entries():
        if entry.matches(reference):
            return entry
    return None


def _reload(entry_id: str) -> ResolutionQueueEntry | None:
    file_path = _get_queue_dir() / f"{entry_id}.json"
    if not file_path.exists():
        return None
    return _load_entry(file_path)


def touch_last_checked(entry_id: str, checked_at: datetime | None = None) -> bool:
    """Record a poll of a still-open event. No-op unless the entry is pending."""
    entry = _reload(entry_id)
    if entry is None or entry.status != "pending":
        return False
    entry.last_checked_at = checked_at or datetime.now(timezone.utc)
    _write_entry(entry)
    return True


def mark_resolved(entry_id: str, snapshot: ResolutionSnapshot) -> bool:
    """Flip a pending entry to resolved.

    Returns:
        False if the entry is missing or was already resolved
    """
    entry = _reload(entry_id)
    if entry is None:
        logger.warning(f"Queue entry {entry_id} not found")
        return False
    if entry.status != "pending":
        logger.debug(f"Queue entry {entry_id} already resolved, skipping")
        return False

    now = datetime.now(timezone.utc)
    entry.status = "resolved"
    entry.resolution = snapshot
    entry.resolved_at = now
    entry.last_checked_at = now
    _write_entry(entry)
    logger.info(f"Marked {entry.event_slug} resolved: {snapshot.outcome.upper()}")
    return True


def cleanup_resolved(retention_days: int = 7, now: datetime | None = None) -> int:
    """Delete resolved entries older than ``retention_days``. Returns the count removed."""
    cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=retention_days)
    removed = 0
    for entry in get_all_entries():
        if entry.status != "resolved" or entry.resolved_at is None:
            continue
        if entry.resolved_at >= cutoff:
            continue
        try:
            entry.file_path.unlink(missing_ok=True)
            removed += 1
        except Exception as e:
            logger.warning(f"Failed to delete queue file {entry.file_path}: {e}")

    if removed:
        logger.info(f"Cleaned up {removed} resolved queue entries")
    return removed


def get_queue_counts() -> dict[str, int]:
    entries = get_all_entries()
    pending = sum(1 for e in entries if e.status == "pending")
    return {
        "pending": pending,
        "resolved": len(entries) - pending,
        "total": len(entries),
    }
