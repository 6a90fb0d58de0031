"""Rolling history of accepted cascades used to keep generation diverse."""

import logging
from collections import deque
from collections.abc import Iterable
from datetime import datetime, timezone

from pydantic import BaseModel, Field

from .models import Cascade, Domain

logger = logging.getLogger(__name__)

SENSITIVE_DOMAINS = frozenset({Domain.POLITICAL, Domain.CRYPTO})


class DiversityRecord(BaseModel):
    domain: Domain
    event_slugs: list[str] = Field(default_factory=list)
    recorded_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class DiversityTracker:
    """Bounded FIFO of the most recent accepted cascades.

    Owned by whoever drives generation and passed to the scorer and validator,
    so separate pipelines (and tests) never share history by accident.
    """

    def __init__(
        self,
        max_history: int = 10,
        window: int = 3,
        sensitive_domains: Iterable[Domain] = SENSITIVE_DOMAINS,
        records: Iterable[DiversityRecord] | None = None,
    ):
        if max_history < 1:
            raise ValueError("max_history must be at least 1")
        if window < 1:
            raise ValueError("window must be at least 1")
        self.max_history = max_history
        self.window = window
        self.sensitive_domains = frozenset(sensitive_domains)
        self._records: deque[DiversityRecord] = deque(maxlen=max_history)
        for record in records or []:
            self._records.append(record)

    def __len__(self) -> int:
        return len(self._records)

    @property
    def records(self) -> list[DiversityRecord]:
        return list(self._records)

    def should_allow_domain(self, domain: Domain) -> bool:
        """False when a sensitive domain already appears in the last ``window`` cascades."""
        if len(self._records) < self.window:
            return True
        if domain not in self.sensitive_domains:
            return True
        recent = list(self._records)[-self.window:]
        return not any(record.domain == domain for record in recent)

    def record(self, domain: Domain, event_slugs: Iterable[str]) -> DiversityRecord:
        entry = DiversityRecord(domain=domain, event_slugs=list(event_slugs))
        # deque(maxlen) evicts the oldest entry once full
        self._records.append(entry)
        logger.debug(
            f"Recorded {domain} cascade in diversity history ({len(self._records)}/{self.max_history})"
        )
        return entry

    def record_cascade(self, cascade: Cascade) -> DiversityRecord:
        return self.record(cascade.domain, cascade.event_slugs())

    def usage_count(self, slug: str) -> int:
        return sum(record.event_slugs.count(slug) for record in self._records)

    def freshness_penalty(self, slug: str, per_use: float = 10.0) -> float:
        """Negative score adjustment for events already used in recent cascades."""
        return -per_use * self.usage_count(slug)

    def recent_domains(self, n: int = 5) -> list[Domain]:
        if n <= 0:
            return []
        return [record.domain for record in list(self._records)[-n:]]

    def clear(self) -> None:
        self._records.clear()
