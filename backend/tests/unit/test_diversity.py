"""
Unit Tests: Diversity Tracker

Test cases:
- Gate only applies to sensitive domains once the window is full
- Bounded history evicts oldest records
- Usage counts and recent domains
"""

import pytest

from cascade_tracker.generation.diversity import DiversityTracker
from cascade_tracker.generation.models import Domain


def test_gate_open_until_window_is_full():
    tracker = DiversityTracker(window=3)
    tracker.record(Domain.POLITICAL, ["a"])
    tracker.record(Domain.POLITICAL, ["b"])

    assert tracker.should_allow_domain(Domain.POLITICAL)


def test_sensitive_domain_blocked_within_window():
    tracker = DiversityTracker(window=3)
    for domain in (Domain.POLITICAL, Domain.SPORTS, Domain.ECONOMIC):
        tracker.record(domain, [])

    assert not tracker.should_allow_domain(Domain.POLITICAL)
    assert tracker.should_allow_domain(Domain.CRYPTO)
    # Non-sensitive domains are never gated
    assert tracker.should_allow_domain(Domain.SPORTS)


def test_sensitive_domain_allowed_after_window_moves_on():
    tracker = DiversityTracker(window=3)
    tracker.record(Domain.CRYPTO, [])
    for domain in (Domain.SPORTS, Domain.HEALTH, Domain.CLIMATE):
        tracker.record(domain, [])

    assert tracker.should_allow_domain(Domain.CRYPTO)


def test_history_is_bounded():
    tracker = DiversityTracker(max_history=10)
    for i in range(12):
        tracker.record(Domain.SPORTS, [f"event-{i}"])

    assert len(tracker) == 10
    assert tracker.records[0].event_slugs == ["event-2"]
    assert tracker.usage_count("event-0") == 0
    assert tracker.usage_count("event-11") == 1


def test_recent_domains_newest_last():
    tracker = DiversityTracker()
    for domain in (Domain.POLITICAL, Domain.SPORTS, Domain.CRYPTO):
        tracker.record(domain, [])

    assert tracker.recent_domains(2) == [Domain.SPORTS, Domain.CRYPTO]
    assert tracker.recent_domains(0) == []


def test_freshness_penalty_counts_every_use():
    tracker = DiversityTracker()
    tracker.record(Domain.SPORTS, ["lakers", "mvp"])
    tracker.record(Domain.SPORTS, ["lakers"])

    assert tracker.freshness_penalty("lakers") == -20
    assert tracker.freshness_penalty("unknown") == 0

    tracker.clear()
    assert len(tracker) == 0


def test_custom_sensitive_domains():
    tracker = DiversityTracker(window=1, sensitive_domains={Domain.SPORTS})
    tracker.record(Domain.SPORTS, [])

    assert not tracker.should_allow_domain(Domain.SPORTS)
    assert tracker.should_allow_domain(Domain.POLITICAL)


def test_invalid_sizes_rejected():
    with pytest.raises(ValueError):
        DiversityTracker(max_history=0)
    with pytest.raises(ValueError):
        DiversityTracker(window=0)
