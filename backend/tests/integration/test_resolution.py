"""Resolution flow: prediction intake, polling, settlement and manual overrides.

Uses an in-memory market source in place of the Gamma API.
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from cascade_tracker.generation.models import Cascade, CascadeDraft
from cascade_tracker.resolution import poller as poller_module
from cascade_tracker.resolution.exceptions import InvalidOutcomeError, QueueEntryNotFoundError
from cascade_tracker.resolution.poller import ResolutionPoller, determine_outcome
from cascade_tracker.resolution.settlement import settle_event
from cascade_tracker.resolution.submission import TierLockedError, submit_prediction
from cascade_tracker.services.polymarket import MarketState
from cascade_tracker.storage import files, predictions, progress, queue
from cascade_tracker.storage.predictions import PredictionValidationError

from factories import TRIGGER, FakeMarketSource, closed_state, make_draft_data, open_state

THREE_DAYS_AGO = datetime.now(timezone.utc) - timedelta(days=3)


def _submit(user_id: str, event_slug: str, outcome: str, confidence: int = 5, **kwargs):
    return submit_prediction(
        user_id=user_id,
        target_id=kwargs.pop("target_id", f"casc_{event_slug}"),
        event_slug=event_slug,
        predicted_outcome=outcome,
        confidence_level=confidence,
        **kwargs,
    )


# ============================================================================
# Outcome determination
# ============================================================================


def test_explicit_outcome_wins():
    state = closed_state("e", [0.1, 0.9], resolved_outcome="Yes")
    assert determine_outcome(state) == "yes"


def test_outcome_label_maps_to_side():
    state = MarketState(
        slug="e", closed=True, resolved_outcome="Celtics", outcomes=["Lakers", "Celtics"]
    )
    assert determine_outcome(state) == "no"


def test_majority_price_decides_outcome():
    assert determine_outcome(closed_state("e", [0.97, 0.03])) == "yes"
    assert determine_outcome(closed_state("e", [0.2, 0.8])) == "no"
    # percentages are normalized
    assert determine_outcome(closed_state("e", [99.5, 0.5])) == "yes"


def test_ambiguous_pricing_defaults_to_no():
    assert determine_outcome(closed_state("e", [0.5, 0.5])) == "no"
    assert determine_outcome(MarketState(slug="e", closed=True)) == "no"


# ============================================================================
# Prediction intake
# ============================================================================


def test_submit_queues_event_once():
    _submit("alice", "lakers-nba-finals", "yes")
    _submit("bob", "lakers-nba-finals", "no")

    assert queue.get_queue_counts()["pending"] == 1
    assert len(predictions.list_predictions("lakers-nba-finals")) == 2
    assert progress.find_progress("alice") is not None


def test_submit_rejects_bad_outcome_and_locked_tier():
    with pytest.raises(PredictionValidationError):
        _submit("alice", "lakers-nba-finals", "maybe")
    with pytest.raises(TierLockedError):
        _submit("alice", "lakers-nba-finals", "yes", difficulty="expert")

    assert predictions.list_predictions() == []


def test_submit_rejects_path_like_slug(data_dir):
    with pytest.raises(PredictionValidationError):
        _submit("alice", "../../escaped", "yes")

    assert not (data_dir.parent / "escaped").exists()
    assert queue.get_all_entries() == []
    assert progress.find_progress("alice") is None


def test_late_prediction_on_queued_event_gets_no_time_bonus():
    queue.enqueue_event("", "lakers-nba-finals", created_at=THREE_DAYS_AGO)
    prediction = _submit("bob", "lakers-nba-finals", "no", confidence=1)

    assert prediction.opened_at == THREE_DAYS_AGO

    settlement = ResolutionPoller().resolve_manually("lakers-nba-finals", "yes").settlement
    assert settlement.settled[0].points == 0


def test_cascade_target_opens_when_cascade_was_created():
    cascade = Cascade.from_draft(
        CascadeDraft.model_validate(make_draft_data()), trigger=TRIGGER, cascade_id="casc_lakers"
    ).model_copy(update={"created_at": THREE_DAYS_AGO})
    files.save_cascade(cascade)

    prediction = _submit("alice", TRIGGER.slug, "yes", target_id="casc_lakers")

    assert prediction.opened_at == THREE_DAYS_AGO
    settlement = ResolutionPoller().resolve_manually(TRIGGER.slug, "yes").settlement
    # 50 base + 50 confidence, no time bonus after three days
    assert settlement.settled[0].points == 100


def test_submit_rejects_already_resolved_event():
    _submit("alice", "lakers-nba-finals", "yes")
    poller = ResolutionPoller()
    poller.resolve_manually("lakers-nba-finals", "yes")

    with pytest.raises(PredictionValidationError):
        _submit("bob", "lakers-nba-finals", "yes")


# ============================================================================
# Polling
# ============================================================================


def test_poll_settles_closed_event_and_touches_open_one():
    _submit("alice", "lakers-nba-finals", "yes", confidence=5)
    _submit("bob", "lakers-nba-finals", "no", confidence=2)
    _submit("alice", "lebron-mvp", "yes")
    source = FakeMarketSource(
        {
            "lakers-nba-finals": closed_state("lakers-nba-finals", [0.99, 0.01]),
            "lebron-mvp": open_state("lebron-mvp"),
        }
    )

    result = asyncio.run(ResolutionPoller(client=source).poll())

    assert result.checked == 2
    assert result.resolved == 1
    assert result.still_open == 1
    assert source.calls == ["lakers-nba-finals", "lebron-mvp"]

    settlement = result.settlements[0]
    assert settlement.outcome == "yes"
    by_user = {s.user_id: s for s in settlement.settled}
    assert by_user["alice"].is_correct and by_user["alice"].points == 110
    assert not by_user["bob"].is_correct and by_user["bob"].points == 10

    assert queue.find_entry("lakers-nba-finals").resolution.final_prices == [0.99, 0.01]
    assert queue.find_entry("lebron-mvp").last_checked_at is not None
    assert progress.find_progress("alice").experience_points == 110
    assert progress.get_leaderboard()[0].user_id == "alice"


def test_repeat_poll_does_not_resettle():
    _submit("alice", "lakers-nba-finals", "yes")
    source = FakeMarketSource({"lakers-nba-finals": closed_state("lakers-nba-finals", [1, 0])})
    poller = ResolutionPoller(client=source)

    asyncio.run(poller.poll())
    second = asyncio.run(poller.poll())

    assert second.checked == 0
    assert progress.find_progress("alice").total_attempts == 1
    # Settling the same event again is a no-op as well
    assert settle_event("lakers-nba-finals", "no").settled == []
    assert progress.find_progress("alice").experience_points == 110


def test_fetch_failure_is_isolated():
    _submit("alice", "broken-event", "yes")
    _submit("alice", "missing-event", "yes")
    _submit("alice", "lakers-nba-finals", "yes")
    source = FakeMarketSource(
        {"lakers-nba-finals": closed_state("lakers-nba-finals", [0.9, 0.1])},
        failing={"broken-event"},
    )

    result = asyncio.run(ResolutionPoller(client=source).poll())

    assert result.errors == 1
    assert result.not_found == 1
    assert result.resolved == 1
    assert queue.find_entry("broken-event").status == "pending"
    assert queue.find_entry("missing-event").status == "pending"


def test_overlapping_poll_is_skipped():
    poller = ResolutionPoller(client=FakeMarketSource())
    poller.is_polling = True

    result = asyncio.run(poller.poll())

    assert result.skipped
    assert poller.is_polling


def test_poll_resolves_cascades_triggered_by_event():
    cascade = Cascade.from_draft(
        CascadeDraft.model_validate(make_draft_data()), trigger=TRIGGER, cascade_id="casc_lakers"
    )
    files.save_cascade(cascade)
    queue.enqueue_event(TRIGGER.id, TRIGGER.slug)
    source = FakeMarketSource({TRIGGER.slug: closed_state(TRIGGER.slug, [0.1, 0.9])})

    result = asyncio.run(ResolutionPoller(client=source).poll())

    assert result.settlements[0].resolved_cascades == ["casc_lakers"]
    assert files.load_cascade("casc_lakers").status == "RESOLVED"


# ============================================================================
# Manual resolution
# ============================================================================


def test_manual_resolution_settles_once():
    _submit("alice", "lakers-nba-finals", "no", confidence=3)
    poller = ResolutionPoller()

    first = poller.resolve_manually("lakers-nba-finals", "NO")
    second = poller.resolve_manually("lakers-nba-finals", "yes")

    assert first.outcome == "no"
    assert first.settlement.settled[0].is_correct
    assert second.already_resolved
    assert second.settlement is None

    entry = queue.find_entry("lakers-nba-finals")
    assert entry.resolution.manual
    assert entry.resolution.outcome == "no"
    assert progress.find_progress("alice").correct_count == 1


def test_manual_resolution_errors():
    poller = ResolutionPoller()

    with pytest.raises(QueueEntryNotFoundError):
        poller.resolve_manually("never-queued", "yes")

    queue.enqueue_event("", "lakers-nba-finals")
    with pytest.raises(InvalidOutcomeError):
        poller.resolve_manually("lakers-nba-finals", "draw")


def test_queue_status_reports_flags():
    queue.enqueue_event("", "lakers-nba-finals")
    poller = poller_module.get_poller()
    poller.polling_active = True

    status = poller.get_queue_status()

    assert status.pending == 1
    assert status.total == 1
    assert status.polling_active
    assert not status.is_polling
    assert poller_module.get_poller() is poller
