"""Admin API through FastAPI's TestClient."""

from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient

from cascade_tracker.api.server import app
from cascade_tracker.generation.models import Cascade, CascadeDraft
from cascade_tracker.storage import files, predictions, queue

from factories import TRIGGER, make_draft_data

client = TestClient(app)


def _predict(user_id: str = "alice", **overrides):
    body = {
        "user_id": user_id,
        "target_id": "casc_lakers",
        "event_slug": TRIGGER.slug,
        "event_id": TRIGGER.id,
        "predicted_outcome": "yes",
        "confidence_level": 5,
        "category": "sports",
    }
    body.update(overrides)
    return client.post("/api/predictions", json=body)


def test_health():
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_queue_status_empty():
    response = client.get("/api/queue/status")

    assert response.status_code == 200
    assert response.json() == {
        "pending": 0,
        "resolved": 0,
        "total": 0,
        "is_polling": False,
        "polling_active": False,
    }


def test_resolve_unknown_event_is_404():
    response = client.post("/api/resolutions", json={"event": "nope", "outcome": "yes"})
    assert response.status_code == 404


def test_prediction_validation_errors():
    assert _predict(confidence_level=9).status_code == 400
    assert _predict(predicted_outcome="maybe").status_code == 400
    assert _predict(difficulty="expert").status_code == 409

    assert _predict().status_code == 201
    assert _predict(predicted_outcome="no").status_code == 409


def test_predict_resolve_and_read_progress():
    created = _predict()
    assert created.status_code == 201
    assert created.json()["id"].startswith("pred_")
    assert _predict("bob", predicted_outcome="no", confidence_level=1).status_code == 201
    assert client.get("/api/queue/status").json()["pending"] == 1

    assert client.post(
        "/api/resolutions", json={"event": TRIGGER.slug, "outcome": "draw"}
    ).status_code == 400

    resolved = client.post("/api/resolutions", json={"event": TRIGGER.slug, "outcome": "YES"})
    assert resolved.status_code == 200
    body = resolved.json()
    assert body["outcome"] == "yes"
    assert not body["already_resolved"]
    assert len(body["settlement"]["settled"]) == 2

    again = client.post("/api/resolutions", json={"event": TRIGGER.slug, "outcome": "no"})
    assert again.json()["already_resolved"]

    progress = client.get("/api/progress/alice").json()
    assert progress["experience_points"] == 110
    assert progress["current_level"] == 2
    assert progress["next_level_xp"] == 250
    assert progress["accuracy"] == 1.0
    assert progress["rank"] == 1
    assert "FIRST_PREDICTION" in [b["id"] for b in progress["badges"]]

    leaderboard = client.get("/api/leaderboard", params={"limit": 5}).json()
    assert [e["user_id"] for e in leaderboard] == ["alice", "bob"]

    assert client.get("/api/progress/nobody").status_code == 404


def test_cascade_views():
    assert client.get("/api/cascades").json() == []
    assert client.get("/api/cascades/casc_missing").status_code == 404

    cascade = Cascade.from_draft(
        CascadeDraft.model_validate(make_draft_data()), trigger=TRIGGER, cascade_id="casc_lakers"
    )
    files.save_cascade(cascade)

    listed = client.get("/api/cascades", params={"status": "LIVE"}).json()
    assert [c["id"] for c in listed] == ["casc_lakers"]
    assert client.get("/api/cascades", params={"status": "RESOLVED"}).json() == []

    detail = client.get("/api/cascades/casc_lakers").json()
    assert detail["trigger"]["slug"] == TRIGGER.slug
    assert len(detail["primary_effects"]) == 1


def test_path_like_event_slug_is_400(data_dir):
    response = _predict(event_slug="../../escaped")

    assert response.status_code == 400
    assert not (data_dir.parent / "escaped").exists()


def test_open_time_is_read_from_the_queue_not_the_request():
    queued_at = datetime.now(timezone.utc) - timedelta(days=3)
    queue.enqueue_event(TRIGGER.id, TRIGGER.slug, created_at=queued_at)

    # A client-supplied open time is not part of the request model
    created = _predict(
        "bob",
        predicted_outcome="no",
        confidence_level=1,
        opened_at=datetime.now(timezone.utc).isoformat(),
    )
    assert created.status_code == 201
    assert predictions.list_predictions(TRIGGER.slug)[0].opened_at == queued_at

    resolved = client.post("/api/resolutions", json={"event": TRIGGER.slug, "outcome": "yes"})
    assert resolved.json()["settlement"]["settled"][0]["points"] == 0
