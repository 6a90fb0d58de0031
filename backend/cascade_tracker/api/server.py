"""FastAPI admin server for queue status, manual resolution and read-only views."""

import logging
from typing import Any, Literal

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from cascade_tracker import __version__
from cascade_tracker.generation.models import Cascade, CascadeStatus
from cascade_tracker.resolution.exceptions import InvalidOutcomeError, QueueEntryNotFoundError
from cascade_tracker.resolution.poller import (
    ManualResolutionResult,
    QueueStatus,
    get_poller,
)
from cascade_tracker.resolution.progression import get_next_level_xp
from cascade_tracker.resolution.submission import TierLockedError, submit_prediction
from cascade_tracker.storage.files import list_cascades, load_cascade
from cascade_tracker.storage.predictions import (
    DuplicatePredictionError,
    Prediction,
    PredictionValidationError,
)
from cascade_tracker.storage.progress import (
    LeaderboardEntry,
    find_progress,
    get_leaderboard,
    get_user_rank,
)

logger = logging.getLogger(__name__)

app = FastAPI(title="Cascade Tracker API", version=__version__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://localhost:3001"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class ResolutionRequest(BaseModel):
    event: str = Field(description="Queue entry id, event slug or event id")
    outcome: str = Field(description="yes or no")


class PredictionRequest(BaseModel):
    user_id: str
    target_id: str
    event_slug: str
    predicted_outcome: str
    confidence_level: int
    target_type: Literal["challenge", "cascade"] = "cascade"
    event_id: str = ""
    category: str | None = None
    difficulty: str = "beginner"
    reasoning: str | None = None


@app.get("/health")
async def health_check() -> dict[str, str]:
    return {"status": "healthy", "service": "cascade-tracker", "version": __version__}


@app.get("/api/queue/status", response_model=QueueStatus)
async def queue_status():
    return get_poller().get_queue_status()


@app.post("/api/resolutions", response_model=ManualResolutionResult)
async def resolve_event(request: ResolutionRequest):
    """Manually resolve a queued event and settle its predictions."""
    try:
        return get_poller().resolve_manually(request.event, request.outcome)
    except QueueEntryNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidOutcomeError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.post("/api/predictions", response_model=Prediction, status_code=201)
async def create_prediction(request: PredictionRequest):
    try:
        return submit_prediction(
            user_id=request.user_id,
            target_id=request.target_id,
            event_slug=request.event_slug,
            predicted_outcome=request.predicted_outcome,
            confidence_level=request.confidence_level,
            target_type=request.target_type,
            event_id=request.event_id,
            category=request.category,
            difficulty=request.difficulty,
            reasoning=request.reasoning,
        )
    except PredictionValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except (DuplicatePredictionError, TierLockedError) as e:
        raise HTTPException(status_code=409, detail=str(e))


@app.get("/api/cascades", response_model=list[Cascade])
async def get_cascades(status: CascadeStatus | None = None, limit: int = 50):
    return list_cascades(status=status, limit=limit)


@app.get("/api/cascades/{cascade_id}", response_model=Cascade)
async def get_cascade(cascade_id: str):
    try:
        return load_cascade(cascade_id)
    except FileNotFoundError:
        raise HTTPException(status_code=404, detail=f"Cascade {cascade_id} not found")


@app.get("/api/progress/{user_id}")
async def get_user_progress(user_id: str) -> dict[str, Any]:
    progress = find_progress(user_id)
    if progress is None:
        raise HTTPException(status_code=404, detail=f"No progress for {user_id}")
    return {
        **progress.model_dump(mode="json"),
        "accuracy": round(progress.accuracy, 4),
        "next_level_xp": get_next_level_xp(progress.current_level),
        "rank": get_user_rank(user_id),
    }


@app.get("/api/leaderboard", response_model=list[LeaderboardEntry])
async def leaderboard(limit: int = 10):
    return get_leaderboard(limit=limit)
