import logging
import time
from contextlib import asynccontextmanager
from dataclasses import asdict
from datetime import date, datetime
from functools import lru_cache

from fastapi import Depends, FastAPI, HTTPException, Request, Response
from pydantic import BaseModel, Field

from lingocards.application.backup import dump_study_data, load_study_data
from lingocards.application.config import resolve_config
from lingocards.application.factory import get_study_repository
from lingocards.application.study_service import StudyService
from lingocards.application.study_session import NoCardsDue, StudySession
from lingocards.consts import VERSION
from lingocards.domain.errors import (
    CardNotFoundError,
    InvalidBackupError,
    InvalidGoalError,
    InvalidRatingError,
    ReviewPersistenceError,
    SessionStateError,
    StorageError,
)
from lingocards.infrastructure.logging_config import setup_logging

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("lingocards.server")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"LingoCards Server v{VERSION} starting up...")
    yield
    logger.info("LingoCards Server shutting down...")


app = FastAPI(
    title="LingoCards Server",
    description="Study-session API over the SM-2 scheduling core.",
    version=VERSION,
    lifespan=lifespan,
)

start_time = time.time()

# One user context per process; sessions live only in memory.
sessions: dict[str, StudySession] = {}


@lru_cache
def get_service() -> StudyService:
    config = resolve_config()
    setup_logging(config.log_dir, config.verbose, console_level=logging.INFO)
    return StudyService(get_study_repository(config), config)


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float


class CardView(BaseModel):
    id: str
    deck_id: str
    front: str
    back: str
    example: str | None = None


class ProgressView(BaseModel):
    current: int
    total: int
    reviewed: int
    remaining: int
    percentage: int


class SessionResponse(BaseModel):
    no_cards_due: bool = False
    message: str | None = None
    session_id: str | None = None
    state: str
    is_flipped: bool = False
    is_complete: bool = False
    has_more_due: bool = False
    card: CardView | None = None
    progress: ProgressView | None = None


class StartSessionRequest(BaseModel):
    max_cards: int | None = Field(default=None, ge=1)
    unlimited: bool = False
    goal_limited: bool = False


class RateRequest(BaseModel):
    rating: int


class AddCardRequest(BaseModel):
    front: str
    back: str
    deck_id: str = "default"
    example: str | None = None


class UpdateCardRequest(BaseModel):
    front: str | None = None
    back: str | None = None
    example: str | None = None
    deck_id: str | None = None


class ReviewLogView(BaseModel):
    id: str
    card_id: str
    rating: int
    reviewed_at: datetime


class DeckView(BaseModel):
    deck_id: str
    total_cards: int
    due_cards: int
    new_cards: int
    learning_cards: int


class PreviewResponse(BaseModel):
    again: int
    hard: int
    good: int
    easy: int


class GoalResponse(BaseModel):
    goal: int
    today_reviewed: int
    remaining: int
    goal_met: bool


class StreakResponse(BaseModel):
    current_streak: int
    longest_streak: int


class DayProgressView(BaseModel):
    day: date
    reviewed: int
    goal: int
    goal_met: bool
    is_today: bool
    is_future: bool
    due_cards: int | None = None


def _session_response(result: StudySession | NoCardsDue) -> SessionResponse:
    if isinstance(result, NoCardsDue):
        return SessionResponse(
            no_cards_due=True, message=result.message, state=result.state.value
        )

    card = result.current_card
    return SessionResponse(
        session_id=result.id,
        state=result.state.value,
        is_flipped=result.is_flipped,
        is_complete=result.is_complete,
        has_more_due=result.has_more_due,
        card=CardView(
            id=card.id,
            deck_id=card.deck_id,
            front=card.front,
            back=card.back,
            example=card.example,
        )
        if card
        else None,
        progress=ProgressView(**asdict(result.progress)),
    )


def _get_session(session_id: str) -> StudySession:
    session = sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Session not found: {session_id}")
    return session


def _register(result: StudySession | NoCardsDue) -> SessionResponse:
    if isinstance(result, StudySession):
        # Exactly one active session per user context.
        sessions.clear()
        sessions[result.id] = result
    return _session_response(result)


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Simple health check to verify server is reachable.
    """
    return HealthResponse(status="ok", version=VERSION, uptime_seconds=time.time() - start_time)


@app.get("/version")
async def get_version():
    return {"version": VERSION}


@app.post("/cards", response_model=CardView, status_code=201)
async def add_card(req: AddCardRequest, service: StudyService = Depends(get_service)):
    try:
        card = await service.add_card(req.front, req.back, req.deck_id, req.example)
    except StorageError as e:
        logger.error(f"Add card failed: {e}")
        raise HTTPException(status_code=409, detail=str(e)) from e
    return CardView(
        id=card.id, deck_id=card.deck_id, front=card.front, back=card.back, example=card.example
    )


@app.get("/cards/{card_id}/preview", response_model=PreviewResponse)
async def preview_card(card_id: str, service: StudyService = Depends(get_service)):
    """Interval (days) each rating would produce for this card."""
    try:
        preview = await service.preview_intervals(card_id)
    except CardNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return PreviewResponse(**asdict(preview))


@app.patch("/cards/{card_id}", response_model=CardView)
async def update_card(
    card_id: str, req: UpdateCardRequest, service: StudyService = Depends(get_service)
):
    """Edit card content; omitted fields are kept and an empty example clears it."""
    try:
        card = await service.update_card(
            card_id, front=req.front, back=req.back, example=req.example, deck_id=req.deck_id
        )
    except CardNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except StorageError as e:
        logger.error(f"Update card failed: {e}")
        raise HTTPException(status_code=503, detail=str(e)) from e
    return CardView(
        id=card.id, deck_id=card.deck_id, front=card.front, back=card.back, example=card.example
    )


@app.delete("/cards/{card_id}")
async def delete_card(card_id: str, service: StudyService = Depends(get_service)):
    try:
        await service.delete_card(card_id)
    except CardNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except StorageError as e:
        logger.error(f"Delete card failed: {e}")
        raise HTTPException(status_code=503, detail=str(e)) from e
    return {"ok": True}


@app.get("/cards/{card_id}/history", response_model=list[ReviewLogView])
async def card_history(card_id: str, service: StudyService = Depends(get_service)):
    try:
        logs = await service.get_card_history(card_id)
    except CardNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return [ReviewLogView(**asdict(log)) for log in logs]


@app.get("/decks", response_model=list[DeckView])
async def list_decks(service: StudyService = Depends(get_service)):
    return [DeckView(**asdict(d)) for d in await service.get_decks()]


# ---------------------------------------------------------------------------
# Data management
# ---------------------------------------------------------------------------


@app.get("/export")
async def export_data(service: StudyService = Depends(get_service)):
    try:
        data = await service.export_data()
    except StorageError as e:
        raise HTTPException(status_code=503, detail=str(e)) from e
    return Response(content=dump_study_data(data), media_type="application/json")


@app.post("/import")
async def import_data(request: Request, service: StudyService = Depends(get_service)):
    """Replace all cards and review logs with an export payload."""
    try:
        data = load_study_data(await request.body())
    except InvalidBackupError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    try:
        await service.import_data(data)
    except StorageError as e:
        logger.error(f"Import failed: {e}")
        raise HTTPException(status_code=409, detail=str(e)) from e
    # Sessions hold snapshots of cards that may no longer exist.
    sessions.clear()
    return {"cards": len(data.cards), "review_logs": len(data.review_logs)}


@app.delete("/data")
async def clear_data(service: StudyService = Depends(get_service)):
    try:
        await service.clear_all_data()
    except StorageError as e:
        raise HTTPException(status_code=503, detail=str(e)) from e
    sessions.clear()
    return {"ok": True}


@app.post("/sessions", response_model=SessionResponse)
async def start_session(req: StartSessionRequest, service: StudyService = Depends(get_service)):
    """
    Start a study session.

    Returns no_cards_due=true instead of a session when nothing is due.
    """
    try:
        if req.goal_limited and not req.unlimited and req.max_cards is None:
            result = await service.start_goal_session()
        else:
            result = await service.start_session(max_cards=req.max_cards, unlimited=req.unlimited)
    except StorageError as e:
        logger.error(f"Session start failed: {e}")
        raise HTTPException(status_code=503, detail=str(e)) from e
    return _register(result)


@app.get("/sessions/{session_id}", response_model=SessionResponse)
async def get_session(session_id: str):
    return _session_response(_get_session(session_id))


@app.post("/sessions/{session_id}/flip", response_model=SessionResponse)
async def flip_card(session_id: str, service: StudyService = Depends(get_service)):
    session = _get_session(session_id)
    try:
        service.flip(session)
    except SessionStateError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    return _session_response(session)


@app.post("/sessions/{session_id}/rate", response_model=SessionResponse)
async def rate_card(
    session_id: str, req: RateRequest, service: StudyService = Depends(get_service)
):
    """
    Rate the current card. On a storage failure the session is unchanged and
    the same rating can be sent again.
    """
    session = _get_session(session_id)
    try:
        await service.rate(session, req.rating)
    except InvalidRatingError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    except SessionStateError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except ReviewPersistenceError as e:
        raise HTTPException(status_code=503, detail=str(e)) from e
    return _session_response(session)


@app.post("/sessions/{session_id}/skip", response_model=SessionResponse)
async def skip_card(session_id: str, service: StudyService = Depends(get_service)):
    session = _get_session(session_id)
    try:
        service.skip(session)
    except SessionStateError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    return _session_response(session)


@app.post("/sessions/{session_id}/continue", response_model=SessionResponse)
async def continue_session(session_id: str, service: StudyService = Depends(get_service)):
    """Start an unlimited session over the rest of the due pool."""
    session = _get_session(session_id)
    try:
        result = await service.continue_anyway(session)
    except StorageError as e:
        logger.error(f"Continue failed for session {session_id}: {e}")
        raise HTTPException(status_code=503, detail=str(e)) from e
    sessions.pop(session_id, None)
    return _register(result)


@app.delete("/sessions/{session_id}")
async def abandon_session(session_id: str):
    _get_session(session_id)
    sessions.pop(session_id)
    return {"ok": True}


@app.get("/goal", response_model=GoalResponse)
async def get_goal(goal: int | None = None, service: StudyService = Depends(get_service)):
    try:
        progress = await service.get_daily_goal_progress(goal)
    except InvalidGoalError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    return GoalResponse(**asdict(progress))


@app.get("/goal/days", response_model=list[DayProgressView])
async def get_goal_days(service: StudyService = Depends(get_service)):
    return [DayProgressView(**asdict(day)) for day in await service.get_daily_progress_window()]


@app.get("/streaks", response_model=StreakResponse)
async def get_streaks(service: StudyService = Depends(get_service)):
    return StreakResponse(**asdict(await service.get_streaks()))


@app.get("/stats")
async def get_stats(service: StudyService = Depends(get_service)):
    return asdict(await service.get_statistics())
