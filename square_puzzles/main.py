"""
Square Puzzles FastAPI Server
"""
import logging
from datetime import datetime
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from square_puzzles import __version__, config
from square_puzzles.admin import router as admin_router
from square_puzzles.announcements import router as announcement_router
from square_puzzles.clock import Clock, as_utc
from square_puzzles.database import get_db, init_db
from square_puzzles.dependencies import get_clock, get_optional_user_id, get_user_id
from square_puzzles.exceptions import PuzzleValidationError
from square_puzzles.game_logic import PuzzleManager, paginate, pagination_info
from square_puzzles.grid import parse_cells, visible_letters
from square_puzzles.logger import configure_logging
from square_puzzles.schemas import (
    AttemptState,
    CheckResponse,
    CheckResult,
    FinishResponse,
    FinishResult,
    GridRequest,
    HintRequest,
    HintResponse,
    HistoryItem,
    HistoryResponse,
    MessageResponse,
    PlayerInfo,
    PlayerStatsOut,
    ProfileResponse,
    PuzzleSummary,
    ReportCreatedResponse,
    StreakOut,
    StreakResponse,
    TodayResponse,
    YesterdayAttempt,
    YesterdayPuzzle,
    YesterdayResponse,
)

_LOGGER = logging.getLogger(__name__)


def utc_or_none(value: Optional[datetime]) -> Optional[datetime]:
    return as_utc(value) if value is not None else None


app = FastAPI(title="Square Puzzles API", version=__version__)

# CORS middleware for the web frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(admin_router)
app.include_router(announcement_router)


@app.exception_handler(PuzzleValidationError)
async def validation_error_handler(request: Request, exc: PuzzleValidationError):
    """Report every validation problem at once"""
    return JSONResponse(status_code=400, content={"success": False, "errors": exc.errors})


# Startup event
@app.on_event("startup")
async def startup():
    """Initialize logging and database on startup"""
    configure_logging(config.LOG_LEVEL)
    await init_db()
    _LOGGER.info("Database initialized")


# Health check endpoint
@app.get("/")
async def root():
    """Health check"""
    return {"status": "ok", "service": "Square Puzzles API"}


@app.get("/health")
async def health():
    """Health check endpoint"""
    return {"status": "healthy"}


async def _require_puzzle(manager: PuzzleManager, puzzle_id: int):
    puzzle = await manager.get_puzzle(puzzle_id)
    if not puzzle:
        raise HTTPException(status_code=404, detail="Puzzle not found")
    return puzzle


# Puzzle endpoints
@app.get("/api/puzzle/today", response_model=TodayResponse)
async def get_todays_puzzle(
    user_id: Optional[str] = Depends(get_optional_user_id),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """
    Today's puzzle without its solution

    Only the visible letters are revealed. Signed-in callers also get their
    saved progress.
    """
    manager = PuzzleManager(db, clock)
    puzzle = await manager.get_todays_puzzle()

    if not puzzle:
        raise HTTPException(status_code=404, detail="No puzzle available for today")

    attempt = None
    if user_id:
        attempt = await manager.get_attempt(user_id, puzzle.id)

    return TodayResponse(
        puzzle=PuzzleSummary(
            id=puzzle.id,
            puzzle_date=puzzle.puzzle_date,
            grid_size=puzzle.grid_size,
            visible_letters=visible_letters(puzzle.solution_grid, parse_cells(puzzle.visible_cells)),
            daily_message=puzzle.daily_message or "",
        ),
        attempt=AttemptState(
            current_grid=attempt.current_grid or [],
            hint_used=attempt.hint_used,
            status=attempt.status.value,
        ) if attempt else None,
    )


@app.post("/api/puzzle/check", response_model=CheckResponse)
async def check_grid(
    request: GridRequest,
    user_id: str = Depends(get_user_id),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Grade the user's grid and record the result"""
    manager = PuzzleManager(db, clock)
    puzzle = await _require_puzzle(manager, request.puzzle_id)

    verdict = await manager.check_grid(user_id, puzzle, request.grid)

    return CheckResponse(result=CheckResult(status=verdict.status.value, message=verdict.message))


@app.post("/api/puzzle/save", response_model=MessageResponse)
async def save_progress(
    request: GridRequest,
    user_id: str = Depends(get_user_id),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Autosave the user's in-progress grid"""
    if not isinstance(request.grid, list):
        raise HTTPException(status_code=400, detail="Invalid grid")

    manager = PuzzleManager(db, clock)
    puzzle = await _require_puzzle(manager, request.puzzle_id)

    await manager.save_progress(user_id, puzzle, request.grid)

    return MessageResponse(message="Progress saved")


@app.post("/api/puzzle/hint", response_model=HintResponse)
async def get_hint(
    request: HintRequest,
    user_id: str = Depends(get_user_id),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Reveal the hint cells and mark the hint as used"""
    manager = PuzzleManager(db, clock)
    puzzle = await _require_puzzle(manager, request.puzzle_id)

    await manager.use_hint(user_id, puzzle)

    return HintResponse(hint_cells=puzzle.hint_cells or [], message="Hint cells highlighted")


@app.get("/api/puzzle/yesterday", response_model=YesterdayResponse)
async def get_yesterday_result(
    user_id: str = Depends(get_user_id),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Yesterday's puzzle with its solution, the user's result and share text"""
    manager = PuzzleManager(db, clock)
    puzzle = await manager.get_yesterdays_puzzle()

    if not puzzle:
        raise HTTPException(status_code=404, detail="No puzzle available from yesterday")

    attempt = await manager.get_attempt(user_id, puzzle.id)
    hint_used = bool(attempt and attempt.hint_used)

    return YesterdayResponse(
        puzzle=YesterdayPuzzle(
            id=puzzle.id,
            puzzle_date=puzzle.puzzle_date,
            grid_size=puzzle.grid_size,
            solution_grid=puzzle.solution_grid,
            hint_cells=puzzle.hint_cells or [],
        ),
        attempt=YesterdayAttempt(
            hint_used=attempt.hint_used,
            status=attempt.status.value,
            completed_at=utc_or_none(attempt.completed_at),
        ) if attempt else None,
        clipboard_text=manager.share_text(puzzle, hint_used),
    )


@app.post("/api/puzzle/report", response_model=ReportCreatedResponse, status_code=201)
async def report_problem(
    payload: dict,
    user_id: str = Depends(get_user_id),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """File a problem report against a puzzle"""
    manager = PuzzleManager(db, clock)
    report = await manager.report_problem(user_id, payload)

    if not report:
        raise HTTPException(status_code=404, detail="Puzzle not found")

    return ReportCreatedResponse(
        message="Problem reported successfully. Thank you for your feedback!",
        report_id=report.id,
    )


@app.get("/api/puzzle/history", response_model=HistoryResponse)
async def get_history(
    page: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
    user_id: str = Depends(get_user_id),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """The user's attempts, newest first"""
    page, limit = paginate(page, limit, config.HISTORY_PAGE_SIZE)
    manager = PuzzleManager(db, clock)
    rows, total = await manager.get_history(user_id, page, limit)

    data = [
        HistoryItem(
            puzzle_id=puzzle.id,
            puzzle_date=puzzle.puzzle_date,
            grid_size=puzzle.grid_size,
            daily_message=puzzle.daily_message or "",
            status=attempt.status.value,
            hint_used=attempt.hint_used,
            attempts=attempt.attempts,
            time_taken_seconds=attempt.time_taken_seconds,
            started_at=utc_or_none(attempt.started_at),
            completed_at=utc_or_none(attempt.completed_at),
        )
        for attempt, puzzle in rows
    ]
    return HistoryResponse(data=data, pagination=pagination_info(page, limit, total))


# User endpoints
@app.get("/api/user/profile", response_model=ProfileResponse)
async def get_profile(
    user_id: str = Depends(get_user_id),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """The caller's attempt totals"""
    stats = await PuzzleManager(db, clock).get_stats(user_id)
    return ProfileResponse(
        user=PlayerInfo(id=user_id),
        stats=PlayerStatsOut(
            total_attempts=stats.total_attempts,
            completed=stats.completed,
            hints_used=stats.hints_used,
        ),
    )


@app.get("/api/user/streak", response_model=StreakResponse)
async def get_streak(
    user_id: str = Depends(get_user_id),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Current and best streak of consecutive solved puzzle days"""
    streak = await PuzzleManager(db, clock).get_streak(user_id)
    return StreakResponse(
        streak=StreakOut(current=streak.current, max=streak.max, total_completed=streak.total_completed)
    )


# Attempt endpoints
@app.post("/api/attempt/finish", response_model=FinishResponse)
async def finish_attempt(
    request: GridRequest,
    user_id: str = Depends(get_user_id),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Final submission: grade and record server-side solve time"""
    manager = PuzzleManager(db, clock)
    puzzle = await _require_puzzle(manager, request.puzzle_id)

    verdict, attempt = await manager.finish_attempt(user_id, puzzle, request.grid)

    return FinishResponse(
        result=FinishResult(
            status=verdict.status.value,
            message=verdict.message,
            time_taken_seconds=attempt.time_taken_seconds,
            finished_at=utc_or_none(attempt.finished_at),
        )
    )


def run():
    import uvicorn
    uvicorn.run(app, host=config.HOST, port=config.PORT)


if __name__ == "__main__":
    run()
