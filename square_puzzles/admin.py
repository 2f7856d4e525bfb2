"""
Admin API: puzzle authoring and report review
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from square_puzzles import config
from square_puzzles.clock import Clock, as_utc
from square_puzzles.database import get_db
from square_puzzles.dependencies import get_clock, require_admin
from square_puzzles.exceptions import DuplicatePuzzleDateError
from square_puzzles.game_logic import PuzzleAdmin, paginate, pagination_info
from square_puzzles.models import Puzzle, Report
from square_puzzles.schemas import (
    MessageResponse,
    PuzzleCreated,
    PuzzleDetail,
    PuzzleDetailResponse,
    PuzzleListResponse,
    PuzzleSavedResponse,
    ReportDetail,
    ReportListResponse,
)

router = APIRouter(prefix="/api/admin", tags=["admin"])


def puzzle_detail(puzzle: Puzzle) -> PuzzleDetail:
    return PuzzleDetail(
        id=puzzle.id,
        puzzle_date=puzzle.puzzle_date,
        grid_size=puzzle.grid_size,
        solution_grid=puzzle.solution_grid,
        words=puzzle.words,
        visible_cells=puzzle.visible_cells or [],
        hint_cells=puzzle.hint_cells or [],
        daily_message=puzzle.daily_message or "",
        across_clues=puzzle.across_clues or [],
        down_clues=puzzle.down_clues or [],
        is_active=puzzle.is_active,
        created_by=puzzle.created_by,
        created_at=as_utc(puzzle.created_at) if puzzle.created_at else None,
    )


def report_detail(report: Report) -> ReportDetail:
    return ReportDetail(
        id=report.id,
        user_id=report.user_id,
        puzzle_id=report.puzzle_id,
        user_grid=report.user_grid,
        hint_used=report.hint_used,
        report_type=report.report_type,
        description=report.description,
        status=report.status,
        admin_notes=report.admin_notes,
        resolved_by=report.resolved_by,
        resolved_at=as_utc(report.resolved_at) if report.resolved_at else None,
        created_at=as_utc(report.created_at) if report.created_at else None,
    )


def puzzle_saved(message: str, puzzle: Puzzle) -> PuzzleSavedResponse:
    return PuzzleSavedResponse(
        message=message,
        puzzle=PuzzleCreated(id=puzzle.id, puzzle_date=puzzle.puzzle_date, grid_size=puzzle.grid_size),
    )


async def _require_puzzle(admin: PuzzleAdmin, puzzle_id: int) -> Puzzle:
    puzzle = await admin.get_puzzle(puzzle_id)
    if not puzzle:
        raise HTTPException(status_code=404, detail="Puzzle not found")
    return puzzle


@router.post("/puzzle", response_model=PuzzleSavedResponse, status_code=201)
async def create_puzzle(
    payload: dict,
    admin_id: str = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Create a puzzle; every validation error is returned at once"""
    admin = PuzzleAdmin(db, clock)
    try:
        puzzle = await admin.create_puzzle(payload, admin_id)
    except DuplicatePuzzleDateError as err:
        raise HTTPException(status_code=400, detail=str(err))

    return puzzle_saved("Puzzle created successfully", puzzle)


@router.get("/puzzles", response_model=PuzzleListResponse)
async def list_puzzles(
    page: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
    admin_id: str = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """All puzzles, latest date first"""
    page, limit = paginate(page, limit, config.ADMIN_PAGE_SIZE)
    puzzles, total = await PuzzleAdmin(db, clock).list_puzzles(page, limit)
    return PuzzleListResponse(
        data=[puzzle_detail(puzzle) for puzzle in puzzles],
        pagination=pagination_info(page, limit, total),
    )


@router.get("/puzzle/{puzzle_id}", response_model=PuzzleDetailResponse)
async def get_puzzle(
    puzzle_id: int,
    admin_id: str = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Full puzzle including the solution, plus attempt counts per status"""
    admin = PuzzleAdmin(db, clock)
    puzzle = await _require_puzzle(admin, puzzle_id)
    counts = await admin.attempt_counts(puzzle.id)
    return PuzzleDetailResponse(puzzle=puzzle_detail(puzzle), stats={"attempts": counts})


@router.put("/puzzle/{puzzle_id}", response_model=PuzzleSavedResponse)
async def update_puzzle(
    puzzle_id: int,
    payload: dict,
    admin_id: str = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Update a puzzle; changing words or grid size rebuilds the solution"""
    admin = PuzzleAdmin(db, clock)
    puzzle = await _require_puzzle(admin, puzzle_id)
    try:
        puzzle = await admin.update_puzzle(puzzle, payload)
    except DuplicatePuzzleDateError as err:
        raise HTTPException(status_code=400, detail=str(err))
    return puzzle_saved("Puzzle updated successfully", puzzle)


@router.delete("/puzzle/{puzzle_id}", response_model=MessageResponse)
async def delete_puzzle(
    puzzle_id: int,
    admin_id: str = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Delete a puzzle together with its attempts and reports"""
    admin = PuzzleAdmin(db, clock)
    puzzle = await _require_puzzle(admin, puzzle_id)
    await admin.delete_puzzle(puzzle)
    return MessageResponse(message="Puzzle deleted successfully")


@router.get("/reports", response_model=ReportListResponse)
async def list_reports(
    status: str = Query("pending"),
    page: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
    admin_id: str = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Reports filtered by status ('all' for every status)"""
    page, limit = paginate(page, limit, config.ADMIN_PAGE_SIZE)
    reports, total = await PuzzleAdmin(db, clock).list_reports(status, page, limit)
    return ReportListResponse(
        data=[report_detail(report) for report in reports],
        pagination=pagination_info(page, limit, total),
    )


@router.put("/report/{report_id}", response_model=MessageResponse)
async def resolve_report(
    report_id: int,
    payload: dict,
    admin_id: str = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Set a report's review status and notes"""
    report = await PuzzleAdmin(db, clock).resolve_report(report_id, payload, admin_id)
    if not report:
        raise HTTPException(status_code=404, detail="Report not found")
    return MessageResponse(message="Report updated successfully")
