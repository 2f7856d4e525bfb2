"""
Pydantic models for API requests and responses (camelCase on the wire)
"""
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Requests
class GridRequest(CamelModel):
    puzzle_id: int
    grid: Any = None


class HintRequest(CamelModel):
    puzzle_id: int


# Responses
class Cell(CamelModel):
    row: int
    col: int


class VisibleLetter(CamelModel):
    row: int
    col: int
    letter: str


class PuzzleSummary(CamelModel):
    id: int
    puzzle_date: date
    grid_size: int
    visible_letters: List[VisibleLetter]
    daily_message: str = ""


class AttemptState(CamelModel):
    current_grid: List[Any]
    hint_used: bool
    status: str


class TodayResponse(CamelModel):
    success: bool = True
    puzzle: PuzzleSummary
    attempt: Optional[AttemptState] = None


class CheckResult(CamelModel):
    status: str
    message: str


class CheckResponse(CamelModel):
    success: bool = True
    result: CheckResult


class FinishResult(CheckResult):
    time_taken_seconds: int
    finished_at: Optional[datetime] = None


class FinishResponse(CamelModel):
    success: bool = True
    result: FinishResult


class MessageResponse(CamelModel):
    success: bool = True
    message: str


class HintResponse(MessageResponse):
    hint_cells: List[Cell]


class YesterdayPuzzle(CamelModel):
    id: int
    puzzle_date: date
    grid_size: int
    solution_grid: List[List[str]]
    hint_cells: List[Cell]


class YesterdayAttempt(CamelModel):
    hint_used: bool
    status: str
    completed_at: Optional[datetime] = None


class YesterdayResponse(CamelModel):
    success: bool = True
    puzzle: YesterdayPuzzle
    attempt: Optional[YesterdayAttempt] = None
    clipboard_text: str


class ReportCreatedResponse(MessageResponse):
    report_id: int


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    pages: int


class HistoryItem(CamelModel):
    puzzle_id: int
    puzzle_date: date
    grid_size: int
    daily_message: str = ""
    status: str
    hint_used: bool
    attempts: int
    time_taken_seconds: int
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class HistoryResponse(CamelModel):
    success: bool = True
    data: List[HistoryItem]
    pagination: Pagination



class PlayerInfo(CamelModel):
    id: str


class PlayerStatsOut(CamelModel):
    total_attempts: int
    completed: int
    hints_used: int


class ProfileResponse(CamelModel):
    success: bool = True
    user: PlayerInfo
    stats: PlayerStatsOut


class StreakOut(CamelModel):
    current: int
    max: int
    total_completed: int


class StreakResponse(CamelModel):
    success: bool = True
    streak: StreakOut


class AnnouncementDetail(CamelModel):
    id: int
    title: str
    message: str
    type: str
    is_active: bool
    start_date: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None


class AnnouncementListResponse(CamelModel):
    success: bool = True
    count: int
    data: List[AnnouncementDetail]


class AnnouncementPageResponse(AnnouncementListResponse):
    pagination: Pagination


class AnnouncementResponse(CamelModel):
    success: bool = True
    data: AnnouncementDetail


# Admin responses
class PuzzleCreated(CamelModel):
    id: int
    puzzle_date: date
    grid_size: int


class PuzzleSavedResponse(MessageResponse):
    puzzle: PuzzleCreated


class PuzzleDetail(CamelModel):
    id: int
    puzzle_date: date
    grid_size: int
    solution_grid: List[List[str]]
    words: List[Dict[str, Any]]
    visible_cells: List[Cell]
    hint_cells: List[Cell]
    daily_message: str = ""
    across_clues: List[Dict[str, Any]] = []
    down_clues: List[Dict[str, Any]] = []
    is_active: bool
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None


class PuzzleDetailResponse(CamelModel):
    success: bool = True
    puzzle: PuzzleDetail
    stats: Dict[str, Dict[str, int]]


class PuzzleListResponse(CamelModel):
    success: bool = True
    data: List[PuzzleDetail]
    pagination: Pagination


class ReportDetail(CamelModel):
    id: int
    user_id: str
    puzzle_id: int
    user_grid: List[List[Any]]
    hint_used: bool
    report_type: str
    description: Optional[str] = None
    status: str
    admin_notes: Optional[str] = None
    resolved_by: Optional[str] = None
    resolved_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class ReportListResponse(CamelModel):
    success: bool = True
    data: List[ReportDetail]
    pagination: Pagination
