"""
Puzzle and attempt persistence around the pure grid and attempt logic
"""
import logging
from datetime import date, timedelta
from typing import Any, Dict, List, Mapping, Optional, Tuple

from sqlalchemy import case, delete, func, or_, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from square_puzzles import attempts, config
from square_puzzles.attempts import AttemptSnapshot
from square_puzzles.clock import Clock
from square_puzzles.exceptions import DuplicatePuzzleDateError, PuzzleValidationError
from square_puzzles.grid import (
    GridVerdict,
    Status,
    compare_grids,
    generate_share_text,
    parse_cells,
    parse_words,
    validate_puzzle_config,
)
from square_puzzles.models import Announcement, Puzzle, PuzzleAttempt, Report
from square_puzzles.player_stats import PlayerStats, Streak, compute_streak
from square_puzzles.validation import (
    parse_puzzle_date,
    parse_timestamp,
    validate_announcement_fields,
    validate_puzzle_fields,
    validate_report_fields,
    validate_report_resolution,
)

_LOGGER = logging.getLogger(__name__)

_SNAPSHOT_FIELDS = (
    "current_grid", "status", "hint_used", "hint_used_at", "started_at", "created_at",
    "completed_at", "finished_at", "time_taken_seconds", "attempts", "completed",
)


def snapshot_of(attempt: PuzzleAttempt) -> AttemptSnapshot:
    values = {name: getattr(attempt, name) for name in _SNAPSHOT_FIELDS}
    values = {name: value for name, value in values.items() if value is not None}
    return AttemptSnapshot(user_id=attempt.user_id, puzzle_id=attempt.puzzle_id, **values)


def _pick(payload: Mapping[str, Any], key: str, current: Any) -> Any:
    value = payload.get(key)
    return current if value is None else value


def paginate(page: Optional[int], limit: Optional[int], default_limit: int) -> Tuple[int, int]:
    page = page if page and page > 0 else 1
    limit = limit if limit and limit > 0 else default_limit
    return page, min(limit, config.MAX_PAGE_SIZE)


def pagination_info(page: int, limit: int, total: int) -> Dict[str, int]:
    return {"page": page, "limit": limit, "total": total, "pages": -(-total // limit)}


class PuzzleManager:
    """Player-facing puzzle and attempt operations"""

    def __init__(self, db: AsyncSession, clock: Clock):
        self.db = db
        self.clock = clock

    def _insert(self, table):
        """Dialect insert supporting ON CONFLICT for the bound engine"""
        if self.db.bind.dialect.name == "postgresql":
            return postgresql.insert(table)
        return sqlite.insert(table)

    async def get_puzzle(self, puzzle_id: int) -> Optional[Puzzle]:
        """Get puzzle by ID"""
        result = await self.db.execute(
            select(Puzzle).where(Puzzle.id == puzzle_id)
        )
        return result.scalar_one_or_none()

    async def get_puzzle_for_date(self, day: date) -> Optional[Puzzle]:
        """Get the active puzzle scheduled for a calendar day"""
        result = await self.db.execute(
            select(Puzzle)
            .where(Puzzle.puzzle_date == day)
            .where(Puzzle.is_active == True)  # noqa: E712
        )
        return result.scalar_one_or_none()

    async def get_todays_puzzle(self) -> Optional[Puzzle]:
        return await self.get_puzzle_for_date(self.clock.today())

    async def get_yesterdays_puzzle(self) -> Optional[Puzzle]:
        return await self.get_puzzle_for_date(self.clock.today() - timedelta(days=1))

    async def get_attempt(self, user_id: str, puzzle_id: int) -> Optional[PuzzleAttempt]:
        """Get a user's attempt on a puzzle"""
        result = await self.db.execute(
            select(PuzzleAttempt)
            .where(PuzzleAttempt.user_id == user_id)
            .where(PuzzleAttempt.puzzle_id == puzzle_id)
        )
        return result.scalar_one_or_none()

    async def get_or_create_attempt(self, user_id: str, puzzle: Puzzle, grid: Any = None) -> PuzzleAttempt:
        """
        Fetch the user's attempt, creating it on first touch.

        Creation is an INSERT ... ON CONFLICT DO NOTHING so that concurrent
        first touches land on the same row.
        """
        attempt = await self.get_attempt(user_id, puzzle.id)
        if attempt is not None:
            return attempt

        start = attempts.start_attempt(user_id, puzzle.id, puzzle.grid_size, self.clock, grid)
        stmt = self._insert(PuzzleAttempt).values(**start.changes).on_conflict_do_nothing(
            index_elements=["user_id", "puzzle_id"]
        )
        await self.db.execute(stmt)
        await self.db.commit()
        _LOGGER.debug("Attempt started by %s on puzzle %s", user_id, puzzle.id)
        return await self.get_attempt(user_id, puzzle.id)

    async def _persist(self, attempt: PuzzleAttempt, changes: Mapping[str, Any]) -> None:
        for name, value in changes.items():
            setattr(attempt, name, value)
        await self.db.commit()
        await self.db.refresh(attempt)

    async def save_progress(self, user_id: str, puzzle: Puzzle, grid: list) -> None:
        """
        Autosave the user's grid.

        A single upsert keyed on (user_id, puzzle_id): rapid repeated saves
        never race a read-modify-write and never create duplicates.
        """
        start = attempts.start_attempt(user_id, puzzle.id, puzzle.grid_size, self.clock, grid)
        update = attempts.save_progress(start.attempt, grid).changes
        update["updated_at"] = self.clock.now()
        stmt = self._insert(PuzzleAttempt).values(**start.changes)
        stmt = stmt.on_conflict_do_update(index_elements=["user_id", "puzzle_id"], set_=update)
        await self.db.execute(stmt)
        await self.db.commit()

    async def use_hint(self, user_id: str, puzzle: Puzzle) -> PuzzleAttempt:
        attempt = await self.get_or_create_attempt(user_id, puzzle)
        transition = attempts.use_hint(snapshot_of(attempt), self.clock)
        if transition.changes:
            await self._persist(attempt, transition.changes)
        return attempt

    async def check_grid(self, user_id: str, puzzle: Puzzle, grid: Any) -> GridVerdict:
        """Grade a grid and record the result on the attempt"""
        verdict = compare_grids(grid, puzzle.solution_grid)
        attempt = await self.get_or_create_attempt(user_id, puzzle, grid)
        transition = attempts.record_check(snapshot_of(attempt), grid, verdict, self.clock)
        await self._persist(attempt, transition.changes)
        return verdict

    async def finish_attempt(self, user_id: str, puzzle: Puzzle, grid: Any = None) -> Tuple[GridVerdict, PuzzleAttempt]:
        """Final submission: grade and stamp server-side finish time"""
        attempt = await self.get_or_create_attempt(user_id, puzzle, grid)
        final_grid = grid if grid is not None else attempt.current_grid
        verdict = compare_grids(final_grid, puzzle.solution_grid)
        transition = attempts.finish_attempt(snapshot_of(attempt), final_grid, verdict, self.clock)
        await self._persist(attempt, transition.changes)
        return verdict, attempt

    def share_text(self, puzzle: Puzzle, hint_used: bool) -> str:
        return generate_share_text(
            puzzle.solution_grid,
            parse_cells(puzzle.hint_cells),
            puzzle.puzzle_date,
            hint_used,
            config.FRONTEND_URL,
        )

    async def report_problem(self, user_id: str, payload: Mapping[str, Any]) -> Optional[Report]:
        """File a report; returns None when the puzzle does not exist"""
        errors = validate_report_fields(payload)
        if errors:
            raise PuzzleValidationError(errors)

        puzzle = await self.get_puzzle(payload["puzzleId"])
        if puzzle is None:
            return None

        attempt = await self.get_attempt(user_id, puzzle.id)
        report = Report(
            user_id=user_id,
            puzzle_id=puzzle.id,
            user_grid=payload["userGrid"],
            hint_used=bool(attempt and attempt.hint_used),
            report_type=payload.get("reportType") or "other",
            description=payload.get("description"),
        )
        self.db.add(report)
        await self.db.commit()
        await self.db.refresh(report)
        _LOGGER.info("Report %s filed by %s on puzzle %s", report.id, user_id, puzzle.id)
        return report

    async def get_history(self, user_id: str, page: int, limit: int) -> Tuple[List[Tuple[PuzzleAttempt, Puzzle]], int]:
        """Page through a user's attempts, newest first"""
        total = await self.db.scalar(
            select(func.count()).select_from(PuzzleAttempt).where(PuzzleAttempt.user_id == user_id)
        )
        result = await self.db.execute(
            select(PuzzleAttempt, Puzzle)
            .join(Puzzle, PuzzleAttempt.puzzle_id == Puzzle.id)
            .where(PuzzleAttempt.user_id == user_id)
            .order_by(PuzzleAttempt.created_at.desc(), PuzzleAttempt.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return [tuple(row) for row in result.all()], total or 0

    async def get_stats(self, user_id: str) -> PlayerStats:
        """Attempt, solve and hint totals for one user"""
        result = await self.db.execute(
            select(
                func.count(PuzzleAttempt.id),
                func.coalesce(func.sum(case((PuzzleAttempt.status == Status.CORRECT, 1), else_=0)), 0),
                func.coalesce(func.sum(case((PuzzleAttempt.hint_used == True, 1), else_=0)), 0),  # noqa: E712
            ).where(PuzzleAttempt.user_id == user_id)
        )
        total, completed, hints_used = result.one()
        return PlayerStats(total_attempts=total or 0, completed=completed or 0, hints_used=hints_used or 0)

    async def get_streak(self, user_id: str) -> Streak:
        """Current and best runs of consecutive solved puzzle days"""
        result = await self.db.execute(
            select(Puzzle.puzzle_date)
            .join(PuzzleAttempt, PuzzleAttempt.puzzle_id == Puzzle.id)
            .where(PuzzleAttempt.user_id == user_id)
            .where(PuzzleAttempt.status == Status.CORRECT)
        )
        return compute_streak(result.scalars().all(), self.clock.today())


class AnnouncementBoard:
    """Site announcements: public active list and admin management"""

    def __init__(self, db: AsyncSession, clock: Clock):
        self.db = db
        self.clock = clock

    async def get(self, announcement_id: int) -> Optional[Announcement]:
        result = await self.db.execute(
            select(Announcement).where(Announcement.id == announcement_id)
        )
        return result.scalar_one_or_none()

    async def list_active(self) -> List[Announcement]:
        """Active announcements that have started and not yet expired, newest first"""
        now = self.clock.now()
        result = await self.db.execute(
            select(Announcement)
            .where(Announcement.is_active == True)  # noqa: E712
            .where(Announcement.start_date <= now)
            .where(or_(Announcement.expires_at.is_(None), Announcement.expires_at > now))
            .order_by(Announcement.created_at.desc(), Announcement.id.desc())
        )
        return list(result.scalars().all())

    async def list_all(self, page: int, limit: int) -> Tuple[List[Announcement], int]:
        total = await self.db.scalar(select(func.count()).select_from(Announcement))
        result = await self.db.execute(
            select(Announcement)
            .order_by(Announcement.created_at.desc(), Announcement.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total or 0

    def _apply(self, announcement: Announcement, payload: Mapping[str, Any]) -> None:
        if payload.get("title") is not None:
            announcement.title = payload["title"].strip()
        if payload.get("message") is not None:
            announcement.message = payload["message"].strip()
        if payload.get("type") is not None:
            announcement.type = payload["type"]
        if payload.get("isActive") is not None:
            announcement.is_active = payload["isActive"]
        if payload.get("startDate") is not None:
            announcement.start_date = parse_timestamp(payload["startDate"])
        if "expiresAt" in payload:
            announcement.expires_at = parse_timestamp(payload["expiresAt"])

    async def create(self, payload: Mapping[str, Any], admin_id: Optional[str] = None) -> Announcement:
        errors = validate_announcement_fields(payload)
        if errors:
            raise PuzzleValidationError(errors)

        now = self.clock.now()
        announcement = Announcement(type="info", is_active=True, start_date=now, created_by=admin_id, created_at=now)
        self._apply(announcement, payload)
        self.db.add(announcement)
        await self.db.commit()
        await self.db.refresh(announcement)
        _LOGGER.info("Announcement %s created by %s", announcement.id, admin_id)
        return announcement

    async def update(self, announcement: Announcement, payload: Mapping[str, Any]) -> Announcement:
        """Partial update; an explicit null expiresAt clears the expiry"""
        errors = validate_announcement_fields(payload, partial=True)
        if errors:
            raise PuzzleValidationError(errors)

        self._apply(announcement, payload)
        await self.db.commit()
        await self.db.refresh(announcement)
        _LOGGER.info("Announcement %s updated (%s)", announcement.id, ", ".join(sorted(payload)))
        return announcement

    async def delete(self, announcement: Announcement) -> None:
        await self.db.delete(announcement)
        await self.db.commit()
        _LOGGER.info("Announcement %s deleted", announcement.id)


class PuzzleAdmin:
    """Admin puzzle and report management"""

    def __init__(self, db: AsyncSession, clock: Clock):
        self.db = db
        self.clock = clock

    async def get_puzzle(self, puzzle_id: int) -> Optional[Puzzle]:
        result = await self.db.execute(
            select(Puzzle).where(Puzzle.id == puzzle_id)
        )
        return result.scalar_one_or_none()

    async def _date_taken(self, day: date, exclude_id: Optional[int] = None) -> bool:
        query = select(func.count()).select_from(Puzzle).where(Puzzle.puzzle_date == day)
        if exclude_id is not None:
            query = query.where(Puzzle.id != exclude_id)
        count = await self.db.scalar(query)
        return bool(count)

    async def create_puzzle(self, payload: Mapping[str, Any], admin_id: Optional[str] = None) -> Puzzle:
        errors = validate_puzzle_fields(payload)
        if errors:
            raise PuzzleValidationError(errors)

        puzzle_date = parse_puzzle_date(payload["puzzleDate"])
        if await self._date_taken(puzzle_date):
            raise DuplicatePuzzleDateError("A puzzle already exists for this date")

        words = parse_words(payload["words"])
        visible_cells = parse_cells(payload.get("visibleCells"))
        hint_cells = parse_cells(payload.get("hintCells"))
        validation = validate_puzzle_config(payload["gridSize"], words, visible_cells, hint_cells)
        if not validation.valid:
            raise PuzzleValidationError(validation.errors)

        puzzle = Puzzle(
            puzzle_date=puzzle_date,
            grid_size=payload["gridSize"],
            solution_grid=validation.solution_grid,
            words=[word.to_dict() for word in words],
            visible_cells=[cell.to_dict() for cell in visible_cells],
            hint_cells=[cell.to_dict() for cell in hint_cells],
            daily_message=payload.get("dailyMessage") or "",
            across_clues=payload.get("acrossClues") or [],
            down_clues=payload.get("downClues") or [],
            created_by=admin_id,
        )
        self.db.add(puzzle)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise DuplicatePuzzleDateError("A puzzle already exists for this date")
        await self.db.refresh(puzzle)

        _LOGGER.info("Puzzle %s created for %s (%d words)", puzzle.id, puzzle.puzzle_date, len(words))
        return puzzle

    async def update_puzzle(self, puzzle: Puzzle, payload: Mapping[str, Any]) -> Puzzle:
        """
        Apply a partial update.

        A change to words or gridSize rebuilds the whole solution grid; it is
        never patched cell by cell.
        """
        errors = validate_puzzle_fields(payload, partial=True)
        if errors:
            raise PuzzleValidationError(errors)

        if "puzzleDate" in payload:
            puzzle_date = parse_puzzle_date(payload["puzzleDate"])
            if await self._date_taken(puzzle_date, exclude_id=puzzle.id):
                raise DuplicatePuzzleDateError("A puzzle already exists for this date")

        rebuild = payload.get("words") is not None or payload.get("gridSize") is not None
        if rebuild or payload.get("visibleCells") is not None or payload.get("hintCells") is not None:
            grid_size = _pick(payload, "gridSize", puzzle.grid_size)
            words = parse_words(_pick(payload, "words", puzzle.words))
            visible_cells = parse_cells(_pick(payload, "visibleCells", puzzle.visible_cells))
            hint_cells = parse_cells(_pick(payload, "hintCells", puzzle.hint_cells))

            validation = validate_puzzle_config(grid_size, words, visible_cells, hint_cells)
            if not validation.valid:
                raise PuzzleValidationError(validation.errors)

            if rebuild:
                puzzle.solution_grid = validation.solution_grid
                puzzle.grid_size = grid_size
                puzzle.words = [word.to_dict() for word in words]
            puzzle.visible_cells = [cell.to_dict() for cell in visible_cells]
            puzzle.hint_cells = [cell.to_dict() for cell in hint_cells]

        if "puzzleDate" in payload:
            puzzle.puzzle_date = puzzle_date
        if payload.get("dailyMessage") is not None:
            puzzle.daily_message = payload["dailyMessage"]
        if payload.get("isActive") is not None:
            puzzle.is_active = payload["isActive"]
        if payload.get("acrossClues") is not None:
            puzzle.across_clues = payload["acrossClues"]
        if payload.get("downClues") is not None:
            puzzle.down_clues = payload["downClues"]

        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise DuplicatePuzzleDateError("A puzzle already exists for this date")
        await self.db.refresh(puzzle)
        _LOGGER.info("Puzzle %s updated (%s)", puzzle.id, ", ".join(sorted(payload)))
        return puzzle

    async def delete_puzzle(self, puzzle: Puzzle) -> None:
        """Delete a puzzle along with its attempts and reports"""
        await self.db.execute(delete(PuzzleAttempt).where(PuzzleAttempt.puzzle_id == puzzle.id))
        await self.db.execute(delete(Report).where(Report.puzzle_id == puzzle.id))
        await self.db.delete(puzzle)
        await self.db.commit()
        _LOGGER.info("Puzzle %s for %s deleted", puzzle.id, puzzle.puzzle_date)

    async def list_puzzles(self, page: int, limit: int) -> Tuple[List[Puzzle], int]:
        total = await self.db.scalar(select(func.count()).select_from(Puzzle))
        result = await self.db.execute(
            select(Puzzle)
            .order_by(Puzzle.puzzle_date.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total or 0

    async def attempt_counts(self, puzzle_id: int) -> Dict[str, int]:
        """Number of attempts on a puzzle per status"""
        result = await self.db.execute(
            select(PuzzleAttempt.status, func.count())
            .where(PuzzleAttempt.puzzle_id == puzzle_id)
            .group_by(PuzzleAttempt.status)
        )
        return {status.value: count for status, count in result.all()}

    async def list_reports(self, status: str, page: int, limit: int) -> Tuple[List[Report], int]:
        """Page through reports; status 'all' disables the status filter"""
        query = select(Report)
        count_query = select(func.count()).select_from(Report)
        if status != "all":
            query = query.where(Report.status == status)
            count_query = count_query.where(Report.status == status)

        total = await self.db.scalar(count_query)
        result = await self.db.execute(
            query.order_by(Report.created_at.desc(), Report.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total or 0

    async def resolve_report(self, report_id: int, payload: Mapping[str, Any], admin_id: Optional[str]) -> Optional[Report]:
        errors = validate_report_resolution(payload)
        if errors:
            raise PuzzleValidationError(errors)

        result = await self.db.execute(select(Report).where(Report.id == report_id))
        report = result.scalar_one_or_none()
        if report is None:
            return None

        report.status = payload["status"]
        report.admin_notes = payload.get("adminNotes")
        report.resolved_by = admin_id
        report.resolved_at = self.clock.now()
        await self.db.commit()
        await self.db.refresh(report)
        _LOGGER.info("Report %s marked %s by %s", report.id, report.status, admin_id)
        return report
