"""
Attempt lifecycle transitions

Every transition takes a frozen AttemptSnapshot and returns an
AttemptTransition: the new snapshot plus the column writes needed to persist
it. Storage is left to the caller.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, Optional

from square_puzzles.clock import Clock, as_utc
from square_puzzles.grid import Grid, GridVerdict, Status, empty_grid

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class AttemptSnapshot:
    """One user's progress on one puzzle."""

    user_id: str
    puzzle_id: int
    current_grid: Grid = field(default_factory=list)
    status: Status = Status.INCOMPLETE
    hint_used: bool = False
    hint_used_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    time_taken_seconds: int = 0
    attempts: int = 0
    completed: bool = False

    @property
    def is_finished(self) -> bool:
        return self.finished_at is not None


@dataclass(frozen=True)
class AttemptTransition:
    attempt: AttemptSnapshot
    changes: Dict[str, Any] = field(default_factory=dict)


def _apply(attempt: AttemptSnapshot, **changes: Any) -> AttemptTransition:
    return AttemptTransition(attempt=replace(attempt, **changes), changes=changes)


def elapsed_seconds(started_at: datetime, finished_at: datetime) -> int:
    """Whole seconds between two instants, never negative (clock skew)."""
    delta = as_utc(finished_at) - as_utc(started_at)
    return max(0, math.floor(delta.total_seconds()))


def start_attempt(
    user_id: str,
    puzzle_id: int,
    grid_size: int,
    clock: Clock,
    grid: Optional[Grid] = None,
) -> AttemptTransition:
    """First touch: the only place started_at is ever written."""
    now = clock.now()
    attempt = AttemptSnapshot(
        user_id=user_id,
        puzzle_id=puzzle_id,
        current_grid=grid if isinstance(grid, list) else empty_grid(grid_size),
        started_at=now,
        created_at=now,
    )
    changes = {
        "user_id": attempt.user_id,
        "puzzle_id": attempt.puzzle_id,
        "current_grid": attempt.current_grid,
        "status": attempt.status,
        "hint_used": False,
        "attempts": 0,
        "time_taken_seconds": 0,
        "completed": False,
        "started_at": now,
        "created_at": now,
    }
    return AttemptTransition(attempt=attempt, changes=changes)


def save_progress(attempt: AttemptSnapshot, grid: Grid) -> AttemptTransition:
    """Autosave: replaces the grid and nothing else."""
    return _apply(attempt, current_grid=grid)


def use_hint(attempt: AttemptSnapshot, clock: Clock) -> AttemptTransition:
    if attempt.hint_used:
        return AttemptTransition(attempt=attempt)
    _LOGGER.info("Hint used by %s on puzzle %s", attempt.user_id, attempt.puzzle_id)
    return _apply(attempt, hint_used=True, hint_used_at=clock.now())


def _graded_changes(attempt: AttemptSnapshot, grid: Any, verdict: GridVerdict) -> Dict[str, Any]:
    changes: Dict[str, Any] = {
        "attempts": attempt.attempts + 1,
        "status": verdict.status,
    }
    # Malformed client grids are graded as incomplete but never stored.
    if isinstance(grid, list):
        changes["current_grid"] = grid
    return changes


def record_check(
    attempt: AttemptSnapshot,
    grid: Any,
    verdict: GridVerdict,
    clock: Clock,
) -> AttemptTransition:
    """Store a graded grid; the first correct check stamps completed_at."""
    changes = _graded_changes(attempt, grid, verdict)
    if verdict.status == Status.CORRECT and attempt.completed_at is None:
        changes["completed_at"] = clock.now()
    return _apply(attempt, **changes)


def finish_attempt(
    attempt: AttemptSnapshot,
    grid: Any,
    verdict: GridVerdict,
    clock: Clock,
) -> AttemptTransition:
    """
    Final submission.

    The first finish graded correct finalizes the attempt: it stamps
    finished_at and completed_at and fixes time_taken_seconds from the
    server clock. Wrong or incomplete finishes are graded and counted but
    stamp nothing, so the solve time is measured up to the finish that
    actually solved the puzzle. Once finalized, later finishes still record
    the grid and verdict but leave those values alone.
    """
    changes = _graded_changes(attempt, grid, verdict)

    if verdict.status == Status.CORRECT and not attempt.is_finished:
        finished = clock.now()
        started = attempt.started_at or attempt.created_at or finished
        if attempt.started_at is None:
            changes["started_at"] = started
        changes.update(
            completed=True,
            finished_at=finished,
            completed_at=finished,
            time_taken_seconds=elapsed_seconds(started, finished),
        )
        _LOGGER.info(
            "Attempt finished by %s on puzzle %s: %s in %ds",
            attempt.user_id, attempt.puzzle_id, verdict.status.value, changes["time_taken_seconds"],
        )

    return _apply(attempt, **changes)
