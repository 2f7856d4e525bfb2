"""
Per-player totals and solve streaks
"""
from dataclasses import dataclass
from datetime import date
from typing import Iterable, List


@dataclass(frozen=True)
class PlayerStats:
    total_attempts: int = 0
    completed: int = 0
    hints_used: int = 0


@dataclass(frozen=True)
class Streak:
    """Runs of consecutive puzzle days solved correctly."""

    current: int = 0
    max: int = 0
    total_completed: int = 0


def _consecutive_run(days: List[date]) -> int:
    """Length of the run starting at days[0] (days sorted newest first)."""
    run = 1
    for newer, older in zip(days, days[1:]):
        if (newer - older).days != 1:
            break
        run += 1
    return run


def compute_streak(solved_dates: Iterable[date], today: date) -> Streak:
    """
    Streaks over the puzzle dates a player solved.

    The current streak only counts while its newest day is today or
    yesterday; a player who has not yet solved today's puzzle keeps the
    streak they built up to yesterday.
    """
    solved = list(solved_dates)
    days = sorted(set(solved), reverse=True)
    if not days:
        return Streak()

    best = run = 1
    for newer, older in zip(days, days[1:]):
        if (newer - older).days == 1:
            run += 1
        else:
            best = max(best, run)
            run = 1
    best = max(best, run)

    current = 0
    if 0 <= (today - days[0]).days <= 1:
        current = _consecutive_run(days)

    return Streak(current=current, max=best, total_completed=len(solved))
