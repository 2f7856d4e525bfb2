"""
Puzzle grid building, validation and grading

Everything in this module is pure: problems are reported through the
returned results, never raised.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Iterable, List, Mapping, Optional, Tuple

from square_puzzles import config

_LOGGER = logging.getLogger(__name__)

Grid = List[List[str]]


class Direction(str, Enum):
    """Placement direction of a word."""

    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"


class Status(str, Enum):
    """Tri-state grading outcome, shared with the attempt record."""

    INCOMPLETE = "incomplete"
    INCORRECT = "incorrect"
    CORRECT = "correct"


VERDICT_MESSAGES = {
    Status.INCOMPLETE: "Please fill in all cells",
    Status.INCORRECT: "Some letters are incorrect. Keep trying!",
    Status.CORRECT: "Congratulations! You solved the puzzle!",
}
INVALID_GRID_DATA = "Invalid grid data"
INVALID_GRID_FORMAT = "Invalid grid format"


@dataclass(frozen=True)
class CellPosition:
    row: int
    col: int

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CellPosition":
        return cls(row=int(data["row"]), col=int(data["col"]))

    def to_dict(self) -> dict:
        return {"row": self.row, "col": self.col}

    def within(self, grid_size: int) -> bool:
        return 0 <= self.row < grid_size and 0 <= self.col < grid_size


@dataclass(frozen=True)
class WordPlacement:
    """A word anchored at a start cell, running right or down."""

    word: str
    start_row: int
    start_col: int
    direction: Direction

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "WordPlacement":
        return cls(
            word=str(data["word"]).strip().upper(),
            start_row=int(data["startRow"]),
            start_col=int(data["startCol"]),
            direction=Direction(data["direction"]),
        )

    def to_dict(self) -> dict:
        return {
            "word": self.word,
            "startRow": self.start_row,
            "startCol": self.start_col,
            "direction": self.direction.value,
        }

    @property
    def cells(self) -> List[Tuple[int, int]]:
        if self.direction == Direction.HORIZONTAL:
            return [(self.start_row, self.start_col + i) for i in range(len(self.word))]
        return [(self.start_row + i, self.start_col) for i in range(len(self.word))]


@dataclass
class GridBuildResult:
    grid: Grid
    errors: List[str] = field(default_factory=list)


@dataclass
class PuzzleValidation:
    valid: bool
    errors: List[str]
    solution_grid: Grid


@dataclass(frozen=True)
class GridVerdict:
    """Result of grading a user grid against the solution."""

    status: Status
    message: str
    incorrect_cells: Tuple[CellPosition, ...] = ()
    correct_cells: Tuple[CellPosition, ...] = ()

    @classmethod
    def for_status(cls, status: Status) -> "GridVerdict":
        return cls(status=status, message=VERDICT_MESSAGES[status])


def parse_words(raw_words: Optional[Iterable[Mapping[str, Any]]]) -> List[WordPlacement]:
    return [WordPlacement.from_dict(item) for item in raw_words or []]


def parse_cells(raw_cells: Optional[Iterable[Mapping[str, Any]]]) -> List[CellPosition]:
    return [CellPosition.from_dict(item) for item in raw_cells or []]


def empty_grid(grid_size: int) -> Grid:
    return [["" for _ in range(grid_size)] for _ in range(max(grid_size, 0))]


def _is_rows(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def cell_at(grid: Any, row: int, col: int) -> str:
    """Read one cell as a trimmed uppercase string.

    Ragged grids are common in client input: a missing row, a short row, a
    None cell or a non-string cell all read as an empty string.
    """
    if not _is_rows(grid) or not 0 <= row < len(grid):
        return ""
    values = grid[row]
    if not _is_rows(values) or not 0 <= col < len(values):
        return ""
    value = values[col]
    if not isinstance(value, str):
        return ""
    return value.strip().upper()


def build_solution_grid(grid_size: int, words: Iterable[WordPlacement]) -> GridBuildResult:
    """
    Place words, in order, into an empty grid_size x grid_size grid.

    A word that does not fit is skipped entirely. On a letter conflict the
    letter already in the cell is kept, so with conflicting input the result
    depends on word order.
    """
    grid = empty_grid(grid_size)
    errors: List[str] = []

    for placement in words:
        word = placement.word.upper()

        if placement.direction == Direction.HORIZONTAL:
            if placement.start_col + len(word) > grid_size:
                errors.append(f'Word "{placement.word}" extends beyond grid horizontally')
                continue
        elif placement.start_row + len(word) > grid_size:
            errors.append(f'Word "{placement.word}" extends beyond grid vertically')
            continue

        if not CellPosition(placement.start_row, placement.start_col).within(grid_size):
            errors.append(f'Word "{placement.word}" starts outside the grid')
            continue

        for index, (row, col) in enumerate(placement.cells):
            letter = word[index]
            existing = grid[row][col]
            if existing and existing != letter:
                errors.append(f'Letter conflict at position ({row}, {col}): "{existing}" vs "{letter}"')
                continue
            grid[row][col] = letter

    return GridBuildResult(grid=grid, errors=errors)


def validate_puzzle_config(
    grid_size: int,
    words: Optional[Iterable[WordPlacement]],
    visible_cells: Optional[Iterable[CellPosition]] = None,
    hint_cells: Optional[Iterable[CellPosition]] = None,
) -> PuzzleValidation:
    """Check a whole puzzle configuration, collecting every error found."""
    errors: List[str] = []
    words = list(words or [])
    visible_cells = list(visible_cells or [])
    hint_cells = list(hint_cells or [])

    size_ok = config.MIN_GRID_SIZE <= grid_size <= config.MAX_GRID_SIZE
    if not size_ok:
        errors.append(f"Grid size must be between {config.MIN_GRID_SIZE} and {config.MAX_GRID_SIZE}")

    if not words:
        errors.append("At least one word is required")

    for cell in visible_cells:
        if not cell.within(grid_size):
            errors.append(f"Visible cell ({cell.row}, {cell.col}) is out of bounds")

    for cell in hint_cells:
        if not cell.within(grid_size):
            errors.append(f"Hint cell ({cell.row}, {cell.col}) is out of bounds")

    visible_positions = set(visible_cells)
    for cell in hint_cells:
        if cell in visible_positions:
            errors.append(f"Hint cell ({cell.row}, {cell.col}) overlaps a visible cell")

    # Never allocate a grid for an out-of-range size; placement errors are
    # only meaningful once the size itself is valid.
    if not size_ok:
        return PuzzleValidation(valid=False, errors=errors, solution_grid=[])

    build = build_solution_grid(grid_size, words)
    errors.extend(build.errors)

    return PuzzleValidation(valid=not errors, errors=errors, solution_grid=build.grid)


def compare_grids(user_grid: Any, solution_grid: Any) -> GridVerdict:
    """
    Grade user_grid cell by cell against solution_grid.

    An unfilled cell outranks a wrong one: a grid with both is incomplete.
    """
    if user_grid is None or solution_grid is None:
        return GridVerdict(status=Status.INCOMPLETE, message=INVALID_GRID_DATA)

    if not _is_rows(user_grid) or not _is_rows(solution_grid):
        return GridVerdict(status=Status.INCOMPLETE, message=INVALID_GRID_FORMAT)

    all_filled = True
    all_correct = True
    incorrect_cells: List[CellPosition] = []
    correct_cells: List[CellPosition] = []

    for row, solution_row in enumerate(solution_grid):
        width = len(solution_row) if _is_rows(solution_row) else 0
        for col in range(width):
            solution_letter = cell_at(solution_grid, row, col)
            if not solution_letter:
                continue

            user_letter = cell_at(user_grid, row, col)
            if not user_letter:
                all_filled = False
                incorrect_cells.append(CellPosition(row, col))
            elif user_letter != solution_letter:
                all_correct = False
                incorrect_cells.append(CellPosition(row, col))
            else:
                correct_cells.append(CellPosition(row, col))

    _LOGGER.debug(
        "Grid check: %d correct, %d incorrect, all_filled=%s, all_correct=%s",
        len(correct_cells), len(incorrect_cells), all_filled, all_correct,
    )

    if not all_filled:
        status = Status.INCOMPLETE
    elif not all_correct:
        status = Status.INCORRECT
    else:
        status = Status.CORRECT

    return GridVerdict(
        status=status,
        message=VERDICT_MESSAGES[status],
        incorrect_cells=tuple(incorrect_cells),
        correct_cells=tuple(correct_cells),
    )


def visible_letters(solution_grid: Grid, visible_cells: Iterable[CellPosition]) -> List[dict]:
    """Letters revealed at puzzle start, skipping cells with no letter."""
    letters = []
    for cell in visible_cells:
        letter = cell_at(solution_grid, cell.row, cell.col)
        if letter:
            letters.append({"row": cell.row, "col": cell.col, "letter": letter})
    return letters


def generate_share_text(
    grid: Grid,
    hint_cells: Iterable[CellPosition],
    puzzle_date: date,
    hint_used: bool,
    frontend_url: Optional[str] = None,
) -> str:
    """Clipboard-friendly rendition of a solved grid; hint cells are bracketed."""
    date_str = f"{puzzle_date:%A, %B} {puzzle_date.day}, {puzzle_date.year}"
    hint_positions = {(cell.row, cell.col) for cell in hint_cells}

    lines = [f"SQUARE PUZZLES - {date_str}", ""]
    for row, values in enumerate(grid):
        row_text = ""
        for col, value in enumerate(values):
            letter = value or " "
            row_text += f"[{letter}]" if (row, col) in hint_positions else f" {letter} "
        lines.append(row_text)

    lines.append("")
    lines.append("(Used hint)" if hint_used else "(No hint used)")
    lines.append("")
    lines.append(f"Play at: {frontend_url or config.FRONTEND_URL}")
    return "\n".join(lines)
