"""
Request field validation for admin puzzle, report and announcement payloads

Each function returns a list of human-readable errors (empty when valid).
Grid-level checks such as bounds and letter conflicts live in grid.py.
"""
from datetime import date, datetime, timezone
from typing import Any, List, Mapping, Optional

from square_puzzles import config
from square_puzzles.grid import Direction

REPORT_TYPES = ("bug", "incorrect_solution", "display_issue", "other")
REPORT_STATUSES = ("pending", "reviewed", "resolved", "dismissed")
ANNOUNCEMENT_TYPES = ("info", "warning", "success", "error")


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def parse_puzzle_date(value: Any) -> Optional[date]:
    """Accept YYYY-MM-DD or a full ISO 8601 timestamp; None if unparseable."""
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def parse_timestamp(value: Any) -> Optional[datetime]:
    """ISO 8601 date or timestamp as an aware UTC datetime; None if unparseable."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _validate_words(words: Any) -> List[str]:
    if not isinstance(words, list):
        return ["Words must be a list"]

    errors = []
    directions = [d.value for d in Direction]
    for number, entry in enumerate(words, start=1):
        if not isinstance(entry, Mapping):
            errors.append(f"Word {number} must be an object")
            continue
        word = entry.get("word")
        if not isinstance(word, str) or not word.strip():
            errors.append(f"Word {number} cannot be empty")
        if not _is_int(entry.get("startRow")) or entry["startRow"] < 0:
            errors.append(f"Word {number}: start row must be a non-negative integer")
        if not _is_int(entry.get("startCol")) or entry["startCol"] < 0:
            errors.append(f"Word {number}: start column must be a non-negative integer")
        if entry.get("direction") not in directions:
            errors.append(f"Word {number}: direction must be horizontal or vertical")
    return errors


def _validate_cells(cells: Any, label: str) -> List[str]:
    if not isinstance(cells, list):
        return [f"{label} cells must be a list"]

    errors = []
    for number, cell in enumerate(cells, start=1):
        if not isinstance(cell, Mapping) or not _is_int(cell.get("row")) or not _is_int(cell.get("col")):
            errors.append(f"{label} cell {number} must have integer row and col")
    return errors


def _validate_clues(clues: Any, label: str) -> List[str]:
    if not isinstance(clues, list):
        return [f"{label} clues must be a list"]

    errors = []
    for number, clue in enumerate(clues, start=1):
        if not isinstance(clue, Mapping):
            errors.append(f"{label} clue {number} must be an object")
            continue
        if "number" in clue and not _is_int(clue["number"]):
            errors.append(f"{label} clue {number}: number must be an integer")
        text = clue.get("text", "")
        if not isinstance(text, str):
            errors.append(f"{label} clue {number}: text must be a string")
        elif len(text) > config.MAX_CLUE_LENGTH:
            errors.append(f"Clue cannot exceed {config.MAX_CLUE_LENGTH} characters")
    return errors


def validate_puzzle_fields(payload: Mapping[str, Any], partial: bool = False) -> List[str]:
    """
    Check the shape of an admin puzzle payload.

    With partial=True (updates) only the fields present are checked and
    nothing is required.
    """
    errors: List[str] = []

    if "puzzleDate" in payload or not partial:
        if parse_puzzle_date(payload.get("puzzleDate")) is None:
            errors.append("Please provide a valid date")

    if "gridSize" in payload or not partial:
        if not _is_int(payload.get("gridSize")):
            errors.append("Grid size must be an integer")

    if "words" in payload or not partial:
        errors.extend(_validate_words(payload.get("words")))

    for key, label in (("visibleCells", "Visible"), ("hintCells", "Hint")):
        if payload.get(key) is not None:
            errors.extend(_validate_cells(payload[key], label))

    message = payload.get("dailyMessage")
    if message is not None:
        if not isinstance(message, str):
            errors.append("Daily message must be a string")
        elif len(message) > config.MAX_DAILY_MESSAGE_LENGTH:
            errors.append(f"Daily message cannot exceed {config.MAX_DAILY_MESSAGE_LENGTH} characters")

    for key, label in (("acrossClues", "Across"), ("downClues", "Down")):
        if payload.get(key) is not None:
            errors.extend(_validate_clues(payload[key], label))

    if payload.get("isActive") is not None and not isinstance(payload["isActive"], bool):
        errors.append("isActive must be a boolean")

    return errors


def validate_report_fields(payload: Mapping[str, Any]) -> List[str]:
    errors: List[str] = []

    if not _is_int(payload.get("puzzleId")):
        errors.append("Invalid puzzle ID")

    grid = payload.get("userGrid")
    if not isinstance(grid, list) or not all(isinstance(row, list) for row in grid):
        errors.append("User grid must be an array")

    report_type = payload.get("reportType")
    if report_type is not None and report_type not in REPORT_TYPES:
        errors.append("Invalid report type")

    description = payload.get("description")
    if description is not None:
        if not isinstance(description, str):
            errors.append("Description must be a string")
        elif len(description) > config.MAX_REPORT_TEXT_LENGTH:
            errors.append(f"Description cannot exceed {config.MAX_REPORT_TEXT_LENGTH} characters")

    return errors


def validate_report_resolution(payload: Mapping[str, Any]) -> List[str]:
    errors: List[str] = []

    if payload.get("status") not in REPORT_STATUSES:
        errors.append("Invalid report status")

    notes = payload.get("adminNotes")
    if notes is not None:
        if not isinstance(notes, str):
            errors.append("Admin notes must be a string")
        elif len(notes) > config.MAX_REPORT_TEXT_LENGTH:
            errors.append(f"Admin notes cannot exceed {config.MAX_REPORT_TEXT_LENGTH} characters")

    return errors


def validate_announcement_fields(payload: Mapping[str, Any], partial: bool = False) -> List[str]:
    """Check an announcement payload; partial=True checks only fields present."""
    errors: List[str] = []

    if "title" in payload or not partial:
        title = payload.get("title")
        if not isinstance(title, str) or not title.strip():
            errors.append("Please add a title")
        elif len(title.strip()) > config.MAX_ANNOUNCEMENT_TITLE_LENGTH:
            errors.append(f"Title cannot be more than {config.MAX_ANNOUNCEMENT_TITLE_LENGTH} characters")

    if "message" in payload or not partial:
        message = payload.get("message")
        if not isinstance(message, str) or not message.strip():
            errors.append("Please add a message")

    if payload.get("type") is not None and payload["type"] not in ANNOUNCEMENT_TYPES:
        errors.append("Invalid announcement type")

    if payload.get("isActive") is not None and not isinstance(payload["isActive"], bool):
        errors.append("isActive must be a boolean")

    for key, label in (("startDate", "Start date"), ("expiresAt", "Expiry date")):
        if payload.get(key) is not None and parse_timestamp(payload[key]) is None:
            errors.append(f"{label} must be a valid date")

    return errors
