"""Exception hierarchy for the puzzle service."""
from typing import List


class SquarePuzzlesError(Exception):
    """Base exception for puzzle service failures."""


class PuzzleValidationError(SquarePuzzlesError):
    """Raised when a puzzle or report payload fails validation.

    Carries every problem found so an admin UI can highlight them all at once.
    """

    def __init__(self, errors: List[str]):
        super().__init__("; ".join(errors))
        self.errors = list(errors)


class DuplicatePuzzleDateError(SquarePuzzlesError):
    """Raised when a puzzle already exists for the requested date."""
