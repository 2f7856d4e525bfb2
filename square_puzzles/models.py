"""
Database models for Square Puzzles
"""
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base

from square_puzzles import config
from square_puzzles.grid import Status
from square_puzzles.validation import ANNOUNCEMENT_TYPES, REPORT_STATUSES, REPORT_TYPES

Base = declarative_base()


def utcnow():
    return datetime.now(timezone.utc)


class Puzzle(Base):
    """One day's puzzle: the word layout and the answer key built from it"""
    __tablename__ = "puzzles"

    id = Column(Integer, primary_key=True, index=True)
    puzzle_date = Column(Date, nullable=False, unique=True)
    grid_size = Column(Integer, nullable=False, default=config.DEFAULT_GRID_SIZE)
    solution_grid = Column(JSON, nullable=False)  # NxN letters, "" for unfilled
    words = Column(JSON, nullable=False)  # [{word, startRow, startCol, direction}]
    visible_cells = Column(JSON, default=list)  # [{row, col}] shown from the start
    hint_cells = Column(JSON, default=list)  # [{row, col}] shown after a hint
    daily_message = Column(String(config.MAX_DAILY_MESSAGE_LENGTH), default="")
    across_clues = Column(JSON, default=list)  # [{number, text}]
    down_clues = Column(JSON, default=list)
    is_active = Column(Boolean, default=True)
    created_by = Column(String(100), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class PuzzleAttempt(Base):
    """A user's progress on one puzzle (one row per user and puzzle)"""
    __tablename__ = "puzzle_attempts"
    __table_args__ = (
        UniqueConstraint("user_id", "puzzle_id", name="uq_attempt_user_puzzle"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(100), nullable=False, index=True)
    puzzle_id = Column(Integer, ForeignKey("puzzles.id", ondelete="CASCADE"), nullable=False, index=True)

    # Progress
    current_grid = Column(JSON, default=list)
    status = Column(
        Enum(Status, native_enum=False, length=20, values_callable=lambda e: [m.value for m in e]),
        default=Status.INCOMPLETE,
        nullable=False,
    )
    attempts = Column(Integer, default=0)  # Graded submissions
    hint_used = Column(Boolean, default=False)
    hint_used_at = Column(DateTime(timezone=True), nullable=True)
    completed = Column(Boolean, default=False)

    # Timestamps
    started_at = Column(DateTime(timezone=True), default=utcnow)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    finished_at = Column(DateTime(timezone=True), nullable=True)
    time_taken_seconds = Column(Integer, default=0)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class Report(Base):
    """A player's problem report, reviewed by admins"""
    __tablename__ = "reports"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(100), nullable=False, index=True)
    puzzle_id = Column(Integer, ForeignKey("puzzles.id", ondelete="CASCADE"), nullable=False, index=True)
    user_grid = Column(JSON, nullable=False)
    hint_used = Column(Boolean, default=False)
    report_type = Column(Enum(*REPORT_TYPES, native_enum=False, name="report_type"), default="other")
    description = Column(Text, nullable=True)

    # Admin review
    status = Column(Enum(*REPORT_STATUSES, native_enum=False, name="report_status"), default="pending", index=True)
    admin_notes = Column(Text, nullable=True)
    resolved_by = Column(String(100), nullable=True)
    resolved_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow)


class Announcement(Base):
    """A site-wide banner shown to players while active"""
    __tablename__ = "announcements"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(config.MAX_ANNOUNCEMENT_TITLE_LENGTH), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(Enum(*ANNOUNCEMENT_TYPES, native_enum=False, name="announcement_type"), default="info")
    is_active = Column(Boolean, default=True, index=True)

    # Shown from start_date until expires_at (open-ended when null)
    start_date = Column(DateTime(timezone=True), default=utcnow)
    expires_at = Column(DateTime(timezone=True), nullable=True, index=True)

    created_by = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
