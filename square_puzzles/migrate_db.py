#!/usr/bin/env python3
"""
Simple database migration to backfill attempt start times

Attempts recorded before started_at existed get it from created_at, so
solve times for them are measured from when the attempt was first made.
"""
import sqlite3
import sys

from square_puzzles import config


def default_db_path():
    """sqlite file path taken from DATABASE_URL"""
    return config.DATABASE_URL.split("///", 1)[-1]


def migrate(db_path=None):
    """Add started_at to puzzle_attempts if missing and backfill NULLs"""
    db_path = db_path or default_db_path()

    try:
        conn = sqlite3.connect(db_path)
        cursor = conn.cursor()

        # Check if column exists
        cursor.execute("PRAGMA table_info(puzzle_attempts)")
        columns = [row[1] for row in cursor.fetchall()]

        if not columns:
            print("✗ No puzzle_attempts table found", file=sys.stderr)
            conn.close()
            return False

        if 'started_at' not in columns:
            print("Adding started_at column to puzzle_attempts table...")
            cursor.execute("ALTER TABLE puzzle_attempts ADD COLUMN started_at DATETIME")

        cursor.execute(
            "UPDATE puzzle_attempts SET started_at = created_at "
            "WHERE started_at IS NULL AND created_at IS NOT NULL"
        )
        backfilled = cursor.rowcount
        conn.commit()
        print(f"✓ Migration complete! Backfilled {backfilled} attempt(s)")

        conn.close()
        return True

    except sqlite3.Error as e:
        print(f"✗ Migration failed: {e}", file=sys.stderr)
        return False


if __name__ == "__main__":
    success = migrate(sys.argv[1] if len(sys.argv) > 1 else None)
    sys.exit(0 if success else 1)
