import sqlite3

from square_puzzles.migrate_db import migrate


def _attempt_rows(path):
    conn = sqlite3.connect(path)
    try:
        return conn.execute("SELECT id, started_at, created_at FROM puzzle_attempts ORDER BY id").fetchall()
    finally:
        conn.close()


def test_backfills_missing_start_times(tmp_path):
    path = str(tmp_path / "legacy.db")
    conn = sqlite3.connect(path)
    conn.execute("CREATE TABLE puzzle_attempts (id INTEGER PRIMARY KEY, created_at DATETIME)")
    conn.execute("INSERT INTO puzzle_attempts (id, created_at) VALUES (1, '2024-03-01 08:00:00.000000')")
    conn.commit()
    conn.close()

    assert migrate(path) is True
    assert _attempt_rows(path) == [(1, "2024-03-01 08:00:00.000000", "2024-03-01 08:00:00.000000")]


def test_existing_start_times_are_kept(tmp_path):
    path = str(tmp_path / "current.db")
    conn = sqlite3.connect(path)
    conn.execute("CREATE TABLE puzzle_attempts (id INTEGER PRIMARY KEY, started_at DATETIME, created_at DATETIME)")
    conn.execute("INSERT INTO puzzle_attempts VALUES (1, '2024-03-02 09:00:00', '2024-03-01 08:00:00')")
    conn.execute("INSERT INTO puzzle_attempts VALUES (2, NULL, '2024-03-01 10:00:00')")
    conn.commit()
    conn.close()

    assert migrate(path) is True
    assert _attempt_rows(path) == [
        (1, "2024-03-02 09:00:00", "2024-03-01 08:00:00"),
        (2, "2024-03-01 10:00:00", "2024-03-01 10:00:00"),
    ]


def test_missing_table_fails(tmp_path):
    assert migrate(str(tmp_path / "empty.db")) is False
