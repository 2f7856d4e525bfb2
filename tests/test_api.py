from datetime import timedelta

from conftest import OTHER_PLAYER, PLAYER, SOLVED_GRID
from square_puzzles.clock import as_utc
from square_puzzles.grid import Status
from square_puzzles.models import PuzzleAttempt, Report


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_today_hides_solution(client, puzzle_id):
    response = client.get("/api/puzzle/today")
    assert response.status_code == 200

    body = response.json()
    assert body["attempt"] is None
    assert body["puzzle"] == {
        "id": puzzle_id,
        "puzzleDate": "2024-03-15",
        "gridSize": 4,
        "visibleLetters": [{"row": 0, "col": 0, "letter": "W"}],
        "dailyMessage": "Happy Friday!",
    }
    assert "solutionGrid" not in response.text


def test_today_without_puzzle(client):
    response = client.get("/api/puzzle/today")
    assert response.status_code == 404
    assert response.json()["detail"] == "No puzzle available for today"


def test_today_includes_saved_progress(client, puzzle_id):
    grid = [["W", "", "", ""], ["", "", "", ""], ["", "", "", ""], ["", "", "", ""]]
    client.post("/api/puzzle/save", json={"puzzleId": puzzle_id, "grid": grid}, headers=PLAYER)

    attempt = client.get("/api/puzzle/today", headers=PLAYER).json()["attempt"]
    assert attempt == {"currentGrid": grid, "hintUsed": False, "status": "incomplete"}


def test_private_routes_need_a_user(client, puzzle_id):
    response = client.post("/api/puzzle/check", json={"puzzleId": puzzle_id, "grid": SOLVED_GRID})
    assert response.status_code == 401


def test_check_verdicts(client, puzzle_id, fetch_all):
    partial = [row[:] for row in SOLVED_GRID]
    partial[3][1] = ""
    wrong = [row[:] for row in SOLVED_GRID]
    wrong[0][3] = "K"

    results = [
        client.post("/api/puzzle/check", json={"puzzleId": puzzle_id, "grid": grid}, headers=PLAYER).json()["result"]
        for grid in (partial, wrong, SOLVED_GRID)
    ]

    assert results == [
        {"status": "incomplete", "message": "Please fill in all cells"},
        {"status": "incorrect", "message": "Some letters are incorrect. Keep trying!"},
        {"status": "correct", "message": "Congratulations! You solved the puzzle!"},
    ]
    [attempt] = fetch_all(PuzzleAttempt)
    assert attempt.attempts == 3
    assert attempt.status == Status.CORRECT
    assert attempt.completed_at is not None
    assert attempt.current_grid == SOLVED_GRID


def test_check_accepts_lowercase(client, puzzle_id):
    lower = [[letter.lower() for letter in row] for row in SOLVED_GRID]
    result = client.post("/api/puzzle/check", json={"puzzleId": puzzle_id, "grid": lower}, headers=PLAYER)
    assert result.json()["result"]["status"] == "correct"


def test_check_without_grid_is_incomplete(client, puzzle_id, fetch_all):
    response = client.post("/api/puzzle/check", json={"puzzleId": puzzle_id}, headers=PLAYER)

    assert response.status_code == 200
    assert response.json()["result"] == {"status": "incomplete", "message": "Invalid grid data"}
    [attempt] = fetch_all(PuzzleAttempt)
    assert attempt.current_grid == [[""] * 4 for _ in range(4)]


def test_check_unknown_puzzle(client):
    response = client.post("/api/puzzle/check", json={"puzzleId": 999, "grid": SOLVED_GRID}, headers=PLAYER)
    assert response.status_code == 404


def test_save_is_an_idempotent_upsert(client, puzzle_id, fetch_all, clock):
    first = [["W"]]
    second = [["W", "O"]]
    for grid in (first, second):
        response = client.post("/api/puzzle/save", json={"puzzleId": puzzle_id, "grid": grid}, headers=PLAYER)
        assert response.status_code == 200
        assert response.json()["message"] == "Progress saved"
        clock.advance(seconds=10)

    attempts = fetch_all(PuzzleAttempt)
    assert len(attempts) == 1
    assert attempts[0].current_grid == second
    assert attempts[0].attempts == 0
    assert attempts[0].status == Status.INCOMPLETE
    assert as_utc(attempts[0].started_at) == clock.now() - timedelta(seconds=20)


def test_save_rejects_non_array_grid(client, puzzle_id, fetch_all):
    response = client.post("/api/puzzle/save", json={"puzzleId": puzzle_id, "grid": "WORD"}, headers=PLAYER)
    assert response.status_code == 400
    assert fetch_all(PuzzleAttempt) == []


def test_attempts_are_per_user(client, puzzle_id, fetch_all):
    for headers in (PLAYER, OTHER_PLAYER, PLAYER):
        client.post("/api/puzzle/save", json={"puzzleId": puzzle_id, "grid": [["W"]]}, headers=headers)

    assert sorted(attempt.user_id for attempt in fetch_all(PuzzleAttempt)) == ["player-1", "player-2"]


def test_hint_is_monotonic(client, puzzle_id, fetch_all, clock):
    first = client.post("/api/puzzle/hint", json={"puzzleId": puzzle_id}, headers=PLAYER)
    assert first.json()["hintCells"] == [{"row": 3, "col": 1}]
    assert first.json()["message"] == "Hint cells highlighted"
    first_used_at = clock.now()

    clock.advance(minutes=3)
    second = client.post("/api/puzzle/hint", json={"puzzleId": puzzle_id}, headers=PLAYER)
    assert second.json()["hintCells"] == [{"row": 3, "col": 1}]

    [attempt] = fetch_all(PuzzleAttempt)
    assert attempt.hint_used is True
    assert as_utc(attempt.hint_used_at) == first_used_at


def test_finish_records_server_time(client, puzzle_id, clock):
    client.post("/api/puzzle/save", json={"puzzleId": puzzle_id, "grid": [["W"]]}, headers=PLAYER)
    clock.advance(minutes=1, seconds=35)

    response = client.post("/api/attempt/finish", json={"puzzleId": puzzle_id, "grid": SOLVED_GRID}, headers=PLAYER)

    result = response.json()["result"]
    assert result["status"] == "correct"
    assert result["message"] == "Congratulations! You solved the puzzle!"
    assert result["timeTakenSeconds"] == 95
    assert result["finishedAt"].startswith("2024-03-15T12:01:35")


def test_finish_under_clock_skew(client, puzzle_id, clock):
    client.post("/api/puzzle/hint", json={"puzzleId": puzzle_id}, headers=PLAYER)
    clock.advance(seconds=-30)

    result = client.post(
        "/api/attempt/finish", json={"puzzleId": puzzle_id, "grid": SOLVED_GRID}, headers=PLAYER
    ).json()["result"]
    assert result["timeTakenSeconds"] == 0


def test_finish_uses_saved_grid_when_none_sent(client, puzzle_id, fetch_all):
    client.post("/api/puzzle/save", json={"puzzleId": puzzle_id, "grid": SOLVED_GRID}, headers=PLAYER)

    result = client.post("/api/attempt/finish", json={"puzzleId": puzzle_id}, headers=PLAYER).json()["result"]

    assert result["status"] == "correct"
    [attempt] = fetch_all(PuzzleAttempt)
    assert attempt.completed is True
    assert attempt.attempts == 1


def test_finish_twice_keeps_first_time(client, puzzle_id, clock):
    client.post("/api/puzzle/save", json={"puzzleId": puzzle_id, "grid": [["W"]]}, headers=PLAYER)
    clock.advance(seconds=40)
    first = client.post("/api/attempt/finish", json={"puzzleId": puzzle_id, "grid": SOLVED_GRID}, headers=PLAYER)
    clock.advance(seconds=40)
    second = client.post("/api/attempt/finish", json={"puzzleId": puzzle_id, "grid": SOLVED_GRID}, headers=PLAYER)

    assert first.json()["result"]["timeTakenSeconds"] == 40
    assert second.json()["result"]["timeTakenSeconds"] == 40
    assert second.json()["result"]["finishedAt"] == first.json()["result"]["finishedAt"]


def test_wrong_finish_then_solved_finish_times_the_solve(client, puzzle_id, clock, fetch_all):
    wrong = [row[:] for row in SOLVED_GRID]
    wrong[0][3] = "K"
    client.post("/api/puzzle/save", json={"puzzleId": puzzle_id, "grid": [["W"]]}, headers=PLAYER)

    clock.advance(seconds=10)
    first = client.post("/api/attempt/finish", json={"puzzleId": puzzle_id, "grid": wrong}, headers=PLAYER)
    clock.advance(seconds=290)
    second = client.post("/api/attempt/finish", json={"puzzleId": puzzle_id, "grid": SOLVED_GRID}, headers=PLAYER)

    assert first.json()["result"]["status"] == "incorrect"
    assert first.json()["result"]["timeTakenSeconds"] == 0
    assert first.json()["result"]["finishedAt"] is None

    assert second.json()["result"]["status"] == "correct"
    assert second.json()["result"]["timeTakenSeconds"] == 300
    assert second.json()["result"]["finishedAt"].startswith("2024-03-15T12:05:00")

    [attempt] = fetch_all(PuzzleAttempt)
    assert attempt.attempts == 2
    assert attempt.completed is True


def test_yesterday_reveals_solution_and_share_text(client, create_puzzle, clock):
    puzzle_id = create_puzzle(puzzleDate="2024-03-14")
    client.post("/api/puzzle/hint", json={"puzzleId": puzzle_id}, headers=PLAYER)

    body = client.get("/api/puzzle/yesterday", headers=PLAYER).json()

    assert body["puzzle"]["solutionGrid"] == SOLVED_GRID
    assert body["puzzle"]["hintCells"] == [{"row": 3, "col": 1}]
    assert body["attempt"]["hintUsed"] is True
    assert body["clipboardText"].startswith("SQUARE PUZZLES - Thursday, March 14, 2024")
    assert "   [N]      " in body["clipboardText"]
    assert "(Used hint)" in body["clipboardText"]


def test_yesterday_missing(client, puzzle_id):
    assert client.get("/api/puzzle/yesterday", headers=PLAYER).status_code == 404


def test_report_problem(client, puzzle_id, fetch_all):
    client.post("/api/puzzle/hint", json={"puzzleId": puzzle_id}, headers=PLAYER)
    response = client.post(
        "/api/puzzle/report",
        json={"puzzleId": puzzle_id, "userGrid": SOLVED_GRID, "reportType": "bug", "description": "Odd clue"},
        headers=PLAYER,
    )

    assert response.status_code == 201
    [report] = fetch_all(Report)
    assert response.json()["reportId"] == report.id
    assert report.hint_used is True
    assert report.status == "pending"
    assert report.report_type == "bug"


def test_report_validation_errors(client, puzzle_id):
    response = client.post(
        "/api/puzzle/report", json={"puzzleId": puzzle_id, "userGrid": "x", "reportType": "spam"}, headers=PLAYER
    )
    assert response.status_code == 400
    assert response.json() == {"success": False, "errors": ["User grid must be an array", "Invalid report type"]}


def test_report_unknown_puzzle(client):
    response = client.post("/api/puzzle/report", json={"puzzleId": 42, "userGrid": [[]]}, headers=PLAYER)
    assert response.status_code == 404


def test_history_is_paginated_newest_first(client, create_puzzle, clock):
    older = create_puzzle(puzzleDate="2024-03-13")
    newer = create_puzzle(puzzleDate="2024-03-14")
    client.post("/api/puzzle/save", json={"puzzleId": older, "grid": [["W"]]}, headers=PLAYER)
    clock.advance(minutes=1)
    client.post("/api/puzzle/save", json={"puzzleId": newer, "grid": [["W"]]}, headers=PLAYER)

    body = client.get("/api/puzzle/history?page=1&limit=1", headers=PLAYER).json()

    assert [item["puzzleId"] for item in body["data"]] == [newer]
    assert body["pagination"] == {"page": 1, "limit": 1, "total": 2, "pages": 2}


def test_profile_stats(client, create_puzzle):
    wrong = [row[:] for row in SOLVED_GRID]
    wrong[0][3] = "K"
    solved = create_puzzle(puzzleDate="2024-03-14")
    missed = create_puzzle(puzzleDate="2024-03-13")
    client.post("/api/puzzle/hint", json={"puzzleId": solved}, headers=PLAYER)
    client.post("/api/puzzle/check", json={"puzzleId": solved, "grid": SOLVED_GRID}, headers=PLAYER)
    client.post("/api/puzzle/check", json={"puzzleId": missed, "grid": wrong}, headers=PLAYER)
    client.post("/api/puzzle/check", json={"puzzleId": solved, "grid": SOLVED_GRID}, headers=OTHER_PLAYER)

    body = client.get("/api/user/profile", headers=PLAYER).json()

    assert body["user"] == {"id": "player-1"}
    assert body["stats"] == {"totalAttempts": 2, "completed": 1, "hintsUsed": 1}


def test_profile_without_attempts(client):
    body = client.get("/api/user/profile", headers=PLAYER).json()
    assert body["stats"] == {"totalAttempts": 0, "completed": 0, "hintsUsed": 0}


def test_streak_counts_consecutive_solved_days(client, create_puzzle):
    wrong = [row[:] for row in SOLVED_GRID]
    wrong[0][3] = "K"
    for day in ("2024-03-10", "2024-03-13", "2024-03-14", "2024-03-15"):
        puzzle = create_puzzle(puzzleDate=day)
        client.post("/api/puzzle/check", json={"puzzleId": puzzle, "grid": SOLVED_GRID}, headers=PLAYER)
    unsolved = create_puzzle(puzzleDate="2024-03-12")
    client.post("/api/puzzle/check", json={"puzzleId": unsolved, "grid": wrong}, headers=PLAYER)

    body = client.get("/api/user/streak", headers=PLAYER).json()

    assert body["streak"] == {"current": 3, "max": 3, "totalCompleted": 4}
    assert client.get("/api/user/streak").status_code == 401
