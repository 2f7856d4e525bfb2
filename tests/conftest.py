from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session
from sqlalchemy.pool import NullPool

from square_puzzles import config
from square_puzzles.database import build_engine, build_session_factory, get_db
from square_puzzles.dependencies import get_clock
from square_puzzles.main import app
from square_puzzles.models import Base

ADMIN_TOKEN = "test-admin-token"
ADMIN_HEADERS = {"X-Admin-Token": ADMIN_TOKEN, "X-User-Id": "admin-1"}
PLAYER = {"X-User-Id": "player-1"}
OTHER_PLAYER = {"X-User-Id": "player-2"}

# WORD across the top row, OPEN down the second column; they share the O.
PUZZLE_PAYLOAD = {
    "puzzleDate": "2024-03-15",
    "gridSize": 4,
    "words": [
        {"word": "word", "startRow": 0, "startCol": 0, "direction": "horizontal"},
        {"word": "OPEN", "startRow": 0, "startCol": 1, "direction": "vertical"},
    ],
    "visibleCells": [{"row": 0, "col": 0}],
    "hintCells": [{"row": 3, "col": 1}],
    "dailyMessage": "Happy Friday!",
    "acrossClues": [{"number": 1, "text": "Unit of language"}],
    "downClues": [{"number": 2, "text": "Not closed"}],
}

SOLVED_GRID = [
    ["W", "O", "R", "D"],
    ["", "P", "", ""],
    ["", "E", "", ""],
    ["", "N", "", ""],
]


class FixedClock:
    """Clock frozen at a settable instant."""

    def __init__(self, now: datetime):
        self.current = now

    def now(self) -> datetime:
        return self.current

    def today(self):
        return self.current.date()

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FixedClock(datetime(2024, 3, 15, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'square_puzzles.db'}"


@pytest.fixture
def sync_engine(db_url):
    engine = create_engine(db_url)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def fetch_all(sync_engine):
    """Read rows back through a fresh session, bypassing the API."""

    def _fetch(model):
        with Session(sync_engine) as session:
            return list(session.scalars(select(model)).all())

    return _fetch


@pytest.fixture
def client(db_url, sync_engine, clock, monkeypatch):
    monkeypatch.setattr(config, "ADMIN_TOKEN", ADMIN_TOKEN)

    engine = build_engine(db_url.replace("sqlite://", "sqlite+aiosqlite://", 1), poolclass=NullPool)
    session_factory = build_session_factory(engine)

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def create_puzzle(client):
    def _create(**overrides):
        payload = {**PUZZLE_PAYLOAD, **overrides}
        response = client.post("/api/admin/puzzle", json=payload, headers=ADMIN_HEADERS)
        assert response.status_code == 201, response.json()
        return response.json()["puzzle"]["id"]

    return _create


@pytest.fixture
def puzzle_id(create_puzzle):
    return create_puzzle()
