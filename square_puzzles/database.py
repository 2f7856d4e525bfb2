"""
Database engine, sessions and schema creation

For sqlite, init_db creates the database file's directory and every
connection switches foreign keys on, so ON DELETE CASCADE is enforced.
"""
import logging
import os
from typing import Optional, Union

from sqlalchemy import event
from sqlalchemy.engine import URL, make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from square_puzzles import config
from square_puzzles.models import Base

_LOGGER = logging.getLogger(__name__)


def sqlite_file_path(database_url: Union[str, URL]) -> Optional[str]:
    """Filesystem path of a file-backed sqlite URL, None for anything else"""
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return None
    database = url.database
    if not database or database == ":memory:" or database.startswith("file:"):
        return None
    return database


def ensure_database_directory(database_url: Union[str, URL]) -> None:
    path = sqlite_file_path(database_url)
    if path is None:
        return
    directory = os.path.dirname(os.path.abspath(path))
    if not os.path.isdir(directory):
        _LOGGER.info("Creating database directory %s", directory)
        os.makedirs(directory, exist_ok=True)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(database_url: Union[str, URL], **kwargs) -> AsyncEngine:
    """Async engine for database_url; sqlite connections enforce foreign keys"""
    engine = create_async_engine(database_url, echo=False, future=True, **kwargs)
    if engine.dialect.name == "sqlite":
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def build_session_factory(bind: AsyncEngine) -> sessionmaker:
    return sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


engine = build_engine(config.DATABASE_URL)
AsyncSessionLocal = build_session_factory(engine)


async def init_db(bind: Optional[AsyncEngine] = None):
    """Create the sqlite directory if needed, then any missing tables"""
    bind = bind or engine
    ensure_database_directory(bind.url)
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_db():
    """Get database session (dependency injection for FastAPI)"""
    async with AsyncSessionLocal() as session:
        yield session
