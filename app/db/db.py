# app/db/db.py
"""
Database connection for the call center store.

Provides:
 - connect_db(db_url=None): create missing tables, then open the async connection
 - disconnect_db(): close it and forget the instance (tests reconnect per DB file)
 - get_database(): the shared databases.Database
 - get_metadata(): SQLAlchemy MetaData the tables in app.models.db_models register on
 - contains_ci(column, term): LIKE-based substring filter used by the listing queries

A store that cannot be reached at startup is fatal: connect_db raises and the
application does not come up.
"""
import logging
from pathlib import Path
from typing import Optional, Tuple

import sqlalchemy
from databases import Database
from sqlalchemy import create_engine

from app.config import get_settings

logger = logging.getLogger("call-center.db")

settings = get_settings()

metadata = sqlalchemy.MetaData()

_database: Optional[Database] = None


def split_db_url(url: Optional[str]) -> Tuple[str, str]:
    """Return (async_url, sync_url). SQLite URLs get the aiosqlite driver on the async side."""
    url = url or settings.DB_URL
    if url.startswith("sqlite+aiosqlite:///"):
        return url, url.replace("+aiosqlite", "", 1)
    if url.startswith("sqlite:///"):
        return url.replace("sqlite:///", "sqlite+aiosqlite:///", 1), url
    return url, url


def _create_tables(sync_url: str) -> None:
    # tables register themselves on `metadata` when the module is imported
    import app.models.db_models  # noqa: F401

    connect_args = {}
    if sync_url.startswith("sqlite:///"):
        path = sync_url[len("sqlite:///"):]
        if path and path != ":memory:":
            Path(path).parent.mkdir(parents=True, exist_ok=True)
        connect_args["check_same_thread"] = False

    engine = create_engine(sync_url, connect_args=connect_args)
    try:
        metadata.create_all(engine)
    finally:
        engine.dispose()
    logger.info("Ensured call center tables exist (sync_url=%s)", sync_url)


async def connect_db(db_url: Optional[str] = None) -> Database:
    global _database
    async_url, sync_url = split_db_url(db_url)

    if _database and _database.is_connected:
        logger.debug("Database already connected")
        return _database

    _create_tables(sync_url)
    _database = Database(async_url)
    logger.info("Connecting to database: %s", async_url)
    await _database.connect()
    return _database


async def disconnect_db() -> None:
    global _database
    if _database and _database.is_connected:
        logger.info("Disconnecting database")
        await _database.disconnect()
    _database = None


def get_database() -> Database:
    """Return the Database instance (created lazily, possibly not connected yet)."""
    global _database
    if _database is None:
        _database = Database(split_db_url(settings.DB_URL)[0])
    return _database


def get_metadata() -> sqlalchemy.MetaData:
    return metadata


def contains_ci(column, term: str):
    """
    Case-insensitive substring match. The pattern is bound as a parameter so no
    literal `%` reaches the SQL text (the sqlite backend would try to format it).
    """
    escaped = term.lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return sqlalchemy.func.lower(column).like(f"%{escaped}%", escape="\\")
