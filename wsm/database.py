"""Database connection and session management."""

from collections.abc import AsyncGenerator
from typing import Annotated
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

from fastapi import Depends
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from wsm.config import settings


def get_engine_url_and_connect_args(url: str) -> tuple[str, dict]:
    """Strip sslmode from URL (asyncpg doesn't accept it) and build driver connect_args."""
    connect_args: dict = {}
    if url.startswith("sqlite"):
        connect_args["timeout"] = settings.sqlite_busy_timeout
        return url, connect_args
    if "sslmode=" in url:
        parsed = urlparse(url)
        query = parse_qs(parsed.query)
        sslmode = query.pop("sslmode", ["disable"])[0]
        url = urlunparse(parsed._replace(query=urlencode(query, doseq=True)))
        if sslmode != "disable":
            connect_args["ssl"] = sslmode
    return url, connect_args


def _serialize_sqlite_writers(engine: AsyncEngine) -> None:
    """Make every SQLite transaction take the write lock up front.

    SQLite has no row locks, so the tenant-row lock taken by the quota guard
    is a no-op there. BEGIN IMMEDIATE serializes transactions instead.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # hand transaction control to SQLAlchemy
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


class Base(DeclarativeBase):
    """SQLAlchemy declarative base."""

    pass


def create_engine_for(url: str, **kwargs) -> AsyncEngine:
    """Create an async engine configured for the backend behind ``url``."""
    db_url, connect_args = get_engine_url_and_connect_args(url)
    engine = create_async_engine(
        db_url,
        echo=settings.log_level == "DEBUG",
        connect_args=connect_args,
        **kwargs,
    )
    if db_url.startswith("sqlite"):
        _serialize_sqlite_writers(engine)
    return engine


def create_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


engine = create_engine_for(settings.database_url)

async_session_maker = create_session_maker(engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for database sessions."""
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


DbDep = Annotated[AsyncSession, Depends(get_db)]
