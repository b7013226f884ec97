# scheduler/db/base.py

from __future__ import annotations

import contextlib
import logging
from typing import AsyncGenerator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    async_sessionmaker,
    AsyncSession,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from scheduler.config import settings

log = logging.getLogger(__name__)


# --- Declarative Base ---
class Base(DeclarativeBase):
    pass


# --- Engine & Session factory ---
if settings.DATABASE_URL.startswith("sqlite+aiosqlite://"):
    if settings.ENVIRONMENT == "prod":
        raise ValueError("SQLite is only allowed for dev/test environments.")
    log.info("Using SQLite database (aiosqlite): %s", settings.DATABASE_URL)
    # NullPool: каждое соединение живёт в своём event loop (TestClient, asyncio.run)
    engine = create_async_engine(
        settings.DATABASE_URL,
        poolclass=NullPool,
        connect_args={"check_same_thread": False},
        echo=False,
    )
elif settings.DATABASE_URL.startswith("postgresql+asyncpg://"):
    log.info("Using ASYNC PostgreSQL database.")
    engine = create_async_engine(
        settings.DATABASE_URL, echo=(settings.ENVIRONMENT == "dev"), pool_pre_ping=True
    )
else:
    log.error("DATABASE_URL uses an unsupported driver: %.25s...", settings.DATABASE_URL)
    raise ValueError("DATABASE_URL must use the 'asyncpg' or 'aiosqlite' driver.")

async_session_factory = async_sessionmaker(
    bind=engine, class_=AsyncSession, expire_on_commit=False
)


async def get_async_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency: Creates and yields an async session, handling commit/rollback.
    """
    session = async_session_factory()
    session_id_for_log = id(session)
    log.debug("get_async_db_session: Session %s created, yielding...", session_id_for_log)
    try:
        yield session
        await session.commit()
        log.debug("get_async_db_session: Session %s committed.", session_id_for_log)
    except SQLAlchemyError:
        log.exception(
            "get_async_db_session: SQLAlchemyError in session %s, rolling back...",
            session_id_for_log,
        )
        await session.rollback()
        raise
    except Exception:
        log.debug(
            "get_async_db_session: Exception in session %s scope, rolling back...",
            session_id_for_log,
        )
        await session.rollback()
        raise
    finally:
        log.debug("get_async_db_session: Closing session %s", session_id_for_log)
        await session.close()


@contextlib.asynccontextmanager
async def async_session_context() -> AsyncGenerator[AsyncSession, None]:
    session: AsyncSession = async_session_factory()
    log.debug("Entering async session context %s", id(session))
    try:
        yield session
        log.debug("Committing session %s from context", id(session))
        await session.commit()
    except Exception:
        log.exception("Rolling back session %s from context due to exception", id(session))
        await session.rollback()
        raise
    finally:
        log.debug("Closing session %s from context", id(session))
        await session.close()


def _import_models() -> None:
    # Регистрируем все модели в Base.metadata
    import scheduler.core.users.models  # noqa: F401
    import scheduler.core.appointments.models  # noqa: F401


async def create_db_and_tables() -> None:
    """Creates every table known to ``Base.metadata`` (dev/test helper)."""
    _import_models()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    log.info("Database tables created.")


async def drop_db_and_tables() -> None:
    """Drops every table known to ``Base.metadata`` (test helper)."""
    _import_models()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    log.info("Database tables dropped.")


__all__ = [
    "Base", "engine", "async_session_factory", "AsyncSession",
    "get_async_db_session", "async_session_context",
    "create_db_and_tables", "drop_db_and_tables",
]
