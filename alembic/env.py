# alembic/env.py

import asyncio
from logging.config import fileConfig

from sqlalchemy import pool
from sqlalchemy.ext.asyncio import create_async_engine

from alembic import context

# --- Конфигурация ---
config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# --- Метаданные Моделей ---
from scheduler.config import settings
from scheduler.db.base import Base

import scheduler.core.users.models  # noqa: F401
import scheduler.core.appointments.models  # noqa: F401

target_metadata = Base.metadata


def _database_url() -> str:
    """URL из alembic.ini, если задан, иначе DATABASE_URL приложения."""
    url = config.get_main_option("sqlalchemy.url") or settings.DATABASE_URL
    # Синхронные схемы приводим к асинхронным драйверам
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if url.startswith("postgresql+psycopg2://"):
        return url.replace("postgresql+psycopg2://", "postgresql+asyncpg://", 1)
    if url.startswith("sqlite://") and not url.startswith("sqlite+aiosqlite://"):
        return url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    if url.startswith(("postgresql+asyncpg://", "sqlite+aiosqlite://")):
        return url
    raise ValueError(f"Unsupported DB URL scheme for async operation: {url[:25]}...")


def run_migrations_offline() -> None:
    """Генерирует SQL скрипты без подключения к БД."""
    context.configure(
        url=_database_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        compare_type=True,
        render_as_batch=connection.dialect.name == "sqlite",
    )
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    connectable = create_async_engine(_database_url(), poolclass=pool.NullPool)

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
