"""Alembic environment for the snapshot store.

Migrations run on the same async drivers as the application (asyncpg for
PostgreSQL, aiosqlite for SQLite). SQLite has almost no ALTER TABLE support,
so its migrations run in batch mode.
"""

from __future__ import annotations

import asyncio
import os
from logging.config import fileConfig

from alembic import context
from dotenv import load_dotenv
from sqlalchemy import pool
from sqlalchemy.ext.asyncio import async_engine_from_config

from shareholder_tracker.storage.database import is_sqlite_url, normalize_database_url
from shareholder_tracker.storage.models import Base

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Same .env the application settings read.
load_dotenv(override=False)

target_metadata = Base.metadata

if os.environ.get("DATABASE_URL"):
    config.set_main_option(
        "sqlalchemy.url",
        normalize_database_url(os.path.expandvars(os.environ["DATABASE_URL"])),
    )


def _configure(**kwargs: object) -> None:
    url = config.get_main_option("sqlalchemy.url") or ""
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        render_as_batch=is_sqlite_url(url),
        **kwargs,
    )


def run_migrations_offline() -> None:
    """Emit the migration SQL without a database connection."""
    _configure(
        url=config.get_main_option("sqlalchemy.url"),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def _do_run_migrations(connection: object) -> None:
    _configure(connection=connection)
    with context.begin_transaction():
        context.run_migrations()


async def _run_migrations_online_async() -> None:
    connectable = async_engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    async with connectable.connect() as connection:
        await connection.run_sync(_do_run_migrations)
    await connectable.dispose()


def run_migrations_online() -> None:
    asyncio.run(_run_migrations_online_async())


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
