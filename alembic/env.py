"""Alembic environment — async migrations for users, tasks and time slots.

Invariants:
    - The target URL comes from Settings (DATABASE_URL, with the asyncpg
      rewrite applied); alembic.ini's sqlalchemy.url is used only when the
      environment leaves DATABASE_URL unset
    - Every ORM row is registered on Base.metadata before autogenerate runs

Design Decisions:
    - NullPool: migrations are one-shot, no pooled connections left behind
    - render_as_batch on SQLite so ALTERs work against local dev databases
"""

import asyncio
import os
from logging.config import fileConfig

from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config

from alembic import context

from parallel_calendar.config import get_settings
from parallel_calendar.db.base import Base
import parallel_calendar.models  # noqa: F401

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _target_url() -> str:
    if "DATABASE_URL" in os.environ:
        return get_settings().database_url
    return config.get_main_option("sqlalchemy.url")


def _configure(**kwargs) -> None:
    url = kwargs.pop("url", None) or _target_url()
    context.configure(
        url=url if "connection" not in kwargs else None,
        target_metadata=target_metadata,
        compare_type=True,
        render_as_batch=url.startswith("sqlite"),
        **kwargs,
    )


def run_migrations_offline() -> None:
    """Emit SQL to stdout instead of connecting."""
    _configure(literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()


def _run_on(connection: Connection) -> None:
    _configure(connection=connection)
    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    section = config.get_section(config.config_ini_section, {})
    section["sqlalchemy.url"] = _target_url()
    engine = async_engine_from_config(
        section, prefix="sqlalchemy.", poolclass=pool.NullPool,
    )
    async with engine.connect() as connection:
        await connection.run_sync(_run_on)
    await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_async_migrations())
