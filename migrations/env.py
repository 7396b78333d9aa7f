"""Alembic environment for the Kakebo schema.

The connection string comes from DATABASE_URL, or from the ``database`` key
of the YAML file named by KAKEBO_CONFIG. Migrations are raw SQL run through
op.execute() over the asyncpg driver; there is no ORM metadata.
"""

import asyncio
import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.ext.asyncio import async_engine_from_config

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = None


def _asyncpg_url(dsn: str) -> str:
    # Same DSN the app hands to asyncpg, with the driver named for SQLAlchemy
    for prefix in ("postgresql://", "postgres://"):
        if dsn.startswith(prefix):
            return "postgresql+asyncpg://" + dsn[len(prefix):]
    return dsn


def get_url() -> str:
    url = os.environ.get("DATABASE_URL", "")
    if not url and os.environ.get("KAKEBO_CONFIG"):
        from kakebo.app import _load_config
        url = _load_config(os.environ["KAKEBO_CONFIG"]).get("database", "")
    if not url:
        raise RuntimeError(
            "No database configured. Set DATABASE_URL, or point KAKEBO_CONFIG "
            "at a config file with a 'database' entry."
        )
    return _asyncpg_url(url)


def run_migrations_offline() -> None:
    """Emit the SQL script without connecting."""
    context.configure(
        url=get_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def _run_with_connection(connection) -> None:
    context.configure(connection=connection, target_metadata=target_metadata)
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    """Connect through asyncpg and apply pending revisions."""
    configuration = config.get_section(config.config_ini_section, {})
    configuration["sqlalchemy.url"] = get_url()
    connectable = async_engine_from_config(
        configuration,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    async with connectable.connect() as connection:
        await connection.run_sync(_run_with_connection)
    await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
