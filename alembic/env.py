"""Alembic environment — raw-SQL revisions run over the async engine.

Target database: DATABASE_URL from config.settings, or
`alembic -x db_url=postgresql+asyncpg://...` to point at another one.
"""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy.engine import Connection
from sqlalchemy.pool import NullPool

from config.settings import settings
from src.tc_common.database import build_engine

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)


def _database_url() -> str:
    return context.get_x_argument(as_dictionary=True).get("db_url", settings.DATABASE_URL)


def _migrate(connection: Connection | None = None) -> None:
    # Revisions are op.execute() SQL; there is no metadata to autogenerate from.
    if connection is None:
        context.configure(
            url=_database_url(),
            target_metadata=None,
            literal_binds=True,
            dialect_opts={"paramstyle": "named"},
        )
    else:
        context.configure(
            connection=connection,
            target_metadata=None,
            transaction_per_migration=True,
        )
    with context.begin_transaction():
        context.run_migrations()


async def _migrate_online() -> None:
    engine = build_engine(_database_url(), poolclass=NullPool)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_migrate)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    _migrate()
else:
    asyncio.run(_migrate_online())
