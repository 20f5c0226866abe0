"""Async engine/session factories.

No module-level engine: the app factory builds one and hands the session
factory to the ledger store it constructs. Alembic passes NullPool for its
single migration connection.
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import Pool


def build_engine(
    database_url: str, echo: bool = False, poolclass: type[Pool] | None = None
) -> AsyncEngine:
    if poolclass is not None:
        return create_async_engine(database_url, echo=echo, poolclass=poolclass)
    return create_async_engine(database_url, echo=echo, pool_size=20, max_overflow=10)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
