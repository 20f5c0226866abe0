"""Integration-test fixtures.

Each test gets a fresh application wired to an in-memory ledger store, so
the full HTTP surface runs without PostgreSQL or Redis.
"""

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from config.settings import Settings
from src.main import create_app
from src.tc_ledger.infrastructure.memory_store import InMemoryLedgerStore


@pytest.fixture
def memory_store() -> InMemoryLedgerStore:
    return InMemoryLedgerStore()


@pytest_asyncio.fixture
async def client(memory_store: InMemoryLedgerStore) -> AsyncGenerator[AsyncClient, None]:
    cfg = Settings(
        STORE_BACKEND="memory",
        STARTING_CREDITS=10,
        TX_RETRY_WAIT_MIN=0,
        TX_RETRY_WAIT_MAX=0,
        CHANGE_FEED_PUBLISH=False,
    )
    app = create_app(store=memory_store, cfg=cfg)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    await memory_store.feed.drain()
    await app.state.container.aclose()
