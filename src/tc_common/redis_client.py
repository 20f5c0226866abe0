"""Redis client factory — used for change-feed fan-out only.

NOT used for balances, slots or any ledger state (those go through the ledger store).
"""

import redis.asyncio as aioredis


def build_redis(redis_url: str) -> aioredis.Redis:
    """Create a Redis client backed by its own connection pool."""
    return aioredis.from_url(redis_url, decode_responses=True)


async def close_redis(client: aioredis.Redis | None) -> None:
    if client is not None:
        await client.aclose()
