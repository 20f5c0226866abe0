"""RedisChangePublisher — best-effort fan-out of committed changes.

Subscribes to a ChangeFeed and publishes each RecordChange as JSON on a
Redis pub/sub channel. Nothing in the ledger depends on delivery.
"""

import json
import logging
from collections.abc import Callable
from dataclasses import asdict
from typing import Any

import redis.asyncio as aioredis

from src.tc_ledger.domain.models import RecordChange
from src.tc_ledger.domain.repository import LedgerStoreProtocol

logger = logging.getLogger(__name__)


def change_to_message(change: RecordChange) -> str:
    payload: dict[str, Any] = {
        "kind": change.kind.value,
        "key": change.after.key,
        "version": change.after.version,
        "before": asdict(change.before) if change.before is not None else None,
        "after": asdict(change.after),
    }
    return json.dumps(payload, default=str)


class RedisChangePublisher:
    def __init__(self, redis: aioredis.Redis, channel: str) -> None:
        self._redis = redis
        self._channel = channel
        self._unsubscribe: Callable[[], None] | None = None

    def attach(self, store: LedgerStoreProtocol) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = store.subscribe(self.publish)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def publish(self, change: RecordChange) -> None:
        receivers = await self._redis.publish(self._channel, change_to_message(change))
        logger.debug(
            "Published %s/%s to %s (%d receivers)",
            change.kind.value,
            change.after.key,
            self._channel,
            receivers,
        )
