"""Change feed — observer registration on top of a ledger store.

Stores publish RecordChange events after a successful commit. Delivery is
scheduled on the running event loop and never awaited by the committing
unit; an observer that raises is logged and skipped.

Use case: decouple UI push / notifications / the confirm hook from the
transactional core.
"""

import asyncio
import inspect
import logging
from collections.abc import Callable, Iterable

from src.tc_common.enums import RecordKind
from src.tc_ledger.domain.models import RecordChange
from src.tc_ledger.domain.repository import ChangeCallback

logger = logging.getLogger(__name__)


class ChangeFeed:
    def __init__(self) -> None:
        self._subscribers: list[tuple[ChangeCallback, frozenset[RecordKind] | None]] = []
        self._pending: set[asyncio.Task[None]] = set()

    def subscribe(
        self, callback: ChangeCallback, kinds: Iterable[RecordKind] | None = None
    ) -> Callable[[], None]:
        """Register an observer; returns a function that unregisters it."""
        entry = (callback, frozenset(kinds) if kinds is not None else None)
        self._subscribers.append(entry)

        def unsubscribe() -> None:
            if entry in self._subscribers:
                self._subscribers.remove(entry)

        return unsubscribe

    def publish(self, changes: list[RecordChange]) -> None:
        if not changes or not self._subscribers:
            return
        loop = asyncio.get_running_loop()
        for change in changes:
            for callback, kinds in list(self._subscribers):
                if kinds is not None and change.kind not in kinds:
                    continue
                task = loop.create_task(self._deliver(callback, change))
                self._pending.add(task)
                task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait until every scheduled delivery (including cascades) has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def _deliver(self, callback: ChangeCallback, change: RecordChange) -> None:
        try:
            result = callback(change)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception(
                "Change-feed observer %r failed: kind=%s key=%s",
                callback,
                change.kind.value,
                change.after.key,
            )
