"""AtomicRunner — bounded optimistic retry around a read-compute-write closure.

Each attempt gets a fresh UnitOfWork: the operation does all its reads,
raises on any business rule failure (nothing has been written yet), stages
its writes, and the runner commits. Losing a version race retries the whole
attempt from its reads; running out of attempts surfaces as ContentionError.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_random_exponential,
)

from src.tc_common.errors import ContentionError
from src.tc_ledger.domain.repository import LedgerStoreProtocol, WriteConflictError
from src.tc_ledger.domain.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)

T = TypeVar("T")

Operation = Callable[[UnitOfWork], Awaitable[T]]


def _log_conflict(state: RetryCallState) -> None:
    exc = state.outcome.exception() if state.outcome else None
    logger.info("Write conflict, retrying (attempt %d): %s", state.attempt_number, exc)


class AtomicRunner:
    def __init__(
        self,
        store: LedgerStoreProtocol,
        max_attempts: int = 5,
        wait_min: float = 0.005,
        wait_max: float = 0.2,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self._store = store
        self._max_attempts = max_attempts
        self._wait_min = wait_min
        self._wait_max = wait_max

    @property
    def store(self) -> LedgerStoreProtocol:
        return self._store

    async def run(self, operation: Operation[T], label: str) -> T:
        """Run `operation` as one atomic unit, retrying on write conflicts."""
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_random_exponential(multiplier=self._wait_min, max=self._wait_max),
            retry=retry_if_exception_type(WriteConflictError),
            before_sleep=_log_conflict,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    uow = UnitOfWork(self._store)
                    result = await operation(uow)
                    await uow.commit()
        except RetryError as exc:
            logger.warning(
                "Atomic unit %s abandoned after %d conflicting attempts",
                label,
                self._max_attempts,
            )
            raise ContentionError(label, self._max_attempts) from exc.last_attempt.exception()
        return result
