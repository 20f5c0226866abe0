"""Ledger store Protocol — dependency inversion between the core and its storage.

Every component receives a store through its constructor. Two implementations
live in infrastructure/: InMemoryLedgerStore and SqlLedgerStore.
"""

from collections.abc import Awaitable, Callable, Iterable
from typing import Protocol

from src.tc_common.enums import RecordKind
from src.tc_ledger.domain.models import (
    Booking,
    ChangeSet,
    LedgerEntry,
    Record,
    RecordChange,
    Review,
    Skill,
    UserBalance,
)

ChangeCallback = Callable[[RecordChange], Awaitable[None] | None]


class WriteConflictError(Exception):
    """A unit of work lost a compare-and-swap race; retry it from its reads."""

    def __init__(self, kind: RecordKind, key: str, expected: int, actual: int | None) -> None:
        self.kind = kind
        self.key = key
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"version conflict on {kind.value}/{key}: expected {expected}, found {actual}"
        )


class LedgerStoreProtocol(Protocol):
    # --- unit-of-work reads ---
    async def load(self, kind: RecordKind, key: str) -> Record | None: ...

    async def load_entries_for_booking(self, booking_id: str) -> list[LedgerEntry]: ...

    # --- atomic commit primitive ---
    async def commit(self, changes: ChangeSet) -> list[RecordChange]: ...

    # --- read side (not part of any unit) ---
    async def list_skills(
        self, provider_id: str | None, active_only: bool, limit: int
    ) -> list[Skill]: ...

    async def list_bookings(
        self, requester_id: str | None, provider_id: str | None
    ) -> list[Booking]: ...

    async def list_entries_for_user(self, user_id: str) -> list[LedgerEntry]: ...

    async def list_reviews(
        self, skill_id: str | None, provider_id: str | None, limit: int
    ) -> list[Review]: ...

    async def load_skills(self, skill_ids: Iterable[str]) -> dict[str, Skill]: ...

    # --- full scans for invariant audits ---
    async def all_balances(self) -> list[UserBalance]: ...

    async def all_skills(self) -> list[Skill]: ...

    async def all_bookings(self) -> list[Booking]: ...

    async def all_entries(self) -> list[LedgerEntry]: ...

    async def all_reviews(self) -> list[Review]: ...

    # --- change subscriptions ---
    def subscribe(
        self, callback: ChangeCallback, kinds: Iterable[RecordKind] | None = None
    ) -> Callable[[], None]: ...
