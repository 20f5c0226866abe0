"""InMemoryLedgerStore — dict-backed implementation of LedgerStoreProtocol.

Commit is a compare-and-swap over every record the unit read or wrote,
applied under an asyncio.Lock that is held only for the in-process check
and apply (never across I/O). Loads yield to the event loop like a network
round trip would, then hand out copies, so a unit's staged mutations are
invisible to everyone else until commit.
"""

import asyncio
import logging
from collections.abc import Callable, Iterable
from dataclasses import replace

from src.tc_common.enums import RecordKind
from src.tc_ledger.domain.events import ChangeFeed
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
from src.tc_ledger.domain.repository import ChangeCallback, WriteConflictError

logger = logging.getLogger(__name__)


class InMemoryLedgerStore:
    def __init__(self, feed: ChangeFeed | None = None) -> None:
        self._tables: dict[RecordKind, dict[str, Record]] = {kind: {} for kind in RecordKind}
        self._lock = asyncio.Lock()
        self.feed = feed or ChangeFeed()

    # ------------------------------------------------------------------
    # Unit-of-work reads
    # ------------------------------------------------------------------

    async def load(self, kind: RecordKind, key: str) -> Record | None:
        await asyncio.sleep(0)
        record = self._tables[kind].get(key)
        return replace(record) if record is not None else None

    async def load_entries_for_booking(self, booking_id: str) -> list[LedgerEntry]:
        await asyncio.sleep(0)
        entries = [
            replace(e)
            for e in self._tables[RecordKind.LEDGER_ENTRY].values()
            if e.booking_id == booking_id  # type: ignore[union-attr]
        ]
        return sorted(entries, key=lambda e: (e.created_at, e.id))  # type: ignore[union-attr]

    # ------------------------------------------------------------------
    # Atomic commit
    # ------------------------------------------------------------------

    async def commit(self, changes: ChangeSet) -> list[RecordChange]:
        async with self._lock:
            for (kind, key), expected in changes.reads.items():
                self._check_version(kind, key, expected)
            for write in changes.writes:
                self._check_version(write.kind, write.record.key, write.expected_version)

            applied: list[RecordChange] = []
            for write in changes.writes:
                table = self._tables[write.kind]
                before = table.get(write.record.key)
                stored = replace(write.record, version=write.expected_version + 1)
                table[stored.key] = stored
                applied.append(
                    RecordChange(
                        kind=write.kind,
                        before=replace(before) if before is not None else None,
                        after=replace(stored),
                    )
                )
        logger.debug("Committed %d writes", len(applied))
        self.feed.publish(applied)
        return applied

    def _check_version(self, kind: RecordKind, key: str, expected: int) -> None:
        current = self._tables[kind].get(key)
        actual = current.version if current is not None else 0
        if actual != expected:
            raise WriteConflictError(kind, key, expected, actual)

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    async def list_skills(
        self, provider_id: str | None, active_only: bool, limit: int
    ) -> list[Skill]:
        skills = [
            s for s in self._values(RecordKind.SKILL)
            if (provider_id is None or s.provider_id == provider_id)
            and (not active_only or s.is_active)
        ]
        skills.sort(key=lambda s: (s.created_at, s.id), reverse=True)
        return skills[:limit]

    async def list_bookings(
        self, requester_id: str | None, provider_id: str | None
    ) -> list[Booking]:
        bookings = [
            b for b in self._values(RecordKind.BOOKING)
            if (requester_id is None or b.requester_id == requester_id)
            and (provider_id is None or b.provider_id == provider_id)
        ]
        bookings.sort(key=lambda b: (b.created_at, b.id), reverse=True)
        return bookings

    async def list_entries_for_user(self, user_id: str) -> list[LedgerEntry]:
        entries = [e for e in self._values(RecordKind.LEDGER_ENTRY) if e.owner_id == user_id]
        entries.sort(key=lambda e: (e.created_at, e.id), reverse=True)
        return entries

    async def list_reviews(
        self, skill_id: str | None, provider_id: str | None, limit: int
    ) -> list[Review]:
        reviews = [
            r for r in self._values(RecordKind.REVIEW)
            if (skill_id is None or r.skill_id == skill_id)
            and (provider_id is None or r.provider_id == provider_id)
        ]
        reviews.sort(key=lambda r: (r.created_at, r.id), reverse=True)
        return reviews[:limit]

    async def load_skills(self, skill_ids: Iterable[str]) -> dict[str, Skill]:
        table = self._tables[RecordKind.SKILL]
        return {sid: replace(table[sid]) for sid in set(skill_ids) if sid in table}  # type: ignore[misc]

    async def all_balances(self) -> list[UserBalance]:
        return self._values(RecordKind.BALANCE)

    async def all_skills(self) -> list[Skill]:
        return self._values(RecordKind.SKILL)

    async def all_bookings(self) -> list[Booking]:
        return self._values(RecordKind.BOOKING)

    async def all_entries(self) -> list[LedgerEntry]:
        return self._values(RecordKind.LEDGER_ENTRY)

    async def all_reviews(self) -> list[Review]:
        return self._values(RecordKind.REVIEW)

    def subscribe(
        self, callback: ChangeCallback, kinds: Iterable[RecordKind] | None = None
    ) -> Callable[[], None]:
        return self.feed.subscribe(callback, kinds)

    def _values(self, kind: RecordKind) -> list:  # type: ignore[type-arg]
        return [replace(r) for r in self._tables[kind].values()]
