"""Tests for tc_ledger.domain.unit_of_work."""

import pytest

from src.tc_common.datetime_utils import utc_now
from src.tc_common.enums import LedgerEntryKind, LedgerEntryStatus, RecordKind
from src.tc_common.errors import InternalError
from src.tc_ledger.domain.models import LedgerEntry
from src.tc_ledger.domain.unit_of_work import UnitOfWork
from src.tc_ledger.infrastructure.memory_store import InMemoryLedgerStore
from tests.factories import Seeder


class TestReads:
    async def test_missing_record_is_read_at_version_zero(self, store: InMemoryLedgerStore) -> None:
        uow = UnitOfWork(store)
        assert await uow.get_balance("ghost") is None
        assert uow.change_set().reads == {(RecordKind.BALANCE, "ghost"): 0}

    async def test_repeated_get_returns_same_instance(
        self, store: InMemoryLedgerStore, seed: Seeder
    ) -> None:
        await seed.balance("alice", 10)
        uow = UnitOfWork(store)
        first = await uow.get_balance("alice")
        second = await uow.get_balance("alice")
        assert first is second
        assert first is not None and first.version == 1


class TestWrites:
    async def test_nothing_reaches_store_before_commit(
        self, store: InMemoryLedgerStore, seed: Seeder
    ) -> None:
        await seed.balance("alice", 10)
        uow = UnitOfWork(store)
        balance = await uow.get_balance("alice")
        assert balance is not None
        balance.credits = 3
        uow.put(balance)

        stored = await store.load(RecordKind.BALANCE, "alice")
        assert stored.credits == 10  # type: ignore[union-attr]

        await uow.commit()
        stored = await store.load(RecordKind.BALANCE, "alice")
        assert stored.credits == 3  # type: ignore[union-attr]
        assert stored.version == 2  # type: ignore[union-attr]

    async def test_update_without_read_is_rejected(
        self, store: InMemoryLedgerStore, seed: Seeder
    ) -> None:
        await seed.balance("alice", 10)
        loaded = await store.load(RecordKind.BALANCE, "alice")
        uow = UnitOfWork(store)
        with pytest.raises(InternalError):
            uow.put(loaded)  # type: ignore[arg-type]

    async def test_writes_ordered_balance_then_ledger_then_status(
        self, store: InMemoryLedgerStore, seed: Seeder
    ) -> None:
        skill = await seed.skill()
        booking = await seed.booking(skill)
        await seed.balance("alice")
        uow = UnitOfWork(store)
        b = await uow.get_booking(booking.id)
        s = await uow.get_skill(skill.id)
        bal = await uow.get_balance("alice")
        uow.put(b)  # type: ignore[arg-type]
        uow.put(s)  # type: ignore[arg-type]
        uow.put(bal)  # type: ignore[arg-type]
        kinds = [w.kind for w in uow.change_set().writes]
        assert kinds == [RecordKind.BALANCE, RecordKind.SKILL, RecordKind.BOOKING]

    async def test_entries_for_booking_includes_staged(
        self, store: InMemoryLedgerStore, seed: Seeder
    ) -> None:
        uow = UnitOfWork(store)
        entry = LedgerEntry(
            id="le_1", from_user="a", to_user="b", skill_id="sk_1", booking_id="bk_1",
            credits=2, kind=LedgerEntryKind.SPENT, status=LedgerEntryStatus.COMPLETED,
            description="", created_at=utc_now(),
        )
        uow.put(entry)
        entries = await uow.entries_for_booking("bk_1")
        assert [e.id for e in entries] == ["le_1"]


class TestCommit:
    async def test_empty_commit_is_noop(self, store: InMemoryLedgerStore) -> None:
        uow = UnitOfWork(store)
        await uow.get_balance("ghost")
        assert await uow.commit() == []

    async def test_closed_unit_rejects_use(self, store: InMemoryLedgerStore) -> None:
        uow = UnitOfWork(store)
        await uow.commit()
        with pytest.raises(InternalError):
            await uow.get_balance("alice")
