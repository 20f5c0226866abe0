"""Tests for InMemoryLedgerStore compare-and-swap commits."""

import pytest

from src.tc_common.enums import RecordKind
from src.tc_ledger.domain.repository import WriteConflictError
from src.tc_ledger.domain.unit_of_work import UnitOfWork
from src.tc_ledger.infrastructure.memory_store import InMemoryLedgerStore
from tests.factories import Seeder


class TestCommit:
    async def test_insert_starts_at_version_one(
        self, store: InMemoryLedgerStore, seed: Seeder
    ) -> None:
        await seed.balance("alice", 10)
        stored = await store.load(RecordKind.BALANCE, "alice")
        assert stored is not None
        assert stored.version == 1

    async def test_loads_are_copies(self, store: InMemoryLedgerStore, seed: Seeder) -> None:
        await seed.balance("alice", 10)
        loaded = await store.load(RecordKind.BALANCE, "alice")
        loaded.credits = 999  # type: ignore[union-attr]
        again = await store.load(RecordKind.BALANCE, "alice")
        assert again.credits == 10  # type: ignore[union-attr]

    async def test_returns_before_and_after(self, store: InMemoryLedgerStore, seed: Seeder) -> None:
        await seed.balance("alice", 10)
        uow = UnitOfWork(store)
        bal = await uow.get_balance("alice")
        bal.credits = 7  # type: ignore[union-attr]
        uow.put(bal)  # type: ignore[arg-type]
        changes = await uow.commit()
        assert len(changes) == 1
        assert changes[0].before.credits == 10  # type: ignore[union-attr]
        assert changes[0].after.credits == 7  # type: ignore[union-attr]


class TestConflicts:
    async def test_lost_update_is_rejected(self, store: InMemoryLedgerStore, seed: Seeder) -> None:
        await seed.balance("alice", 10)
        first, second = UnitOfWork(store), UnitOfWork(store)
        a = await first.get_balance("alice")
        b = await second.get_balance("alice")
        a.credits -= 4  # type: ignore[union-attr]
        b.credits -= 8  # type: ignore[union-attr]
        first.put(a)  # type: ignore[arg-type]
        second.put(b)  # type: ignore[arg-type]

        await first.commit()
        with pytest.raises(WriteConflictError):
            await second.commit()

        stored = await store.load(RecordKind.BALANCE, "alice")
        assert stored.credits == 6  # type: ignore[union-attr]

    async def test_stale_read_only_record_is_rejected(
        self, store: InMemoryLedgerStore, seed: Seeder
    ) -> None:
        await seed.balance("alice", 10)
        skill = await seed.skill(slots=1)
        reader = UnitOfWork(store)
        await reader.get_skill(skill.id)
        bal = await reader.get_balance("alice")
        bal.credits = 0  # type: ignore[union-attr]
        reader.put(bal)  # type: ignore[arg-type]

        writer = UnitOfWork(store)
        s = await writer.get_skill(skill.id)
        s.available_slots = 0  # type: ignore[union-attr]
        writer.put(s)  # type: ignore[arg-type]
        await writer.commit()

        with pytest.raises(WriteConflictError):
            await reader.commit()
        stored = await store.load(RecordKind.BALANCE, "alice")
        assert stored.credits == 10  # type: ignore[union-attr]

    async def test_duplicate_insert_is_rejected(self, store: InMemoryLedgerStore, seed: Seeder) -> None:
        await seed.balance("alice", 10)
        with pytest.raises(WriteConflictError):
            await seed.balance("alice", 99)
        stored = await store.load(RecordKind.BALANCE, "alice")
        assert stored.credits == 10  # type: ignore[union-attr]

    async def test_conflict_applies_nothing(self, store: InMemoryLedgerStore, seed: Seeder) -> None:
        await seed.balance("alice", 10)
        await seed.balance("bob", 0)
        uow = UnitOfWork(store)
        alice = await uow.get_balance("alice")
        bob = await uow.get_balance("bob")
        alice.credits -= 5  # type: ignore[union-attr]
        bob.credits += 5  # type: ignore[union-attr]
        uow.put(alice)  # type: ignore[arg-type]
        uow.put(bob)  # type: ignore[arg-type]

        other = UnitOfWork(store)
        b = await other.get_balance("bob")
        b.credits = 1  # type: ignore[union-attr]
        other.put(b)  # type: ignore[arg-type]
        await other.commit()

        with pytest.raises(WriteConflictError):
            await uow.commit()
        stored_alice = await store.load(RecordKind.BALANCE, "alice")
        assert stored_alice.credits == 10  # type: ignore[union-attr]


class TestReadSide:
    async def test_list_skills_filters_inactive(self, store: InMemoryLedgerStore, seed: Seeder) -> None:
        active = await seed.skill(provider_id="p1")
        await seed.skill(provider_id="p1", is_active=False)
        listed = await store.list_skills(None, True, 10)
        assert [s.id for s in listed] == [active.id]
        assert len(await store.list_skills("p1", False, 10)) == 2

    async def test_load_skills_skips_unknown_ids(
        self, store: InMemoryLedgerStore, seed: Seeder
    ) -> None:
        skill = await seed.skill()
        found = await store.load_skills([skill.id, "sk_missing"])
        assert set(found) == {skill.id}
