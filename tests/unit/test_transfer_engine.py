"""Tests for TransferEngine — paired ledger entries and reversals."""

import pytest

from src.tc_account.domain.transfer import TransferEngine
from src.tc_booking.domain.state_machine import BookingStateMachine
from src.tc_common.enums import BookingStatus, LedgerEntryKind, LedgerEntryStatus, RecordKind
from src.tc_common.errors import (
    AlreadyCancelledError,
    FailedPreconditionError,
    InsufficientCreditsError,
    InvalidAmountError,
    LedgerEntryNotFoundError,
    UserNotFoundError,
)
from src.tc_ledger.domain.invariants import verify_ledger_invariants
from src.tc_ledger.infrastructure.memory_store import InMemoryLedgerStore
from tests.factories import Seeder


async def _credits(store: InMemoryLedgerStore, user_id: str) -> int:
    balance = await store.load(RecordKind.BALANCE, user_id)
    assert balance is not None
    return balance.credits  # type: ignore[union-attr]


class TestTransfer:
    async def test_moves_credits_and_writes_pair(
        self, store: InMemoryLedgerStore, transfers: TransferEngine, seed: Seeder
    ) -> None:
        await seed.balance("alice", 10)
        await seed.balance("bob", 0)

        result = await transfers.transfer("alice", "bob", 4, "sk_1", "bk_1", "Session: Guitar")

        assert await _credits(store, "alice") == 6
        assert await _credits(store, "bob") == 4
        entries = await store.load_entries_for_booking("bk_1")
        assert {e.id for e in entries} == {result.spent_entry_id, result.earned_entry_id}
        by_kind = {e.kind: e for e in entries}
        assert by_kind[LedgerEntryKind.SPENT].id == result.spent_entry_id
        for entry in entries:
            assert entry.credits == 4
            assert entry.status == LedgerEntryStatus.COMPLETED
            assert (entry.from_user, entry.to_user) == ("alice", "bob")

    async def test_exact_balance_is_enough(
        self, store: InMemoryLedgerStore, transfers: TransferEngine, seed: Seeder
    ) -> None:
        await seed.balance("alice", 4)
        await seed.balance("bob", 0)
        await transfers.transfer("alice", "bob", 4, "sk_1", "bk_1", "")
        assert await _credits(store, "alice") == 0

    @pytest.mark.parametrize("amount", [0, -3])
    async def test_non_positive_amount(
        self, store: InMemoryLedgerStore, transfers: TransferEngine, seed: Seeder, amount: int
    ) -> None:
        await seed.balance("alice", 10)
        await seed.balance("bob", 0)
        with pytest.raises(InvalidAmountError):
            await transfers.transfer("alice", "bob", amount, "sk_1", "bk_1", "")
        assert await store.all_entries() == []

    async def test_insufficient_credits_writes_nothing(
        self, store: InMemoryLedgerStore, transfers: TransferEngine, seed: Seeder
    ) -> None:
        await seed.balance("alice", 2)
        await seed.balance("bob", 0)
        with pytest.raises(InsufficientCreditsError) as exc_info:
            await transfers.transfer("alice", "bob", 5, "sk_1", "bk_1", "")
        assert exc_info.value.available == 2
        assert await _credits(store, "alice") == 2
        assert await _credits(store, "bob") == 0
        assert await store.all_entries() == []

    async def test_missing_payee(
        self, store: InMemoryLedgerStore, transfers: TransferEngine, seed: Seeder
    ) -> None:
        await seed.balance("alice", 10)
        with pytest.raises(UserNotFoundError):
            await transfers.transfer("alice", "ghost", 1, "sk_1", "bk_1", "")
        assert await _credits(store, "alice") == 10


class TestReverse:
    async def test_round_trip_restores_balances(
        self, store: InMemoryLedgerStore, transfers: TransferEngine, seed: Seeder
    ) -> None:
        await seed.balance("alice", 10)
        await seed.balance("bob", 3)
        result = await transfers.transfer("alice", "bob", 4, "sk_1", "bk_1", "")

        reversal = await transfers.reverse(result.spent_entry_id)

        assert reversal.credits == 4
        assert await _credits(store, "alice") == 10
        assert await _credits(store, "bob") == 3
        entries = await store.load_entries_for_booking("bk_1")
        assert len(entries) == 2
        assert all(e.status == LedgerEntryStatus.CANCELLED for e in entries)
        assert all(e.cancelled_at is not None for e in entries)

    async def test_reverse_by_earned_entry(
        self, store: InMemoryLedgerStore, transfers: TransferEngine, seed: Seeder
    ) -> None:
        await seed.balance("alice", 10)
        await seed.balance("bob", 0)
        result = await transfers.transfer("alice", "bob", 4, "sk_1", "bk_1", "")
        reversal = await transfers.reverse(result.earned_entry_id)
        assert reversal.spent_entry_id == result.spent_entry_id
        assert await _credits(store, "alice") == 10

    async def test_second_reverse_fails_and_changes_nothing(
        self, store: InMemoryLedgerStore, transfers: TransferEngine, seed: Seeder
    ) -> None:
        await seed.balance("alice", 10)
        await seed.balance("bob", 0)
        result = await transfers.transfer("alice", "bob", 4, "sk_1", "bk_1", "")
        await transfers.reverse(result.spent_entry_id)

        with pytest.raises(AlreadyCancelledError):
            await transfers.reverse(result.spent_entry_id)
        assert await _credits(store, "alice") == 10
        assert await _credits(store, "bob") == 0

    async def test_unknown_entry(self, transfers: TransferEngine) -> None:
        with pytest.raises(LedgerEntryNotFoundError):
            await transfers.reverse("le_missing")

    async def test_reversal_cannot_overdraw_payee(
        self, store: InMemoryLedgerStore, transfers: TransferEngine, seed: Seeder
    ) -> None:
        await seed.balance("alice", 10)
        await seed.balance("bob", 0)
        await seed.balance("carol", 0)
        result = await transfers.transfer("alice", "bob", 4, "sk_1", "bk_1", "")
        await transfers.transfer("bob", "carol", 4, "sk_2", "bk_2", "")

        with pytest.raises(InsufficientCreditsError):
            await transfers.reverse(result.spent_entry_id)
        assert await _credits(store, "alice") == 6
        entries = await store.load_entries_for_booking("bk_1")
        assert all(e.status == LedgerEntryStatus.COMPLETED for e in entries)


class TestBookingReferences:
    async def test_transfer_rejects_live_booking(
        self,
        store: InMemoryLedgerStore,
        transfers: TransferEngine,
        machine: BookingStateMachine,
        seed: Seeder,
    ) -> None:
        await seed.balance("requester", 10)
        await seed.balance("provider", 0)
        skill = await seed.skill(credits_per_hour=4)
        booking = await seed.booking(skill, status=BookingStatus.CONFIRMED)

        with pytest.raises(FailedPreconditionError):
            await transfers.transfer("requester", "provider", 4, skill.id, booking.id, "")
        await machine.request_transition(booking.id, BookingStatus.COMPLETED)

        assert len(await store.load_entries_for_booking(booking.id)) == 2
        assert await _credits(store, "requester") == 6
        assert await verify_ledger_invariants(store) == []

    async def test_transfer_rejects_reference_with_completed_pair(
        self, store: InMemoryLedgerStore, transfers: TransferEngine, seed: Seeder
    ) -> None:
        await seed.balance("alice", 10)
        await seed.balance("bob", 0)
        await transfers.transfer("alice", "bob", 2, "sk_1", "bk_1", "")

        with pytest.raises(FailedPreconditionError):
            await transfers.transfer("alice", "bob", 2, "sk_1", "bk_1", "")

        assert await _credits(store, "alice") == 8
        assert len(await store.load_entries_for_booking("bk_1")) == 2

    async def test_reverse_rejects_booking_pair(
        self,
        store: InMemoryLedgerStore,
        transfers: TransferEngine,
        machine: BookingStateMachine,
        seed: Seeder,
    ) -> None:
        await seed.balance("requester", 10)
        await seed.balance("provider", 0)
        skill = await seed.skill(credits_per_hour=4)
        booking = await seed.booking(skill, status=BookingStatus.CONFIRMED)
        await machine.request_transition(booking.id, BookingStatus.COMPLETED)
        entries = await store.load_entries_for_booking(booking.id)

        with pytest.raises(FailedPreconditionError):
            await transfers.reverse(entries[0].id)

        assert await verify_ledger_invariants(store) == []
        cancelled = await machine.request_transition(booking.id, BookingStatus.CANCELLED)
        assert cancelled.status == BookingStatus.CANCELLED
        assert await _credits(store, "requester") == 10
        assert await _credits(store, "provider") == 0
