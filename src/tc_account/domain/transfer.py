"""TransferEngine — atomic credit transfer and reversal with a paired ledger.

A transfer debits the payer, credits the payee, and appends two ledger
entries (payer's "spent", payee's "earned") sharing amount and booking id.
A reversal applies the inverse delta and flips the pair to "cancelled";
entries are never deleted.

`apply_*` methods stage into a caller's UnitOfWork so they can share one
atomic unit with booking/skill writes. `transfer` / `reverse` run on their
own through the AtomicRunner.
"""

import logging
from dataclasses import dataclass

from src.tc_common.datetime_utils import utc_now
from src.tc_common.enums import LedgerEntryKind, LedgerEntryStatus
from src.tc_common.errors import (
    AlreadyCancelledError,
    FailedPreconditionError,
    InsufficientCreditsError,
    InvalidAmountError,
    LedgerEntryNotFoundError,
    UserNotFoundError,
)
from src.tc_common.id_generator import generate_id
from src.tc_ledger.application.atomic import AtomicRunner
from src.tc_ledger.domain.models import LedgerEntry, UserBalance
from src.tc_ledger.domain.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransferResult:
    spent_entry_id: str
    earned_entry_id: str


@dataclass(frozen=True)
class ReversalResult:
    spent_entry_id: str
    earned_entry_id: str
    credits: int


class TransferEngine:
    def __init__(self, runner: AtomicRunner) -> None:
        self._runner = runner

    # ------------------------------------------------------------------
    # Standalone units
    # ------------------------------------------------------------------

    async def transfer(
        self,
        from_user: str,
        to_user: str,
        amount: int,
        skill_id: str,
        booking_id: str,
        description: str,
    ) -> TransferResult:
        """Move credits outside any booking lifecycle.

        `booking_id` is a free reference here. It may not name a real booking
        (only that booking's complete edge writes its pair) nor a reference
        that already carries a completed pair.
        """

        async def op(uow: UnitOfWork) -> TransferResult:
            if await uow.get_booking(booking_id) is not None:
                raise FailedPreconditionError(
                    f"booking {booking_id} moves credits only when it completes"
                )
            entries = await uow.entries_for_booking(booking_id)
            if any(e.status == LedgerEntryStatus.COMPLETED for e in entries):
                raise FailedPreconditionError(
                    f"reference {booking_id} already has a completed transfer"
                )
            return await self.apply_transfer(
                uow, from_user, to_user, amount, skill_id, booking_id, description
            )

        return await self._runner.run(op, "transfer")

    async def reverse(self, entry_id: str) -> ReversalResult:
        """Reverse a standalone transfer; booking pairs are reversed by cancelling the booking."""

        async def op(uow: UnitOfWork) -> ReversalResult:
            anchor = await uow.get_entry(entry_id)
            if anchor is not None and await uow.get_booking(anchor.booking_id) is not None:
                raise FailedPreconditionError(
                    f"entry {entry_id} belongs to booking {anchor.booking_id}"
                )
            return await self.apply_reversal(uow, entry_id)

        return await self._runner.run(op, "reverse")

    # ------------------------------------------------------------------
    # Staged forms
    # ------------------------------------------------------------------

    async def apply_transfer(
        self,
        uow: UnitOfWork,
        from_user: str,
        to_user: str,
        amount: int,
        skill_id: str,
        booking_id: str,
        description: str,
    ) -> TransferResult:
        if amount <= 0:
            raise InvalidAmountError(amount)
        payer = await self._require_balance(uow, from_user)
        payee = await self._require_balance(uow, to_user)
        if payer.credits < amount:
            raise InsufficientCreditsError(from_user, amount, payer.credits)

        now = utc_now()
        payer.credits -= amount
        payer.updated_at = now
        uow.put(payer)
        payee.credits += amount
        payee.updated_at = now
        uow.put(payee)

        spent = self._new_entry(
            from_user, to_user, amount, skill_id, booking_id,
            description, LedgerEntryKind.SPENT,
        )
        earned = self._new_entry(
            from_user, to_user, amount, skill_id, booking_id,
            description, LedgerEntryKind.EARNED,
        )
        uow.put(spent)
        uow.put(earned)
        logger.info(
            "Transfer staged: %s -> %s amount=%d booking=%s",
            from_user, to_user, amount, booking_id,
        )
        return TransferResult(spent_entry_id=spent.id, earned_entry_id=earned.id)

    async def apply_reversal(self, uow: UnitOfWork, entry_id: str) -> ReversalResult:
        """Reverse the completed pair that `entry_id` belongs to."""
        anchor = await uow.get_entry(entry_id)
        if anchor is None:
            raise LedgerEntryNotFoundError(entry_id)
        if anchor.status != LedgerEntryStatus.COMPLETED:
            raise AlreadyCancelledError(entry_id)
        entries = await uow.entries_for_booking(anchor.booking_id)
        counterpart = _find_counterpart(entries, anchor)
        if counterpart is None:
            raise AlreadyCancelledError(entry_id)
        return await self._reverse_pair(uow, anchor, counterpart)

    async def apply_booking_reversal(
        self, uow: UnitOfWork, booking_id: str, requester_id: str, provider_id: str
    ) -> ReversalResult:
        """Reverse the completed requester → provider pair recorded for a booking."""
        entries = await uow.entries_for_booking(booking_id)
        spent = next(
            (
                e for e in entries
                if e.status == LedgerEntryStatus.COMPLETED
                and e.kind == LedgerEntryKind.SPENT
                and e.from_user == requester_id
                and e.to_user == provider_id
            ),
            None,
        )
        counterpart = _find_counterpart(entries, spent) if spent is not None else None
        if spent is None or counterpart is None:
            raise AlreadyCancelledError(booking_id)
        return await self._reverse_pair(uow, spent, counterpart)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _reverse_pair(
        self, uow: UnitOfWork, first: LedgerEntry, second: LedgerEntry
    ) -> ReversalResult:
        amount = first.credits
        payer = await self._require_balance(uow, first.from_user)
        payee = await self._require_balance(uow, first.to_user)
        if payee.credits < amount:
            raise InsufficientCreditsError(payee.user_id, amount, payee.credits)

        now = utc_now()
        payee.credits -= amount
        payee.updated_at = now
        uow.put(payee)
        payer.credits += amount
        payer.updated_at = now
        uow.put(payer)

        for entry in (first, second):
            entry.status = LedgerEntryStatus.CANCELLED
            entry.cancelled_at = now
            uow.put(entry)

        spent, earned = (first, second) if first.kind == LedgerEntryKind.SPENT else (second, first)
        logger.info(
            "Reversal staged: %s -> %s amount=%d booking=%s",
            payee.user_id, payer.user_id, amount, first.booking_id,
        )
        return ReversalResult(spent_entry_id=spent.id, earned_entry_id=earned.id, credits=amount)

    @staticmethod
    async def _require_balance(uow: UnitOfWork, user_id: str) -> UserBalance:
        balance = await uow.get_balance(user_id)
        if balance is None:
            raise UserNotFoundError(user_id)
        return balance

    @staticmethod
    def _new_entry(
        from_user: str,
        to_user: str,
        amount: int,
        skill_id: str,
        booking_id: str,
        description: str,
        kind: LedgerEntryKind,
    ) -> LedgerEntry:
        return LedgerEntry(
            id=generate_id("le"),
            from_user=from_user,
            to_user=to_user,
            skill_id=skill_id,
            booking_id=booking_id,
            credits=amount,
            kind=kind,
            status=LedgerEntryStatus.COMPLETED,
            description=description,
            created_at=utc_now(),
        )


def _find_counterpart(entries: list[LedgerEntry], anchor: LedgerEntry) -> LedgerEntry | None:
    """The completed entry of the opposite kind recording the same movement."""
    for entry in entries:
        if (
            entry.id != anchor.id
            and entry.status == LedgerEntryStatus.COMPLETED
            and entry.kind != anchor.kind
            and entry.from_user == anchor.from_user
            and entry.to_user == anchor.to_user
            and entry.credits == anchor.credits
        ):
            return entry
    return None
