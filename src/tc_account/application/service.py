"""AccountApplicationService — balances, transfers, and transaction history.

Writes go through the AtomicRunner; the history views read the store
directly and join skill titles on the read side.
"""

import logging

from src.tc_account.application.schemas import (
    BalanceResponse,
    ReversalResponse,
    TransactionItem,
    TransactionListResponse,
    TransactionSummaryResponse,
    TransferResponse,
)
from src.tc_account.domain.transfer import TransferEngine
from src.tc_common.datetime_utils import utc_now
from src.tc_common.enums import LedgerEntryKind, LedgerEntryStatus, RecordKind
from src.tc_common.errors import UserNotFoundError
from src.tc_ledger.application.atomic import AtomicRunner
from src.tc_ledger.domain.models import LedgerEntry, UserBalance
from src.tc_ledger.domain.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)

RECENT_LIMIT = 5


class AccountApplicationService:
    def __init__(
        self,
        runner: AtomicRunner,
        transfers: TransferEngine,
        starting_credits: int = 10,
    ) -> None:
        self._runner = runner
        self._store = runner.store
        self._transfers = transfers
        self._starting_credits = starting_credits

    async def open_account(self, user_id: str) -> BalanceResponse:
        """Create the user's balance with the starting credits; no-op if it exists."""

        async def op(uow: UnitOfWork) -> UserBalance:
            existing = await uow.get_balance(user_id)
            if existing is not None:
                return existing
            now = utc_now()
            balance = UserBalance(
                user_id=user_id,
                credits=self._starting_credits,
                created_at=now,
                updated_at=now,
            )
            uow.put(balance)
            logger.info("Opened account %s with %d credits", user_id, self._starting_credits)
            return balance

        balance = await self._runner.run(op, "open_account")
        return BalanceResponse.from_domain(balance)

    async def get_balance(self, user_id: str) -> BalanceResponse:
        return BalanceResponse.from_domain(await self._require_balance(user_id))

    async def transfer(
        self,
        from_user: str,
        to_user: str,
        amount: int,
        skill_id: str,
        booking_id: str,
        description: str,
    ) -> TransferResponse:
        result = await self._transfers.transfer(
            from_user, to_user, amount, skill_id, booking_id, description
        )
        return TransferResponse(
            spent_entry_id=result.spent_entry_id,
            earned_entry_id=result.earned_entry_id,
        )

    async def reverse(self, entry_id: str) -> ReversalResponse:
        result = await self._transfers.reverse(entry_id)
        return ReversalResponse(
            spent_entry_id=result.spent_entry_id,
            earned_entry_id=result.earned_entry_id,
            credits=result.credits,
        )

    async def list_transactions(self, user_id: str) -> TransactionListResponse:
        await self._require_balance(user_id)
        entries = await self._store.list_entries_for_user(user_id)
        return TransactionListResponse(user_id=user_id, items=await self._with_titles(entries))

    async def transaction_summary(self, user_id: str) -> TransactionSummaryResponse:
        await self._require_balance(user_id)
        entries = await self._store.list_entries_for_user(user_id)
        completed = [e for e in entries if e.status == LedgerEntryStatus.COMPLETED]
        total_earned = sum(e.credits for e in completed if e.kind == LedgerEntryKind.EARNED)
        total_spent = sum(e.credits for e in completed if e.kind == LedgerEntryKind.SPENT)
        return TransactionSummaryResponse(
            user_id=user_id,
            total_earned=total_earned,
            total_spent=total_spent,
            net_credits=total_earned - total_spent,
            transaction_count=len(entries),
            recent=await self._with_titles(entries[:RECENT_LIMIT]),
        )

    async def _require_balance(self, user_id: str) -> UserBalance:
        balance = await self._store.load(RecordKind.BALANCE, user_id)
        if balance is None:
            raise UserNotFoundError(user_id)
        return balance  # type: ignore[return-value]

    async def _with_titles(self, entries: list[LedgerEntry]) -> list[TransactionItem]:
        skills = await self._store.load_skills({e.skill_id for e in entries})
        return [
            TransactionItem.from_domain(
                e, skills[e.skill_id].title if e.skill_id in skills else None
            )
            for e in entries
        ]
