"""Pydantic schemas for tc_account API."""

from pydantic import BaseModel, Field

from src.tc_ledger.domain.models import LedgerEntry, UserBalance

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class TransferRequest(BaseModel):
    from_user: str = Field(..., min_length=1)
    to_user: str = Field(..., min_length=1)
    amount: int = Field(..., description="Credits to move; must be positive")
    skill_id: str = Field(..., min_length=1)
    booking_id: str = Field(..., min_length=1)
    description: str = Field("", max_length=500)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class BalanceResponse(BaseModel):
    user_id: str
    credits: int
    updated_at: str

    @classmethod
    def from_domain(cls, balance: UserBalance) -> "BalanceResponse":
        return cls(
            user_id=balance.user_id,
            credits=balance.credits,
            updated_at=balance.updated_at.isoformat(),
        )


class TransactionItem(BaseModel):
    id: str
    kind: str
    status: str
    from_user: str
    to_user: str
    credits: int
    skill_id: str
    skill_title: str | None = None
    booking_id: str
    description: str
    created_at: str
    cancelled_at: str | None = None

    @classmethod
    def from_domain(
        cls, entry: LedgerEntry, skill_title: str | None = None
    ) -> "TransactionItem":
        return cls(
            id=entry.id,
            kind=entry.kind.value,
            status=entry.status.value,
            from_user=entry.from_user,
            to_user=entry.to_user,
            credits=entry.credits,
            skill_id=entry.skill_id,
            skill_title=skill_title,
            booking_id=entry.booking_id,
            description=entry.description,
            created_at=entry.created_at.isoformat(),
            cancelled_at=entry.cancelled_at.isoformat() if entry.cancelled_at else None,
        )


class TransactionListResponse(BaseModel):
    user_id: str
    items: list[TransactionItem]


class TransactionSummaryResponse(BaseModel):
    user_id: str
    total_earned: int
    total_spent: int
    net_credits: int
    transaction_count: int
    recent: list[TransactionItem]


class TransferResponse(BaseModel):
    spent_entry_id: str
    earned_entry_id: str


class ReversalResponse(BaseModel):
    spent_entry_id: str
    earned_entry_id: str
    credits: int
