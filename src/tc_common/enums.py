"""Global enums — must match DB CHECK constraints exactly (see alembic/versions)."""

from enum import Enum


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    DECLINED = "declined"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (BookingStatus.COMPLETED, BookingStatus.DECLINED, BookingStatus.CANCELLED)


class LedgerEntryKind(str, Enum):
    """Pair roles: debit view for the requester, credit view for the provider."""
    SPENT = "spent"
    EARNED = "earned"


class LedgerEntryStatus(str, Enum):
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class RecordKind(str, Enum):
    """Record collections held by a ledger store."""
    BALANCE = "user_balances"
    SKILL = "skills"
    BOOKING = "bookings"
    LEDGER_ENTRY = "ledger_entries"
    REVIEW = "reviews"
