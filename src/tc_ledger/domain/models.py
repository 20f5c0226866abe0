"""Ledger records — pure dataclasses, no SQLAlchemy dependency.

Every record carries `version`: 0 for a record that has never been committed,
then incremented by the store on each committed write. Units of work compare
it on commit to detect concurrent writers.
"""

from dataclasses import dataclass, field
from datetime import date, datetime

from src.tc_common.enums import BookingStatus, LedgerEntryKind, LedgerEntryStatus, RecordKind


@dataclass
class UserBalance:
    user_id: str
    credits: int
    created_at: datetime
    updated_at: datetime
    version: int = 0

    @property
    def key(self) -> str:
        return self.user_id


@dataclass
class Skill:
    id: str
    provider_id: str
    title: str
    credits_per_hour: int
    available_slots: int
    created_at: datetime
    updated_at: datetime
    category: str | None = None
    rating: float = 0.0          # rolling mean, one decimal
    review_count: int = 0
    total_sessions: int = 0
    is_active: bool = True
    version: int = 0

    @property
    def key(self) -> str:
        return self.id


@dataclass
class Booking:
    id: str
    skill_id: str
    requester_id: str
    provider_id: str
    credits: int                 # fixed at creation, moved at completion
    date: date
    time: str
    status: BookingStatus
    created_at: datetime
    updated_at: datetime
    reviewed: bool = False
    meeting_ref: str | None = None
    confirmed_at: datetime | None = None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None
    version: int = 0

    @property
    def key(self) -> str:
        return self.id


@dataclass
class LedgerEntry:
    id: str
    from_user: str
    to_user: str
    skill_id: str
    booking_id: str
    credits: int
    kind: LedgerEntryKind
    status: LedgerEntryStatus
    description: str
    created_at: datetime
    cancelled_at: datetime | None = None
    version: int = 0

    @property
    def key(self) -> str:
        return self.id

    @property
    def owner_id(self) -> str:
        """The user whose history this entry belongs to."""
        return self.from_user if self.kind == LedgerEntryKind.SPENT else self.to_user


@dataclass
class Review:
    id: str
    booking_id: str
    skill_id: str
    reviewer_id: str
    provider_id: str
    rating: int
    created_at: datetime
    comment: str | None = None
    version: int = 0

    @property
    def key(self) -> str:
        return self.id


Record = UserBalance | Skill | Booking | LedgerEntry | Review

RECORD_KINDS: dict[type, RecordKind] = {
    UserBalance: RecordKind.BALANCE,
    Skill: RecordKind.SKILL,
    Booking: RecordKind.BOOKING,
    LedgerEntry: RecordKind.LEDGER_ENTRY,
    Review: RecordKind.REVIEW,
}


def kind_of(record: Record) -> RecordKind:
    return RECORD_KINDS[type(record)]


# Commit order: balance mutations → ledger writes → everything else (status last).
# Within a kind rows go in key order so concurrent units lock them the same way.
WRITE_ORDER: dict[RecordKind, int] = {
    RecordKind.BALANCE: 0,
    RecordKind.LEDGER_ENTRY: 1,
    RecordKind.SKILL: 2,
    RecordKind.REVIEW: 3,
    RecordKind.BOOKING: 4,
}


def commit_order(kind: RecordKind, key: str) -> tuple[int, str]:
    return WRITE_ORDER[kind], key


@dataclass(frozen=True)
class StagedWrite:
    """One staged write. `expected_version` is the version read (0 means insert)."""

    kind: RecordKind
    record: Record
    expected_version: int


@dataclass
class ChangeSet:
    """Everything one unit of work wants to commit.

    reads:  (kind, key) -> version observed; records never written are still
            checked so a unit cannot commit on top of a stale read.
    writes: in commit_order (balance → ledger → other records, then key).
    """

    reads: dict[tuple[RecordKind, str], int] = field(default_factory=dict)
    writes: list[StagedWrite] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.writes


@dataclass(frozen=True)
class RecordChange:
    """Post-commit notification payload for change-feed observers."""

    kind: RecordKind
    before: Record | None
    after: Record
