"""SqlLedgerStore — PostgreSQL implementation of LedgerStoreProtocol.

Each commit runs in one database transaction:
  - records only read by the unit are re-checked with SELECT ... FOR SHARE
  - updates are guarded with `WHERE version = :expected_version`;
    0 rows updated means another unit won the race
  - inserts that hit a unique key also count as a lost race
Any of these raises WriteConflictError and the transaction rolls back.
CHECK constraints (credits >= 0, available_slots >= 0) back the invariants.
"""

import logging
from collections.abc import Callable, Iterable
from dataclasses import replace
from enum import Enum
from typing import Any

from sqlalchemy import TextClause, text
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.tc_common.enums import BookingStatus, LedgerEntryKind, LedgerEntryStatus, RecordKind
from src.tc_common.errors import InternalError
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
    commit_order,
)
from src.tc_ledger.domain.repository import ChangeCallback, WriteConflictError

logger = logging.getLogger(__name__)

_UNIQUE_VIOLATION = "23505"
# Lock-order or snapshot losers; the unit is safe to rerun from its reads.
_RETRYABLE_SQLSTATES = frozenset({"40P01", "40001"})

# ---------------------------------------------------------------------------
# Table layout (column order matches the dataclass fields, `version` excluded)
# ---------------------------------------------------------------------------

_PK: dict[RecordKind, str] = {
    RecordKind.BALANCE: "user_id",
    RecordKind.SKILL: "id",
    RecordKind.BOOKING: "id",
    RecordKind.LEDGER_ENTRY: "id",
    RecordKind.REVIEW: "id",
}

_COLUMNS: dict[RecordKind, tuple[str, ...]] = {
    RecordKind.BALANCE: ("user_id", "credits", "created_at", "updated_at"),
    RecordKind.SKILL: (
        "id", "provider_id", "title", "category", "credits_per_hour", "available_slots",
        "rating", "review_count", "total_sessions", "is_active", "created_at", "updated_at",
    ),
    RecordKind.BOOKING: (
        "id", "skill_id", "requester_id", "provider_id", "credits", "date", "time",
        "status", "reviewed", "meeting_ref", "created_at", "updated_at",
        "confirmed_at", "completed_at", "cancelled_at",
    ),
    RecordKind.LEDGER_ENTRY: (
        "id", "from_user", "to_user", "skill_id", "booking_id", "credits", "kind",
        "status", "description", "created_at", "cancelled_at",
    ),
    RecordKind.REVIEW: (
        "id", "booking_id", "skill_id", "reviewer_id", "provider_id", "rating",
        "comment", "created_at",
    ),
}


def _select_sql(kind: RecordKind) -> TextClause:
    cols = ", ".join(_COLUMNS[kind])
    return text(f"SELECT {cols}, version FROM {kind.value} WHERE {_PK[kind]} = :key")


def _version_sql(kind: RecordKind) -> TextClause:
    return text(f"SELECT version FROM {kind.value} WHERE {_PK[kind]} = :key FOR SHARE")


def _insert_sql(kind: RecordKind) -> TextClause:
    cols = _COLUMNS[kind]
    return text(
        f"INSERT INTO {kind.value} ({', '.join(cols)}, version) "
        f"VALUES ({', '.join(':' + c for c in cols)}, :new_version)"
    )


def _update_sql(kind: RecordKind) -> TextClause:
    pk = _PK[kind]
    assignments = ", ".join(f"{c} = :{c}" for c in _COLUMNS[kind] if c != pk)
    return text(
        f"UPDATE {kind.value} SET {assignments}, version = :new_version "
        f"WHERE {pk} = :{pk} AND version = :expected_version "
        f"RETURNING version"
    )


_SELECT_SQL = {kind: _select_sql(kind) for kind in RecordKind}
_VERSION_SQL = {kind: _version_sql(kind) for kind in RecordKind}
_INSERT_SQL = {kind: _insert_sql(kind) for kind in RecordKind}
_UPDATE_SQL = {kind: _update_sql(kind) for kind in RecordKind}

_ENTRY_COLS = ", ".join(_COLUMNS[RecordKind.LEDGER_ENTRY])
_SKILL_COLS = ", ".join(_COLUMNS[RecordKind.SKILL])
_BOOKING_COLS = ", ".join(_COLUMNS[RecordKind.BOOKING])
_REVIEW_COLS = ", ".join(_COLUMNS[RecordKind.REVIEW])

_ENTRIES_FOR_BOOKING_SQL = text(f"""
    SELECT {_ENTRY_COLS}, version
    FROM ledger_entries
    WHERE booking_id = :booking_id
    ORDER BY created_at, id
""")

_ENTRIES_FOR_USER_SQL = text(f"""
    SELECT {_ENTRY_COLS}, version
    FROM ledger_entries
    WHERE (kind = 'spent' AND from_user = :user_id)
       OR (kind = 'earned' AND to_user = :user_id)
    ORDER BY created_at DESC, id DESC
""")

_LIST_SKILLS_SQL = text(f"""
    SELECT {_SKILL_COLS}, version
    FROM skills
    WHERE (CAST(:provider_id AS VARCHAR) IS NULL OR provider_id = :provider_id)
      AND (:active_only = FALSE OR is_active = TRUE)
    ORDER BY created_at DESC, id DESC
    LIMIT :limit
""")

_LIST_BOOKINGS_SQL = text(f"""
    SELECT {_BOOKING_COLS}, version
    FROM bookings
    WHERE (CAST(:requester_id AS VARCHAR) IS NULL OR requester_id = :requester_id)
      AND (CAST(:provider_id AS VARCHAR) IS NULL OR provider_id = :provider_id)
    ORDER BY created_at DESC, id DESC
""")

_LIST_REVIEWS_SQL = text(f"""
    SELECT {_REVIEW_COLS}, version
    FROM reviews
    WHERE (CAST(:skill_id AS VARCHAR) IS NULL OR skill_id = :skill_id)
      AND (CAST(:provider_id AS VARCHAR) IS NULL OR provider_id = :provider_id)
    ORDER BY created_at DESC, id DESC
    LIMIT :limit
""")

_SKILLS_BY_IDS_SQL = text(f"SELECT {_SKILL_COLS}, version FROM skills WHERE id = ANY(:ids)")


def _all_sql(kind: RecordKind) -> TextClause:
    return text(f"SELECT {', '.join(_COLUMNS[kind])}, version FROM {kind.value}")


_ALL_SQL = {kind: _all_sql(kind) for kind in RecordKind}

# ---------------------------------------------------------------------------
# Row <-> record conversion
# ---------------------------------------------------------------------------


def _row_to_balance(row: Any) -> UserBalance:
    return UserBalance(
        user_id=row.user_id,
        credits=row.credits,
        created_at=row.created_at,
        updated_at=row.updated_at,
        version=row.version,
    )


def _row_to_skill(row: Any) -> Skill:
    return Skill(
        id=row.id,
        provider_id=row.provider_id,
        title=row.title,
        category=row.category,
        credits_per_hour=row.credits_per_hour,
        available_slots=row.available_slots,
        rating=float(row.rating),
        review_count=row.review_count,
        total_sessions=row.total_sessions,
        is_active=row.is_active,
        created_at=row.created_at,
        updated_at=row.updated_at,
        version=row.version,
    )


def _row_to_booking(row: Any) -> Booking:
    return Booking(
        id=row.id,
        skill_id=row.skill_id,
        requester_id=row.requester_id,
        provider_id=row.provider_id,
        credits=row.credits,
        date=row.date,
        time=row.time,
        status=BookingStatus(row.status),
        reviewed=row.reviewed,
        meeting_ref=row.meeting_ref,
        created_at=row.created_at,
        updated_at=row.updated_at,
        confirmed_at=row.confirmed_at,
        completed_at=row.completed_at,
        cancelled_at=row.cancelled_at,
        version=row.version,
    )


def _row_to_entry(row: Any) -> LedgerEntry:
    return LedgerEntry(
        id=row.id,
        from_user=row.from_user,
        to_user=row.to_user,
        skill_id=row.skill_id,
        booking_id=row.booking_id,
        credits=row.credits,
        kind=LedgerEntryKind(row.kind),
        status=LedgerEntryStatus(row.status),
        description=row.description,
        created_at=row.created_at,
        cancelled_at=row.cancelled_at,
        version=row.version,
    )


def _row_to_review(row: Any) -> Review:
    return Review(
        id=row.id,
        booking_id=row.booking_id,
        skill_id=row.skill_id,
        reviewer_id=row.reviewer_id,
        provider_id=row.provider_id,
        rating=row.rating,
        comment=row.comment,
        created_at=row.created_at,
        version=row.version,
    )


_ROW_TO_RECORD: dict[RecordKind, Callable[[Any], Record]] = {
    RecordKind.BALANCE: _row_to_balance,
    RecordKind.SKILL: _row_to_skill,
    RecordKind.BOOKING: _row_to_booking,
    RecordKind.LEDGER_ENTRY: _row_to_entry,
    RecordKind.REVIEW: _row_to_review,
}


def _record_params(kind: RecordKind, record: Record) -> dict[str, Any]:
    params: dict[str, Any] = {}
    for col in _COLUMNS[kind]:
        value = getattr(record, col)
        params[col] = value.value if isinstance(value, Enum) else value
    return params


def _sqlstate(exc: DBAPIError) -> str | None:
    return getattr(exc.orig, "sqlstate", None) or getattr(exc.orig, "pgcode", None)


class SqlLedgerStore:
    """Concrete store — one short transaction per commit, no locks held between calls."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        feed: ChangeFeed | None = None,
    ) -> None:
        self._session_factory = session_factory
        self.feed = feed or ChangeFeed()

    # ------------------------------------------------------------------
    # Unit-of-work reads
    # ------------------------------------------------------------------

    async def load(self, kind: RecordKind, key: str) -> Record | None:
        async with self._session_factory() as db:
            row = (await db.execute(_SELECT_SQL[kind], {"key": key})).fetchone()
        return _ROW_TO_RECORD[kind](row) if row else None

    async def load_entries_for_booking(self, booking_id: str) -> list[LedgerEntry]:
        async with self._session_factory() as db:
            rows = (
                await db.execute(_ENTRIES_FOR_BOOKING_SQL, {"booking_id": booking_id})
            ).fetchall()
        return [_row_to_entry(row) for row in rows]

    # ------------------------------------------------------------------
    # Atomic commit
    # ------------------------------------------------------------------

    async def commit(self, changes: ChangeSet) -> list[RecordChange]:
        written = {(w.kind, w.record.key) for w in changes.writes}
        checks = sorted(
            (ident for ident in changes.reads if ident not in written),
            key=lambda ident: commit_order(*ident),
        )
        writes = sorted(changes.writes, key=lambda w: commit_order(w.kind, w.record.key))
        applied: list[RecordChange] = []
        current: tuple[RecordKind, str] | None = None
        try:
            async with self._session_factory() as db:
                async with db.begin():
                    for kind, key in checks:
                        current = (kind, key)
                        await self._check_version(db, kind, key, changes.reads[(kind, key)])
                    for write in writes:
                        current = (write.kind, write.record.key)
                        before = None
                        if write.expected_version == 0:
                            await self._insert(db, write.kind, write.record)
                        else:
                            before = await self._update(
                                db, write.kind, write.record, write.expected_version
                            )
                        after = replace(write.record, version=write.expected_version + 1)
                        applied.append(RecordChange(kind=write.kind, before=before, after=after))
        except DBAPIError as exc:
            state = _sqlstate(exc)
            if state not in _RETRYABLE_SQLSTATES or current is None:
                raise
            kind, key = current
            logger.info("Commit aborted by the database (%s) at %s/%s", state, kind.value, key)
            raise WriteConflictError(kind, key, changes.reads.get(current, 0), None) from exc
        logger.debug("Committed %d writes", len(applied))
        self.feed.publish(applied)
        return applied

    async def _check_version(
        self, db: AsyncSession, kind: RecordKind, key: str, expected: int
    ) -> None:
        row = (await db.execute(_VERSION_SQL[kind], {"key": key})).fetchone()
        actual = row.version if row else 0
        if actual != expected:
            raise WriteConflictError(kind, key, expected, actual)

    async def _insert(self, db: AsyncSession, kind: RecordKind, record: Record) -> None:
        params = _record_params(kind, record)
        params["new_version"] = 1
        try:
            async with db.begin_nested():
                await db.execute(_INSERT_SQL[kind], params)
        except IntegrityError as exc:
            if _sqlstate(exc) == _UNIQUE_VIOLATION:
                raise WriteConflictError(kind, record.key, 0, None) from exc
            raise InternalError(f"{kind.value} insert rejected: {exc.orig}") from exc

    async def _update(
        self, db: AsyncSession, kind: RecordKind, record: Record, expected: int
    ) -> Record | None:
        before_row = (await db.execute(_SELECT_SQL[kind], {"key": record.key})).fetchone()
        params = _record_params(kind, record)
        params["expected_version"] = expected
        params["new_version"] = expected + 1
        try:
            row = (await db.execute(_UPDATE_SQL[kind], params)).fetchone()
        except IntegrityError as exc:
            raise InternalError(f"{kind.value} update rejected: {exc.orig}") from exc
        if row is None:
            actual = before_row.version if before_row else None
            raise WriteConflictError(kind, record.key, expected, actual)
        return _ROW_TO_RECORD[kind](before_row) if before_row else None

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    async def list_skills(
        self, provider_id: str | None, active_only: bool, limit: int
    ) -> list[Skill]:
        async with self._session_factory() as db:
            rows = (
                await db.execute(
                    _LIST_SKILLS_SQL,
                    {"provider_id": provider_id, "active_only": active_only, "limit": limit},
                )
            ).fetchall()
        return [_row_to_skill(row) for row in rows]

    async def list_bookings(
        self, requester_id: str | None, provider_id: str | None
    ) -> list[Booking]:
        async with self._session_factory() as db:
            rows = (
                await db.execute(
                    _LIST_BOOKINGS_SQL,
                    {"requester_id": requester_id, "provider_id": provider_id},
                )
            ).fetchall()
        return [_row_to_booking(row) for row in rows]

    async def list_entries_for_user(self, user_id: str) -> list[LedgerEntry]:
        async with self._session_factory() as db:
            rows = (await db.execute(_ENTRIES_FOR_USER_SQL, {"user_id": user_id})).fetchall()
        return [_row_to_entry(row) for row in rows]

    async def list_reviews(
        self, skill_id: str | None, provider_id: str | None, limit: int
    ) -> list[Review]:
        async with self._session_factory() as db:
            rows = (
                await db.execute(
                    _LIST_REVIEWS_SQL,
                    {"skill_id": skill_id, "provider_id": provider_id, "limit": limit},
                )
            ).fetchall()
        return [_row_to_review(row) for row in rows]

    async def load_skills(self, skill_ids: Iterable[str]) -> dict[str, Skill]:
        ids = list(set(skill_ids))
        if not ids:
            return {}
        async with self._session_factory() as db:
            rows = (await db.execute(_SKILLS_BY_IDS_SQL, {"ids": ids})).fetchall()
        return {row.id: _row_to_skill(row) for row in rows}

    async def all_balances(self) -> list[UserBalance]:
        return await self._all(RecordKind.BALANCE)  # type: ignore[return-value]

    async def all_skills(self) -> list[Skill]:
        return await self._all(RecordKind.SKILL)  # type: ignore[return-value]

    async def all_bookings(self) -> list[Booking]:
        return await self._all(RecordKind.BOOKING)  # type: ignore[return-value]

    async def all_entries(self) -> list[LedgerEntry]:
        return await self._all(RecordKind.LEDGER_ENTRY)  # type: ignore[return-value]

    async def all_reviews(self) -> list[Review]:
        return await self._all(RecordKind.REVIEW)  # type: ignore[return-value]

    async def _all(self, kind: RecordKind) -> list[Record]:
        async with self._session_factory() as db:
            rows = (await db.execute(_ALL_SQL[kind])).fetchall()
        return [_ROW_TO_RECORD[kind](row) for row in rows]

    def subscribe(
        self, callback: ChangeCallback, kinds: Iterable[RecordKind] | None = None
    ) -> Callable[[], None]:
        return self.feed.subscribe(callback, kinds)
