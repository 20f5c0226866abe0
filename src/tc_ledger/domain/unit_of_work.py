"""UnitOfWork — one attempt of an atomic read-modify-write unit.

Reads go through the store and are remembered with the version observed.
Writes are staged in memory and only reach the store in `commit()`, as one
ChangeSet that the store applies all-or-nothing. A unit that fails before
commit leaves no trace; a unit that loses a version race raises
WriteConflictError from `commit()` and must be rebuilt from fresh reads.
"""

from dataclasses import replace

from src.tc_common.enums import RecordKind
from src.tc_common.errors import InternalError
from src.tc_ledger.domain.models import (
    Booking,
    ChangeSet,
    LedgerEntry,
    Record,
    RecordChange,
    Review,
    Skill,
    StagedWrite,
    UserBalance,
    commit_order,
    kind_of,
)
from src.tc_ledger.domain.repository import LedgerStoreProtocol

_Key = tuple[RecordKind, str]


class UnitOfWork:
    def __init__(self, store: LedgerStoreProtocol) -> None:
        self._store = store
        self._reads: dict[_Key, int] = {}
        self._cache: dict[_Key, Record | None] = {}
        self._writes: dict[_Key, StagedWrite] = {}
        self._closed = False

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, kind: RecordKind, key: str) -> Record | None:
        self._ensure_open()
        ident = (kind, key)
        if ident in self._cache:
            return self._cache[ident]
        record = await self._store.load(kind, key)
        self._remember(ident, record)
        return record

    async def get_balance(self, user_id: str) -> UserBalance | None:
        return await self.get(RecordKind.BALANCE, user_id)  # type: ignore[return-value]

    async def get_skill(self, skill_id: str) -> Skill | None:
        return await self.get(RecordKind.SKILL, skill_id)  # type: ignore[return-value]

    async def get_booking(self, booking_id: str) -> Booking | None:
        return await self.get(RecordKind.BOOKING, booking_id)  # type: ignore[return-value]

    async def get_entry(self, entry_id: str) -> LedgerEntry | None:
        return await self.get(RecordKind.LEDGER_ENTRY, entry_id)  # type: ignore[return-value]

    async def entries_for_booking(self, booking_id: str) -> list[LedgerEntry]:
        """All ledger entries of a booking, including ones staged in this unit."""
        self._ensure_open()
        loaded = await self._store.load_entries_for_booking(booking_id)
        result: dict[str, LedgerEntry] = {}
        for entry in loaded:
            ident = (RecordKind.LEDGER_ENTRY, entry.id)
            if ident not in self._cache:
                self._remember(ident, entry)
            cached = self._cache[ident]
            if cached is not None:
                result[entry.id] = cached  # type: ignore[assignment]
        for (kind, key), write in self._writes.items():
            if kind == RecordKind.LEDGER_ENTRY and write.record.booking_id == booking_id:  # type: ignore[union-attr]
                result[key] = write.record  # type: ignore[assignment]
        return sorted(result.values(), key=lambda e: (e.created_at, e.id))

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def put(self, record: Record) -> None:
        """Stage an insert (never-committed record) or an update of a record read here."""
        self._ensure_open()
        kind = kind_of(record)
        ident = (kind, record.key)
        if ident in self._writes:
            expected = self._writes[ident].expected_version
        elif ident in self._reads:
            expected = self._reads[ident]
        else:
            expected = record.version
        if expected != 0 and ident not in self._reads:
            raise InternalError(f"update of {kind.value}/{record.key} without reading it first")
        staged = replace(record)
        self._writes[ident] = StagedWrite(kind=kind, record=staged, expected_version=expected)
        self._cache[ident] = staged

    # ------------------------------------------------------------------
    # Commit
    # ------------------------------------------------------------------

    def change_set(self) -> ChangeSet:
        writes = sorted(self._writes.values(), key=lambda w: commit_order(w.kind, w.record.key))
        return ChangeSet(reads=dict(self._reads), writes=writes)

    async def commit(self) -> list[RecordChange]:
        self._ensure_open()
        self._closed = True
        changes = self.change_set()
        if changes.is_empty:
            return []
        return await self._store.commit(changes)

    @property
    def has_writes(self) -> bool:
        return bool(self._writes)

    def _remember(self, ident: _Key, record: Record | None) -> None:
        self._reads[ident] = record.version if record is not None else 0
        self._cache[ident] = record

    def _ensure_open(self) -> None:
        if self._closed:
            raise InternalError("unit of work already committed")
