"""BookingApplicationService — booking lifecycle and booking views.

Transitions are delegated to BookingStateMachine; this layer adds the
read-side skill title join and the UI-facing complete_session result.
"""

import logging
from datetime import date

from src.tc_booking.application.schemas import (
    BookingListResponse,
    BookingResponse,
    CompletionResponse,
)
from src.tc_booking.domain.state_machine import BookingStateMachine, TransitionContext
from src.tc_common.enums import BookingStatus, LedgerEntryKind, LedgerEntryStatus, RecordKind
from src.tc_common.errors import AppError, BookingNotFoundError, ContentionError, InternalError
from src.tc_ledger.domain.models import Booking
from src.tc_ledger.domain.repository import LedgerStoreProtocol

logger = logging.getLogger(__name__)


class BookingApplicationService:
    def __init__(self, machine: BookingStateMachine, store: LedgerStoreProtocol) -> None:
        self._machine = machine
        self._store = store

    async def create_booking(
        self,
        skill_id: str,
        requester_id: str,
        booking_date: date,
        booking_time: str,
        credits: int | None = None,
        status: BookingStatus = BookingStatus.PENDING,
        meeting_ref: str | None = None,
    ) -> BookingResponse:
        booking = await self._machine.create_booking(
            skill_id,
            requester_id,
            booking_date,
            booking_time,
            credits=credits,
            status=status,
            meeting_ref=meeting_ref,
        )
        return await self._to_response(booking)

    async def request_transition(
        self,
        booking_id: str,
        target: BookingStatus,
        context: TransitionContext | None = None,
    ) -> BookingResponse:
        booking = await self._machine.request_transition(booking_id, target, context)
        return await self._to_response(booking)

    async def confirm(self, booking_id: str, context: TransitionContext | None = None) -> BookingResponse:
        return await self.request_transition(booking_id, BookingStatus.CONFIRMED, context)

    async def decline(self, booking_id: str, context: TransitionContext | None = None) -> BookingResponse:
        return await self.request_transition(booking_id, BookingStatus.DECLINED, context)

    async def complete(self, booking_id: str, context: TransitionContext | None = None) -> BookingResponse:
        return await self.request_transition(booking_id, BookingStatus.COMPLETED, context)

    async def cancel(self, booking_id: str, context: TransitionContext | None = None) -> BookingResponse:
        return await self.request_transition(booking_id, BookingStatus.CANCELLED, context)

    async def complete_session(
        self,
        booking_id: str,
        meeting_ref: str | None = None,
        actor_id: str | None = None,
    ) -> CompletionResponse:
        """Complete a session and report the outcome as data rather than an error.

        Business failures (insufficient credits, wrong status, missing records)
        come back as success=False with the error's message; the booking is
        left exactly as it was. Contention and internal errors still raise.
        """
        ctx = TransitionContext(meeting_ref=meeting_ref, actor_id=actor_id)
        try:
            booking = await self._machine.request_transition(
                booking_id, BookingStatus.COMPLETED, ctx
            )
        except (ContentionError, InternalError):
            raise
        except AppError as exc:
            logger.info("Session %s not completed: [%d] %s", booking_id, exc.code, exc.message)
            return CompletionResponse(success=False, message=exc.message, error_code=exc.code)

        entries = await self._store.load_entries_for_booking(booking_id)
        completed = [e for e in entries if e.status == LedgerEntryStatus.COMPLETED]
        spent = next((e for e in completed if e.kind == LedgerEntryKind.SPENT), None)
        earned = next((e for e in completed if e.kind == LedgerEntryKind.EARNED), None)
        return CompletionResponse(
            success=True,
            message=f"Session completed; {booking.credits} credits transferred",
            booking=await self._to_response(booking),
            spent_entry_id=spent.id if spent else None,
            earned_entry_id=earned.id if earned else None,
        )

    async def get_booking(self, booking_id: str) -> BookingResponse:
        booking = await self._store.load(RecordKind.BOOKING, booking_id)
        if booking is None:
            raise BookingNotFoundError(booking_id)
        return await self._to_response(booking)  # type: ignore[arg-type]

    async def list_requester_bookings(self, user_id: str) -> BookingListResponse:
        return await self._list(await self._store.list_bookings(user_id, None))

    async def list_provider_bookings(self, user_id: str) -> BookingListResponse:
        return await self._list(await self._store.list_bookings(None, user_id))

    async def _list(self, bookings: list[Booking]) -> BookingListResponse:
        skills = await self._store.load_skills({b.skill_id for b in bookings})
        return BookingListResponse(
            items=[
                BookingResponse.from_domain(
                    b, skills[b.skill_id].title if b.skill_id in skills else None
                )
                for b in bookings
            ]
        )

    async def _to_response(self, booking: Booking) -> BookingResponse:
        skills = await self._store.load_skills([booking.skill_id])
        skill = skills.get(booking.skill_id)
        return BookingResponse.from_domain(booking, skill.title if skill else None)
