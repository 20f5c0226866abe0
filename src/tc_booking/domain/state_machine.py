"""Booking state machine — validates a transition and stages its effects.

    pending   → confirmed | declined | cancelled
    confirmed → completed | declined | cancelled
    completed → cancelled   (administrative reversal)
    declined, cancelled: terminal

Effects per edge, all inside one unit:
  pending → confirmed     reserve a slot; NoCapacity resolves to declined
  confirmed → completed   transfer booking.credits requester → provider,
                          two ledger entries, skill.total_sessions + 1
  confirmed → declined /
  confirmed → cancelled   release the slot
  completed → cancelled   reverse the ledger pair (slots and sessions untouched)
"""

import logging
from dataclasses import dataclass
from datetime import date

from src.tc_account.domain.transfer import TransferEngine
from src.tc_common.datetime_utils import utc_now
from src.tc_common.enums import BookingStatus, LedgerEntryStatus
from src.tc_common.errors import (
    AlreadyCancelledError,
    BookingNotFoundError,
    InvalidAmountError,
    InvalidTransitionError,
    NoCapacityError,
    SkillInactiveError,
    SkillNotFoundError,
    UserNotFoundError,
)
from src.tc_common.id_generator import generate_id
from src.tc_ledger.application.atomic import AtomicRunner
from src.tc_ledger.domain.models import Booking, Skill
from src.tc_ledger.domain.unit_of_work import UnitOfWork
from src.tc_skill.domain.capacity import release_slot, reserve_slot

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset(
        {BookingStatus.CONFIRMED, BookingStatus.DECLINED, BookingStatus.CANCELLED}
    ),
    BookingStatus.CONFIRMED: frozenset(
        {BookingStatus.COMPLETED, BookingStatus.DECLINED, BookingStatus.CANCELLED}
    ),
    BookingStatus.COMPLETED: frozenset({BookingStatus.CANCELLED}),
    BookingStatus.DECLINED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
}

CREATABLE_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED})


@dataclass(frozen=True)
class TransitionContext:
    meeting_ref: str | None = None
    reason: str | None = None
    actor_id: str | None = None  # logged only


def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


class BookingStateMachine:
    def __init__(self, runner: AtomicRunner, transfers: TransferEngine) -> None:
        self._runner = runner
        self._transfers = transfers

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    async def create_booking(
        self,
        skill_id: str,
        requester_id: str,
        booking_date: date,
        booking_time: str,
        credits: int | None = None,
        status: BookingStatus = BookingStatus.PENDING,
        meeting_ref: str | None = None,
    ) -> Booking:
        if status not in CREATABLE_STATUSES:
            raise InvalidTransitionError("new booking", "none", status.value)

        async def op(uow: UnitOfWork) -> Booking:
            if await uow.get_balance(requester_id) is None:
                raise UserNotFoundError(requester_id)
            skill = await uow.get_skill(skill_id)
            if skill is None:
                raise SkillNotFoundError(skill_id)
            if not skill.is_active:
                raise SkillInactiveError(skill_id)
            if await uow.get_balance(skill.provider_id) is None:
                raise UserNotFoundError(skill.provider_id)
            price = skill.credits_per_hour if credits is None else credits
            if price <= 0:
                raise InvalidAmountError(price)

            now = utc_now()
            booking = Booking(
                id=generate_id("bk"),
                skill_id=skill_id,
                requester_id=requester_id,
                provider_id=skill.provider_id,
                credits=price,
                date=booking_date,
                time=booking_time,
                status=status,
                created_at=now,
                updated_at=now,
                meeting_ref=meeting_ref,
            )
            if status == BookingStatus.CONFIRMED:
                # Skip-the-line: capacity only, credits are checked at completion.
                await reserve_slot(uow, skill_id)
                booking.confirmed_at = now
            uow.put(booking)
            return booking

        booking = await self._runner.run(op, "create_booking")
        logger.info(
            "Booking %s created: skill=%s requester=%s status=%s credits=%d",
            booking.id, skill_id, requester_id, booking.status.value, booking.credits,
        )
        return booking

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def request_transition(
        self,
        booking_id: str,
        target: BookingStatus,
        context: TransitionContext | None = None,
    ) -> Booking:
        ctx = context or TransitionContext()

        async def op(uow: UnitOfWork) -> Booking:
            return await self.apply_transition(uow, booking_id, target, ctx)

        booking = await self._runner.run(op, f"booking_{target.value}")
        logger.info(
            "Booking %s now %s (requested=%s actor=%s reason=%s)",
            booking_id, booking.status.value, target.value, ctx.actor_id, ctx.reason,
        )
        return booking

    async def apply_transition(
        self,
        uow: UnitOfWork,
        booking_id: str,
        target: BookingStatus,
        ctx: TransitionContext,
    ) -> Booking:
        booking = await uow.get_booking(booking_id)
        if booking is None:
            raise BookingNotFoundError(booking_id)
        current = booking.status
        if not can_transition(current, target):
            if current == BookingStatus.CANCELLED and target == BookingStatus.CANCELLED:
                await self._raise_if_reversed(uow, booking)
            raise InvalidTransitionError(booking_id, current.value, target.value)

        now = utc_now()
        if target == BookingStatus.CONFIRMED:
            try:
                await reserve_slot(uow, booking.skill_id)
            except NoCapacityError:
                logger.info("Booking %s declined: skill %s has no slots", booking_id, booking.skill_id)
                booking.status = BookingStatus.DECLINED
            else:
                booking.status = BookingStatus.CONFIRMED
                booking.confirmed_at = now
                if ctx.meeting_ref is not None:
                    booking.meeting_ref = ctx.meeting_ref
        elif target == BookingStatus.COMPLETED:
            skill = await self._require_skill(uow, booking.skill_id)
            await self._transfers.apply_transfer(
                uow,
                booking.requester_id,
                booking.provider_id,
                booking.credits,
                booking.skill_id,
                booking.id,
                f"Session: {skill.title}",
            )
            skill.total_sessions += 1
            skill.updated_at = now
            uow.put(skill)
            booking.status = BookingStatus.COMPLETED
            booking.completed_at = now
            if ctx.meeting_ref is not None:
                booking.meeting_ref = ctx.meeting_ref
        elif current == BookingStatus.COMPLETED:
            await self._transfers.apply_booking_reversal(
                uow, booking.id, booking.requester_id, booking.provider_id
            )
            booking.status = BookingStatus.CANCELLED
            booking.cancelled_at = now
        else:
            # decline / cancel from pending or confirmed
            if current == BookingStatus.CONFIRMED:
                await release_slot(uow, booking.skill_id)
            booking.status = target
            if target == BookingStatus.CANCELLED:
                booking.cancelled_at = now

        booking.updated_at = now
        uow.put(booking)
        return booking

    @staticmethod
    async def _require_skill(uow: UnitOfWork, skill_id: str) -> Skill:
        skill = await uow.get_skill(skill_id)
        if skill is None:
            raise SkillNotFoundError(skill_id)
        return skill

    @staticmethod
    async def _raise_if_reversed(uow: UnitOfWork, booking: Booking) -> None:
        entries = await uow.entries_for_booking(booking.id)
        if any(e.status == LedgerEntryStatus.CANCELLED for e in entries):
            raise AlreadyCancelledError(booking.id)
