"""BookingConfirmedHook — re-checks a booking right after it becomes confirmed.

Runs as a change-feed observer, in its own atomic unit, after the confirming
unit has committed. Missing related records (requester or provider balance,
skill) roll the booking to declined and release its slot; the failure is
reported as FailedPreconditionError. With `check_credits` the hook also
declines bookings the requester cannot currently afford, reported as
InsufficientCreditsError. The hook never moves credits.
"""

import logging
from collections.abc import Callable

from src.tc_common.datetime_utils import utc_now
from src.tc_common.enums import BookingStatus, RecordKind
from src.tc_common.errors import AppError, FailedPreconditionError, InsufficientCreditsError
from src.tc_ledger.application.atomic import AtomicRunner
from src.tc_ledger.domain.models import Booking, RecordChange
from src.tc_ledger.domain.unit_of_work import UnitOfWork
from src.tc_skill.domain.capacity import release_slot

logger = logging.getLogger(__name__)

FailureReporter = Callable[[str, AppError], None]


def _log_failure(booking_id: str, error: AppError) -> None:
    logger.warning("Confirm hook declined booking %s: [%d] %s", booking_id, error.code, error.message)


def is_confirm_edge(change: RecordChange) -> bool:
    after = change.after
    if change.kind != RecordKind.BOOKING or after.status != BookingStatus.CONFIRMED:  # type: ignore[union-attr]
        return False
    before = change.before
    return before is None or before.status == BookingStatus.PENDING  # type: ignore[union-attr]


class BookingConfirmedHook:
    def __init__(
        self,
        runner: AtomicRunner,
        check_credits: bool = False,
        reporter: FailureReporter | None = None,
    ) -> None:
        self._runner = runner
        self._check_credits = check_credits
        self._reporter = reporter or _log_failure
        self._unsubscribe: Callable[[], None] | None = None

    def attach(self) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = self._runner.store.subscribe(
                self.on_change, kinds=[RecordKind.BOOKING]
            )

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def on_change(self, change: RecordChange) -> None:
        if is_confirm_edge(change):
            await self.verify(change.after.key)

    async def verify(self, booking_id: str) -> AppError | None:
        """Re-check one confirmed booking; returns the reported failure, if any."""

        async def op(uow: UnitOfWork) -> AppError | None:
            booking = await uow.get_booking(booking_id)
            if booking is None or booking.status != BookingStatus.CONFIRMED:
                return None
            error = await self._check(uow, booking)
            if error is None:
                return None
            if await uow.get_skill(booking.skill_id) is not None:
                await release_slot(uow, booking.skill_id)
            booking.status = BookingStatus.DECLINED
            booking.updated_at = utc_now()
            uow.put(booking)
            return error

        error = await self._runner.run(op, "confirm_hook")
        if error is not None:
            self._reporter(booking_id, error)
        return error

    async def _check(self, uow: UnitOfWork, booking: Booking) -> AppError | None:
        missing = []
        requester = await uow.get_balance(booking.requester_id)
        if requester is None:
            missing.append(f"requester {booking.requester_id}")
        if await uow.get_balance(booking.provider_id) is None:
            missing.append(f"provider {booking.provider_id}")
        if await uow.get_skill(booking.skill_id) is None:
            missing.append(f"skill {booking.skill_id}")
        if missing:
            return FailedPreconditionError(
                f"booking {booking.id} references missing records: {', '.join(missing)}"
            )
        if self._check_credits and requester is not None and requester.credits < booking.credits:
            return InsufficientCreditsError(
                booking.requester_id, booking.credits, requester.credits
            )
        return None
