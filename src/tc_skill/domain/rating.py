"""Rating aggregator — folds one review into a skill's rolling mean.

new_rating = round_half_up((rating × count + r) / (count + 1), 1)

Gated on the booking: it must be completed, belong to the skill, and not
have been reviewed yet. The skill aggregate, the booking's reviewed flag
and the Review row are written in one unit.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal

from src.tc_common.datetime_utils import utc_now
from src.tc_common.enums import BookingStatus
from src.tc_common.errors import (
    AlreadyReviewedError,
    BookingNotCompletedError,
    BookingNotFoundError,
    FailedPreconditionError,
    InvalidRatingError,
    SkillNotFoundError,
)
from src.tc_common.id_generator import generate_id
from src.tc_ledger.domain.models import Review
from src.tc_ledger.domain.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5
_ONE_DECIMAL = Decimal("0.1")


def validate_rating(rating: object) -> int:
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise InvalidRatingError(rating)
    if not MIN_RATING <= rating <= MAX_RATING:
        raise InvalidRatingError(rating)
    return rating


def rolling_mean(current: float, count: int, rating: int) -> float:
    total = Decimal(str(current)) * count + rating
    mean = total / (count + 1)
    return float(mean.quantize(_ONE_DECIMAL, rounding=ROUND_HALF_UP))


async def apply_review(
    uow: UnitOfWork,
    skill_id: str,
    booking_id: str,
    rating: int,
    comment: str | None = None,
) -> Review:
    rating = validate_rating(rating)
    booking = await uow.get_booking(booking_id)
    if booking is None:
        raise BookingNotFoundError(booking_id)
    if booking.skill_id != skill_id:
        raise FailedPreconditionError(
            f"booking {booking_id} belongs to skill {booking.skill_id}, not {skill_id}"
        )
    if booking.status != BookingStatus.COMPLETED:
        raise BookingNotCompletedError(booking_id, booking.status.value)
    if booking.reviewed:
        raise AlreadyReviewedError(booking_id)
    skill = await uow.get_skill(skill_id)
    if skill is None:
        raise SkillNotFoundError(skill_id)

    now = utc_now()
    skill.rating = rolling_mean(skill.rating, skill.review_count, rating)
    skill.review_count += 1
    skill.updated_at = now
    uow.put(skill)

    review = Review(
        id=generate_id("rv"),
        booking_id=booking_id,
        skill_id=skill_id,
        reviewer_id=booking.requester_id,
        provider_id=booking.provider_id,
        rating=rating,
        created_at=now,
        comment=comment,
    )
    uow.put(review)

    booking.reviewed = True
    booking.updated_at = now
    uow.put(booking)
    logger.info(
        "Review %s applied to %s: rating=%s count=%d",
        review.id, skill_id, skill.rating, skill.review_count,
    )
    return review
