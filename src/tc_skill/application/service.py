"""SkillApplicationService — skill catalogue and reviews."""

import logging

from src.tc_common.datetime_utils import utc_now
from src.tc_common.enums import RecordKind
from src.tc_common.errors import (
    BookingNotFoundError,
    InvalidAmountError,
    SkillNotFoundError,
)
from src.tc_common.id_generator import generate_id
from src.tc_ledger.application.atomic import AtomicRunner
from src.tc_ledger.domain.models import Booking, Review, Skill
from src.tc_ledger.domain.unit_of_work import UnitOfWork
from src.tc_skill.application.schemas import (
    ReviewListResponse,
    ReviewResponse,
    SkillListResponse,
    SkillResponse,
)
from src.tc_skill.domain.rating import apply_review

logger = logging.getLogger(__name__)


class SkillApplicationService:
    def __init__(self, runner: AtomicRunner) -> None:
        self._runner = runner
        self._store = runner.store

    async def create_skill(
        self,
        provider_id: str,
        title: str,
        credits_per_hour: int,
        available_slots: int,
        category: str | None = None,
    ) -> SkillResponse:
        if credits_per_hour <= 0:
            raise InvalidAmountError(credits_per_hour)
        if available_slots < 0:
            raise InvalidAmountError(available_slots)

        async def op(uow: UnitOfWork) -> Skill:
            now = utc_now()
            skill = Skill(
                id=generate_id("sk"),
                provider_id=provider_id,
                title=title,
                category=category,
                credits_per_hour=credits_per_hour,
                available_slots=available_slots,
                created_at=now,
                updated_at=now,
            )
            uow.put(skill)
            return skill

        skill = await self._runner.run(op, "create_skill")
        logger.info("Skill %s created by %s", skill.id, provider_id)
        return SkillResponse.from_domain(skill)

    async def get_skill(self, skill_id: str) -> SkillResponse:
        skill = await self._store.load(RecordKind.SKILL, skill_id)
        if skill is None:
            raise SkillNotFoundError(skill_id)
        return SkillResponse.from_domain(skill)  # type: ignore[arg-type]

    async def list_skills(self, limit: int = 20) -> SkillListResponse:
        skills = await self._store.list_skills(None, True, limit)
        return SkillListResponse(items=[SkillResponse.from_domain(s) for s in skills])

    async def list_provider_skills(self, provider_id: str, limit: int = 100) -> SkillListResponse:
        skills = await self._store.list_skills(provider_id, False, limit)
        return SkillListResponse(items=[SkillResponse.from_domain(s) for s in skills])

    async def deactivate_skill(self, skill_id: str) -> SkillResponse:
        async def op(uow: UnitOfWork) -> Skill:
            skill = await uow.get_skill(skill_id)
            if skill is None:
                raise SkillNotFoundError(skill_id)
            if skill.is_active:
                skill.is_active = False
                skill.updated_at = utc_now()
                uow.put(skill)
            return skill

        return SkillResponse.from_domain(await self._runner.run(op, "deactivate_skill"))

    # ------------------------------------------------------------------
    # Reviews
    # ------------------------------------------------------------------

    async def apply_review(
        self, skill_id: str, booking_id: str, rating: int, comment: str | None = None
    ) -> ReviewResponse:
        async def op(uow: UnitOfWork) -> Review:
            return await apply_review(uow, skill_id, booking_id, rating, comment)

        return ReviewResponse.from_domain(await self._runner.run(op, "apply_review"))

    async def submit_review(
        self, booking_id: str, rating: int, comment: str | None = None
    ) -> ReviewResponse:
        """Review a booking; the skill, reviewer and provider come from the booking."""
        booking: Booking | None = await self._store.load(  # type: ignore[assignment]
            RecordKind.BOOKING, booking_id
        )
        if booking is None:
            raise BookingNotFoundError(booking_id)
        return await self.apply_review(booking.skill_id, booking_id, rating, comment)

    async def list_skill_reviews(self, skill_id: str, limit: int = 50) -> ReviewListResponse:
        reviews = await self._store.list_reviews(skill_id, None, limit)
        return ReviewListResponse(items=[ReviewResponse.from_domain(r) for r in reviews])

    async def list_provider_reviews(self, provider_id: str, limit: int = 50) -> ReviewListResponse:
        reviews = await self._store.list_reviews(None, provider_id, limit)
        return ReviewListResponse(items=[ReviewResponse.from_domain(r) for r in reviews])
