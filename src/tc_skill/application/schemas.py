"""Pydantic schemas for tc_skill API."""

from pydantic import BaseModel, Field

from src.tc_ledger.domain.models import Review, Skill


class CreateSkillRequest(BaseModel):
    provider_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=200)
    category: str | None = Field(None, max_length=100)
    credits_per_hour: int = Field(..., gt=0)
    available_slots: int = Field(..., ge=0)


class SubmitReviewRequest(BaseModel):
    booking_id: str = Field(..., min_length=1)
    # Range is enforced by the aggregator so the API reports InvalidRating.
    rating: int
    comment: str | None = Field(None, max_length=2000)


class SkillResponse(BaseModel):
    id: str
    provider_id: str
    title: str
    category: str | None
    credits_per_hour: int
    available_slots: int
    rating: float
    review_count: int
    total_sessions: int
    is_active: bool
    created_at: str
    updated_at: str

    @classmethod
    def from_domain(cls, skill: Skill) -> "SkillResponse":
        return cls(
            id=skill.id,
            provider_id=skill.provider_id,
            title=skill.title,
            category=skill.category,
            credits_per_hour=skill.credits_per_hour,
            available_slots=skill.available_slots,
            rating=skill.rating,
            review_count=skill.review_count,
            total_sessions=skill.total_sessions,
            is_active=skill.is_active,
            created_at=skill.created_at.isoformat(),
            updated_at=skill.updated_at.isoformat(),
        )


class SkillListResponse(BaseModel):
    items: list[SkillResponse]


class ReviewResponse(BaseModel):
    id: str
    booking_id: str
    skill_id: str
    reviewer_id: str
    provider_id: str
    rating: int
    comment: str | None
    created_at: str

    @classmethod
    def from_domain(cls, review: Review) -> "ReviewResponse":
        return cls(
            id=review.id,
            booking_id=review.booking_id,
            skill_id=review.skill_id,
            reviewer_id=review.reviewer_id,
            provider_id=review.provider_id,
            rating=review.rating,
            comment=review.comment,
            created_at=review.created_at.isoformat(),
        )


class ReviewListResponse(BaseModel):
    items: list[ReviewResponse]
