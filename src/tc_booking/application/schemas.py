"""Pydantic schemas for tc_booking API."""

import datetime

from pydantic import BaseModel, Field

from src.tc_common.enums import BookingStatus
from src.tc_ledger.domain.models import Booking


class CreateBookingRequest(BaseModel):
    skill_id: str = Field(..., min_length=1)
    requester_id: str = Field(..., min_length=1)
    date: datetime.date
    time: str = Field(..., min_length=1, max_length=20, description="HH:MM")
    credits: int | None = Field(None, description="Defaults to the skill's credits_per_hour")
    status: BookingStatus = BookingStatus.PENDING
    meeting_ref: str | None = None


class TransitionRequest(BaseModel):
    target_status: BookingStatus
    meeting_ref: str | None = None
    reason: str | None = Field(None, max_length=500)
    actor_id: str | None = None


class CompleteSessionRequest(BaseModel):
    meeting_ref: str | None = None
    actor_id: str | None = None


class BookingResponse(BaseModel):
    id: str
    skill_id: str
    skill_title: str | None = None
    requester_id: str
    provider_id: str
    credits: int
    date: str
    time: str
    status: str
    reviewed: bool
    meeting_ref: str | None
    created_at: str
    updated_at: str
    confirmed_at: str | None = None
    completed_at: str | None = None
    cancelled_at: str | None = None

    @classmethod
    def from_domain(cls, booking: Booking, skill_title: str | None = None) -> "BookingResponse":
        return cls(
            id=booking.id,
            skill_id=booking.skill_id,
            skill_title=skill_title,
            requester_id=booking.requester_id,
            provider_id=booking.provider_id,
            credits=booking.credits,
            date=booking.date.isoformat(),
            time=booking.time,
            status=booking.status.value,
            reviewed=booking.reviewed,
            meeting_ref=booking.meeting_ref,
            created_at=booking.created_at.isoformat(),
            updated_at=booking.updated_at.isoformat(),
            confirmed_at=booking.confirmed_at.isoformat() if booking.confirmed_at else None,
            completed_at=booking.completed_at.isoformat() if booking.completed_at else None,
            cancelled_at=booking.cancelled_at.isoformat() if booking.cancelled_at else None,
        )


class BookingListResponse(BaseModel):
    items: list[BookingResponse]


class CompletionResponse(BaseModel):
    success: bool
    message: str
    error_code: int | None = None
    booking: BookingResponse | None = None
    spent_entry_id: str | None = None
    earned_entry_id: str | None = None
