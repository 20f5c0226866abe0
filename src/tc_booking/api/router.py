"""tc_booking REST API — booking lifecycle."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from src.tc_booking.application.schemas import (
    CompleteSessionRequest,
    CreateBookingRequest,
    TransitionRequest,
)
from src.tc_booking.application.service import BookingApplicationService
from src.tc_booking.domain.state_machine import TransitionContext
from src.tc_common.response import ApiResponse, success_response
from src.tc_gateway.dependencies import get_booking_service

router = APIRouter(prefix="/bookings", tags=["bookings"])

BookingService = Annotated[BookingApplicationService, Depends(get_booking_service)]


@router.post("", status_code=201)
async def create_booking(
    body: CreateBookingRequest, service: BookingService, request: Request
) -> ApiResponse:
    data = await service.create_booking(
        body.skill_id,
        body.requester_id,
        body.date,
        body.time,
        credits=body.credits,
        status=body.status,
        meeting_ref=body.meeting_ref,
    )
    return success_response(data.model_dump(), request)


@router.get("/requester/{user_id}")
async def list_requester_bookings(
    user_id: str, service: BookingService, request: Request
) -> ApiResponse:
    data = await service.list_requester_bookings(user_id)
    return success_response(data.model_dump(), request)


@router.get("/provider/{user_id}")
async def list_provider_bookings(
    user_id: str, service: BookingService, request: Request
) -> ApiResponse:
    data = await service.list_provider_bookings(user_id)
    return success_response(data.model_dump(), request)


@router.get("/{booking_id}")
async def get_booking(booking_id: str, service: BookingService, request: Request) -> ApiResponse:
    data = await service.get_booking(booking_id)
    return success_response(data.model_dump(), request)


@router.post("/{booking_id}/transition")
async def request_transition(
    booking_id: str,
    body: TransitionRequest,
    service: BookingService,
    request: Request,
) -> ApiResponse:
    ctx = TransitionContext(
        meeting_ref=body.meeting_ref, reason=body.reason, actor_id=body.actor_id
    )
    data = await service.request_transition(booking_id, body.target_status, ctx)
    return success_response(data.model_dump(), request)


@router.post("/{booking_id}/complete-session")
async def complete_session(
    booking_id: str,
    body: CompleteSessionRequest,
    service: BookingService,
    request: Request,
) -> ApiResponse:
    data = await service.complete_session(booking_id, body.meeting_ref, body.actor_id)
    return success_response(data.model_dump(), request)
