"""tc_skill REST API — catalogue and reviews."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request

from src.tc_common.response import ApiResponse, success_response
from src.tc_gateway.dependencies import get_skill_service
from src.tc_skill.application.schemas import CreateSkillRequest, SubmitReviewRequest
from src.tc_skill.application.service import SkillApplicationService

router = APIRouter(tags=["skills"])

SkillService = Annotated[SkillApplicationService, Depends(get_skill_service)]


@router.post("/skills", status_code=201)
async def create_skill(
    body: CreateSkillRequest, service: SkillService, request: Request
) -> ApiResponse:
    data = await service.create_skill(
        body.provider_id,
        body.title,
        body.credits_per_hour,
        body.available_slots,
        category=body.category,
    )
    return success_response(data.model_dump(), request)


@router.get("/skills")
async def list_skills(
    service: SkillService,
    request: Request,
    limit: int = Query(20, ge=1, le=100),
) -> ApiResponse:
    data = await service.list_skills(limit)
    return success_response(data.model_dump(), request)


@router.get("/skills/provider/{provider_id}")
async def list_provider_skills(
    provider_id: str, service: SkillService, request: Request
) -> ApiResponse:
    data = await service.list_provider_skills(provider_id)
    return success_response(data.model_dump(), request)


@router.get("/skills/provider/{provider_id}/reviews")
async def list_provider_reviews(
    provider_id: str,
    service: SkillService,
    request: Request,
    limit: int = Query(50, ge=1, le=200),
) -> ApiResponse:
    data = await service.list_provider_reviews(provider_id, limit)
    return success_response(data.model_dump(), request)


@router.get("/skills/{skill_id}")
async def get_skill(skill_id: str, service: SkillService, request: Request) -> ApiResponse:
    data = await service.get_skill(skill_id)
    return success_response(data.model_dump(), request)


@router.post("/skills/{skill_id}/deactivate")
async def deactivate_skill(
    skill_id: str, service: SkillService, request: Request
) -> ApiResponse:
    data = await service.deactivate_skill(skill_id)
    return success_response(data.model_dump(), request)


@router.get("/skills/{skill_id}/reviews")
async def list_skill_reviews(
    skill_id: str,
    service: SkillService,
    request: Request,
    limit: int = Query(50, ge=1, le=200),
) -> ApiResponse:
    data = await service.list_skill_reviews(skill_id, limit)
    return success_response(data.model_dump(), request)


@router.post("/reviews", status_code=201)
async def submit_review(
    body: SubmitReviewRequest, service: SkillService, request: Request
) -> ApiResponse:
    data = await service.submit_review(body.booking_id, body.rating, body.comment)
    return success_response(data.model_dump(), request)
