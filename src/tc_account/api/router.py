"""tc_account REST API — balances, history, transfers.

Caller identity comes from the path/body; authentication happens upstream.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from src.tc_account.application.schemas import TransferRequest
from src.tc_account.application.service import AccountApplicationService
from src.tc_common.response import ApiResponse, success_response
from src.tc_gateway.dependencies import get_account_service

router = APIRouter(prefix="/accounts", tags=["accounts"])

AccountService = Annotated[AccountApplicationService, Depends(get_account_service)]


@router.post("/transfers")
async def transfer(
    body: TransferRequest, service: AccountService, request: Request
) -> ApiResponse:
    data = await service.transfer(
        body.from_user,
        body.to_user,
        body.amount,
        body.skill_id,
        body.booking_id,
        body.description,
    )
    return success_response(data.model_dump(), request)


@router.post("/transfers/{entry_id}/reverse")
async def reverse(entry_id: str, service: AccountService, request: Request) -> ApiResponse:
    data = await service.reverse(entry_id)
    return success_response(data.model_dump(), request)


@router.post("/{user_id}")
async def open_account(user_id: str, service: AccountService, request: Request) -> ApiResponse:
    data = await service.open_account(user_id)
    return success_response(data.model_dump(), request)


@router.get("/{user_id}/balance")
async def get_balance(user_id: str, service: AccountService, request: Request) -> ApiResponse:
    data = await service.get_balance(user_id)
    return success_response(data.model_dump(), request)


@router.get("/{user_id}/transactions")
async def list_transactions(
    user_id: str, service: AccountService, request: Request
) -> ApiResponse:
    data = await service.list_transactions(user_id)
    return success_response(data.model_dump(), request)


@router.get("/{user_id}/summary")
async def transaction_summary(
    user_id: str, service: AccountService, request: Request
) -> ApiResponse:
    data = await service.transaction_summary(user_id)
    return success_response(data.model_dump(), request)
