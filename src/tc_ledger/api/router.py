"""Ledger admin API — whole-store invariant audit."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from src.tc_common.response import ApiResponse, success_response
from src.tc_gateway.container import ServiceContainer
from src.tc_gateway.dependencies import get_container
from src.tc_ledger.domain.invariants import verify_ledger_invariants

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/invariants")
async def check_invariants(
    container: Annotated[ServiceContainer, Depends(get_container)],
    request: Request,
) -> ApiResponse:
    violations = await verify_ledger_invariants(
        container.store, starting_credits=container.starting_credits
    )
    return success_response({"ok": not violations, "violations": violations}, request)
