"""FastAPI dependencies — hand the app's wired services to route handlers."""

from typing import TYPE_CHECKING

from fastapi import Request

if TYPE_CHECKING:
    from src.tc_account.application.service import AccountApplicationService
    from src.tc_booking.application.service import BookingApplicationService
    from src.tc_gateway.container import ServiceContainer
    from src.tc_ledger.domain.repository import LedgerStoreProtocol
    from src.tc_skill.application.service import SkillApplicationService


def get_container(request: Request) -> "ServiceContainer":
    return request.app.state.container


def get_account_service(request: Request) -> "AccountApplicationService":
    return get_container(request).accounts


def get_skill_service(request: Request) -> "SkillApplicationService":
    return get_container(request).skills


def get_booking_service(request: Request) -> "BookingApplicationService":
    return get_container(request).bookings


def get_store(request: Request) -> "LedgerStoreProtocol":
    return get_container(request).store
