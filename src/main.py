"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from config.settings import Settings, settings
from src.tc_account.api.router import router as account_router
from src.tc_booking.api.router import router as booking_router
from src.tc_common.errors import AppError
from src.tc_common.response import error_response
from src.tc_gateway.container import build_container
from src.tc_gateway.middleware.request_log import RequestLogMiddleware
from src.tc_ledger.api.router import router as admin_router
from src.tc_ledger.domain.repository import LedgerStoreProtocol
from src.tc_skill.api.router import router as skill_router

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: verify the DB connection. Shutdown: detach observers, dispose."""
    container = app.state.container
    if container.engine is not None:
        async with container.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    yield
    await container.aclose()


def create_app(
    store: LedgerStoreProtocol | None = None, cfg: Settings | None = None
) -> FastAPI:
    cfg = cfg or settings
    logging.basicConfig(
        level=logging.DEBUG if cfg.DEBUG else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    app = FastAPI(title=cfg.APP_NAME, version=VERSION, lifespan=lifespan)
    app.state.container = build_container(cfg, store)

    app.add_middleware(RequestLogMiddleware)

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        resp = error_response(exc.code, exc.message)
        resp.request_id = getattr(request.state, "request_id", resp.request_id)
        if exc.http_status >= 500:
            logger.error("[%d] %s %s", exc.code, request.url.path, exc.message)
        return JSONResponse(status_code=exc.http_status, content=resp.model_dump())

    app.include_router(account_router, prefix="/api/v1")
    app.include_router(skill_router, prefix="/api/v1")
    app.include_router(booking_router, prefix="/api/v1")
    app.include_router(admin_router, prefix="/api/v1")

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok", "version": VERSION}

    return app


app = create_app()
