"""Request logging middleware.

Every request gets a request id: the caller's X-Request-ID when it sends a
usable one, otherwise a fresh "req_<12 hex>". The id lands on request.state
(the envelope and the AppError handler copy it from there) and is echoed
back in the X-Request-ID response header.

Log format:
    INFO [POST] /api/v1/bookings/bk_123/transition → 200 (4ms) req_a1b2c3d4e5f6
"""

import logging
import re
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("tc.request")

REQUEST_ID_HEADER = "X-Request-ID"
_INBOUND_ID = re.compile(r"^[A-Za-z0-9_.:-]{1,64}$")


def resolve_request_id(inbound: str | None) -> str:
    if inbound and _INBOUND_ID.match(inbound):
        return inbound
    return f"req_{uuid.uuid4().hex[:12]}"


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id

        started = time.perf_counter()
        response: Response = await call_next(request)
        took_ms = (time.perf_counter() - started) * 1000

        response.headers[REQUEST_ID_HEADER] = request_id
        if response.status_code >= 500:
            logger.warning(
                "[%s] %s → %d (%.0fms) %s",
                request.method, request.url.path, response.status_code, took_ms, request_id,
            )
        else:
            logger.info(
                "[%s] %s → %d (%.0fms) %s",
                request.method, request.url.path, response.status_code, took_ms, request_id,
            )
        return response
