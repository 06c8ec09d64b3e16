"""Request logging middleware for Quorum."""

from __future__ import annotations

import time
import uuid
from typing import TYPE_CHECKING

from starlette.middleware.base import BaseHTTPMiddleware

from quorum.logging import bind_request_context, clear_request_context, get_logger

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from starlette.requests import Request
    from starlette.responses import Response

logger = get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"

# Probed by supervisors every few seconds; logged at debug only.
QUIET_PATHS = frozenset({"/health/", "/health/ready"})


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs one line per request with its status and duration.

    The correlation ID comes from the X-Correlation-ID header when the client
    sends one and is echoed back on the response. Session context bound by
    the governance services is dropped once the request ends.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or uuid.uuid4().hex
        bind_request_context(correlation_id)
        path = request.url.path
        log = logger.debug if path in QUIET_PATHS else logger.info
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "request_failed",
                method=request.method,
                path=path,
                duration_ms=_elapsed_ms(started),
            )
            raise
        else:
            log(
                "request_completed",
                method=request.method,
                path=path,
                status_code=response.status_code,
                duration_ms=_elapsed_ms(started),
            )
            response.headers[CORRELATION_HEADER] = correlation_id
            return response
        finally:
            clear_request_context()


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)
