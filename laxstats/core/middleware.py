"""
Correlation ids for API requests.

A client may send X-Correlation-ID to tie its own logs to ours; otherwise a
fresh id is minted with the same generator the load command uses for run ids.
The id is available as request.state.correlation_id, appears on every log
line written while the request is served, and is returned in the response
header.
"""
import time
from typing import Awaitable, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from laxstats.core.logging import clear_correlation_id, get_logger, new_run_id, set_correlation_id

logger = get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"

# Longer client-supplied ids are replaced rather than logged
MAX_CORRELATION_ID_LENGTH = 128


def resolve_correlation_id(header_value: str | None) -> str:
    value = (header_value or "").strip()
    if not value or len(value) > MAX_CORRELATION_ID_LENGTH:
        return new_run_id()
    return value


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Scope every request to a correlation id and log its outcome."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        correlation_id = resolve_correlation_id(request.headers.get(CORRELATION_HEADER))
        request.state.correlation_id = correlation_id
        token = set_correlation_id(correlation_id)
        started = time.perf_counter()

        try:
            response = await call_next(request)
        finally:
            clear_correlation_id(token)

        response.headers[CORRELATION_HEADER] = correlation_id
        logger.debug(
            f"{request.method} {request.url.path} -> {response.status_code}",
            extra={
                "correlation": correlation_id,
                "status": response.status_code,
                "duration_ms": round((time.perf_counter() - started) * 1000, 1),
            },
        )
        return response
