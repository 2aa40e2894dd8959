"""Per-request logging with a bound request id."""

import time
from typing import Awaitable, Callable

from fastapi import Request, Response

from src.utils.logger import bind_request_id, get_logger

log = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


async def logging_middleware(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """Bind a request id (honouring an incoming header) and log the outcome."""
    request_id = bind_request_id(request.headers.get(REQUEST_ID_HEADER))
    start = time.perf_counter()

    response = await call_next(request)

    duration_ms = round((time.perf_counter() - start) * 1000, 2)
    response.headers[REQUEST_ID_HEADER] = request_id
    log.info(
        "request completed",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=duration_ms,
    )
    return response
