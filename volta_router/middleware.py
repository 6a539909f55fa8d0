import logging
import time
import uuid

from fastapi import Request

logger = logging.getLogger("volta_router.access")

TRACE_HEADER = "X-Trace-Id"


async def trace_id_middleware(request: Request, call_next):
    """Propagate the caller's trace id, or mint one, and echo it back."""
    trace_id = request.headers.get(TRACE_HEADER) or str(uuid.uuid4())
    request.state.trace_id = trace_id
    response = await call_next(request)
    response.headers[TRACE_HEADER] = trace_id
    return response


async def logging_middleware(request: Request, call_next):
    start = time.monotonic()
    response = await call_next(request)
    duration_ms = (time.monotonic() - start) * 1000
    client = request.client.host if request.client else "-"
    logger.info(
        f"[{request.method}] {request.url.path} {client} - "
        f"Status: {response.status_code} - Duration: {duration_ms:.1f}ms"
    )
    return response
