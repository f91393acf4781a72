"""Correlation ID and request logging middleware."""

import logging
import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

logger = logging.getLogger(__name__)

CORRELATION_HEADER = "x-correlation-id"


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """Tag each request with a correlation ID and log its outcome."""

    async def dispatch(self, request: Request, call_next):
        """Propagate or mint a correlation ID, then log method, path and status."""
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        request.state.correlation_id = correlation_id

        started = time.perf_counter()
        response: Response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        response.headers[CORRELATION_HEADER] = correlation_id
        logger.info(
            f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.1f}ms)",
            extra={
                "correlation_id": correlation_id,
                "user_id": getattr(request.state, "user_id", None),
            },
        )
        return response
