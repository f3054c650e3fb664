"""
Correlation ID middleware.

Reads or generates a correlation ID and a request ID for every request and
exposes them through context variables, so log records and problem-detail
error responses can be tied back to the request that produced them.

Headers:
- X-Correlation-ID: Client session-level ID (persists across requests)
- X-Request-ID: Per-request unique identifier
"""

import uuid
import logging
from contextvars import ContextVar
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

# Isolated per request (async-safe)
correlation_id_ctx: ContextVar[str] = ContextVar("correlation_id", default="")
request_id_ctx: ContextVar[str] = ContextVar("request_id", default="")


def generate_id() -> str:
    """Generate a short unique ID suitable for logging."""
    return str(uuid.uuid4())[:12]


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Populate the correlation context and echo the IDs in response headers."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Response]
    ) -> Response:
        correlation_id = request.headers.get("X-Correlation-ID") or generate_id()
        request_id = request.headers.get("X-Request-ID") or generate_id()

        correlation_token = correlation_id_ctx.set(correlation_id)
        request_token = request_id_ctx.set(request_id)
        request.state.correlation_id = correlation_id
        request.state.request_id = request_id

        try:
            response = await call_next(request)
        finally:
            correlation_id_ctx.reset(correlation_token)
            request_id_ctx.reset(request_token)

        response.headers["X-Correlation-ID"] = correlation_id
        response.headers["X-Request-ID"] = request_id
        return response


def get_correlation_id() -> str:
    """Get the current correlation ID from context."""
    return correlation_id_ctx.get() or "unknown"


def get_request_id() -> str:
    """Get the current request ID from context."""
    return request_id_ctx.get() or "unknown"


class CorrelationLogFilter(logging.Filter):
    """Inject correlation_id and request_id attributes into log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id()
        record.request_id = get_request_id()
        return True


def install_log_filter(logger: logging.Logger = None) -> None:
    """Attach CorrelationLogFilter to every handler of the given (root) logger."""
    target = logger or logging.getLogger()
    for handler in target.handlers:
        if not any(isinstance(f, CorrelationLogFilter) for f in handler.filters):
            handler.addFilter(CorrelationLogFilter())
