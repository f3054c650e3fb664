"""
Middleware modules for the CRM API.

Provides request processing middleware for:
- Correlation ID tracking for log correlation
- Security response headers
"""

from .correlation import CorrelationIdMiddleware, CorrelationLogFilter, correlation_id_ctx, request_id_ctx
from .security_headers import SecurityHeadersMiddleware

__all__ = [
    "CorrelationIdMiddleware",
    "CorrelationLogFilter",
    "correlation_id_ctx",
    "request_id_ctx",
    "SecurityHeadersMiddleware",
]
