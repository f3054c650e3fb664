"""
RFC 7807 Problem Details exception handling.

Provides standardized error responses for the API following the
"Problem Details for HTTP APIs" specification, including the segment rule
engine's evaluation errors.

See: https://datatracker.ietf.org/doc/html/rfc7807
"""

from typing import Optional, Dict, Any, List
from enum import Enum
from pydantic import BaseModel, Field
from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging
import traceback
import uuid
from datetime import datetime, timezone

from app.middleware.correlation import get_request_id
from app.services.segments.errors import RuleEvaluationError

logger = logging.getLogger(__name__)

PROBLEM_TYPE_BASE = "https://api.xeno-crm.dev/problems"


def _get_trace_id() -> str:
    """Get trace ID from correlation context or generate a new one."""
    request_id = get_request_id()
    if request_id and request_id != "unknown":
        return request_id
    return str(uuid.uuid4())[:12]


def _timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


class ErrorCode(str, Enum):
    """Standardized error codes for the CRM API."""

    # Authentication & Authorization
    UNAUTHORIZED = "AUTH_001"
    FORBIDDEN = "AUTH_002"

    # Validation
    VALIDATION_ERROR = "VAL_001"

    # Resource
    NOT_FOUND = "RES_001"
    CONFLICT = "RES_003"

    # Business Logic
    BUSINESS_RULE_VIOLATION = "BIZ_001"

    # Segment rule engine (codes match RuleEvaluationError.code)
    RULE_EVALUATION_ERROR = "SEG_000"
    MALFORMED_RULE = "SEG_001"
    UNKNOWN_FIELD = "SEG_002"
    TYPE_MISMATCH = "SEG_003"
    UNSUPPORTED_OPERATOR = "SEG_004"

    # External Services
    EXTERNAL_SERVICE_ERROR = "EXT_001"
    GOOGLE_OAUTH_ERROR = "EXT_002"

    # Server
    INTERNAL_ERROR = "SRV_001"
    SERVICE_UNAVAILABLE = "SRV_002"


class ProblemDetail(BaseModel):
    """
    RFC 7807 Problem Details response schema.

    Attributes:
        type: URI reference identifying the problem type
        title: Short, human-readable summary
        status: HTTP status code
        detail: Human-readable explanation specific to this occurrence
        instance: URI reference identifying this specific occurrence
        code: Machine-readable error code for client handling
        timestamp: ISO 8601 timestamp of when the error occurred
        trace_id: Unique identifier for tracing in logs
        errors: List of field-level validation errors (for 422)
    """

    type: str = Field(
        default="about:blank",
        description="URI reference identifying the problem type"
    )
    title: str = Field(description="Short, human-readable summary of the problem")
    status: int = Field(description="HTTP status code")
    detail: str = Field(description="Human-readable explanation specific to this occurrence")
    instance: Optional[str] = Field(
        default=None,
        description="URI reference for this specific occurrence"
    )
    code: str = Field(description="Machine-readable error code")
    timestamp: str = Field(description="ISO 8601 timestamp")
    trace_id: str = Field(description="Unique trace ID for debugging")
    errors: Optional[List[Dict[str, Any]]] = Field(
        default=None,
        description="Field-level validation errors"
    )

    model_config = {
        "json_schema_extra": {
            "example": {
                "type": "https://api.xeno-crm.dev/problems/seg-002",
                "title": "Validation Error",
                "status": 422,
                "detail": "Unknown customer field 'loyaltyTier'",
                "instance": "/api/segments/preview",
                "code": "SEG_002",
                "timestamp": "2026-01-29T10:30:00Z",
                "trace_id": "abc123def456"
            }
        }
    }


def _problem_type(code: ErrorCode) -> str:
    return f"{PROBLEM_TYPE_BASE}/{code.value.lower().replace('_', '-')}"


class CRMException(HTTPException):
    """
    Base exception for CRM API with RFC 7807 support.

    Usage:
        raise CRMException(
            status_code=404,
            code=ErrorCode.NOT_FOUND,
            detail="Customer not found",
            instance="/api/customers/123"
        )
    """

    def __init__(
        self,
        status_code: int,
        code: ErrorCode,
        detail: str,
        title: Optional[str] = None,
        instance: Optional[str] = None,
        errors: Optional[List[Dict[str, Any]]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.code = code
        self.title = title or self._default_title(status_code)
        self.instance = instance
        self.errors = errors
        self.trace_id = _get_trace_id()
        self.timestamp = _timestamp()

        super().__init__(status_code=status_code, detail=detail, headers=headers)

    @staticmethod
    def _default_title(status_code: int) -> str:
        """Get default title based on status code."""
        titles = {
            400: "Bad Request",
            401: "Unauthorized",
            403: "Forbidden",
            404: "Not Found",
            409: "Conflict",
            422: "Validation Error",
            500: "Internal Server Error",
            502: "Bad Gateway",
            503: "Service Unavailable",
        }
        return titles.get(status_code, "Error")

    def to_problem_detail(self) -> ProblemDetail:
        """Convert to RFC 7807 ProblemDetail."""
        return ProblemDetail(
            type=_problem_type(self.code),
            title=self.title,
            status=self.status_code,
            detail=self.detail,
            instance=self.instance,
            code=self.code.value,
            timestamp=self.timestamp,
            trace_id=self.trace_id,
            errors=self.errors,
        )


# Convenience exception classes

class NotFoundError(CRMException):
    """Resource not found (404)."""

    def __init__(self, resource: str, resource_id: Any, instance: Optional[str] = None):
        super().__init__(
            status_code=404,
            code=ErrorCode.NOT_FOUND,
            detail=f"{resource} with ID {resource_id} was not found",
            instance=instance,
        )


class ValidationError(CRMException):
    """Validation error (422)."""

    def __init__(self, detail: str, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(
            status_code=422,
            code=ErrorCode.VALIDATION_ERROR,
            detail=detail,
            errors=errors,
        )


class UnauthorizedError(CRMException):
    """Authentication required (401)."""

    def __init__(self, detail: str = "Not authenticated"):
        super().__init__(
            status_code=401,
            code=ErrorCode.UNAUTHORIZED,
            detail=detail,
        )


class ConflictError(CRMException):
    """Resource conflict (409)."""

    def __init__(self, detail: str):
        super().__init__(
            status_code=409,
            code=ErrorCode.CONFLICT,
            detail=detail,
        )


class BusinessRuleError(CRMException):
    """Business rule violation (400)."""

    def __init__(self, detail: str):
        super().__init__(
            status_code=400,
            code=ErrorCode.BUSINESS_RULE_VIOLATION,
            detail=detail,
        )


class ExternalServiceError(CRMException):
    """External service error (502)."""

    def __init__(self, service: str, detail: str, code: ErrorCode = ErrorCode.EXTERNAL_SERVICE_ERROR):
        super().__init__(
            status_code=502,
            code=code,
            detail=f"{service} service error: {detail}",
        )


# Exception handlers for FastAPI

def create_problem_response(
    status_code: int,
    code: ErrorCode,
    detail: str,
    request: Request,
    errors: Optional[List[Dict[str, Any]]] = None,
    trace_id: Optional[str] = None,
) -> JSONResponse:
    """Create a RFC 7807 compliant JSON response."""
    problem = ProblemDetail(
        type=_problem_type(code),
        title=CRMException._default_title(status_code),
        status=status_code,
        detail=detail,
        instance=str(request.url.path),
        code=code.value,
        timestamp=_timestamp(),
        trace_id=trace_id or _get_trace_id(),
        errors=errors,
    )

    return JSONResponse(
        status_code=status_code,
        content=problem.model_dump(exclude_none=True),
        media_type="application/problem+json",
    )


async def handle_crm_exception(request: Request, exc: CRMException) -> JSONResponse:
    """Handle CRMException with RFC 7807 response."""
    logger.warning(
        f"CRMException: {exc.code.value} - {exc.detail}",
        extra={
            "trace_id": exc.trace_id,
            "status_code": exc.status_code,
            "path": request.url.path,
        }
    )

    problem = exc.to_problem_detail()
    if problem.instance is None:
        problem.instance = str(request.url.path)

    return JSONResponse(
        status_code=exc.status_code,
        content=problem.model_dump(exclude_none=True),
        media_type="application/problem+json",
        headers=exc.headers,
    )


async def handle_rule_evaluation_error(request: Request, exc: RuleEvaluationError) -> JSONResponse:
    """Map segment rule engine failures onto 422 problem responses."""
    code = ErrorCode(exc.code)
    logger.info(
        f"Rule evaluation failed: {code.value} - {exc}",
        extra={"path": request.url.path},
    )
    errors = [{"field": exc.path, "message": exc.message, "type": code.name.lower()}] if exc.path else None
    return create_problem_response(
        status_code=422,
        code=code,
        detail=str(exc),
        request=request,
        errors=errors,
    )


async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle standard HTTPException with RFC 7807 response."""
    code_map = {
        400: ErrorCode.VALIDATION_ERROR,
        401: ErrorCode.UNAUTHORIZED,
        403: ErrorCode.FORBIDDEN,
        404: ErrorCode.NOT_FOUND,
        409: ErrorCode.CONFLICT,
        422: ErrorCode.VALIDATION_ERROR,
        500: ErrorCode.INTERNAL_ERROR,
        502: ErrorCode.EXTERNAL_SERVICE_ERROR,
        503: ErrorCode.SERVICE_UNAVAILABLE,
    }

    code = code_map.get(exc.status_code, ErrorCode.INTERNAL_ERROR)

    response = create_problem_response(
        status_code=exc.status_code,
        code=code,
        detail=str(exc.detail),
        request=request,
    )
    if getattr(exc, "headers", None):
        response.headers.update(exc.headers)
    return response


async def handle_validation_exception(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle Pydantic validation errors with field-level details."""
    errors = []
    for error in exc.errors():
        errors.append({
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        })

    return create_problem_response(
        status_code=422,
        code=ErrorCode.VALIDATION_ERROR,
        detail="Request validation failed",
        request=request,
        errors=errors,
    )


async def handle_generic_exception(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions with RFC 7807 response."""
    trace_id = _get_trace_id()

    logger.error(
        f"Unhandled exception: {type(exc).__name__}",
        extra={"trace_id": trace_id, "path": request.url.path},
    )
    logger.error(traceback.format_exc())

    # Don't expose internal details in production
    from app.config import settings
    detail = str(exc) if settings.DEBUG else "An unexpected error occurred"

    return create_problem_response(
        status_code=500,
        code=ErrorCode.INTERNAL_ERROR,
        detail=detail,
        request=request,
        trace_id=trace_id,
    )


def register_exception_handlers(app) -> None:
    """Attach the problem-details handlers to a FastAPI application."""
    app.add_exception_handler(CRMException, handle_crm_exception)
    app.add_exception_handler(RuleEvaluationError, handle_rule_evaluation_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_validation_exception)
    app.add_exception_handler(Exception, handle_generic_exception)
