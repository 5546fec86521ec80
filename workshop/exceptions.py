"""
RFC 7807 Problem Details for the workshop API.

Every error response is `application/problem+json`. Besides the standard
members the body repeats `detail` as `error`, the field the dashboard shows
in its toasts, and carries the request ID as `trace_id` so a screenshot of
an error can be matched to the server log.

See: https://datatracker.ietf.org/doc/html/rfc7807
"""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from workshop.middleware.correlation import generate_id, get_request_id

logger = logging.getLogger(__name__)

PROBLEM_BASE_URL = "https://workshop.local/problems"

STATUS_TITLES = {
    400: "Bad Request",
    404: "Not Found",
    405: "Method Not Allowed",
    409: "Conflict",
    422: "Validation Error",
    500: "Internal Server Error",
    502: "Bad Gateway",
    503: "Service Unavailable",
}


class ErrorCode(str, Enum):
    """Machine-readable codes, grouped by prefix."""

    # Input
    VALIDATION_ERROR = "VAL_001"
    CONSTRAINT_VIOLATION = "VAL_004"

    # Records
    NOT_FOUND = "RES_001"
    CONFLICT = "RES_003"

    # Ledger rules
    INSUFFICIENT_STOCK = "BIZ_002"

    # Email and PDF
    EXTERNAL_SERVICE_ERROR = "EXT_001"
    EMAIL_ERROR = "EXT_002"
    PDF_ERROR = "EXT_003"

    INTERNAL_ERROR = "SRV_001"
    SERVICE_UNAVAILABLE = "SRV_002"


# Codes for plain HTTPExceptions raised by the routes
HTTP_STATUS_CODES = {
    400: ErrorCode.VALIDATION_ERROR,
    404: ErrorCode.NOT_FOUND,
    405: ErrorCode.VALIDATION_ERROR,
    409: ErrorCode.CONFLICT,
    422: ErrorCode.VALIDATION_ERROR,
    502: ErrorCode.EXTERNAL_SERVICE_ERROR,
    503: ErrorCode.SERVICE_UNAVAILABLE,
}


def _trace_id() -> str:
    request_id = get_request_id()
    if request_id and request_id != "unknown":
        return request_id
    return generate_id()


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


class ProblemDetail(BaseModel):
    """Response body for every error.

    Example:
        {
            "type": "https://workshop.local/problems/biz-002",
            "title": "Bad Request",
            "status": 400,
            "detail": "Insufficient stock for Engine Oil 5W-30",
            "error": "Insufficient stock for Engine Oil 5W-30",
            "instance": "/invoices",
            "code": "BIZ_002",
            "timestamp": "2026-01-29T10:30:00.000000Z",
            "trace_id": "abc123def456"
        }
    """

    type: str = "about:blank"
    title: str
    status: int
    detail: str
    error: str
    instance: Optional[str] = None
    code: str
    timestamp: str
    trace_id: str
    errors: Optional[List[Dict[str, Any]]] = None

    @classmethod
    def build(
        cls,
        status: int,
        code: ErrorCode,
        detail: str,
        instance: Optional[str] = None,
        errors: Optional[List[Dict[str, Any]]] = None,
        trace_id: Optional[str] = None,
    ) -> "ProblemDetail":
        return cls(
            type=f"{PROBLEM_BASE_URL}/{code.value.lower().replace('_', '-')}",
            title=STATUS_TITLES.get(status, "Error"),
            status=status,
            detail=detail,
            error=detail,
            instance=instance,
            code=code.value,
            timestamp=_now(),
            trace_id=trace_id or _trace_id(),
            errors=errors,
        )


class WorkshopError(HTTPException):
    """Base for errors the ledger and routes raise on purpose.

    Usage:
        raise NotFoundError("Invoice not found")
        raise WorkshopError(status_code=409, code=ErrorCode.CONFLICT, detail="...")
    """

    def __init__(
        self,
        status_code: int,
        code: ErrorCode,
        detail: str,
        instance: Optional[str] = None,
        errors: Optional[List[Dict[str, Any]]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.code = code
        self.instance = instance
        self.errors = errors
        self.trace_id = _trace_id()
        super().__init__(status_code=status_code, detail=detail, headers=headers)

    def to_problem_detail(self, instance: Optional[str] = None) -> ProblemDetail:
        return ProblemDetail.build(
            self.status_code,
            self.code,
            self.detail,
            instance=self.instance or instance,
            errors=self.errors,
            trace_id=self.trace_id,
        )


class ValidationError(WorkshopError):
    """Malformed, missing or out-of-range input (400)."""

    def __init__(self, detail: str, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(400, ErrorCode.VALIDATION_ERROR, detail, errors=errors)


class NotFoundError(WorkshopError):
    """Referenced record absent (404)."""

    def __init__(self, detail: str, instance: Optional[str] = None):
        super().__init__(404, ErrorCode.NOT_FOUND, detail, instance=instance)


class ConflictError(WorkshopError):
    """The record is in a state that forbids the operation (409)."""

    def __init__(self, detail: str):
        super().__init__(409, ErrorCode.CONFLICT, detail)


class InsufficientStockError(WorkshopError):
    """Planned consumable usage exceeds the quantity on hand (400)."""

    def __init__(self, detail: str):
        super().__init__(400, ErrorCode.INSUFFICIENT_STOCK, detail)


class ExternalServiceError(WorkshopError):
    """Email provider or PDF renderer failure (502)."""

    def __init__(self, service: str, detail: str, code: ErrorCode = ErrorCode.EXTERNAL_SERVICE_ERROR):
        super().__init__(502, code, f"{service} service error: {detail}")


def _problem_response(
    problem: ProblemDetail,
    request: Request,
    allowed_origins: List[str],
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    response = JSONResponse(
        status_code=problem.status,
        content=problem.model_dump(exclude_none=True),
        media_type="application/problem+json",
        headers=headers,
    )

    # Unhandled errors skip CORSMiddleware, so the dashboard would only see a CORS failure
    origin = request.headers.get("origin", "")
    if origin and origin in allowed_origins:
        response.headers["Access-Control-Allow-Origin"] = origin
        response.headers["Access-Control-Allow-Credentials"] = "true"
        response.headers["Vary"] = "Origin"

    return response


def create_exception_handlers(allowed_origins: List[str]):
    """
    Build the exception handlers, keyed by what main.py registers them for.

    Usage in main.py:
        handlers = create_exception_handlers(settings.cors_origins)
        app.add_exception_handler(WorkshopError, handlers["workshop"])
    """

    def respond(request: Request, problem: ProblemDetail, headers=None) -> JSONResponse:
        return _problem_response(problem, request, allowed_origins, headers)

    async def handle_workshop_exception(request: Request, exc: WorkshopError) -> JSONResponse:
        logger.warning(
            "%s - %s",
            exc.code.value,
            exc.detail,
            extra={"trace_id": exc.trace_id, "status_code": exc.status_code, "path": request.url.path},
        )
        return respond(request, exc.to_problem_detail(instance=request.url.path), exc.headers)

    async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        code = HTTP_STATUS_CODES.get(exc.status_code, ErrorCode.INTERNAL_ERROR)
        problem = ProblemDetail.build(exc.status_code, code, str(exc.detail), instance=request.url.path)
        return respond(request, problem, getattr(exc, "headers", None))

    async def handle_validation_exception(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = [
            {
                "field": ".".join(str(loc) for loc in error["loc"]),
                "message": error["msg"],
                "type": error["type"],
            }
            for error in exc.errors()
        ]
        problem = ProblemDetail.build(
            422,
            ErrorCode.VALIDATION_ERROR,
            "Request validation failed",
            instance=request.url.path,
            errors=errors,
        )
        return respond(request, problem)

    async def handle_integrity_error(request: Request, exc: IntegrityError) -> JSONResponse:
        """Foreign key and unique constraint failures surface as conflicts."""
        logger.warning("Integrity error on %s: %s", request.url.path, exc.orig)
        problem = ProblemDetail.build(
            409,
            ErrorCode.CONSTRAINT_VIOLATION,
            "Record is referenced by other records or violates a constraint",
            instance=request.url.path,
        )
        return respond(request, problem)

    async def handle_generic_exception(request: Request, exc: Exception) -> JSONResponse:
        trace_id = _trace_id()
        logger.error(
            "Unhandled exception: %s",
            exc,
            exc_info=exc,
            extra={"trace_id": trace_id, "path": request.url.path},
        )

        # Internal details only leave the server in debug mode
        from workshop.config import settings
        detail = str(exc) if settings.DEBUG else "An unexpected error occurred"

        problem = ProblemDetail.build(
            500, ErrorCode.INTERNAL_ERROR, detail, instance=request.url.path, trace_id=trace_id
        )
        return respond(request, problem)

    return {
        "workshop": handle_workshop_exception,
        "http": handle_http_exception,
        "validation": handle_validation_exception,
        "integrity": handle_integrity_error,
        "generic": handle_generic_exception,
    }
