"""
Request tracing IDs.

The dashboard sends `X-Correlation-ID` once per browser session and may
send `X-Request-ID` per call. Missing IDs are generated. Both are kept in
context variables for the log filter and the problem responses, and are
echoed back on every response.
"""

import logging
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

CORRELATION_HEADER = "X-Correlation-ID"
REQUEST_HEADER = "X-Request-ID"
UNKNOWN = "unknown"

correlation_id_ctx: ContextVar[str] = ContextVar("correlation_id", default="")
request_id_ctx: ContextVar[str] = ContextVar("request_id", default="")


def generate_id() -> str:
    """Short random ID, long enough to grep logs for."""
    return uuid.uuid4().hex[:12]


def _incoming_or_new(request: Request, header: str) -> str:
    value = request.headers.get(header, "").strip()
    return value or generate_id()


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        ids = {
            CORRELATION_HEADER: _incoming_or_new(request, CORRELATION_HEADER),
            REQUEST_HEADER: _incoming_or_new(request, REQUEST_HEADER),
        }
        correlation_id_ctx.set(ids[CORRELATION_HEADER])
        request_id_ctx.set(ids[REQUEST_HEADER])
        request.state.request_id = ids[REQUEST_HEADER]

        response = await call_next(request)
        response.headers.update(ids)
        return response


def get_correlation_id() -> str:
    return correlation_id_ctx.get() or UNKNOWN


def get_request_id() -> str:
    return request_id_ctx.get() or UNKNOWN


class CorrelationLogFilter(logging.Filter):
    """Adds `correlation_id` and `request_id` to every record, for `%(request_id)s` formats."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id()
        record.request_id = get_request_id()
        return True
