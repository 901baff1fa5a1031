"""
Request context middleware.

WHAT: Captures request ID, client IP and user agent for every request and
exposes them to services through a context variable.

WHY: Audit entries (invoice edits, payments, document downloads) must say
where a request came from, and the access log lines need a request ID the
office can quote back when a client reports a problem.

HOW: A Starlette BaseHTTPMiddleware stores a RequestContext on
``request.state`` and in a ContextVar, logs one line per request with its
duration, and echoes the request ID in the ``X-Request-ID`` response header.
"""

import logging
import time
import uuid
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Optional, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestContext:
    """Request-scoped context captured at the edge."""

    request_id: str
    ip_address: str
    user_agent: Optional[str]
    path: str
    method: str


_request_context: ContextVar[Optional[RequestContext]] = ContextVar(
    "request_context", default=None
)


def get_request_context() -> Optional[RequestContext]:
    """
    Get the current request context.

    Returns:
        RequestContext if within a request, None otherwise (scripts, tests)
    """
    return _request_context.get()


def get_client_ip(request: Request) -> str:
    """
    Extract the real client IP address from a request.

    HOW: Checks headers in order of trust:
    1. X-Real-IP (set by nginx)
    2. X-Forwarded-For (first entry is the original client)
    3. request.client.host (direct connection)

    Security Note:
        These headers can be spoofed when the app is not behind a proxy
        that overwrites them.
    """
    x_real_ip = request.headers.get("X-Real-IP")
    if x_real_ip:
        return x_real_ip.strip()

    x_forwarded_for = request.headers.get("X-Forwarded-For")
    if x_forwarded_for:
        return x_forwarded_for.split(",")[0].strip()

    if request.client and request.client.host:
        return request.client.host

    return "unknown"


def get_user_agent(request: Request) -> Optional[str]:
    """Extract the User-Agent header from a request."""
    return request.headers.get("User-Agent")


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Middleware that captures and stores request context.

    An incoming ``X-Request-ID`` (from a proxy or the frontend) is reused so
    one ID follows the request end to end; otherwise a UUID4 is generated.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())

        context = RequestContext(
            request_id=request_id,
            ip_address=get_client_ip(request),
            user_agent=get_user_agent(request),
            path=request.url.path,
            method=request.method,
        )
        request.state.context = context
        token = _request_context.set(context)

        started = time.perf_counter()
        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id

            logger.info(
                "%s %s -> %s (%.1f ms) [%s]",
                context.method,
                context.path,
                response.status_code,
                (time.perf_counter() - started) * 1000,
                request_id,
            )
            return response

        finally:
            _request_context.reset(token)
