"""
Middleware package.

WHY: Middleware provides cross-cutting concerns like security headers and
request context that apply to all requests.
"""

from caportal.middleware.security_headers import SecurityHeadersMiddleware
from caportal.middleware.request_context import (
    RequestContextMiddleware,
    get_request_context,
    get_client_ip,
    get_user_agent,
    RequestContext,
)

__all__ = [
    "SecurityHeadersMiddleware",
    "RequestContextMiddleware",
    "get_request_context",
    "get_client_ip",
    "get_user_agent",
    "RequestContext",
]
