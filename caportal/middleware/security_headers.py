"""
Security headers middleware.

WHY: The portal serves confidential tax documents. Browser-enforced headers
keep those responses out of caches, frames and MIME sniffing.
"""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from typing import Callable


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Middleware that adds security headers to all responses.

    Headers:
    - Strict-Transport-Security: HTTPS only
    - X-Content-Type-Options: no MIME sniffing of previewed documents
    - X-Frame-Options / frame-ancestors: no embedding in foreign frames
    - Referrer-Policy: document URLs (which may carry ?token=) never leak
    - Cache-Control on API responses: invoices and files are never cached
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "SAMEORIGIN"
        response.headers["Referrer-Policy"] = "no-referrer"
        response.headers["Permissions-Policy"] = "camera=(), microphone=(), geolocation=()"

        # Swagger UI needs inline scripts and a CDN, everything else is locked down
        if not request.url.path.startswith(("/api/docs", "/api/redoc")):
            response.headers["Content-Security-Policy"] = (
                "default-src 'self'; frame-ancestors 'self'; base-uri 'self'"
            )

        if request.url.path.startswith("/api/"):
            response.headers.setdefault("Cache-Control", "no-store")

        return response
