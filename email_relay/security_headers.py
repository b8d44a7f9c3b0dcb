"""
Security Headers Middleware for FastAPI

Adds security headers to all responses of the relay API:
- X-Frame-Options: Prevents clickjacking attacks
- X-Content-Type-Options: Prevents MIME type sniffing
- Referrer-Policy: Controls referrer information leakage
- Content-Security-Policy: Nothing to load from a JSON API
- Strict-Transport-Security: Enforces HTTPS (production only)
- Cache-Control: Prevents caching of sensitive data
"""

import logging
from typing import Callable, Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

logger = logging.getLogger(__name__)


def get_csp_policy() -> str:
    """Content-Security-Policy for an API that only serves JSON"""
    directives = [
        "default-src 'none'",
        "frame-ancestors 'none'",
        "base-uri 'none'",
        "form-action 'none'",
    ]
    return "; ".join(directives)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Middleware that adds security headers to all responses"""

    def __init__(
        self,
        app,
        exclude_paths: Optional[list[str]] = None,
        is_production: bool = False,
    ):
        super().__init__(app)
        self.exclude_paths = exclude_paths or []
        self.is_production = is_production

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        # Skip security headers for excluded paths (e.g., health checks)
        path = request.url.path
        if any(path.startswith(excluded) for excluded in self.exclude_paths):
            return response

        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Content-Security-Policy"] = get_csp_policy()

        # max-age=31536000 = 1 year
        if self.is_production:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        if "Cache-Control" not in response.headers:
            response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate"

        response.headers["X-Permitted-Cross-Domain-Policies"] = "none"

        # Note: Cross-Origin-Resource-Policy is NOT set here to allow CORS to work properly

        return response
