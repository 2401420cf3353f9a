"""Security headers middleware."""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "camera=(), microphone=(), geolocation=()",
    "Content-Security-Policy": "default-src 'self'; img-src 'self' data:; frame-ancestors 'none'",
}

# Uploaded evidence never runs script, even if opened directly
EVIDENCE_CSP = "default-src 'none'; img-src 'self'; sandbox"


def content_security_policy_for(path: str) -> str:
    if path.startswith("/evidence/"):
        return EVIDENCE_CSP
    return SECURITY_HEADERS["Content-Security-Policy"]


def cache_control_for(method: str, path: str) -> str | None:
    """Cache policy by endpoint; None leaves the response untouched."""
    if method != "GET":
        return "no-store"
    if path == "/health":
        return "private, max-age=10"
    if path.startswith("/api/v1/analytics/"):
        return "private, max-age=30"
    if path.startswith("/api/v1/"):
        return "private, no-cache"
    return None


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Injects security headers into every response."""

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        response.headers["Content-Security-Policy"] = content_security_policy_for(request.url.path)

        cache_control = cache_control_for(request.method, request.url.path)
        if cache_control:
            response.headers["Cache-Control"] = cache_control
        return response
