"""
api/security.py -- Security response headers (helmet-style defaults) and the login rate limiter.

Uses pure ASGI middleware (not BaseHTTPMiddleware) so streaming responses
pass through untouched; headers are injected on the http.response.start
message.

The Content-Security-Policy allows scripts from 'self' and
cdnjs.cloudflare.com (where the pages load Materialize from) and nothing
else. Headers already set by a route are left alone.

The shared slowapi Limiter lives here too. SlowAPIMiddleware reads it from
app.state.limiter and web/routes.py decorates /login and /callback with it;
a second Limiter instance would keep its own counters and never trigger.
"""

from __future__ import annotations

from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

_CSP_DIRECTIVES: dict[str, list[str]] = {
    "default-src": ["'self'"],
    "base-uri": ["'self'"],
    "font-src": ["'self'", "https:", "data:"],
    "form-action": ["'self'"],
    "frame-ancestors": ["'self'"],
    "img-src": ["'self'", "data:", "https:"],
    "object-src": ["'none'"],
    "script-src": ["'self'", "cdnjs.cloudflare.com"],
    "script-src-attr": ["'none'"],
    "style-src": ["'self'", "https:", "'unsafe-inline'"],
}


def build_csp(directives: dict[str, list[str]] = _CSP_DIRECTIVES) -> str:
    return "; ".join(f"{name} {' '.join(values)}" for name, values in directives.items())


def default_security_headers(hsts: bool) -> dict[str, str]:
    headers = {
        "Content-Security-Policy": build_csp(),
        "Cross-Origin-Opener-Policy": "same-origin",
        "Cross-Origin-Resource-Policy": "same-origin",
        "Origin-Agent-Cluster": "?1",
        "Referrer-Policy": "no-referrer",
        "X-Content-Type-Options": "nosniff",
        "X-DNS-Prefetch-Control": "off",
        "X-Download-Options": "noopen",
        "X-Frame-Options": "SAMEORIGIN",
        "X-Permitted-Cross-Domain-Policies": "none",
        "X-XSS-Protection": "0",
    }
    # Only meaningful behind HTTPS; sending it over plain HTTP in dev would
    # pin localhost to HTTPS in the browser.
    if hsts:
        headers["Strict-Transport-Security"] = "max-age=15552000; includeSubDomains"
    return headers


class SecurityHeadersMiddleware:
    """Add security headers to every HTTP response."""

    def __init__(self, app: ASGIApp, hsts: bool = False) -> None:
        self.app = app
        self._headers = default_security_headers(hsts)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_headers(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                for name, value in self._headers.items():
                    if name not in headers:
                        headers[name] = value
            await send(message)

        await self.app(scope, receive, send_with_headers)


# ---------------------------------------------------------------------------
# Rate limiting
# ---------------------------------------------------------------------------

# Keyed by client IP. uvicorn runs with proxy_headers, so behind a reverse
# proxy this is the X-Forwarded-For address, not the proxy's.
limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")
