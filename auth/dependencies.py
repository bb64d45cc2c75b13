"""
auth/dependencies.py -- FastAPI Depends() helpers for the session identity.

The identity lives in the signed session cookie written by /callback
(Starlette SessionMiddleware). There is no server-side session store: the
cookie carries the OIDC claims, and its signature is the proof.

try_get_current_user() is the soft variant (returns None on failure).
require_login() wraps it and raises LoginRequired, which api/main.py turns
into a 302 to /login?next=<path>.

Layer rule: no imports from web/ or tracker/.
  auth/dependencies.py may import from fastapi (for Request) because this
  module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

import logging

from fastapi import Request

from auth.models import SessionUser

logger = logging.getLogger("assignment_tracker.auth")

SESSION_USER_KEY = "user"


class LoginRequired(Exception):
    """Raised by require_login() when the request carries no session identity."""

    def __init__(self, next_path: str) -> None:
        super().__init__(next_path)
        self.next_path = next_path


def try_get_current_user(request: Request) -> SessionUser | None:
    """Return the session identity, or None if the visitor is not logged in.

    Never raises. A session entry without a "sub" claim is treated as logged
    out rather than trusted partially.
    """
    claims = request.session.get(SESSION_USER_KEY)
    if not isinstance(claims, dict) or not claims.get("sub"):
        return None
    return SessionUser.from_claims(claims)


def require_login(request: Request) -> SessionUser:
    """Require a session identity. Raises LoginRequired if there is none.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(user: SessionUser = Depends(require_login)): ...
    """
    user = try_get_current_user(request)
    if user is None:
        raise LoginRequired(request.url.path)
    return user


def login_user(request: Request, user: SessionUser) -> None:
    """Store the identity in the session. Called once by the OIDC callback."""
    request.session[SESSION_USER_KEY] = user.to_session()
    logger.info("Session started for sub=%s", user.sub)


def logout_user(request: Request) -> None:
    request.session.clear()
