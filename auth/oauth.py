"""
auth/oauth.py -- Authlib OIDC provider configuration.

Reads configuration from core.config.get_settings() at module load. The
provider is registered only when both AUTH0_CLIENT_ID and
AUTH0_ISSUER_BASE_URL are set; otherwise oauth.create_client("auth0")
returns None and /login answers 503.

Any OIDC issuer with a discovery document works (Auth0, Okta, Keycloak...);
the Auth0-specific part is limited to build_logout_url().

Security notes:
  OAuth state parameter (CSRF protection) and nonce are handled by authlib
  automatically via Starlette SessionMiddleware. The session stores them
  between the authorization redirect and the callback.

  The id_token is validated by authlib against the issuer's JWKS before
  token["userinfo"] is populated. We only read claims from there.

Layer rule: no imports from api/, web/, or tracker/. Import from core/
is allowed -- core/ is the kernel layer.
"""

from __future__ import annotations

import logging
from urllib.parse import urlencode

from authlib.integrations.starlette_client import OAuth

from core.config import get_settings

logger = logging.getLogger("assignment_tracker.auth.oauth")

PROVIDER_NAME = "auth0"

# ---------------------------------------------------------------------------
# Authlib OAuth registry
# ---------------------------------------------------------------------------

oauth = OAuth()

_cfg = get_settings()

if _cfg.oidc_enabled:
    oauth.register(
        name=PROVIDER_NAME,
        client_id=_cfg.auth0_client_id,
        client_secret=_cfg.auth0_client_secret or None,
        server_metadata_url=f"{_cfg.auth0_issuer_base_url.rstrip('/')}/.well-known/openid-configuration",
        client_kwargs={"scope": "openid profile email"},
    )
    logger.info("OIDC provider registered (issuer: %s)", _cfg.auth0_issuer_base_url)
else:
    logger.warning("OIDC provider not configured -- /login is disabled")


# ---------------------------------------------------------------------------
# Claims extraction
# ---------------------------------------------------------------------------


def get_oauth_user_claims(token: dict) -> dict:
    """Return the verified id_token claims from an authlib token response.

    Raises:
        ValueError: If the token has no userinfo or no subject claim. The
            caller must treat this as an authentication failure.
    """
    userinfo = token.get("userinfo")
    if not userinfo:
        raise ValueError("OIDC: no userinfo in token response")
    if not userinfo.get("sub"):
        raise ValueError("OIDC: missing sub claim in userinfo")
    return dict(userinfo)


# ---------------------------------------------------------------------------
# URLs
# ---------------------------------------------------------------------------


def callback_url() -> str:
    return f"{get_settings().auth0_base_url.rstrip('/')}/callback"


def build_logout_url() -> str:
    """Return where /logout should send the browser after clearing the session.

    With AUTH0_LOGOUT on, that is the Auth0 /v2/logout endpoint so the
    provider session ends too (otherwise the next /login would silently sign
    the same user back in). Without it, the app's own base URL.
    """
    cfg = get_settings()
    base_url = cfg.auth0_base_url.rstrip("/") + "/"
    if not (cfg.auth0_logout and cfg.oidc_enabled):
        return base_url
    query = urlencode({"client_id": cfg.auth0_client_id, "returnTo": base_url})
    return f"{cfg.auth0_issuer_base_url.rstrip('/')}/v2/logout?{query}"
