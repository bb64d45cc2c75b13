"""
web/routes.py -- Jinja2 template routes for the assignment tracker web UI.

Every /assignments route depends on require_login(): no session identity
means a 302 to /login?next=<path> (see the LoginRequired handler in
api/main.py). The identity's sub claim is passed to every store call, so the
SQL itself is what keeps users out of each other's rows.

Route registration order matters. FastAPI resolves same-level paths in order:
  - POST /assignments/{assignment_id}/delete is a distinct path from
    POST /assignments/{assignment_id}; no ordering issue, but GET on the
    delete path is deliberately unregistered and answers 405.

Routes:
  GET  /                                  -- home page
  GET  /assignments                       -- list + create form (auth required)
  POST /assignments                       -- create, 303 to /assignments/{id}
  GET  /assignments/{assignment_id}       -- detail + edit form (auth required)
  POST /assignments/{assignment_id}       -- update, 303 to detail
  POST /assignments/{assignment_id}/delete -- delete, 303 to /assignments
  GET  /login                             -- redirect to the OIDC provider
  GET  /callback                          -- OIDC callback, starts the session
  GET  /logout                            -- clear session (and IdP session)
  GET  /authtest                          -- "Logged in" / "Logged out"
  GET  /profile                           -- session claims as JSON (auth required)
"""

from __future__ import annotations

import logging
from datetime import date
from pathlib import Path
from typing import Optional

from authlib.integrations.starlette_client import OAuthError
from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, PlainTextResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from api.models import ProfileResponse
from api.security import limiter
from auth.dependencies import login_user, logout_user, require_login, try_get_current_user
from auth.models import SessionUser
from auth.oauth import PROVIDER_NAME, build_logout_url, callback_url, get_oauth_user_claims
from core.config import get_settings
from tracker.models import Assignment
from tracker.store import AssignmentStore
from tracker.views import assignment_detail, assignment_list_row

logger = logging.getLogger("assignment_tracker.web")

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))
# Expose the identity lookup to layout.html so every page can show
# logged-in state without each handler passing it explicitly.
templates.env.globals["current_user"] = try_get_current_user
router = APIRouter()

_cfg = get_settings()

_MAX_TITLE_LENGTH = 255
# MySQL INT is signed 32-bit; SQLite would accept more but stay portable.
_PRIORITY_MIN = -(2**31)
_PRIORITY_MAX = 2**31 - 1


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _safe_next(next_url: Optional[str]) -> str:
    """Validate a post-login redirect target. Only accept relative paths.

    Rejects absolute URLs, protocol-relative ones ("//evil.example") and any
    backslash, since browsers read "/\\evil.example" as "//evil.example".
    """
    if next_url and next_url.startswith("/") and not next_url.startswith("//") and "\\" not in next_url:
        return next_url
    return "/"


def _not_found(assignment_id: int) -> HTMLResponse:
    return HTMLResponse(f"<h1>No assignment found with id = {assignment_id}</h1>", status_code=404)


def _parse_assignment_form(
    store: AssignmentStore,
    title: Optional[str],
    priority: Optional[str],
    subject: Optional[str],
    due_date: Optional[str],
    description: Optional[str],
) -> tuple[Optional[dict], Optional[str]]:
    """Validate raw form values. Returns (fields, None) or (None, error message).

    fields uses store column names and is ready for create/update.
    """
    title_clean = (title or "").strip()
    if not title_clean:
        return None, "Title is required."
    if len(title_clean) > _MAX_TITLE_LENGTH:
        return None, f"Title must be {_MAX_TITLE_LENGTH} characters or fewer."

    try:
        priority_value = int((priority or "").strip())
    except ValueError:
        return None, "Priority must be a whole number."
    if not _PRIORITY_MIN <= priority_value <= _PRIORITY_MAX:
        return None, "Priority is out of range."

    try:
        subject_id = int((subject or "").strip())
    except ValueError:
        return None, "Choose a subject."
    if store.get_subject(subject_id) is None:
        return None, "Choose a subject."

    due_raw = (due_date or "").strip()
    due_value: Optional[date] = None
    if due_raw:
        try:
            due_value = date.fromisoformat(due_raw)
        except ValueError:
            return None, "Due date must be in YYYY-MM-DD format."

    return {
        "title": title_clean,
        "priority": priority_value,
        "subject_id": subject_id,
        "due_date": due_value,
        "description": (description or "").strip() or None,
    }, None


def _submitted_values(
    title: Optional[str],
    priority: Optional[str],
    subject: Optional[str],
    due_date: Optional[str],
    description: Optional[str],
) -> dict:
    """Raw form input, keyed like the form fields, for re-rendering after a 400."""
    return {
        "title": title or "",
        "priority": priority or "",
        "subject": subject or "",
        "dueDate": due_date or "",
        "description": description or "",
    }


def _render_list(
    request: Request,
    user: SessionUser,
    error: Optional[str] = None,
    form_data: Optional[dict] = None,
    status_code: int = 200,
) -> HTMLResponse:
    store: AssignmentStore = request.app.state.store
    rows = [assignment_list_row(a) for a in store.list_assignments(user.sub)]
    return templates.TemplateResponse(
        request,
        "assignments.html",
        {
            "assignments": rows,
            "subjects": store.list_subjects(),
            "error": error,
            "form_data": form_data or {},
        },
        status_code=status_code,
    )


# ---------------------------------------------------------------------------
# GET / -- home page
# ---------------------------------------------------------------------------


@router.get("/", response_class=HTMLResponse)
def index(request: Request) -> HTMLResponse:
    return templates.TemplateResponse(request, "index.html", {})


# ---------------------------------------------------------------------------
# GET /assignments -- list
# ---------------------------------------------------------------------------


@router.get("/assignments", response_class=HTMLResponse)
def assignment_list(request: Request, user: SessionUser = Depends(require_login)) -> HTMLResponse:
    return _render_list(request, user)


# ---------------------------------------------------------------------------
# POST /assignments -- create, 303-redirect to the new detail page
# ---------------------------------------------------------------------------


@router.post("/assignments", response_class=HTMLResponse)
def assignment_create(
    request: Request,
    title: Optional[str] = Form(default=None),
    priority: Optional[str] = Form(default=None),
    subject: Optional[str] = Form(default=None),
    due_date: Optional[str] = Form(default=None, alias="dueDate"),
    description: Optional[str] = Form(default=None),
    user: SessionUser = Depends(require_login),
) -> HTMLResponse:
    """Handle the create form POST. Invalid input re-renders the list with an error."""
    store: AssignmentStore = request.app.state.store
    fields, error = _parse_assignment_form(store, title, priority, subject, due_date, description)
    if error:
        form_data = _submitted_values(title, priority, subject, due_date, description)
        return _render_list(request, user, error=error, form_data=form_data, status_code=400)

    new_id = store.create_assignment(Assignment(owner_user_id=user.sub, **fields))
    logger.info("Assignment %d created by sub=%s", new_id, user.sub)
    return RedirectResponse(f"/assignments/{new_id}", status_code=303)


# ---------------------------------------------------------------------------
# GET /assignments/{assignment_id} -- detail
# ---------------------------------------------------------------------------


@router.get("/assignments/{assignment_id}", response_class=HTMLResponse)
def assignment_detail_page(
    request: Request,
    assignment_id: int,
    user: SessionUser = Depends(require_login),
) -> HTMLResponse:
    store: AssignmentStore = request.app.state.store
    assignment = store.get_assignment(assignment_id, user.sub)
    if assignment is None:
        return _not_found(assignment_id)
    return templates.TemplateResponse(
        request,
        "detail.html",
        {"hw": assignment_detail(assignment), "subjects": store.list_subjects(), "error": None},
    )


# ---------------------------------------------------------------------------
# POST /assignments/{assignment_id} -- update, 303-redirect to detail
# ---------------------------------------------------------------------------


@router.post("/assignments/{assignment_id}", response_class=HTMLResponse)
def assignment_update(
    request: Request,
    assignment_id: int,
    title: Optional[str] = Form(default=None),
    priority: Optional[str] = Form(default=None),
    subject: Optional[str] = Form(default=None),
    due_date: Optional[str] = Form(default=None, alias="dueDate"),
    description: Optional[str] = Form(default=None),
    user: SessionUser = Depends(require_login),
) -> HTMLResponse:
    """Handle the edit form POST. Another user's id behaves exactly like a missing one."""
    store: AssignmentStore = request.app.state.store
    fields, error = _parse_assignment_form(store, title, priority, subject, due_date, description)
    if error:
        assignment = store.get_assignment(assignment_id, user.sub)
        if assignment is None:
            return _not_found(assignment_id)
        return templates.TemplateResponse(
            request,
            "detail.html",
            {
                "hw": assignment_detail(assignment),
                "subjects": store.list_subjects(),
                "error": error,
                "form_data": _submitted_values(title, priority, subject, due_date, description),
            },
            status_code=400,
        )

    if not store.update_assignment(assignment_id, user.sub, **fields):
        return _not_found(assignment_id)
    return RedirectResponse(f"/assignments/{assignment_id}", status_code=303)


# ---------------------------------------------------------------------------
# POST /assignments/{assignment_id}/delete -- delete, 303-redirect to list
# ---------------------------------------------------------------------------


@router.post("/assignments/{assignment_id}/delete", response_class=HTMLResponse)
def assignment_delete(
    request: Request,
    assignment_id: int,
    user: SessionUser = Depends(require_login),
) -> HTMLResponse:
    store: AssignmentStore = request.app.state.store
    if not store.delete_assignment(assignment_id, user.sub):
        return _not_found(assignment_id)
    logger.info("Assignment %d deleted by sub=%s", assignment_id, user.sub)
    return RedirectResponse("/assignments", status_code=303)


# ---------------------------------------------------------------------------
# Auth routes -- login, callback, logout, authtest, profile
# ---------------------------------------------------------------------------


@limiter.limit(_cfg.login_rate_limit)  # must be ABOVE @router; SlowAPIMiddleware enforces it by endpoint name
@router.get("/login")
async def login(request: Request):
    """Remember where to go afterwards, then redirect to the OIDC provider."""
    client = request.app.state.oauth.create_client(PROVIDER_NAME)
    if client is None:
        return HTMLResponse("<h1>Login is not configured on this server.</h1>", status_code=503)
    request.session["next"] = _safe_next(request.query_params.get("next"))
    return await client.authorize_redirect(request, callback_url())


@limiter.limit(_cfg.login_rate_limit)
@router.get("/callback")
async def oauth_callback(request: Request):
    """Handle the OIDC callback and start the session.

    Flow:
      1. Exchange the authorization code (authlib checks state and nonce).
      2. Read the verified id_token claims; a missing sub is a failure.
      3. Reset the session, store the identity, redirect to the saved next.
    """
    client = request.app.state.oauth.create_client(PROVIDER_NAME)
    if client is None:
        return HTMLResponse("<h1>Login is not configured on this server.</h1>", status_code=503)

    try:
        token = await client.authorize_access_token(request)
    except OAuthError:
        logger.exception("OIDC token exchange failed")
        return HTMLResponse("<h1>Login failed. Please try again.</h1>", status_code=401)

    try:
        claims = get_oauth_user_claims(token)
    except ValueError:
        logger.warning("OIDC login rejected: incomplete claims", exc_info=True)
        return HTMLResponse("<h1>Login failed. Please try again.</h1>", status_code=401)

    next_url = _safe_next(request.session.pop("next", None))
    # Fresh session on login: nothing set before authentication survives.
    request.session.clear()
    login_user(request, SessionUser.from_claims(claims))

    resp = RedirectResponse(next_url, status_code=302)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.get("/logout")
def logout(request: Request) -> RedirectResponse:
    logout_user(request)
    return RedirectResponse(build_logout_url(), status_code=302)


@router.get("/authtest", response_class=PlainTextResponse)
def authtest(request: Request) -> PlainTextResponse:
    return PlainTextResponse("Logged in" if try_get_current_user(request) else "Logged out")


@router.get("/profile")
def profile(user: SessionUser = Depends(require_login)) -> ProfileResponse:
    return ProfileResponse(**user.to_session())
