"""
API response models for the assignment tracker's JSON endpoints.

These Pydantic v2 models define the HTTP transport contract for the few JSON
responses the app emits (errors, health, profile). They are intentionally
separate from the dataclasses in tracker/models.py and auth/models.py.
"""

from typing import Optional

from pydantic import BaseModel


class ErrorDetail(BaseModel):
    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Uniform error envelope: {"error": {"code", "message", "detail"}}."""

    error: ErrorDetail


class HealthResponse(BaseModel):
    status: str = "healthy"
    version: str
    components: dict[str, str] = {}


class ProfileResponse(BaseModel):
    """The session identity, as returned by GET /profile."""

    sub: str
    name: Optional[str] = None
    email: Optional[str] = None
    nickname: Optional[str] = None
    picture: Optional[str] = None
