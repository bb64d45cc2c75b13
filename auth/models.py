"""
auth/models.py -- Session identity dataclass.

Pattern: Data class (pure data container, zero logic). Mirrors the approach
in tracker/models.py -- dataclasses own domain shape; routes do the work.

Layer rule: no imports from api/, web/, or tracker/.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass


@dataclass
class SessionUser:
    """The logged-in identity, rebuilt from the session cookie on each request.

    sub is the identity provider's stable subject ID and is the only field the
    data layer relies on: it is stored as assignments.user_id and every query
    filters on it. The remaining claims are display-only and may be None when
    the provider's scope did not include them.
    """

    sub: str
    name: str | None = None
    email: str | None = None
    nickname: str | None = None
    picture: str | None = None

    @classmethod
    def from_claims(cls, claims: dict) -> SessionUser:
        return cls(
            sub=str(claims["sub"]),
            name=claims.get("name"),
            email=claims.get("email"),
            nickname=claims.get("nickname"),
            picture=claims.get("picture"),
        )

    def to_session(self) -> dict:
        return asdict(self)
