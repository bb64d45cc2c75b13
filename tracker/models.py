"""
tracker/models.py -- Domain dataclasses for the assignment tracker.

These are pure data containers with zero logic. All queries live in
tracker/store.py and all display shaping lives in tracker/views.py.
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional


@dataclass
class Subject:
    """A course/subject an assignment is filed under. name is unique."""

    name: str
    id: Optional[int] = None


@dataclass
class Assignment:
    """A single piece of homework owned by exactly one user.

    owner_user_id is the OIDC subject claim ("sub") of the identity that
    created it. Every store query filters on it, so one user can never see or
    touch another user's rows.

    subject_name is populated only on reads (joined from subjects); it is
    ignored on insert/update. id is None before the record is written.
    """

    title: str
    priority: int
    subject_id: int
    owner_user_id: str
    due_date: Optional[date] = None
    description: Optional[str] = None
    subject_name: Optional[str] = None
    id: Optional[int] = None
