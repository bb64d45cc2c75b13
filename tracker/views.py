"""
tracker/views.py -- Shape store results into template-ready dicts.

Date formatting lives here rather than in SQL so the queries stay portable
across SQLite and MySQL. Templates receive plain dicts with display strings
already computed; they never call methods on domain objects.
"""

from datetime import date
from typing import Optional

from tracker.models import Assignment


_SUFFIXES = {1: "st", 2: "nd", 3: "rd"}


def _ordinal(day: int) -> str:
    if 11 <= day % 100 <= 13:
        return f"{day}th"
    return f"{day}{_SUFFIXES.get(day % 10, 'th')}"


def format_due_short(due: Optional[date]) -> str:
    """'03/05/2024 (Tuesday)' -- used on the list page."""
    if due is None:
        return ""
    return due.strftime("%m/%d/%Y (%A)")


def format_due_long(due: Optional[date]) -> str:
    """'Tuesday, March 5th 2024' -- used on the detail page."""
    if due is None:
        return ""
    return f"{due.strftime('%A, %B')} {_ordinal(due.day)} {due.year}"


def format_due_ymd(due: Optional[date]) -> str:
    """'2024-03-05' -- the value an <input type="date"> expects."""
    if due is None:
        return ""
    return due.isoformat()


def assignment_list_row(assignment: Assignment) -> dict:
    return {
        "assignment_id": assignment.id,
        "title": assignment.title,
        "priority": assignment.priority,
        "subject_name": assignment.subject_name,
        "subject_id": assignment.subject_id,
        "due_date_formatted": format_due_short(assignment.due_date),
    }


def assignment_detail(assignment: Assignment) -> dict:
    return {
        "assignment_id": assignment.id,
        "title": assignment.title,
        "priority": assignment.priority,
        "subject_name": assignment.subject_name,
        "subject_id": assignment.subject_id,
        "due_date_extended": format_due_long(assignment.due_date),
        "due_date_ymd": format_due_ymd(assignment.due_date),
        "description": assignment.description or "",
    }
