"""
tracker/store.py -- SQLAlchemy-backed persistence layer for assignments.

Uses SQLAlchemy Core (not ORM) so the dataclasses in tracker/models.py remain
the authoritative domain representation. SQLite is the zero-config default;
MySQL (the deployment target) and PostgreSQL are a connection string change.

Pattern: Repository + Data Mapper. AssignmentStore is the repository; the
_row_to_* functions are the mappers. Route handlers never touch SQL directly.

Ownership: every assignment query takes the caller's owner id and filters on
it in the WHERE clause. A row owned by someone else is indistinguishable from
a row that does not exist.

Security: all queries use bound parameters. No f-strings in SQL.

Connection pooling: the engine owns a pool. Each method borrows one
connection with `with self.engine.connect()` and returns it on block exit.

Usage:
    store = AssignmentStore()                                    # SQLite default
    store = AssignmentStore("mysql+pymysql://u:pw@host/db", pool_size=10)
    new_id = store.create_assignment(assignment)
    rows = store.list_assignments(owner_user_id)
    store.close()
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import (
    Column,
    Date,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    event,
    select,
    text,
)
from sqlalchemy.engine import Engine
from sqlalchemy.pool import Pool

from core.config import DEFAULT_SQLITE_URL
from tracker.models import Assignment, Subject

logger = logging.getLogger("assignment_tracker.store")

_DEFAULT_DB_URL = DEFAULT_SQLITE_URL

# Seed list for `main.py init-db --seed`.
DEFAULT_SUBJECTS: list[str] = ["Math", "Language", "Science", "History", "Computer Science", "Art"]

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_subjects = Table(
    "subjects",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(45), nullable=False, unique=True),
)

_assignments = Table(
    "assignments",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", String(255), nullable=False),
    Column("priority", Integer),
    Column("subject_id", Integer, ForeignKey("subjects.id"), nullable=False),
    Column("due_date", Date),
    Column("description", Text),
    Column("user_id", String(255), nullable=False, index=True),  # OIDC "sub"
)


# ---------------------------------------------------------------------------
# SQLite connection setup
# ---------------------------------------------------------------------------


def _sqlite_on_connect(dbapi_conn, connection_record) -> None:
    """Enable WAL and foreign keys on every new SQLite connection.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool. foreign_keys makes the subject reference an
    enforced constraint, as it is on MySQL.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")
    dbapi_conn.execute("PRAGMA foreign_keys=ON")


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class AssignmentStore:
    def __init__(
        self,
        db_url: str = _DEFAULT_DB_URL,
        pool_size: int = 10,
        pool_recycle: int = 3600,
        poolclass: Optional[type[Pool]] = None,
    ) -> None:
        connect_args: dict = {}
        engine_kwargs: dict = {}
        if poolclass is not None:
            engine_kwargs["poolclass"] = poolclass
        if db_url.startswith("sqlite"):
            # SQLite requires check_same_thread=False when used from FastAPI's
            # threadpool, where one pooled connection may serve several threads.
            connect_args["check_same_thread"] = False
        elif poolclass is None:
            # SQLite picks its own pool class; sizing only applies to server DBs.
            engine_kwargs.update(
                pool_size=pool_size,
                max_overflow=0,
                pool_recycle=pool_recycle,
                pool_pre_ping=True,
            )
        self.engine: Engine = create_engine(db_url, connect_args=connect_args, **engine_kwargs)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _sqlite_on_connect)
        metadata.create_all(self.engine)
        logger.info("Assignment store ready (%s)", self.engine.url.render_as_string(hide_password=True))

    # ------------------------------------------------------------------
    # Subjects
    # ------------------------------------------------------------------

    def create_subject(self, name: str) -> int:
        """Insert a subject and return its ID. Raises IntegrityError on a duplicate name."""
        with self.engine.connect() as conn:
            result = conn.execute(_subjects.insert().values(name=name))
            conn.commit()
            return result.inserted_primary_key[0]

    def get_subject(self, subject_id: int) -> Optional[Subject]:
        with self.engine.connect() as conn:
            row = conn.execute(_subjects.select().where(_subjects.c.id == subject_id)).fetchone()
        return _row_to_subject(row) if row is not None else None

    def list_subjects(self) -> list[Subject]:
        """Return all subjects ordered by name."""
        with self.engine.connect() as conn:
            rows = conn.execute(_subjects.select().order_by(_subjects.c.name)).fetchall()
        return [_row_to_subject(r) for r in rows]

    def seed_subjects(self, names: list[str]) -> int:
        """Insert any of `names` not already present. Returns how many were added.

        Idempotent: safe to run on every deploy.
        """
        with self.engine.connect() as conn:
            existing = set(conn.execute(select(_subjects.c.name)).scalars())
            missing = [n for n in names if n not in existing]
            for name in missing:
                conn.execute(_subjects.insert().values(name=name))
            conn.commit()
        return len(missing)

    # ------------------------------------------------------------------
    # Assignments (always scoped by owner)
    # ------------------------------------------------------------------

    def list_assignments(self, owner_user_id: str) -> list[Assignment]:
        """Return the owner's assignments joined with subject names, newest first."""
        stmt = (
            _assignment_select()
            .where(_assignments.c.user_id == owner_user_id)
            .order_by(_assignments.c.id.desc())
        )
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [_row_to_assignment(r) for r in rows]

    def get_assignment(self, assignment_id: int, owner_user_id: str) -> Optional[Assignment]:
        """Fetch one assignment. Returns None if missing or owned by someone else."""
        stmt = _assignment_select().where(
            (_assignments.c.id == assignment_id) & (_assignments.c.user_id == owner_user_id)
        )
        with self.engine.connect() as conn:
            row = conn.execute(stmt).fetchone()
        return _row_to_assignment(row) if row is not None else None

    def create_assignment(self, assignment: Assignment) -> int:
        """Insert a new assignment and return its assigned database ID."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _assignments.insert().values(
                    title=assignment.title,
                    priority=assignment.priority,
                    subject_id=assignment.subject_id,
                    due_date=assignment.due_date,
                    description=assignment.description,
                    user_id=assignment.owner_user_id,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def update_assignment(self, assignment_id: int, owner_user_id: str, **fields) -> bool:
        """Update mutable fields on an owned assignment.

        Accepts any subset of: title, priority, subject_id, due_date,
        description. Returns True if a row matched, False if the id does not
        exist or belongs to another owner (nothing is written in that case).
        """
        unknown = set(fields) - _MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Not updatable: {sorted(unknown)}")
        with self.engine.connect() as conn:
            result = conn.execute(
                _assignments.update()
                .where((_assignments.c.id == assignment_id) & (_assignments.c.user_id == owner_user_id))
                .values(**fields)
            )
            conn.commit()
        return result.rowcount > 0

    def delete_assignment(self, assignment_id: int, owner_user_id: str) -> bool:
        """Delete an owned assignment. Returns False if nothing matched."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _assignments.delete().where(
                    (_assignments.c.id == assignment_id) & (_assignments.c.user_id == owner_user_id)
                )
            )
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def ping(self) -> bool:
        """Return True if a pooled connection can run SELECT 1."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except Exception:
            logger.exception("Database ping failed")
            return False

    def close(self) -> None:
        self.engine.dispose()


_MUTABLE_FIELDS = {"title", "priority", "subject_id", "due_date", "description"}


def _assignment_select():
    return select(
        _assignments.c.id,
        _assignments.c.title,
        _assignments.c.priority,
        _assignments.c.subject_id,
        _assignments.c.due_date,
        _assignments.c.description,
        _assignments.c.user_id,
        _subjects.c.name.label("subject_name"),
    ).select_from(_assignments.join(_subjects, _assignments.c.subject_id == _subjects.c.id))


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern -- DB row -> domain dataclass)
# ---------------------------------------------------------------------------


def _row_to_subject(row) -> Subject:
    return Subject(id=row.id, name=row.name)


def _row_to_assignment(row) -> Assignment:
    return Assignment(
        id=row.id,
        title=row.title,
        priority=row.priority,
        subject_id=row.subject_id,
        due_date=row.due_date,
        description=row.description,
        owner_user_id=row.user_id,
        subject_name=row.subject_name,
    )
