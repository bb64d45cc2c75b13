"""Tests for the main.py database setup command."""

from __future__ import annotations

from unittest.mock import patch

from main import init_db, serve
from tracker.store import DEFAULT_SUBJECTS, AssignmentStore


def test_init_db_creates_schema_without_seeding(tmp_path):
    url = f"sqlite:///{tmp_path / 'tracker.db'}"
    assert init_db(url) == 0
    store = AssignmentStore(url)
    try:
        assert store.list_subjects() == []
        assert store.list_assignments("auth0|anyone") == []
    finally:
        store.close()


def test_init_db_seed_is_idempotent(tmp_path):
    url = f"sqlite:///{tmp_path / 'tracker.db'}"
    assert init_db(url, seed=True) == len(DEFAULT_SUBJECTS)
    assert init_db(url, seed=True) == 0


def test_serve_passes_import_string_to_uvicorn():
    with patch("main.uvicorn.run") as run:
        serve("127.0.0.1", 8080, reload=True, workers=4)
    args, kwargs = run.call_args
    assert args == ("asgi:app",)
    assert kwargs["host"] == "127.0.0.1"
    assert kwargs["port"] == 8080
    assert kwargs["workers"] is None
    assert kwargs["proxy_headers"] is True
