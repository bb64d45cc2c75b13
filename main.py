#!/usr/bin/env python3
"""
Assignment Tracker -- start script and database setup.

Usage:
  python main.py serve
  python main.py serve --port 8080 --reload
  python main.py serve --workers 4
  python main.py init-db
  python main.py init-db --seed

Under a process manager (systemd, supervisord, pm2), point it at
`python main.py serve`; HOST and PORT come from the environment or .env.

Environment variables:
  PORT, HOST           Bind address (default 0.0.0.0:3000)
  DATABASE_URL         Full SQLAlchemy URL, or DB_HOST/DB_USER/... for MySQL
  SECRET_KEY           Session signing key (AUTH0_SECRET is accepted too)
  AUTH0_*              OIDC client settings; see .env.example
"""

import argparse
from typing import Optional

import uvicorn

from core.config import get_settings
from tracker.store import DEFAULT_SUBJECTS, AssignmentStore


def init_db(db_url: str, seed: bool = False) -> int:
    """Create the schema (idempotent) and optionally add the default subjects.

    Returns the number of subjects inserted.
    """
    store = AssignmentStore(db_url)
    try:
        added = store.seed_subjects(DEFAULT_SUBJECTS) if seed else 0
    finally:
        store.close()
    return added


def serve(host: str, port: int, reload: bool = False, workers: Optional[int] = None) -> None:
    # An import string (not the app object) is required for --reload/--workers.
    uvicorn.run(
        "asgi:app",
        host=host,
        port=port,
        reload=reload,
        workers=None if reload else workers,
        proxy_headers=True,
    )


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="assignment-tracker",
        description="Per-user homework assignment tracker.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py init-db --seed
  python main.py serve
  PORT=8080 python main.py serve --workers 2
        """,
    )
    sub = parser.add_subparsers(dest="command")

    serve_p = sub.add_parser("serve", help="Run the web server")
    serve_p.add_argument("--host", default=None, help="Bind host (default: HOST or 0.0.0.0)")
    serve_p.add_argument("--port", type=int, default=None, help="Bind port (default: PORT or 3000)")
    serve_p.add_argument("--reload", action="store_true", help="Restart on code changes (development)")
    serve_p.add_argument("--workers", type=int, default=None, metavar="N", help="Number of worker processes")

    init_p = sub.add_parser("init-db", help="Create tables in the configured database")
    init_p.add_argument("--seed", action="store_true", help="Also insert the default subject list")

    args = parser.parse_args()
    cfg = get_settings()

    if args.command == "serve":
        host = args.host or cfg.host
        port = args.port or cfg.port
        print(f"App server listening on {port}. (Go to http://localhost:{port})")
        serve(host, port, reload=args.reload, workers=args.workers)
    elif args.command == "init-db":
        added = init_db(cfg.resolved_database_url(), seed=args.seed)
        print(f"Database ready. {added} subject(s) added.")
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
