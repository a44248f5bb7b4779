"""Database infrastructure for SQLModel + PostgreSQL.

Usage:
    from teamsync.db import get_session, engine

    with get_session() as session:
        workspace = session.get(Workspace, workspace_id)
"""

from teamsync.db.engine import engine, get_session, init_db

__all__ = [
    "engine",
    "get_session",
    "init_db",
]
