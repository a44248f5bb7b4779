"""SQLModel engine and session management.

This module provides:
- Database engine creation with connection pooling
- Session factory for dependency injection
- Database initialization utilities

PostgreSQL is the primary database. SQLite is accepted for tests.
"""

from contextlib import contextmanager
from typing import Any, Generator

from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from teamsync.config import DATABASE_URL


def engine_options(database_url: str) -> dict[str, Any]:
    """Engine keyword arguments appropriate for the database backend."""
    if database_url.startswith("sqlite"):
        options: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url:
            # One shared connection so every session sees the same database
            options["poolclass"] = StaticPool
        return options

    # pool_pre_ping ensures connections are valid before use
    return {
        "pool_pre_ping": True,
        "pool_size": 5,
        "max_overflow": 10,
    }


engine = create_engine(
    DATABASE_URL,
    echo=False,  # Set to True for SQL debugging
    **engine_options(DATABASE_URL),
)


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """Get a database session.

    Usage:
        with get_session() as session:
            workspace = session.get(Workspace, workspace_id)

    Yields:
        SQLModel Session instance
    """
    with Session(engine) as session:
        try:
            yield session
        except Exception:
            session.rollback()
            raise


def get_session_dependency() -> Generator[Session, None, None]:
    """FastAPI dependency for database sessions."""
    with Session(engine) as session:
        yield session


def init_db() -> None:
    """Create all tables.

    Should only be used for development/testing.
    Use Alembic migrations for production.
    """
    # Import all models to ensure they're registered with SQLModel
    from teamsync.db.models import (  # noqa: F401
        User,
        Role,
        Workspace,
        Member,
        Message,
    )

    SQLModel.metadata.create_all(engine)

