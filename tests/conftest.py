"""Shared test configuration and fixtures.

Environment defaults are set before any application module is imported:
api.auth.jwt refuses to load without JWT_SECRET, and teamsync.db.engine
builds its engine from DATABASE_URL at import time.
"""

import os

os.environ.setdefault("JWT_SECRET", "test-secret-for-unit-tests")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest

from tests.db_utils import build_team, create_test_engine


@pytest.fixture
def engine():
    """Fresh in-memory database with tables and seeded roles."""
    test_engine = create_test_engine()
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def team(engine):
    """Workspace with an owner, co-owner, two admins, a member and an outsider."""
    return build_team(engine)
