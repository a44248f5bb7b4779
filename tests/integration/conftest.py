"""Shared fixtures for integration tests.

The application runs against the per-test in-memory engine: get_engine
and get_session_dependency are overridden on the FastAPI app.
"""

import asyncio
from typing import Any

import anyio
import pytest
from httpx import ASGITransport, AsyncClient
from sqlmodel import Session
from starlette.testclient import TestClient

from api.main import app
from api.routes.dependencies import get_engine
from teamsync.db.engine import get_session_dependency


class SyncClient:
    """Synchronous wrapper around httpx AsyncClient for testing."""

    def __init__(self, app):
        self.app = app
        self.transport = ASGITransport(app=app)
        self.base_url = "http://testserver"

    def _run_async(self, coro):
        """Run async coroutine synchronously."""
        loop = asyncio.new_event_loop()
        try:
            return loop.run_until_complete(coro)
        finally:
            loop.close()

    async def _request(self, method: str, url: str, **kwargs) -> Any:
        """Make async request."""
        async with AsyncClient(transport=self.transport, base_url=self.base_url) as client:
            response = await client.request(method, url, **kwargs)
            return response

    def get(self, url: str, **kwargs):
        return self._run_async(self._request("GET", url, **kwargs))

    def post(self, url: str, **kwargs):
        return self._run_async(self._request("POST", url, **kwargs))

    def put(self, url: str, **kwargs):
        return self._run_async(self._request("PUT", url, **kwargs))

    def delete(self, url: str, **kwargs):
        return self._run_async(self._request("DELETE", url, **kwargs))


@pytest.fixture
def test_app(engine):
    """The API wired to the test engine."""

    def override_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_engine] = lambda: engine
    app.dependency_overrides[get_session_dependency] = override_session
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(test_app):
    """HTTP client for REST routes."""
    return SyncClient(test_app)


@pytest.fixture
def ws_client(test_app):
    """Starlette client for WebSocket routes. The lifespan is not started.

    All sessions share one blocking portal, so every socket runs on the same
    event loop and a broadcast wakes a peer already blocked in receive.
    """
    client = TestClient(test_app)
    with anyio.from_thread.start_blocking_portal(**client.async_backend) as portal:
        client.portal = portal
        yield client
        client.portal = None
