"""Tests for the metrics middleware and exposition."""

from types import SimpleNamespace

from starlette.routing import Match

from api.middleware.metrics import MetricsMiddleware, get_metrics, get_metrics_content_type


class FakeRoute:
    def __init__(self, match: Match):
        self._match = match

    def matches(self, scope):
        return self._match, {}


class PathRoute(FakeRoute):
    def __init__(self, path: str, match: Match):
        super().__init__(match)
        self.path = path


def _request(*routes, raw_path="/api/workspace/123/chat"):
    return SimpleNamespace(
        app=SimpleNamespace(routes=list(routes)),
        scope={"type": "http", "path": raw_path},
        url=SimpleNamespace(path=raw_path),
    )


class TestPathTemplate:
    """Route patterns are used as labels instead of raw paths."""

    def setup_method(self):
        self.middleware = MetricsMiddleware(app=None)

    def test_matching_route_pattern(self):
        request = _request(
            PathRoute("/api/workspace", Match.NONE),
            PathRoute("/api/workspace/{workspace_id}/chat", Match.FULL),
        )
        assert self.middleware._get_path_template(request) == "/api/workspace/{workspace_id}/chat"

    def test_routes_without_path_are_skipped(self):
        request = _request(
            FakeRoute(Match.FULL),
            PathRoute("/api/workspace/{workspace_id}/chat", Match.FULL),
        )
        assert self.middleware._get_path_template(request) == "/api/workspace/{workspace_id}/chat"

    def test_falls_back_to_raw_path(self):
        request = _request(FakeRoute(Match.FULL), PathRoute("/metrics", Match.NONE))
        assert self.middleware._get_path_template(request) == "/api/workspace/123/chat"


class TestExposition:
    def test_chat_metrics_are_exported(self):
        output = get_metrics().decode("utf-8")

        assert "# HELP chat_websocket_connections" in output
        assert "chat_payloads_dropped" in output

    def test_content_type(self):
        assert get_metrics_content_type().startswith("text/plain")
