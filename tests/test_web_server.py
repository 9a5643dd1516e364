"""Tests for the FastAPI REST surface."""

import pytest
from unittest.mock import AsyncMock, patch

from fastapi.testclient import TestClient

from web.server import app


@pytest.fixture
def http():
    # Not entered as a context manager, so the lifespan does not sign in.
    return TestClient(app)


class TestWebServer:
    """Tests for the HTTP endpoints."""

    def test_health(self, http):
        assert http.get("/health").json() == {"status": "healthy"}

    def test_lists_tools(self, http):
        names = [tool["name"] for tool in http.get("/tools").json()["tools"]]
        assert "query_datasource" in names

    def test_call_tool_uses_body_as_arguments(self, http):
        execute = AsyncMock(return_value={"status": "success", "data": [{"id": "ds1"}]})
        with patch("web.server.execute_tool", execute):
            response = http.post("/tools/list_datasources", json={"limit": 3})

        assert response.status_code == 200
        assert response.json()["data"] == [{"id": "ds1"}]
        execute.assert_awaited_once_with("list_datasources", {"limit": 3})

    def test_call_tool_empty_body(self, http):
        execute = AsyncMock(return_value={"status": "empty", "type": "no-results", "message": "none"})
        with patch("web.server.execute_tool", execute):
            response = http.post("/tools/list_datasources")

        body = response.json()
        assert body["status"] == "empty"
        assert body["type"] == "no-results"
        execute.assert_awaited_once_with("list_datasources", {})

    def test_call_tool_rejects_non_object(self, http):
        response = http.post("/tools/list_datasources", json=[1, 2])

        assert response.status_code == 400

    def test_execute_passes_error_through(self, http):
        execute = AsyncMock(return_value={"status": "error", "type": "feature-disabled", "error": "disabled"})
        with patch("web.server.execute_tool", execute):
            response = http.post(
                "/execute",
                json={"tool_name": "query_datasource", "arguments": {"datasource_luid": "ds1", "query": {}}},
            )

        body = response.json()
        assert body["status"] == "error"
        assert body["type"] == "feature-disabled"
        assert body["error"] == "disabled"
