"""Tests for the HTTP surface in telescope_insight/main.py"""

import json

import pytest
from fastapi.testclient import TestClient

from telescope_insight.config import Settings
from telescope_insight.main import create_app
from telescope_insight.services.storage import JsonlEntryStore

from conftest import make_entry, request_entry


@pytest.fixture
def client(settings, store, clock):
    store.add(request_entry(entry_id="req-1", uri="/api/users", duration=1200))
    store.add(make_entry("exception", entry_id="exc-1", **{"class": "RuntimeException"}))
    return TestClient(create_app(settings, store, clock))


def test_health(client):
    body = client.get("/api/health").json()
    assert body["status"] == "ok"
    assert body["store"] == {"configured": True}
    assert "requests" in body["tools"]
    assert "maintenance" in body["tools"]


def test_manifest(client):
    tools = client.get("/api/manifest").json()["tools"]
    names = [t["name"] for t in tools]
    assert len(names) == 16
    assert {"overview", "maintenance", "requests", "queries", "logs", "jobs"} <= set(names)
    for tool in tools:
        assert tool["inputSchema"]["type"] == "object"


class TestToolCalls:
    def test_call_envelope(self, client):
        body = client.post("/api/tools/call", json={"name": "requests", "arguments": {"action": "slow"}}).json()
        assert body["data"]["total_slow"] == 1
        assert json.loads(body["content"][0]["text"]) == body["data"]

    def test_call_by_path(self, client):
        body = client.post("/api/tools/exceptions", json={"action": "detail", "id": "exc-1"}).json()
        assert body["data"]["entry"]["content"]["class"] == "RuntimeException"

    def test_call_by_path_without_body(self, client):
        body = client.post("/api/tools/requests").json()
        assert body["data"]["pagination"]["total"] == 1

    def test_tool_error_is_a_result(self, client):
        response = client.post("/api/tools/requests", json={"action": "detail", "id": "nope"})
        assert response.status_code == 200
        assert response.json()["error"]["kind"] == "not_found"

    def test_unknown_tool(self, client):
        response = client.post("/api/tools/call", json={"name": "horizon"})
        assert response.status_code == 404
        assert response.json() == {"error": "Unknown tool: horizon"}

    def test_missing_name(self, client):
        assert client.post("/api/tools/call", json={"arguments": {}}).status_code == 400

    def test_bad_arguments(self, client):
        response = client.post("/api/tools/call", json={"name": "requests", "arguments": [1]})
        assert response.status_code == 400


def test_unknown_route(client):
    response = client.get("/api/nothing-here")
    assert response.status_code == 404
    assert response.json() == {"error": "Route not found"}


class TestUpload:
    def test_needs_file_store(self, client):
        response = client.post("/api/entries/upload", files={"file": ("e.jsonl", b'{"uuid": "a"}')})
        assert response.status_code == 409

    def test_upload_then_query(self, tmp_path, clock):
        store = JsonlEntryStore(str(tmp_path / "entries.jsonl"))
        client = TestClient(create_app(Settings(store_path=store.file_path), store, clock))
        records = [
            {"uuid": "a", "type": "log", "content": {"level": "error", "message": "disk full"},
             "created_at": "2025-05-15T11:50:00Z"},
            {"uuid": "b", "type": "log", "content": {"level": "info", "message": "ok"},
             "created_at": "2025-05-15T11:55:00Z"},
        ]

        response = client.post("/api/entries/upload", files={"file": ("e.json", json.dumps(records).encode())})
        assert response.status_code == 200
        assert response.json()["written"] == 2
        assert response.json()["mode"] == "json_array"

        body = client.post("/api/tools/logs", json={"action": "search", "query": "disk"}).json()
        assert [r["id"] for r in body["data"]["data"]] == ["a"]

        health = client.get("/api/health").json()
        assert health["store"]["total_entries"] == 2

    def test_empty_upload(self, tmp_path, clock):
        store = JsonlEntryStore(str(tmp_path / "entries.jsonl"))
        client = TestClient(create_app(Settings(store_path=store.file_path), store, clock))
        response = client.post("/api/entries/upload", files={"file": ("e.json", b"")})
        assert response.status_code == 400
