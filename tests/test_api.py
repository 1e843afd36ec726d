"""Tests for the HTTP surface: agent endpoint, push webhook and health."""

import hashlib
import hmac
import json

import pytest
from fastapi.testclient import TestClient

from autodoc.core.config import Settings, get_settings
from autodoc.exceptions import EngineUnavailableError
from autodoc.main import app
from autodoc.services import DocumentationService, get_documentation_service

from conftest import COMMIT, HEAD, ScriptedEngine, req, turn

SECRET = "s3cret"


@pytest.fixture()
def engine():
    return ScriptedEngine()


@pytest.fixture()
def api_settings():
    return Settings(confluence_space_id="DOCS", git_main_branch="main", webhook_secret="")


@pytest.fixture()
def client(api_settings, engine, page_store, source_reader):
    service = DocumentationService(api_settings, engine, page_store, source_reader)
    app.dependency_overrides[get_documentation_service] = lambda: service
    app.dependency_overrides[get_settings] = lambda: api_settings
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def _push(ref="refs/heads/main", commits=(COMMIT,)):
    return json.dumps({
        "ref": ref,
        "repository": {"id": 1, "name": "shop", "full_name": "acme/shop"},
        "commits": [{"id": c, "message": "change"} for c in commits],
    }).encode()


def _sign(body, secret=SECRET):
    return "sha256=" + hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


# ---------------------------------------------------------------------------
# Agent endpoint
# ---------------------------------------------------------------------------


class TestAgentEndpoint:

    def test_generate(self, client, engine):
        engine.steps = [
            turn(
                req("read-file", file_path="src/orders.py"),
                req("list-internal-dependencies", file_path="src/orders.py"),
                req("get-history", file_path="src/orders.py"),
            ),
            turn(text="ok"),
            turn(text="# Orders"),
            turn(req("convert-to-markup", markdown="# Orders")),
            turn(req("create-page", space_id="DOCS", title="Documentation: orders.py", content="<h1>Orders</h1>")),
        ]
        resp = client.post("/api/documentation/agent", json={"action": "generate", "file_path": "src/orders.py"})

        assert resp.status_code == 200
        data = resp.json()
        assert data["success"] is True
        assert data["status"] == "completed"
        assert data["page_id"] == "500001"

    def test_incomplete_update_is_not_an_http_error(self, client):
        resp = client.post("/api/documentation/agent", json={"action": "update", "page_id": "983041", "commit_id": COMMIT})
        assert resp.status_code == 200
        data = resp.json()
        assert data["success"] is False
        assert data["status"] == "incomplete_update"
        assert "update-page" in data["missing_actions"]

    def test_placeholder_commit_rejected(self, client, engine):
        resp = client.post("/api/documentation/agent", json={"action": "update", "commit_id": "[commit_id]"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "INVALID_REFERENCE"
        assert engine.calls == []

    def test_missing_file_path(self, client):
        resp = client.post("/api/documentation/agent", json={"action": "generate"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "INVALID_TASK"
        assert resp.json()["details"] == {"field": "file_path"}

    def test_unknown_action_kind(self, client):
        resp = client.post("/api/documentation/agent", json={"action": "delete"})
        assert resp.status_code == 422

    def test_engine_unavailable(self, client, engine):
        engine.steps = [EngineUnavailableError("provider timeout", endpoint="gpt-4o-mini")]
        resp = client.post("/api/documentation/agent", json={"action": "generate", "file_path": "src/orders.py"})
        assert resp.status_code == 503
        assert resp.json()["error"] == "ENGINE_UNAVAILABLE"


# ---------------------------------------------------------------------------
# Webhook
# ---------------------------------------------------------------------------


class TestWebhook:

    def test_push_to_main_processes_each_commit(self, client):
        resp = client.post("/api/documentation/webhook", content=_push(commits=(COMMIT, HEAD)))
        assert resp.status_code == 200
        data = resp.json()
        assert data["success"] is True
        assert [r["commit_id"] for r in data["results"]] == [COMMIT, HEAD]
        assert all(r["status"] == "processed" for r in data["results"])

    def test_other_branch_skipped(self, client, engine):
        resp = client.post("/api/documentation/webhook", content=_push(ref="refs/heads/feature/cart"))
        assert resp.status_code == 200
        assert resp.json()["message"].startswith("Skipped")
        assert resp.json()["results"] == []
        assert engine.calls == []

    def test_branch_must_match_exactly(self, client, engine):
        resp = client.post("/api/documentation/webhook", content=_push(ref="refs/heads/maintenance"))
        assert resp.json()["message"].startswith("Skipped")
        assert engine.calls == []

    def test_bad_commit_reported_per_commit(self, client):
        resp = client.post("/api/documentation/webhook", content=_push(commits=("not-a-sha", COMMIT)))
        results = resp.json()["results"]
        assert [r["status"] for r in results] == ["error", "processed"]

    def test_invalid_payload(self, client):
        resp = client.post("/api/documentation/webhook", content=b"not json")
        assert resp.status_code == 400

    def test_valid_signature(self, client, api_settings):
        api_settings.webhook_secret = SECRET
        body = _push(ref="refs/heads/dev")
        resp = client.post("/api/documentation/webhook", content=body, headers={"X-Hub-Signature-256": _sign(body)})
        assert resp.status_code == 200

    def test_bad_signature(self, client, api_settings, engine):
        api_settings.webhook_secret = SECRET
        body = _push()
        resp = client.post("/api/documentation/webhook", content=body,
                           headers={"X-Hub-Signature-256": _sign(body, "wrong")})
        assert resp.status_code == 401
        assert resp.json()["error"] == "WEBHOOK_VALIDATION_FAILED"
        assert engine.calls == []

    def test_missing_signature(self, client, api_settings):
        api_settings.webhook_secret = SECRET
        resp = client.post("/api/documentation/webhook", content=_push())
        assert resp.status_code == 401


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


class TestHealth:

    def test_health(self, client, engine):
        resp = client.get("/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "healthy"
        assert "uptime_seconds" in data
        assert data["version"] == "1.0.0"
        assert engine.calls == []

    def test_response_includes_middleware_headers(self, client):
        resp = client.get("/health", headers={"X-Request-ID": "abc123"})
        assert resp.headers["x-request-id"] == "abc123"
        assert "x-response-time" in resp.headers
