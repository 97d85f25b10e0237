from __future__ import annotations

import httpx

import skillrouter.persistence.pg as pg
from skillrouter.api.deps import get_skill_invoker
from skillrouter.routing.registry import SkillRegistry


def _seed(*skills: dict) -> None:
    with pg.session_scope() as s:
        registry = SkillRegistry(s)
        for data in skills:
            registry.register(data)


def test_route_success_envelope(client):
    _seed({"name": "resume", "version": "1", "endpoint": "http://x"})

    resp = client.post("/route", json={"input": "help me with my resume"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["error"] is None
    assert body["requestId"]
    assert body["data"]["route"]["skill"] == "resume"
    assert body["data"]["route"]["confidence"] == 1.0
    assert body["data"]["route"]["response"] == {"text": "handled by resume"}


def test_route_requires_input(client):
    _seed({"name": "resume", "version": "1", "endpoint": "http://x"})

    resp = client.post("/route", json={"context": {"grade": 10}})

    assert resp.status_code == 400
    assert resp.json()["success"] is False
    assert resp.json()["error"] == "Input is required"


def test_route_with_empty_catalog_is_client_error(client):
    resp = client.post("/route", json={"input": "help"})

    assert resp.status_code == 400
    assert resp.json()["success"] is False


def test_remote_503_is_recorded_and_readable(client, make_invoker, auth_headers):
    _seed({"name": "resume", "version": "1", "endpoint": "http://x"})

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, json={"message": "try later"})

    client.app.dependency_overrides[get_skill_invoker] = lambda: make_invoker(handler)
    resp = client.post(
        "/route",
        json={"input": "resume", "request_id": "api-503"},
        headers=auth_headers["user"],
    )

    assert resp.status_code == 500
    body = resp.json()
    assert body["success"] is False
    assert "resume" in body["error"] and "503" in body["error"]

    stored = client.get("/route/api-503", headers=auth_headers["user"])
    assert stored.status_code == 200
    assert stored.json()["data"]["status"] == "failed"
    assert stored.json()["data"]["errorMessage"] == body["error"]


def test_duplicate_request_id_conflicts(client):
    _seed({"name": "resume", "version": "1", "endpoint": "http://x"})

    first = client.post("/route", json={"input": "resume", "request_id": "api-dup"})
    second = client.post("/route", json={"input": "resume", "request_id": "api-dup"})

    assert first.status_code == 200
    assert second.status_code == 409
    assert second.json()["requestId"] == "api-dup"


def test_history_requires_auth_and_is_scoped(client, auth_headers):
    _seed({"name": "resume", "version": "1", "endpoint": "http://x"})
    client.post("/route", json={"input": "resume 1", "request_id": "u-1"}, headers=auth_headers["user"])
    client.post("/route", json={"input": "resume 2", "request_id": "u-2"}, headers=auth_headers["user"])
    client.post("/route", json={"input": "resume 3", "request_id": "a-1"}, headers=auth_headers["admin"])

    assert client.get("/route/history").status_code == 401

    resp = client.get("/route/history", params={"page": 1, "limit": 1}, headers=auth_headers["user"])
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["pagination"] == {"total": 2, "page": 1, "limit": 1, "pages": 2}
    assert [r["requestId"] for r in data["routes"]] == ["u-2"]

    bad = client.get("/route/history", params={"limit": 0}, headers=auth_headers["user"])
    assert bad.status_code == 400


def test_route_by_id_access_control(client, auth_headers):
    _seed({"name": "resume", "version": "1", "endpoint": "http://x"})
    client.post("/route", json={"input": "resume", "request_id": "admin-owned"}, headers=auth_headers["admin"])
    client.post("/route", json={"input": "resume", "request_id": "anon-owned"})

    assert client.get("/route/admin-owned").status_code == 401
    assert client.get("/route/admin-owned", headers=auth_headers["user"]).status_code == 403
    assert client.get("/route/admin-owned", headers=auth_headers["admin"]).status_code == 200
    assert client.get("/route/anon-owned", headers=auth_headers["user"]).status_code == 200
    assert client.get("/route/nope", headers=auth_headers["user"]).status_code == 404


def test_invalid_api_key_is_rejected_even_on_public_route(client):
    resp = client.post("/route", json={"input": "resume"}, headers={"X-API-Key": "bogus"})

    assert resp.status_code == 401
    assert resp.json()["success"] is False
