from __future__ import annotations


def _register(client, headers, **data):
    return client.post("/skills", json=data, headers=headers)


def test_registry_mutations_require_admin(client, auth_headers):
    assert _register(client, {}, name="resume", version="1").status_code == 401
    assert _register(client, auth_headers["user"], name="resume", version="1").status_code == 403

    created = _register(client, auth_headers["admin"], name="resume", version="1", endpoint="http://x")
    assert created.status_code == 201
    skill_id = created.json()["data"]["id"]

    assert client.put(f"/skills/{skill_id}", json={"version": "2"}, headers=auth_headers["user"]).status_code == 403
    assert client.delete(f"/skills/{skill_id}", headers=auth_headers["user"]).status_code == 403


def test_register_accepts_camel_case_fields(client, auth_headers):
    resp = _register(
        client,
        auth_headers["admin"],
        name="mentorship",
        version="1.0",
        type="llm",
        endpoint="https://skills.local/mentor",
        timeoutMs=4000,
        authConfig={"type": "bearer", "token_env": "MENTOR_TOKEN"},
        capabilities=["match", "schedule"],
    )

    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["type"] == "llm"
    assert data["timeoutMs"] == 4000
    assert data["authConfig"] == {"type": "bearer", "token_env": "MENTOR_TOKEN"}
    assert data["isActive"] is True


def test_register_validation_and_conflict(client, auth_headers):
    assert _register(client, auth_headers["admin"], name="", version="1").status_code == 400
    assert _register(client, auth_headers["admin"], name="resume").status_code == 400
    bad_url = _register(client, auth_headers["admin"], name="resume", version="1", endpoint="http://[::1")
    assert bad_url.status_code == 400
    assert bad_url.json()["error_code"] == "validation_error"
    assert _register(client, auth_headers["admin"], name="resume", version="1").status_code == 201

    dup = _register(client, auth_headers["admin"], name="resume", version="2")
    assert dup.status_code == 409
    assert dup.json()["success"] is False

    listing = client.get("/skills").json()
    assert listing["count"] == 1
    assert listing["data"][0]["version"] == "1"


def test_update_patch_and_missing(client, auth_headers):
    created = _register(client, auth_headers["admin"], name="resume", version="1", endpoint="http://x")
    skill_id = created.json()["data"]["id"]

    updated = client.put(f"/skills/{skill_id}", json={"timeoutMs": 3000}, headers=auth_headers["admin"])
    assert updated.status_code == 200
    assert updated.json()["data"]["timeoutMs"] == 3000
    assert updated.json()["data"]["endpoint"] == "http://x"
    assert updated.json()["data"]["version"] == "1"

    missing = client.put("/skills/9999", json={"version": "2"}, headers=auth_headers["admin"])
    assert missing.status_code == 404


def test_delete_deactivates_instead_of_removing(client, auth_headers):
    first = _register(client, auth_headers["admin"], name="resume", version="1").json()["data"]["id"]
    _register(client, auth_headers["admin"], name="roadmap", version="1")

    resp = client.delete(f"/skills/{first}", headers=auth_headers["admin"])
    assert resp.status_code == 200
    assert resp.json()["message"] == "Skill deactivated successfully"

    active = client.get("/skills").json()
    assert [s["name"] for s in active["data"]] == ["roadmap"]

    everything = client.get("/skills", params={"include_inactive": "true"}).json()
    assert [s["name"] for s in everything["data"]] == ["resume", "roadmap"]
    camel = client.get("/skills", params={"includeInactive": "true"}).json()
    assert camel["count"] == 2

    single = client.get(f"/skills/{first}")
    assert single.status_code == 200
    assert single.json()["data"]["isActive"] is False

    assert client.get("/skills/9999").status_code == 404
    assert client.delete("/skills/9999", headers=auth_headers["admin"]).status_code == 404
