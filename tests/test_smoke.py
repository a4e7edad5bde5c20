import pytest

from app.pmms import create_app


def test_health_ok(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json["ok"] is True


def test_healthz_plain(client):
    r = client.get("/healthz")
    assert r.status_code == 200
    assert r.data == b"ok"


def test_login_me_and_logout(client, login):
    # Anonymous is rejected
    r = client.get("/auth/me")
    assert r.status_code == 401

    login()
    r = client.get("/auth/me")
    assert r.status_code == 200
    assert r.json["user"]["email"] == "admin@upnd.zm"
    assert "approve_members" in r.json["user"]["permissions"]

    r = client.post("/auth/logout")
    assert r.status_code == 200
    assert client.get("/auth/me").status_code == 401


def test_login_invalid_credentials(client):
    r = client.post("/auth/login", json={"email": "admin@upnd.zm", "password": "wrong"})
    assert r.status_code == 401
    assert r.json["error"] == "invalid_credentials"


def test_login_rate_limited_after_five_failures(client):
    for _ in range(5):
        r = client.post("/auth/login", json={"email": "admin@upnd.zm", "password": "wrong"})
        assert r.status_code == 401
    r = client.post("/auth/login", json={"email": "admin@upnd.zm", "password": "pw"})
    assert r.status_code == 429


def test_form_login_supported(client):
    r = client.post("/auth/login", data={"email": "admin@upnd.zm", "password": "pw"})
    assert r.status_code == 200
    assert r.json["csrf_token"]


def test_unknown_route_is_json_404(client):
    r = client.get("/api/does-not-exist")
    assert r.status_code == 404
    assert r.json["error"] == "not_found"


def test_public_jurisdiction_lookup(client):
    r = client.get("/api/jurisdictions/provinces")
    assert r.status_code == 200
    assert len(r.json["provinces"]) == 10
    assert "Copperbelt" in r.json["provinces"]

    r = client.get("/api/jurisdictions/provinces/Lusaka/districts")
    assert r.status_code == 200
    assert r.json["districts"] == ["Chongwe", "Kafue", "Luangwa", "Lusaka", "Rufunsa"]

    r = client.get("/api/jurisdictions/provinces/Atlantis/districts")
    assert r.status_code == 404


def test_production_guardrails(monkeypatch, tmp_path):
    monkeypatch.setenv("ENV", "production")
    monkeypatch.setenv("SECRET_KEY", "strong-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'prod.db'}")
    with pytest.raises(RuntimeError):
        create_app()
