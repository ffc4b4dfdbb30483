def test_health_is_public(client):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.get_json()["status"] == "ok"


def test_login_and_me(client, auth_headers):
    resp = client.get("/api/auth/me", headers=auth_headers)
    assert resp.status_code == 200
    assert resp.get_json()["email"] == "admin@example.com"


def test_bad_password(client):
    resp = client.post("/api/auth/login", json={"email": "admin@example.com", "password": "nope"})
    assert resp.status_code == 401
    assert resp.get_json()["error"] == "unauthorized"


def test_login_requires_fields(client):
    resp = client.post("/api/auth/login", json={})
    assert resp.status_code == 400


def test_routes_require_token(client):
    for path in ("/api/payments", "/api/students", "/api/reports/overdue"):
        resp = client.get(path)
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "unauthorized"


def test_unknown_route_is_json_404(client):
    resp = client.get("/api/nothing-here")
    assert resp.status_code == 404
    assert resp.get_json()["error"] == "not_found"
